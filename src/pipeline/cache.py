"""Pipeline caching system using Parquet for fast checkpointing.

Provides hash-based cache invalidation and parquet storage for
pipeline step outputs, enabling fast debugging and iteration.
"""

import hashlib
import json
import logging
import shutil
from pathlib import Path
from typing import Any

import polars as pl

from tabular import Dataset

logger = logging.getLogger(__name__)

DATA_FILE = "dataset.parquet"


class PipelineCache:
    """Manages parquet-based caching for pipeline steps.

    Cache structure:
        .cache/
            {step_name}/
                {cache_key}/
                    metadata.json
                    dataset.parquet

    The cache key is a hash of:
    - Step name
    - Input dataset (schema + row count + row hashes + grouping)
    - Step parameters

    This ensures cache invalidation when inputs or configuration change.
    Grouping is stored in metadata.json since parquet only holds the frame.
    """

    def __init__(self, cache_dir: Path | str = Path(".cache")) -> None:
        """Initialize pipeline cache.

        Args:
            cache_dir: Root directory for cache storage
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._stats = {"hits": 0, "misses": 0}

    def get_cache_key(
        self,
        step_name: str,
        dataset: Dataset | None,
        params: dict[str, Any] | None,
    ) -> str:
        """Generate cache key from step name, input, and parameters.

        Args:
            step_name: Name of the pipeline step
            dataset: Input dataset (or None for a source step)
            params: Step parameters from config

        Returns:
            16-character hex hash string
        """
        hash_parts = [step_name]

        if dataset is not None:
            df = dataset.frame
            data_hash = ""
            if df.height > 0:
                # Row order is part of the key
                data_hash = hashlib.sha256(
                    df.hash_rows().to_numpy().tobytes()
                ).hexdigest()
            hash_parts.append(
                f"{df.schema}:{df.height}:{data_hash}:{list(dataset.groups)}"
            )

        if params:
            # Sort keys for deterministic hashing
            hash_parts.append(json.dumps(params, sort_keys=True, default=str))

        combined = "|".join(hash_parts)
        return hashlib.sha256(combined.encode()).hexdigest()[:16]

    def load(self, step_name: str, cache_key: str) -> Dataset | None:
        """Load a cached step output.

        Args:
            step_name: Name of the pipeline step
            cache_key: Cache key from get_cache_key()

        Returns:
            The cached Dataset, or None on a cache miss
        """
        cache_path = self.cache_dir / step_name / cache_key

        if not cache_path.exists():
            self._stats["misses"] += 1
            logger.debug("Cache miss for %s (key: %s)", step_name, cache_key)
            return None

        metadata_path = cache_path / "metadata.json"
        parquet_path = cache_path / DATA_FILE
        if not metadata_path.exists() or not parquet_path.exists():
            logger.warning("Cache corrupted for %s (key: %s)", step_name, cache_key)
            self._stats["misses"] += 1
            return None

        try:
            with metadata_path.open() as f:
                metadata = json.load(f)
            dataset = Dataset(
                pl.read_parquet(parquet_path),
                tuple(metadata.get("groups", [])),
            )
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load cache for %s: %s", step_name, e)
            self._stats["misses"] += 1
            return None

        self._stats["hits"] += 1
        logger.info(
            "Cache hit for %s (key: %s, rows: %d)",
            step_name,
            cache_key,
            dataset.height,
        )
        return dataset

    def save(self, step_name: str, cache_key: str, dataset: Dataset) -> None:
        """Save a step output to the parquet cache.

        Args:
            step_name: Name of the pipeline step
            cache_key: Cache key from get_cache_key()
            dataset: Step output
        """
        cache_path = self.cache_dir / step_name / cache_key
        cache_path.mkdir(parents=True, exist_ok=True)

        try:
            dataset.frame.write_parquet(cache_path / DATA_FILE)

            metadata = {
                "step_name": step_name,
                "cache_key": cache_key,
                "groups": list(dataset.groups),
                "row_count": dataset.height,
                "columns": dataset.columns,
            }
            with (cache_path / "metadata.json").open("w") as f:
                json.dump(metadata, f, indent=2)

            logger.info(
                "Cached %s (key: %s, rows: %d)",
                step_name,
                cache_key,
                dataset.height,
            )

        except Exception:
            logger.exception("Failed to save cache for %s", step_name)
            # Clean up partial cache
            if cache_path.exists():
                shutil.rmtree(cache_path)

    def invalidate(self, step_name: str | None = None) -> None:
        """Invalidate cache for a step or all steps.

        Args:
            step_name: Name of step to invalidate, or None for all steps
        """
        if step_name:
            step_path = self.cache_dir / step_name
            if step_path.exists():
                shutil.rmtree(step_path)
                logger.info("Invalidated cache for %s", step_name)
        elif self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Invalidated all caches")

    def list_cached_steps(self) -> list[dict[str, Any]]:
        """List all cached steps with metadata.

        Returns:
            List of dicts with step info (name, cache_key, groups, size)
        """
        cached_steps = []

        if not self.cache_dir.exists():
            return cached_steps

        for step_dir in sorted(self.cache_dir.iterdir()):
            if not step_dir.is_dir():
                continue

            for cache_dir in sorted(step_dir.iterdir()):
                metadata_path = cache_dir / "metadata.json"
                if not metadata_path.exists():
                    continue

                try:
                    with metadata_path.open() as f:
                        metadata = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning("Failed to read cache metadata: %s", e)
                    continue

                total_size = sum(
                    p.stat().st_size for p in cache_dir.glob("*.parquet")
                )
                cached_steps.append(
                    {
                        "step_name": step_dir.name,
                        "cache_key": cache_dir.name,
                        "groups": metadata.get("groups", []),
                        "row_count": metadata.get("row_count", 0),
                        "size_mb": total_size / (1024 * 1024),
                        "path": str(cache_dir),
                    }
                )

        return cached_steps

    def get_stats(self) -> dict[str, int | float]:
        """Get cache hit/miss statistics.

        Returns:
            Dict with 'hits', 'misses', 'total' and 'hit_rate' keys
        """
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total if total > 0 else 0.0

        return {
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "total": total,
            "hit_rate": hit_rate,
        }

    def reset_stats(self) -> None:
        """Reset cache statistics."""
        self._stats = {"hits": 0, "misses": 0}
