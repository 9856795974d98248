"""Read and write tables as csv or parquet."""

import logging
from pathlib import Path

import polars as pl

from tabular import Dataset

logger = logging.getLogger(__name__)


def load_table(path: str | Path) -> Dataset:
    """Load a csv or parquet file as an ungrouped Dataset."""
    path = str(path)
    logger.info("Loading %s...", path)

    if path.endswith(".csv"):
        frame = pl.read_csv(path, try_parse_dates=True)
    elif path.endswith(".parquet"):
        frame = pl.read_parquet(path)
    else:
        msg = f"Unsupported file format: {path}"
        raise ValueError(msg)

    return Dataset(frame)


def write_table(dataset: Dataset | pl.DataFrame, path: str | Path) -> None:
    """Write a dataset to csv or parquet. Grouping is not stored."""
    dataset = Dataset.of(dataset)
    path = Path(path)
    logger.info("Writing %d rows to %s...", dataset.height, path)

    if dataset.is_grouped:
        logger.info(
            "Grouping (%s) is not written to %s",
            ", ".join(dataset.groups),
            path.name,
        )

    if path.suffix == ".csv":
        path.parent.mkdir(parents=True, exist_ok=True)
        dataset.frame.write_csv(path)
    elif path.suffix == ".parquet":
        path.parent.mkdir(parents=True, exist_ok=True)
        dataset.frame.write_parquet(path)
    else:
        msg = f"Unsupported file format: {path}"
        raise ValueError(msg)
