"""Random sampling of rows, per group when grouped."""

import logging
import math
from collections.abc import Callable

import numpy as np
import polars as pl

from pipeline.decoration import step
from tabular import Dataset, InvalidArgument

from .expressions import check_columns

logger = logging.getLogger(__name__)


def _weights(frame: pl.DataFrame, weight: str) -> np.ndarray:
    """Normalized sampling probabilities from a weight column."""
    series = frame.get_column(weight)
    if not series.dtype.is_numeric():
        msg = f"weight column must be numeric, got {series.dtype}"
        raise InvalidArgument(msg, column=weight, argument="weight")
    if series.null_count() > 0:
        msg = "weight column contains nulls"
        raise InvalidArgument(msg, column=weight, argument="weight")

    values = series.cast(pl.Float64).to_numpy()
    if (values < 0).any():
        msg = "weights must be non-negative"
        raise InvalidArgument(msg, column=weight, argument="weight")

    total = values.sum()
    if total <= 0:
        msg = "weights must not all be zero"
        raise InvalidArgument(msg, column=weight, argument="weight")
    return values / total


def _draw(
    frame: pl.DataFrame,
    size: int,
    *,
    replace: bool,
    weight: str | None,
    rng: np.random.Generator,
    argument: str,
) -> pl.DataFrame:
    """Draw size rows from one partition."""
    height = frame.height

    if size < 0:
        msg = f"sample size must be non-negative, got {size}"
        raise InvalidArgument(msg, argument=argument)
    if size == 0:
        return frame.clear()
    if not replace and size > height:
        msg = (
            f"cannot take a sample of {size} rows from {height} rows "
            "without replacement"
        )
        raise InvalidArgument(msg, argument=argument)
    if height == 0:
        msg = f"cannot sample {size} rows from an empty dataset"
        raise InvalidArgument(msg, argument=argument)

    p = None
    if weight is not None:
        p = _weights(frame, weight)
        if not replace and np.count_nonzero(p) < size:
            msg = (
                f"only {np.count_nonzero(p)} rows have non-zero weight, "
                f"cannot take {size} without replacement"
            )
            raise InvalidArgument(msg, argument=argument)

    idx = rng.choice(height, size=size, replace=replace, p=p)
    return frame.select(pl.all().gather(pl.Series(idx)))


def _sample(
    dataset: Dataset,
    size_for: Callable[[int], int],
    *,
    replace: bool,
    weight: str | None,
    seed: int | None,
    argument: str,
) -> Dataset:
    if weight is not None:
        check_columns(dataset.columns, [weight])

    rng = np.random.default_rng(seed)

    if not dataset.is_grouped:
        sampled = _draw(
            dataset.frame,
            size_for(dataset.height),
            replace=replace,
            weight=weight,
            rng=rng,
            argument=argument,
        )
        return dataset.with_frame(sampled)

    parts = dataset.frame.partition_by(
        list(dataset.groups), maintain_order=True
    )
    if not parts:
        return dataset.with_frame(dataset.frame.clear())

    sampled = [
        _draw(
            part,
            size_for(part.height),
            replace=replace,
            weight=weight,
            rng=rng,
            argument=argument,
        )
        for part in parts
    ]
    logger.debug("Sampled %d groups", len(parts))
    return dataset.with_frame(pl.concat(sampled, how="vertical"))


@step()
def sample_n(
    dataset: Dataset,
    n: int,
    *,
    replace: bool = False,
    weight: str | None = None,
    seed: int | None = None,
) -> Dataset:
    """Sample a fixed number of rows (per group when grouped).

    Args:
        dataset: Input dataset
        n: Number of rows to draw
        replace: Sample with replacement (bootstrap)
        weight: Optional column of non-negative sampling weights
        seed: Seed for reproducible draws

    Raises:
        InvalidArgument: If n is negative, or larger than the available rows
            without replacement
    """
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        msg = f"n must be an integer, got {n!r}"
        raise InvalidArgument(msg, argument="n")

    return _sample(
        dataset,
        lambda _height: int(n),
        replace=replace,
        weight=weight,
        seed=seed,
        argument="n",
    )


@step()
def sample_frac(
    dataset: Dataset,
    fraction: float,
    *,
    replace: bool = False,
    weight: str | None = None,
    seed: int | None = None,
) -> Dataset:
    """Sample a fraction of rows (per group when grouped).

    The number of rows drawn is the fraction of each partition's rows,
    rounded to the nearest integer.

    Raises:
        InvalidArgument: If fraction is negative, or above 1 without
            replacement
    """
    if isinstance(fraction, bool) or not isinstance(
        fraction, (int, float, np.number)
    ):
        msg = f"fraction must be a number, got {fraction!r}"
        raise InvalidArgument(msg, argument="fraction")
    if not math.isfinite(fraction):
        msg = f"fraction must be finite, got {fraction}"
        raise InvalidArgument(msg, argument="fraction")
    if fraction < 0:
        msg = f"fraction must be non-negative, got {fraction}"
        raise InvalidArgument(msg, argument="fraction")
    if fraction > 1 and not replace:
        msg = f"fraction {fraction} is above 1, set replace=True"
        raise InvalidArgument(msg, argument="fraction")

    return _sample(
        dataset,
        lambda height: round(fraction * height),
        replace=replace,
        weight=weight,
        seed=seed,
        argument="fraction",
    )
