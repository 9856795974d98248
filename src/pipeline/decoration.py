"""Decorator for dataframe verbs used as pipeline steps."""
import functools
import logging
import re
from collections.abc import Callable
from typing import Any

import polars as pl
from polars import exceptions as pl_exc

from tabular import (
    Dataset,
    InvalidArgument,
    InvalidColumnReference,
    PipelineError,
    TypeMismatch,
)

logger = logging.getLogger(__name__)

_QUOTED = re.compile(r"""["']([^"']+)["']""")


def step(
    *,
    name: str | None = None,
) -> Callable[[Callable[..., Dataset]], Callable[..., Dataset]]:
    """Decorator for verbs that take a Dataset first and return a Dataset.

    The wrapped function:
    - receives its first argument coerced to a Dataset, so bare polars
      DataFrames can be piped in directly
    - has polars exceptions translated into PipelineError subclasses
    - tags any PipelineError with the step name if none is set yet

    Args:
        name: Step name used in errors and logs, defaults to the function name

    Example:
        >>> @step()
        ... def drop_cancelled(dataset: Dataset) -> Dataset:
        ...     return dataset.with_frame(
        ...         dataset.frame.filter(pl.col("dep_time").is_not_null())
        ...     )

    Returns:
        Decorated function
    """

    def decorator(func: Callable[..., Dataset]) -> Callable[..., Dataset]:
        step_name = name or func.__name__

        @functools.wraps(func)
        def wrapper(dataset: Any, *args: Any, **kwargs: Any) -> Dataset:  # noqa: ANN401
            dataset = Dataset.of(dataset)
            try:
                result = func(dataset, *args, **kwargs)
            except PipelineError as e:
                if e.step is None:
                    e.step = step_name
                raise
            except pl_exc.PolarsError as e:
                translated = translate_polars_error(e)
                translated.step = step_name
                raise translated from e

            logger.debug(
                "%s: %d rows in, %d rows out",
                step_name,
                dataset.height,
                result.height,
            )
            return result

        return wrapper

    return decorator


def translate_polars_error(error: pl_exc.PolarsError) -> PipelineError:
    """Map a polars exception onto the pipeline error kinds."""
    message = str(error).strip().splitlines()[0] if str(error) else ""

    if isinstance(error, pl_exc.ColumnNotFoundError):
        match = _QUOTED.search(message)
        column = match.group(1) if match else message
        return InvalidColumnReference(
            "column not found in dataset", column=column
        )

    if isinstance(error, (pl_exc.SQLSyntaxError, pl_exc.SQLInterfaceError)):
        return InvalidArgument(f"invalid expression: {message}")

    if isinstance(error, pl_exc.DuplicateError):
        match = _QUOTED.search(message)
        return InvalidArgument(
            f"duplicate column name: {message}",
            column=match.group(1) if match else None,
        )

    if isinstance(
        error,
        (
            pl_exc.InvalidOperationError,
            pl_exc.SchemaError,
            pl_exc.ComputeError,
        ),
    ):
        return TypeMismatch(message)

    return PipelineError(message)


def is_polars_frame(value: Any) -> bool:  # noqa: ANN401
    """Check if a value can be piped into a verb."""
    return isinstance(value, (Dataset, pl.DataFrame))
