"""Grouping and aggregation verbs."""

import logging

import polars as pl

from pipeline.decoration import step
from tabular import Dataset, InvalidArgument

from .expressions import as_aggregation, check_columns, check_expression

logger = logging.getLogger(__name__)


@step()
def group_by(dataset: Dataset, *columns: str, add: bool = False) -> Dataset:
    """Declare grouping columns. Rows and columns are unchanged.

    Args:
        dataset: Input dataset
        *columns: Grouping column names
        add: If True, append to the existing grouping instead of replacing it
    """
    check_columns(dataset.columns, columns)
    groups = (*dataset.groups, *columns) if add else columns
    return dataset.with_frame(dataset.frame, groups)


@step()
def ungroup(dataset: Dataset) -> Dataset:
    return dataset.ungroup()


@step()
def summarise(
    dataset: Dataset,
    *exprs: pl.Expr,
    **aggregations: str | pl.Expr,
) -> Dataset:
    """Collapse each group (or the whole dataset) to a single row.

    Each summary peels off one level of grouping: a dataset grouped by
    (year, month, day) summarises to one row per day, grouped by
    (year, month). Results of grouped summaries are sorted by the group keys.

    Args:
        dataset: Input dataset
        *exprs: Aggregating polars expressions, named by their output name
        **aggregations: name=expression pairs; strings may use the helper
            form "mean(col)", "n()", "n_distinct(col)", or SQL

    Example:
        >>> summarise(
        ...     group_by(flights, "tailnum"),
        ...     count="n()",
        ...     dist="mean(distance)",
        ...     delay=mean("arr_delay"),
        ... )

    Returns:
        Summarised dataset grouped by all but the last grouping column
    """
    items = [(e.meta.output_name(), e) for e in exprs]
    items += [(name, as_aggregation(v)) for name, v in aggregations.items()]

    if not items:
        msg = "summarise needs at least one aggregation"
        raise InvalidArgument(msg)

    for _, expr in items:
        check_expression(dataset.columns, expr)

    aggs = [expr.alias(name) for name, expr in items]
    groups = list(dataset.groups)

    if groups:
        frame = (
            dataset.frame.group_by(groups, maintain_order=True)
            .agg(aggs)
            .sort(groups, nulls_last=True, maintain_order=True)
        )
        # Non-aggregating expressions come back as lists per group
        input_schema = dataset.frame.lazy().select(aggs).collect_schema()
        for name, _ in items:
            if isinstance(frame.schema[name], pl.List) and not isinstance(
                input_schema[name], pl.List
            ):
                msg = "aggregation must produce a single value per group"
                raise InvalidArgument(msg, argument=name)
        new_groups = groups[:-1]
    else:
        frame = dataset.frame.select(aggs)
        if frame.height != 1:
            msg = "aggregations must produce a single value"
            raise InvalidArgument(msg)
        new_groups = []

    logger.debug(
        "Summarised %d rows into %d (%s)",
        dataset.height,
        frame.height,
        ", ".join(groups) or "no groups",
    )
    return Dataset(frame, tuple(new_groups))
