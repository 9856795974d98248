"""Row verbs: filter and arrange."""

import logging

import polars as pl

from pipeline.decoration import step
from tabular import Dataset, TypeMismatch

from .expressions import (
    SortKey,
    as_expression,
    check_expression,
    parse_sort_key,
)

logger = logging.getLogger(__name__)


@step()
def filter_rows(dataset: Dataset, *predicates: pl.Expr | str) -> Dataset:
    """Keep rows where every predicate is true.

    Multiple predicates are combined with AND. Rows where a predicate is null
    are dropped. On a grouped dataset predicates are evaluated within each
    group, so `pl.col("x") == pl.col("x").max()` keeps the per-group maximum.

    Args:
        dataset: Input dataset
        *predicates: Boolean polars expressions or SQL strings

    Returns:
        Dataset with the same columns and grouping
    """
    if not predicates:
        return dataset

    exprs = [as_expression(p) for p in predicates]
    for expr in exprs:
        check_expression(dataset.columns, expr)

    # Predicates must be boolean, checked before filtering
    schema = (
        dataset.frame.lazy()
        .select([e.alias(f"__p{i}") for i, e in enumerate(exprs)])
        .collect_schema()
    )
    for expr, dtype in zip(exprs, schema.values(), strict=True):
        if dtype not in (pl.Boolean, pl.Null):
            msg = f"filter predicate must be boolean, got {dtype}"
            raise TypeMismatch(msg, argument=str(expr))

    mask = pl.all_horizontal(exprs) if len(exprs) > 1 else exprs[0]
    if dataset.is_grouped:
        mask = mask.over(list(dataset.groups))

    return dataset.with_frame(dataset.frame.filter(mask))


@step()
def arrange(
    dataset: Dataset,
    *keys: str | pl.Expr | SortKey,
    by_group: bool = False,
) -> Dataset:
    """Sort rows by one or more keys.

    Sorting is stable and puts nulls last for both directions.

    Args:
        dataset: Input dataset
        *keys: Column names, desc(name), "desc(name)" strings or expressions
        by_group: If True, sort by the grouping columns first

    Returns:
        Sorted dataset with the same grouping
    """
    sort_keys = [parse_sort_key(k) for k in keys]

    if by_group and dataset.is_grouped:
        sort_keys = [SortKey(g) for g in dataset.groups] + sort_keys

    if not sort_keys:
        return dataset

    for key in sort_keys:
        check_expression(dataset.columns, key.expr)

    frame = dataset.frame.sort(
        [k.expr for k in sort_keys],
        descending=[k.descending for k in sort_keys],
        nulls_last=True,
        maintain_order=True,
    )
    return dataset.with_frame(frame)
