"""Column verbs: select, rename, mutate and transmute."""

import logging
from typing import Any

import polars as pl

from pipeline.decoration import step
from tabular import Dataset, InvalidArgument, InvalidColumnReference

from .expressions import (
    ColumnRange,
    Exclusion,
    as_expression,
    check_columns,
    check_expression,
)

logger = logging.getLogger(__name__)


# Selection --------------------------------------------------------------------

def _position(columns: list[str], name: str) -> int:
    try:
        return columns.index(name)
    except ValueError:
        msg = "column not found in dataset"
        raise InvalidColumnReference(msg, column=name) from None


def _parse_spec(spec: Any) -> Any:  # noqa: ANN401
    """Turn string shorthands into spec objects.

    "-name" and "-(a:b)" become exclusions, "a:b" becomes a range.
    """
    if not isinstance(spec, str):
        return spec
    text = spec.strip()
    if text.startswith("-"):
        inner = text[1:].strip()
        if inner.startswith("(") and inner.endswith(")"):
            inner = inner[1:-1].strip()
        return Exclusion((inner,))
    if ":" in text:
        start, end = (part.strip() for part in text.split(":", 1))
        return ColumnRange(start, end)
    return text


def _resolve(columns: list[str], spec: Any) -> list[str]:  # noqa: ANN401
    """Resolve one non-exclusion spec to column names."""
    spec = _parse_spec(spec)

    if isinstance(spec, str):
        _position(columns, spec)
        return [spec]

    if isinstance(spec, bool) or not isinstance(
        spec, (int, ColumnRange, Exclusion)
    ):
        msg = f"cannot select columns with {spec!r}"
        raise InvalidArgument(msg, argument=repr(spec))

    if isinstance(spec, int):
        if not 0 <= spec < len(columns):
            msg = f"position out of range for {len(columns)} columns"
            raise InvalidColumnReference(msg, column=str(spec))
        return [columns[spec]]

    if isinstance(spec, ColumnRange):
        start = _position(columns, spec.start)
        end = _position(columns, spec.end)
        if start <= end:
            return columns[start : end + 1]
        return columns[end : start + 1][::-1]

    return [c for inner in spec.specs for c in _resolve(columns, inner)]


def resolve_selection(columns: list[str], specs: tuple) -> list[str]:
    """Resolve names, positions, ranges and exclusions to column names.

    With only exclusions, the selection starts from all columns.
    """
    included: list[str] = []
    excluded: set[str] = set()
    has_inclusion = False

    for raw in specs:
        spec = _parse_spec(raw)
        if isinstance(spec, Exclusion):
            excluded.update(_resolve(columns, spec))
        else:
            has_inclusion = True
            included.extend(_resolve(columns, spec))

    base = included if has_inclusion else list(columns)
    return [c for c in dict.fromkeys(base) if c not in excluded]


def _check_unique_sources(mapping: dict[str, str]) -> None:
    """Each old column may be renamed only once per call."""
    seen: dict[str, str] = {}
    for new, old in mapping.items():
        if old in seen:
            msg = f"column is renamed twice, to '{seen[old]}' and '{new}'"
            raise InvalidArgument(msg, column=old, argument=new)
        seen[old] = new


@step()
def select(
    dataset: Dataset,
    *columns: str | int | ColumnRange | Exclusion,
    **renames: str,
) -> Dataset:
    """Keep a subset of columns, optionally renaming them.

    Args:
        dataset: Input dataset
        *columns: Names, 0-based positions, col_range(a, b) or "a:b",
            exclude(...) or "-name" / "-(a:b)"
        **renames: new_name="old_name" pairs, selected and renamed

    Returns:
        Dataset with the selected columns. Grouping columns are always kept.
    """
    chosen = resolve_selection(dataset.columns, columns) if columns else []

    check_columns(dataset.columns, renames.values())
    _check_unique_sources(renames)
    for old in renames.values():
        if old not in chosen:
            chosen.append(old)

    mapping = {old: new for new, old in renames.items()}
    missing_groups = [g for g in dataset.groups if g not in chosen]
    if missing_groups:
        logger.info("Adding missing grouping variables: %s", missing_groups)
        chosen = missing_groups + chosen

    frame = dataset.frame.select(chosen).rename(mapping)
    groups = [mapping.get(g, g) for g in dataset.groups]
    return dataset.with_frame(frame, groups)


@step()
def rename(dataset: Dataset, **mapping: str) -> Dataset:
    """Rename columns with new_name="old_name" pairs, keeping all columns."""
    check_columns(dataset.columns, mapping.values())
    _check_unique_sources(mapping)

    old_to_new = {old: new for new, old in mapping.items()}
    remaining = [c for c in dataset.columns if c not in old_to_new]
    for new in mapping:
        if new in remaining:
            msg = "new name clashes with an existing column"
            raise InvalidArgument(msg, column=new, argument=new)

    frame = dataset.frame.rename(old_to_new)
    groups = [old_to_new.get(g, g) for g in dataset.groups]
    return dataset.with_frame(frame, groups)


# Mutation ---------------------------------------------------------------------

def _apply_mutations(
    dataset: Dataset,
    exprs: tuple,
    named: dict[str, Any],
) -> tuple[pl.DataFrame, list[str]]:
    """Add columns one at a time so later ones can use earlier ones."""
    items: list[tuple[str, pl.Expr, bool]] = []

    for expr in exprs:
        if not isinstance(expr, pl.Expr):
            msg = "positional arguments must be polars expressions"
            raise InvalidArgument(msg, argument=repr(expr))
        items.append((expr.meta.output_name(), expr, True))

    for name, value in named.items():
        is_expr = isinstance(value, (pl.Expr, str))
        items.append((name, as_expression(value), is_expr))

    frame = dataset.frame
    groups = list(dataset.groups)

    for name, expr, is_expr in items:
        if name in groups:
            msg = "cannot modify a grouping column"
            raise InvalidArgument(msg, column=name, argument=name)

        check_expression(frame.columns, expr)
        if groups and is_expr:
            expr = expr.over(groups)
        frame = frame.with_columns(expr.alias(name))

    return frame, [name for name, _, _ in items]


@step()
def mutate(dataset: Dataset, *exprs: pl.Expr, **named: Any) -> Dataset:  # noqa: ANN401
    """Add or replace columns computed from existing ones.

    Expressions are applied in order, so a later expression may reference a
    column created earlier in the same call. Python scalars are broadcast.
    On a grouped dataset expressions are evaluated within each group.

    Example:
        >>> mutate(
        ...     flights,
        ...     gain=pl.col("arr_delay") - pl.col("dep_delay"),
        ...     gain_per_hour="gain / (air_time / 60)",
        ... )
    """
    frame, _ = _apply_mutations(dataset, exprs, named)
    return dataset.with_frame(frame)


@step()
def transmute(dataset: Dataset, *exprs: pl.Expr, **named: Any) -> Dataset:  # noqa: ANN401
    """Like mutate, but keep only grouping columns and the new columns."""
    frame, names = _apply_mutations(dataset, exprs, named)
    keep = list(dict.fromkeys([*dataset.groups, *names]))
    return dataset.with_frame(frame.select(keep))
