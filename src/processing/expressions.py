"""Expression helpers shared by the verbs.

Verbs accept polars expressions or strings. Strings are parsed with polars
SQL expression syntax, e.g. `"arr_delay - dep_delay"` or
`"month = 1 AND day = 1"`. Aggregation strings additionally accept the
helper form `fn(column)`, e.g. `"mean(dep_delay)"` or `"n()"`.
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import polars as pl
from polars import exceptions as pl_exc

from tabular import InvalidArgument, InvalidColumnReference

_AGG_PATTERN = re.compile(r"^\s*(\w+)\(\s*(\w*)\s*\)\s*$")
_DESC_PATTERN = re.compile(r"^\s*desc\(\s*(\w+)\s*\)\s*$")


# Column specs -----------------------------------------------------------------

@dataclass(frozen=True)
class SortKey:
    """A column or expression to sort by, and its direction."""

    column: str | pl.Expr
    descending: bool = False

    @property
    def expr(self) -> pl.Expr:
        if isinstance(self.column, str):
            return pl.col(self.column)
        return self.column


@dataclass(frozen=True)
class ColumnRange:
    """All columns from start to end, inclusive, in schema order."""

    start: str
    end: str


@dataclass(frozen=True)
class Exclusion:
    """Columns to drop from a selection."""

    specs: tuple


def desc(column: str | pl.Expr) -> SortKey:
    """Sort by column in descending order."""
    return SortKey(column, descending=True)


def col_range(start: str, end: str) -> ColumnRange:
    return ColumnRange(start, end)


def exclude(*specs: Any) -> Exclusion:  # noqa: ANN401
    return Exclusion(specs)


# Aggregations -----------------------------------------------------------------

def n() -> pl.Expr:
    """Number of rows in the current group."""
    return pl.len()


def n_distinct(column: str) -> pl.Expr:
    """Number of distinct values, nulls counted as one value."""
    return pl.col(column).n_unique()


def mean(column: str) -> pl.Expr:
    return pl.col(column).mean()


def median(column: str) -> pl.Expr:
    return pl.col(column).median()


def sum_of(column: str) -> pl.Expr:
    return pl.col(column).sum()


def min_of(column: str) -> pl.Expr:
    return pl.col(column).min()


def max_of(column: str) -> pl.Expr:
    return pl.col(column).max()


def sd(column: str) -> pl.Expr:
    """Sample standard deviation."""
    return pl.col(column).std(ddof=1)


def iqr(column: str) -> pl.Expr:
    """Interquartile range."""
    c = pl.col(column)
    return c.quantile(0.75, interpolation="linear") - c.quantile(
        0.25, interpolation="linear"
    )


def first(column: str) -> pl.Expr:
    return pl.col(column).first()


def last(column: str) -> pl.Expr:
    return pl.col(column).last()


def nth(column: str, index: int) -> pl.Expr:
    """Value at a 0-based position in the group (negative counts from end)."""
    return pl.col(column).get(index)


AGGREGATES: dict[str, Callable[..., pl.Expr]] = {
    "n": n,
    "n_distinct": n_distinct,
    "mean": mean,
    "median": median,
    "sum": sum_of,
    "min": min_of,
    "max": max_of,
    "sd": sd,
    "iqr": iqr,
    "first": first,
    "last": last,
}


# Parsing ----------------------------------------------------------------------

def parse_expression(text: str) -> pl.Expr:
    """Parse a SQL expression string into a polars expression."""
    try:
        return pl.sql_expr(text)
    except pl_exc.PolarsError as e:
        msg = f"cannot parse expression: {e}"
        raise InvalidArgument(msg, argument=text) from e


def as_expression(value: Any) -> pl.Expr:  # noqa: ANN401
    """Expressions pass through, strings are parsed, anything else is a literal."""
    if isinstance(value, pl.Expr):
        return value
    if isinstance(value, str):
        return parse_expression(value)
    return pl.lit(value)


def as_aggregation(value: str | pl.Expr) -> pl.Expr:
    """Build an aggregation from an expression, helper string or SQL string."""
    if isinstance(value, pl.Expr):
        return value

    match = _AGG_PATTERN.match(value)
    if match and match.group(1) in AGGREGATES:
        fn_name, column = match.groups()
        fn = AGGREGATES[fn_name]
        if fn is n:
            if column:
                msg = "n() takes no column"
                raise InvalidArgument(msg, argument=value)
            return n()
        if not column:
            msg = f"{fn_name}() needs a column"
            raise InvalidArgument(msg, argument=value)
        return fn(column)

    return parse_expression(value)


def parse_sort_key(value: Any) -> SortKey:  # noqa: ANN401
    """Coerce a column name, "desc(name)", expression or SortKey."""
    if isinstance(value, SortKey):
        return value
    if isinstance(value, str):
        match = _DESC_PATTERN.match(value)
        if match:
            return SortKey(match.group(1), descending=True)
        return SortKey(value)
    if isinstance(value, pl.Expr):
        return SortKey(value)
    msg = f"cannot sort by {value!r}"
    raise InvalidArgument(msg, argument=repr(value))


# Column checks ----------------------------------------------------------------

def referenced_columns(expr: pl.Expr) -> list[str]:
    """Names of the input columns an expression reads."""
    return expr.meta.root_names()


def check_columns(available: Iterable[str], names: Iterable[str]) -> None:
    """Raise InvalidColumnReference for the first name not available."""
    available = set(available)
    for name in names:
        if name not in available:
            msg = "column not found in dataset"
            raise InvalidColumnReference(msg, column=name)


def check_expression(available: Iterable[str], expr: pl.Expr) -> None:
    check_columns(available, referenced_columns(expr))
