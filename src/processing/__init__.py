"""Dataframe verbs for tidy pipelines.

This module imports and exposes all verbs and expression helpers for easy
access. Every verb takes a Dataset (or polars DataFrame) first and returns a
new Dataset.
"""

from .columns import mutate, rename, select, transmute
from .expressions import (
    col_range,
    desc,
    exclude,
    first,
    iqr,
    last,
    max_of,
    mean,
    median,
    min_of,
    n,
    n_distinct,
    nth,
    sd,
    sum_of,
)
from .grouping import group_by, summarise, ungroup
from .read_write import load_table, write_table
from .rows import arrange, filter_rows
from .sampling import sample_frac, sample_n

VERBS = [
    arrange,
    filter_rows,
    group_by,
    mutate,
    rename,
    sample_frac,
    sample_n,
    select,
    summarise,
    transmute,
    ungroup,
]

__all__ = [
    "VERBS",
    "arrange",
    "col_range",
    "desc",
    "exclude",
    "filter_rows",
    "first",
    "group_by",
    "iqr",
    "last",
    "load_table",
    "max_of",
    "mean",
    "median",
    "min_of",
    "mutate",
    "n",
    "n_distinct",
    "nth",
    "rename",
    "sample_frac",
    "sample_n",
    "sd",
    "select",
    "sum_of",
    "summarise",
    "transmute",
    "ungroup",
    "write_table",
]
