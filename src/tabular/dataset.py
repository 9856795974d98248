"""Immutable tabular dataset with optional grouping metadata."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import polars as pl

from .errors import InvalidColumnReference

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Dataset:
    """A polars DataFrame plus an ordered grouping key.

    Grouping is metadata only: it never changes the rows or columns of the
    frame, it only tells later steps (summarise, sample, arrange, filter and
    mutate) how to partition their work.

    Datasets are values. Every verb returns a new Dataset and leaves its input
    untouched.
    """

    frame: pl.DataFrame
    groups: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        """Normalize the grouping key and check it refers to real columns."""
        if not isinstance(self.frame, pl.DataFrame):
            msg = f"Dataset requires a polars DataFrame, got {type(self.frame)}"
            raise TypeError(msg)

        groups = tuple(dict.fromkeys(self.groups))
        object.__setattr__(self, "groups", groups)

        for name in groups:
            if name not in self.frame.columns:
                msg = "grouping column not found in dataset"
                raise InvalidColumnReference(msg, column=name)

    @classmethod
    def of(cls, value: "Dataset | pl.DataFrame") -> "Dataset":
        """Coerce a DataFrame into an ungrouped Dataset."""
        if isinstance(value, Dataset):
            return value
        if isinstance(value, pl.DataFrame):
            return cls(value)
        msg = f"Expected Dataset or polars DataFrame, got {type(value)}"
        raise TypeError(msg)

    @property
    def columns(self) -> list[str]:
        return self.frame.columns

    @property
    def schema(self) -> pl.Schema:
        return self.frame.schema

    @property
    def height(self) -> int:
        return self.frame.height

    @property
    def shape(self) -> tuple[int, int]:
        return self.frame.shape

    @property
    def is_grouped(self) -> bool:
        return len(self.groups) > 0

    def __len__(self) -> int:
        return self.frame.height

    def with_frame(
        self,
        frame: pl.DataFrame,
        groups: Iterable[str] | None = None,
    ) -> "Dataset":
        """Return a new Dataset, keeping the current grouping by default."""
        return Dataset(
            frame, tuple(self.groups if groups is None else groups)
        )

    def ungroup(self) -> "Dataset":
        return Dataset(self.frame)

    def head(self, n: int = 5) -> "Dataset":
        return self.with_frame(self.frame.head(n))

    def n_groups(self) -> int:
        """Number of distinct grouping key combinations (1 if ungrouped)."""
        if not self.is_grouped:
            return 1
        return self.frame.select(list(self.groups)).unique().height

    def equals(self, other: "Dataset") -> bool:
        """Compare data (nulls equal) and grouping keys."""
        if not isinstance(other, Dataset):
            return False
        return self.groups == other.groups and self.frame.equals(
            other.frame, null_equal=True
        )

    def __str__(self) -> str:
        if not self.is_grouped:
            return str(self.frame)
        header = (
            f"# Groups: {', '.join(self.groups)} [{self.n_groups()}]"
        )
        return f"{header}\n{self.frame}"

    def __repr__(self) -> str:
        return (
            f"Dataset(shape={self.shape}, groups={list(self.groups)})"
        )
