"""Tests for the Dataset value type and pipeline errors."""

import polars as pl
import pytest

from tabular import (
    Dataset,
    InvalidArgument,
    InvalidColumnReference,
    PipelineError,
    TypeMismatch,
)


class TestDataset:
    """Construction, grouping metadata and comparison."""

    def test_of_wraps_dataframe_ungrouped(self, three_rows):
        dataset = Dataset.of(three_rows.frame)
        assert dataset.groups == ()
        assert not dataset.is_grouped
        assert dataset.shape == (3, 3)

    def test_of_returns_dataset_unchanged(self, three_rows):
        assert Dataset.of(three_rows) is three_rows

    def test_rejects_non_frames(self):
        with pytest.raises(TypeError):
            Dataset({"a": [1]})
        with pytest.raises(TypeError):
            Dataset.of([1, 2, 3])

    def test_missing_group_column(self, three_rows):
        """Grouping by an absent column is an invalid column reference."""
        with pytest.raises(InvalidColumnReference) as excinfo:
            Dataset(three_rows.frame, ("carrier",))
        assert excinfo.value.column == "carrier"

    def test_groups_are_deduplicated_in_order(self, three_rows):
        dataset = Dataset(three_rows.frame, ("day", "month", "day"))
        assert dataset.groups == ("day", "month")

    def test_with_frame_keeps_grouping(self, three_rows):
        grouped = Dataset(three_rows.frame, ("month",))
        result = grouped.with_frame(grouped.frame.head(2))
        assert result.groups == ("month",)
        assert result.height == 2

    def test_n_groups(self, three_rows):
        assert three_rows.n_groups() == 1
        assert Dataset(three_rows.frame, ("month",)).n_groups() == 2
        assert Dataset(three_rows.frame, ("month", "day")).n_groups() == 3

    def test_equals_compares_grouping(self, three_rows):
        grouped = Dataset(three_rows.frame, ("month",))
        assert three_rows.equals(Dataset(three_rows.frame.clone()))
        assert not three_rows.equals(grouped)

    def test_equals_treats_nulls_as_equal(self):
        frame = pl.DataFrame({"x": [1, None]})
        assert Dataset(frame).equals(Dataset(frame.clone()))

    def test_str_shows_groups(self, three_rows):
        text = str(Dataset(three_rows.frame, ("month",)))
        assert text.startswith("# Groups: month [2]")

    def test_is_frozen(self, three_rows):
        with pytest.raises(AttributeError):
            three_rows.groups = ("month",)


class TestPipelineErrors:
    """Error kinds and their formatting."""

    def test_kinds_share_a_base(self):
        for cls in (InvalidColumnReference, TypeMismatch, InvalidArgument):
            assert issubclass(cls, PipelineError)

    def test_str_includes_context(self):
        error = InvalidColumnReference(
            "column not found in dataset", column="dep_dely", step="select"
        )
        assert str(error) == (
            "[select] InvalidColumnReference: column 'dep_dely' "
            "column not found in dataset"
        )

    def test_str_with_argument(self):
        error = InvalidArgument("must be non-negative", argument="n")
        assert str(error) == "InvalidArgument: argument 'n' must be non-negative"
