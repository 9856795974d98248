"""Tests for sample_n and sample_frac."""

import polars as pl
import pytest

from processing import group_by, sample_frac, sample_n
from tabular import InvalidArgument, InvalidColumnReference


def _ids(dataset) -> list[int]:
    return dataset.frame.get_column("id").to_list()


class TestSampleN:
    """Fixed size samples."""

    @pytest.mark.parametrize("k", [0, 1, 5, 10])
    def test_distinct_rows_from_input(self, numbered, k):
        """Without replacement k rows come back, all distinct, all from input."""
        result = sample_n(numbered, k, seed=1)
        ids = _ids(result)
        assert len(ids) == k
        assert len(set(ids)) == k
        assert set(ids) <= set(_ids(numbered))
        assert result.columns == numbered.columns

    def test_seed_is_reproducible(self, flights):
        first = sample_n(flights, 25, seed=42)
        second = sample_n(flights, 25, seed=42)
        assert first.equals(second)

    def test_too_many_without_replacement(self, numbered):
        with pytest.raises(InvalidArgument) as excinfo:
            sample_n(numbered, 11)
        assert excinfo.value.argument == "n"
        assert excinfo.value.step == "sample_n"

    def test_negative(self, numbered):
        with pytest.raises(InvalidArgument):
            sample_n(numbered, -1)

    def test_non_integer(self, numbered):
        with pytest.raises(InvalidArgument):
            sample_n(numbered, 2.5)

    def test_replacement_allows_more_rows(self, numbered):
        result = sample_n(numbered, 25, replace=True, seed=3)
        assert result.height == 25
        assert set(_ids(result)) <= set(range(10))

    def test_per_group(self, numbered):
        grouped = group_by(numbered, "group")
        result = sample_n(grouped, 2, seed=5)
        assert result.groups == ("group",)
        counts = result.frame.group_by("group").len().sort("group")
        assert counts.get_column("len").to_list() == [2, 2]

    def test_per_group_too_many(self, numbered):
        with pytest.raises(InvalidArgument):
            sample_n(group_by(numbered, "group"), 5)

    def test_zero_weights_are_never_drawn(self, numbered):
        result = sample_n(numbered, 7, weight="weight", seed=11)
        assert set(_ids(result)) == {2, 3, 4, 5, 6, 8, 9}

    def test_not_enough_weighted_rows(self, numbered):
        with pytest.raises(InvalidArgument):
            sample_n(numbered, 8, weight="weight")

    def test_missing_weight_column(self, numbered):
        with pytest.raises(InvalidColumnReference):
            sample_n(numbered, 2, weight="w")

    def test_negative_weight(self, numbered):
        data = numbered.with_frame(
            numbered.frame.with_columns(pl.col("weight") - 1)
        )
        with pytest.raises(InvalidArgument):
            sample_n(data, 2, weight="weight")


class TestSampleFrac:
    """Proportional samples."""

    def test_fraction_of_rows(self, flights):
        result = sample_frac(flights, 0.01, seed=1)
        assert result.height == 20

    def test_fraction_is_rounded(self, numbered):
        assert sample_frac(numbered, 0.26, seed=0).height == 3

    def test_per_group(self, numbered):
        result = sample_frac(group_by(numbered, "group"), 0.5, seed=2)
        counts = result.frame.group_by("group").len().sort("group")
        assert counts.get_column("len").to_list() == [3, 2]

    def test_above_one_requires_replacement(self, numbered):
        with pytest.raises(InvalidArgument) as excinfo:
            sample_frac(numbered, 1.5)
        assert excinfo.value.argument == "fraction"
        assert sample_frac(numbered, 1.5, replace=True, seed=0).height == 15

    def test_negative(self, numbered):
        with pytest.raises(InvalidArgument):
            sample_frac(numbered, -0.1)

    @pytest.mark.parametrize("fraction", [float("nan"), float("inf")])
    def test_non_finite(self, numbered, fraction):
        with pytest.raises(InvalidArgument) as excinfo:
            sample_frac(numbered, fraction, replace=True)
        assert excinfo.value.argument == "fraction"
