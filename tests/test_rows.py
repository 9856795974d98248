"""Tests for filter_rows and arrange."""

import polars as pl
import pytest
from polars.testing import assert_frame_equal

from processing import arrange, desc, filter_rows, group_by
from tabular import InvalidArgument, InvalidColumnReference, TypeMismatch


class TestFilterRows:
    """Row filtering with expressions and SQL strings."""

    def test_expression_and_string_agree(self, delays):
        by_expr = filter_rows(
            delays, (pl.col("month") == 1) & (pl.col("day") == 1)
        )
        by_string = filter_rows(delays, "month = 1 AND day = 1")
        assert by_expr.height == 2
        assert by_expr.equals(by_string)

    def test_multiple_predicates_are_combined_with_and(self, delays):
        result = filter_rows(delays, pl.col("month") == 2, "dep_delay > 10")
        assert result.frame.get_column("dep_delay").to_list() == [12.0, 60.0]

    def test_refilter_equals_single_conjunction(self, flights):
        """Filtering by P1 then P2 is filtering by P1 AND P2."""
        p1 = pl.col("dep_delay") > 0
        p2 = pl.col("origin") == "JFK"
        twice = filter_rows(filter_rows(flights, p1), p2)
        once = filter_rows(flights, p1, p2)
        assert_frame_equal(twice.frame, once.frame)
        assert_frame_equal(twice.frame, filter_rows(flights, p1 & p2).frame)

    def test_null_predicate_drops_row(self, delays):
        result = filter_rows(delays, pl.col("dep_delay") > -100)
        assert result.height == delays.height - 1

    def test_no_predicates_returns_input(self, delays):
        assert filter_rows(delays) is delays

    def test_grouped_filter_is_per_group(self, delays):
        """Within each month keep only the largest departure delay."""
        grouped = group_by(delays, "month")
        result = filter_rows(
            grouped, pl.col("dep_delay") == pl.col("dep_delay").max()
        )
        assert result.groups == ("month",)
        assert result.frame.get_column("dep_delay").to_list() == [30.0, 60.0]

    def test_missing_column(self, delays):
        with pytest.raises(InvalidColumnReference) as excinfo:
            filter_rows(delays, pl.col("dep_dely") > 0)
        assert excinfo.value.column == "dep_dely"
        assert excinfo.value.step == "filter_rows"

    def test_non_boolean_predicate(self, delays):
        with pytest.raises(TypeMismatch):
            filter_rows(delays, pl.col("dep_delay") + 1)

    def test_comparing_string_with_number(self, delays):
        with pytest.raises(TypeMismatch):
            filter_rows(delays, pl.col("carrier") - pl.col("distance") > 0)

    def test_malformed_string(self, delays):
        with pytest.raises(InvalidArgument):
            filter_rows(delays, "month = = 1")


class TestArrange:
    """Sorting rows."""

    def test_multiple_keys(self, delays):
        result = arrange(delays, "month", desc("dep_delay"))
        assert result.frame.get_column("dep_delay").to_list() == [
            30.0, 2.0, -4.0, None, 60.0, 12.0, 8.0, -1.0,
        ]

    def test_nulls_last_when_descending(self, delays):
        result = arrange(delays, "desc(dep_delay)")
        assert result.frame.get_column("dep_delay").to_list()[-1] is None
        assert result.frame.get_column("dep_delay").to_list()[0] == 60.0

    def test_stable_for_ties(self, delays):
        result = arrange(delays, "carrier")
        aa = result.frame.filter(pl.col("carrier") == "AA")
        assert aa.get_column("dep_delay").to_list() == [-4.0, 12.0, 60.0]

    def test_by_group_sorts_groups_first(self, delays):
        grouped = group_by(delays, "carrier")
        result = arrange(grouped, desc("distance"), by_group=True)
        assert result.frame.get_column("carrier").to_list()[:3] == ["AA"] * 3
        assert result.groups == ("carrier",)

    def test_ignores_grouping_by_default(self, delays):
        grouped = group_by(delays, "carrier")
        result = arrange(grouped, desc("distance"))
        assert result.frame.get_column("distance").to_list()[0] == 2475.0

    def test_expression_key(self, delays):
        result = arrange(delays, pl.col("arr_delay") - pl.col("dep_delay"))
        assert result.frame.get_column("arr_delay").to_list()[0] == -10.0

    def test_missing_column(self, delays):
        with pytest.raises(InvalidColumnReference):
            arrange(delays, "dest")

    def test_invalid_key(self, delays):
        with pytest.raises(InvalidArgument):
            arrange(delays, 3)
