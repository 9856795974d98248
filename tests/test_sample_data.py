"""Tests for bundled sample datasets and row validation."""

import polars as pl
import pytest

from tabular import (
    InvalidArgument,
    ValidationError,
    generate_flights,
    list_datasets,
    load_dataset,
)
from tabular.models import CarModel
from tabular.sample_data import FLIGHT_COLUMNS
from tabular.validation import validate_table


class TestGenerateFlights:
    """The synthetic flights table."""

    def test_shape_and_columns(self, flights):
        assert flights.height == 2_000
        assert flights.columns == FLIGHT_COLUMNS

    def test_reproducible(self):
        assert generate_flights(300, seed=1).equals(generate_flights(300, seed=1))
        assert not generate_flights(300, seed=1).equals(
            generate_flights(300, seed=2)
        )

    def test_cancelled_flights_have_no_times(self, flights):
        frame = flights.frame
        cancelled = frame.filter(pl.col("dep_time").is_null())
        assert cancelled.height > 0
        assert cancelled.get_column("dep_delay").null_count() == cancelled.height
        assert cancelled.get_column("arr_delay").null_count() == cancelled.height
        assert cancelled.get_column("air_time").null_count() == cancelled.height

    def test_clock_times_are_hhmm(self, flights):
        times = flights.frame.get_column("dep_time").drop_nulls()
        assert times.min() >= 1
        assert times.max() <= 2400
        assert (times % 100).max() < 60

    def test_single_year(self, flights):
        assert flights.frame.get_column("year").unique().to_list() == [2013]

    def test_negative_rows(self):
        with pytest.raises(InvalidArgument):
            generate_flights(-1)


class TestLoadDataset:
    """Loading samples by name."""

    def test_names(self):
        assert list_datasets() == ["flights", "iris", "mtcars"]

    def test_mtcars(self, mtcars):
        assert mtcars.shape == (32, 12)
        assert mtcars.columns[0] == "model"

    def test_iris(self, iris):
        assert iris.shape == (150, 5)
        counts = iris.frame.get_column("species").value_counts()
        assert counts.get_column("count").to_list() == [50, 50, 50]

    @pytest.mark.parametrize("name", ["mtcars", "iris"])
    def test_bundled_rows_validate(self, name):
        assert load_dataset(name, validate=True).height > 0

    def test_unknown_name(self):
        with pytest.raises(InvalidArgument) as excinfo:
            load_dataset("diamonds")
        assert excinfo.value.argument == "name"


class TestValidateTable:
    """Row validation against pydantic models."""

    def test_bad_row_is_reported(self, mtcars):
        frame = mtcars.frame.with_columns(
            pl.when(pl.col("model") == "Valiant")
            .then(-1.0)
            .otherwise(pl.col("mpg"))
            .alias("mpg")
        )
        with pytest.raises(ValidationError) as excinfo:
            validate_table(frame, CarModel, "mtcars")
        assert excinfo.value.row_id == 5
        assert excinfo.value.column == "mpg"

    def test_missing_column(self, mtcars):
        with pytest.raises(ValidationError) as excinfo:
            validate_table(mtcars.frame.drop("wt"), CarModel, "mtcars")
        assert excinfo.value.rule == "required_columns"
