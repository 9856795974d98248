"""Shared pytest fixtures."""

import polars as pl
import pytest

from tabular import Dataset, generate_flights, load_dataset
from tests.fixtures import create_delay_table, create_three_rows


@pytest.fixture
def three_rows() -> Dataset:
    return Dataset(create_three_rows())


@pytest.fixture
def delays() -> Dataset:
    return Dataset(create_delay_table())


@pytest.fixture(scope="session")
def flights() -> Dataset:
    """A small reproducible flights table."""
    return Dataset(generate_flights(n_rows=2_000, seed=7))


@pytest.fixture(scope="session")
def mtcars() -> Dataset:
    return load_dataset("mtcars")


@pytest.fixture(scope="session")
def iris() -> Dataset:
    return load_dataset("iris")


@pytest.fixture
def numbered() -> Dataset:
    """Ten rows with a unique id, two groups and sampling weights."""
    return Dataset(
        pl.DataFrame(
            {
                "id": list(range(10)),
                "group": ["a"] * 6 + ["b"] * 4,
                "weight": [0, 0, 1, 1, 1, 1, 2, 0, 1, 1],
            }
        )
    )
