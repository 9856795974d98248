"""Row models for the bundled sample datasets.

This module uses Pydantic for data validation.

Models represent individual records (rows) rather than entire DataFrames.
Use tabular.validation.validate_table to validate a Polars DataFrame by
iterating through rows.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class Airport(StrEnum):
    """New York City origin airports."""

    EWR = "EWR"
    JFK = "JFK"
    LGA = "LGA"


class Species(StrEnum):
    """Iris species."""

    SETOSA = "setosa"
    VERSICOLOR = "versicolor"
    VIRGINICA = "virginica"


# Data Models ------------------------------------------------------------------
class FlightModel(BaseModel):
    """One departure from a New York City airport."""

    year: int = Field(ge=2013, le=2013)
    month: int = Field(ge=1, le=12)
    day: int = Field(ge=1, le=31)
    # Clock times are encoded as HHMM integers, 2400 allowed for midnight
    dep_time: int | None = Field(default=None, ge=1, le=2400)
    sched_dep_time: int = Field(ge=1, le=2359)
    dep_delay: float | None = None
    arr_time: int | None = Field(default=None, ge=1, le=2400)
    sched_arr_time: int = Field(ge=1, le=2400)
    arr_delay: float | None = None
    carrier: str = Field(min_length=2, max_length=2)
    flight: int = Field(ge=1)
    tailnum: str | None = None
    origin: Airport
    dest: str = Field(min_length=3, max_length=3)
    air_time: float | None = Field(default=None, gt=0)
    distance: float = Field(gt=0)
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)
    time_hour: datetime


class CarModel(BaseModel):
    """Motor Trend 1974 road test record."""

    model: str
    mpg: float = Field(gt=0)
    cyl: int = Field(ge=1)
    disp: float = Field(gt=0)
    hp: int = Field(gt=0)
    drat: float = Field(gt=0)
    wt: float = Field(gt=0)
    qsec: float = Field(gt=0)
    vs: int = Field(ge=0, le=1)
    am: int = Field(ge=0, le=1)
    gear: int = Field(ge=1)
    carb: int = Field(ge=1)


class IrisModel(BaseModel):
    """Fisher's iris flower measurements (centimetres)."""

    sepal_length: float = Field(gt=0)
    sepal_width: float = Field(gt=0)
    petal_length: float = Field(gt=0)
    petal_width: float = Field(gt=0)
    species: Species
