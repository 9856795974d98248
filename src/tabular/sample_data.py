"""Bundled sample datasets loaded by name.

`flights` is generated deterministically with the column layout of the
nycflights13 table (all departures from NYC airports in 2013). `mtcars` and
`iris` are shipped as CSV files in the package data directory.
"""

import logging
from collections.abc import Callable
from pathlib import Path

import numpy as np
import polars as pl
from pydantic import BaseModel

from .dataset import Dataset
from .errors import InvalidArgument
from .models import CarModel, FlightModel, IrisModel
from .validation import validate_table

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"

DEFAULT_FLIGHT_ROWS = 20_000
DEFAULT_SEED = 2013

FLIGHT_COLUMNS = [
    "year",
    "month",
    "day",
    "dep_time",
    "sched_dep_time",
    "dep_delay",
    "arr_time",
    "sched_arr_time",
    "arr_delay",
    "carrier",
    "flight",
    "tailnum",
    "origin",
    "dest",
    "air_time",
    "distance",
    "hour",
    "minute",
    "time_hour",
]

# Destination -> (great circle miles from NYC, relative frequency)
DESTINATIONS = {
    "ATL": (762, 17),
    "ORD": (733, 17),
    "LAX": (2475, 16),
    "BOS": (187, 15),
    "MCO": (944, 14),
    "CLT": (544, 14),
    "SFO": (2586, 13),
    "FLL": (1069, 12),
    "MIA": (1089, 11),
    "DCA": (213, 10),
    "DTW": (502, 9),
    "DFW": (1389, 8),
    "RDU": (427, 8),
    "TPA": (1005, 7),
    "DEN": (1626, 7),
    "IAH": (1416, 7),
    "MSP": (1028, 7),
    "PBI": (1028, 6),
    "BNA": (764, 6),
    "LAS": (2248, 6),
    "SEA": (2422, 4),
    "PHX": (2153, 4),
    "SLC": (1990, 3),
    "HNL": (4983, 1),
}

CARRIERS = {
    "UA": 18,
    "B6": 16,
    "EV": 16,
    "DL": 14,
    "AA": 10,
    "MQ": 8,
    "US": 6,
    "9E": 5,
    "WN": 4,
    "VX": 2,
    "FL": 1,
}

ORIGINS = {"EWR": 36, "JFK": 33, "LGA": 31}

# Share of flights that never left the gate
CANCELLED_RATE = 0.025
TAILS_PER_CARRIER = 120


def _weights(table: dict) -> np.ndarray:
    w = np.array(
        [v[1] if isinstance(v, tuple) else v for v in table.values()],
        dtype=float,
    )
    return w / w.sum()


def _clock(minutes: pl.Expr) -> pl.Expr:
    """Convert minutes after midnight to an HHMM integer (midnight = 2400)."""
    m = minutes % 1440
    hhmm = (m // 60) * 100 + m % 60
    return pl.when(hhmm == 0).then(2400).otherwise(hhmm)


def generate_flights(
    n_rows: int = DEFAULT_FLIGHT_ROWS,
    seed: int = DEFAULT_SEED,
) -> pl.DataFrame:
    """Generate a reproducible flights table.

    Args:
        n_rows: Number of departures to generate
        seed: Seed for the numpy random generator

    Returns:
        DataFrame sorted by date and scheduled departure time
    """
    if n_rows < 0:
        msg = "n_rows must be non-negative"
        raise InvalidArgument(msg, argument="n_rows")

    rng = np.random.default_rng(seed)
    logger.info("Generating %d flights (seed=%d)...", n_rows, seed)

    dates = np.datetime64("2013-01-01") + rng.integers(0, 365, n_rows)
    sched_hour = rng.choice(
        np.arange(5, 24),
        n_rows,
        p=_weights(dict.fromkeys(range(5, 24), 1) | {5: 2, 6: 3, 7: 3, 8: 3}),
    )
    sched_minute = rng.choice(np.arange(0, 60, 5), n_rows)

    dest = rng.choice(list(DESTINATIONS), n_rows, p=_weights(DESTINATIONS))
    distance = np.array([DESTINATIONS[d][0] for d in dest], dtype=float)
    carrier = rng.choice(list(CARRIERS), n_rows, p=_weights(CARRIERS))
    origin = rng.choice(list(ORIGINS), n_rows, p=_weights(ORIGINS))

    # Right skewed delays, most flights leave slightly early
    dep_delay = np.round(rng.gamma(0.55, 35.0, n_rows) - 6.0)
    arr_delay = np.round(dep_delay + rng.normal(-6.0, 11.0, n_rows))
    air_time = np.round(distance / rng.uniform(6.8, 8.4, n_rows) + 12.0)
    cancelled = rng.random(n_rows) < CANCELLED_RATE

    tail_ids = rng.integers(0, TAILS_PER_CARRIER, n_rows)
    tailnum = np.array(
        [f"N{100 + t * 7 % 900}{c[0]}{c[-1]}" for t, c in zip(tail_ids, carrier, strict=True)]
    )

    flights = pl.DataFrame(
        {
            "date": pl.Series(dates, dtype=pl.Date),
            "sched_hour": sched_hour.astype(np.int64),
            "sched_minute": sched_minute.astype(np.int64),
            "dep_delay": dep_delay,
            "arr_delay": arr_delay,
            "air_time": air_time,
            "cancelled": cancelled,
            "carrier": carrier,
            "flight": rng.integers(1, 6000, n_rows),
            "tailnum": tailnum,
            "origin": origin,
            "dest": dest,
            "distance": distance,
        }
    )

    sched_dep = pl.col("sched_hour") * 60 + pl.col("sched_minute")
    sched_arr = sched_dep + pl.col("air_time").cast(pl.Int64) + 25
    missing = pl.col("cancelled")

    flights = (
        flights.with_columns(
            pl.col("date").dt.year().cast(pl.Int64).alias("year"),
            pl.col("date").dt.month().cast(pl.Int64).alias("month"),
            pl.col("date").dt.day().cast(pl.Int64).alias("day"),
            (pl.col("sched_hour") * 100 + pl.col("sched_minute")).alias(
                "sched_dep_time"
            ),
            _clock(sched_arr).alias("sched_arr_time"),
            pl.when(missing)
            .then(None)
            .otherwise(_clock(sched_dep + pl.col("dep_delay").cast(pl.Int64)))
            .alias("dep_time"),
            pl.when(missing)
            .then(None)
            .otherwise(
                _clock(sched_arr + pl.col("arr_delay").cast(pl.Int64))
            )
            .alias("arr_time"),
            pl.when(missing).then(None).otherwise(pl.col("dep_delay"))
            .alias("dep_delay"),
            pl.when(missing).then(None).otherwise(pl.col("arr_delay"))
            .alias("arr_delay"),
            pl.when(missing).then(None).otherwise(pl.col("air_time"))
            .alias("air_time"),
            pl.col("sched_hour").alias("hour"),
            pl.col("sched_minute").alias("minute"),
            pl.col("date")
            .cast(pl.Datetime("us"))
            .add(pl.duration(hours=pl.col("sched_hour")))
            .alias("time_hour"),
        )
        .sort("date", "sched_dep_time", "carrier", "flight")
        .select(FLIGHT_COLUMNS)
    )

    return flights


def _read_bundled(name: str) -> pl.DataFrame:
    path = DATA_DIR / f"{name}.csv"
    logger.info("Loading %s...", path.name)
    return pl.read_csv(path)


_LOADERS: dict[str, tuple[Callable[[], pl.DataFrame], type[BaseModel]]] = {
    "flights": (generate_flights, FlightModel),
    "mtcars": (lambda: _read_bundled("mtcars"), CarModel),
    "iris": (lambda: _read_bundled("iris"), IrisModel),
}


def list_datasets() -> list[str]:
    """Names accepted by load_dataset."""
    return sorted(_LOADERS)


def load_dataset(name: str, *, validate: bool = False) -> Dataset:
    """Load a bundled sample dataset by name.

    Args:
        name: One of list_datasets()
        validate: If True, validate every row against the dataset's model

    Returns:
        Ungrouped Dataset

    Raises:
        InvalidArgument: If the name is unknown
    """
    if name not in _LOADERS:
        msg = f"unknown dataset '{name}', expected one of {list_datasets()}"
        raise InvalidArgument(msg, argument="name")

    loader, model = _LOADERS[name]
    frame = loader()

    if validate:
        logger.info("Validating %s against %s", name, model.__name__)
        validate_table(frame, model, name)

    return Dataset(frame)
