"""Table builders with known contents.

Each builder returns a fresh polars DataFrame so tests can compare a dataset
before and after a pipeline without sharing state.
"""

import polars as pl


def create_three_rows() -> pl.DataFrame:
    """Two January days and one February day with known delays."""
    return pl.DataFrame(
        {
            "month": [1, 1, 2],
            "day": [1, 2, 1],
            "delay": [5.0, 10.0, 3.0],
        }
    )


def create_delay_table() -> pl.DataFrame:
    """Flights over two months with a missing delay and string carriers.

    Returns:
        DataFrame with columns year, month, day, carrier, dep_delay,
        arr_delay and distance
    """
    return pl.DataFrame(
        {
            "year": [2013] * 8,
            "month": [1, 1, 1, 1, 2, 2, 2, 2],
            "day": [1, 1, 2, 2, 1, 1, 1, 3],
            "carrier": ["UA", "AA", "UA", "DL", "AA", "AA", "UA", "DL"],
            "dep_delay": [2.0, -4.0, 30.0, None, 12.0, 60.0, -1.0, 8.0],
            "arr_delay": [11.0, -10.0, 45.0, None, 8.0, 71.0, -5.0, 2.0],
            "distance": [1400.0, 1089.0, 1400.0, 762.0, 733.0, 733.0, 2475.0, 187.0],
        }
    )
