"""Small hand-built tables for verb and pipeline tests."""

from .tables import create_delay_table, create_three_rows

__all__ = ["create_delay_table", "create_three_rows"]
