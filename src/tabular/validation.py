"""Row-level validation of tables against Pydantic models."""

import logging
import time

import polars as pl
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

logger = logging.getLogger(__name__)


def check_required_columns(
    frame: pl.DataFrame,
    model: type[BaseModel],
    table: str,
) -> None:
    """Check that every field without a default is present as a column."""
    missing = [
        name
        for name, info in model.model_fields.items()
        if info.is_required() and name not in frame.columns
    ]
    if missing:
        raise ValidationError(
            table=table,
            rule="required_columns",
            message=f"missing required columns: {missing}",
            column=missing[0],
        )


def validate_row(row: dict, model: type[BaseModel], table: str, row_id: int) -> None:
    """Validate a single row, converting Pydantic errors to ValidationError."""
    try:
        model.model_validate(row)
    except PydanticValidationError as e:
        first = e.errors()[0]
        column = str(first["loc"][0]) if first["loc"] else None
        raise ValidationError(
            table=table,
            rule="row_validation",
            message=first["msg"],
            row_id=row_id,
            column=column,
        ) from e


def validate_table(
    frame: pl.DataFrame,
    model: type[BaseModel],
    table: str,
) -> None:
    """Validate all rows of a table, stopping at the first failing row.

    Args:
        frame: Table to validate
        model: Pydantic model describing one row
        table: Table name used in error messages

    Raises:
        ValidationError: On missing columns or the first invalid row
    """
    start = time.perf_counter()
    check_required_columns(frame, model, table)

    # Only validate columns the model knows about
    fields = [c for c in frame.columns if c in model.model_fields]
    for row_id, row in enumerate(frame.select(fields).iter_rows(named=True)):
        validate_row(row, model, table, row_id)

    logger.debug(
        "Validated %d rows of %s in %.2fs",
        frame.height,
        table,
        time.perf_counter() - start,
    )
