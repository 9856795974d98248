"""Structured errors raised by pipeline steps and data validation."""

from dataclasses import dataclass
from typing import ClassVar


# Base Error Class ---------------------------------------------------------

@dataclass
class PipelineError(Exception):
    """Error raised by a pipeline step.

    Attributes:
        message: Human-readable error description
        column: Optional offending column name
        argument: Optional offending argument name
        step: Name of the step that failed, filled in when known
    """

    kind: ClassVar[str] = "PipelineError"

    message: str
    column: str | None = None
    argument: str | None = None
    step: str | None = None

    def __str__(self) -> str:
        """Format error message."""
        parts = []
        if self.step:
            parts.append(f"[{self.step}]")
        parts.append(f"{self.kind}:")
        if self.column is not None:
            parts.append(f"column '{self.column}'")
        if self.argument is not None:
            parts.append(f"argument '{self.argument}'")
        parts.append(self.message)
        return " ".join(parts)


@dataclass
class InvalidColumnReference(PipelineError):
    """A step names a column absent from its input."""

    kind: ClassVar[str] = "InvalidColumnReference"


@dataclass
class TypeMismatch(PipelineError):
    """An expression is applied to incompatible column types."""

    kind: ClassVar[str] = "TypeMismatch"


@dataclass
class InvalidArgument(PipelineError):
    """A step argument is out of range or malformed."""

    kind: ClassVar[str] = "InvalidArgument"


# Row validation -------------------------------------------------------------

@dataclass
class ValidationError(Exception):
    """Structured validation error with context.

    Attributes:
        table: Name of the table being validated
        rule: Name of the validation rule that failed
        message: Human-readable error description
        row_id: Optional row identifier for row-level errors
        column: Optional column name for column-level errors
    """

    table: str
    rule: str
    message: str
    row_id: int | None = None
    column: str | None = None

    def __str__(self) -> str:
        """Format error message."""
        parts = [f"[{self.table}]"]
        if self.row_id is not None:
            parts.append(f"row {self.row_id}")
        if self.column:
            parts.append(f"column '{self.column}'")
        parts.append(f"({self.rule})")
        parts.append(self.message)
        return " ".join(parts)
