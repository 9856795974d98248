"""Tabular data model: datasets, errors, sample data and row validation."""
from .dataset import Dataset
from .errors import (
    InvalidArgument,
    InvalidColumnReference,
    PipelineError,
    TypeMismatch,
    ValidationError,
)
from .sample_data import generate_flights, list_datasets, load_dataset

__all__ = [
    "Dataset",
    "InvalidArgument",
    "InvalidColumnReference",
    "PipelineError",
    "TypeMismatch",
    "ValidationError",
    "generate_flights",
    "list_datasets",
    "load_dataset",
]
