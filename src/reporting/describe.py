"""Quick textual overviews of a dataset."""

import polars as pl

from tabular import Dataset


def glimpse(data: Dataset | pl.DataFrame) -> str:
    """Transposed preview: one line per column with its type and values."""
    dataset = Dataset.of(data)
    text = dataset.frame.glimpse(return_type="string")
    if dataset.is_grouped:
        header = f"Groups: {', '.join(dataset.groups)} [{dataset.n_groups()}]"
        text = f"{header}\n{text}"
    return text


def describe(data: Dataset | pl.DataFrame) -> pl.DataFrame:
    """Summary statistics per column (count, nulls, mean, quartiles...)."""
    return Dataset.of(data).frame.describe()
