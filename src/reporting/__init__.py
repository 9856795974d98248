"""Plots, regression models and text summaries for datasets."""
from .describe import describe, glimpse
from .plots import (
    Aes,
    ChartSpec,
    Layer,
    arrange_grid,
    render_chart,
    ts_plot,
    write_figure,
)
from .regression import FittedModel, Formula, fit_ols, parse_formula, report_models

__all__ = [
    "Aes",
    "ChartSpec",
    "FittedModel",
    "Formula",
    "Layer",
    "arrange_grid",
    "describe",
    "fit_ols",
    "glimpse",
    "parse_formula",
    "render_chart",
    "report_models",
    "ts_plot",
    "write_figure",
]
