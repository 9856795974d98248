"""Declarative charts rendered with plotly.

A chart is a dataset plus a ChartSpec: an aesthetic mapping of columns to
x, y, size and color, and one or more layers (points, lines, smoothed fit).
"""

import logging
import math
from collections.abc import Sequence
from pathlib import Path
from typing import Literal

import numpy as np
import plotly.graph_objects as go
import polars as pl
from plotly.subplots import make_subplots
from pydantic import BaseModel, Field

from processing.expressions import check_columns
from tabular import Dataset, InvalidArgument

logger = logging.getLogger(__name__)

THEMES = {"minimal": "plotly_white", "default": "plotly"}
SMOOTH_POINTS = 100


class Aes(BaseModel):
    """Mapping from visual properties to column names."""

    x: str | None = None
    y: str | None = None
    size: str | None = None
    color: str | None = None


class Layer(BaseModel):
    """One geometry drawn on the chart."""

    geom: Literal["point", "line", "smooth"]
    aes: Aes | None = Field(
        default=None,
        description="Mapping merged over the chart-level mapping",
    )
    alpha: float = Field(default=1.0, ge=0, le=1)
    degree: int = Field(
        default=2, ge=1, description="Polynomial degree of the smooth fit"
    )


class ChartSpec(BaseModel):
    """Chart-level aesthetic mapping, layers and presentation."""

    aes: Aes
    layers: list[Layer] = Field(min_length=1)
    size_area: bool = Field(
        default=False,
        description="Scale marker area, not diameter, with the size column",
    )
    max_size: float = Field(default=30.0, gt=0)
    theme: Literal["minimal", "default"] = "minimal"
    title: str | None = None


def _layer_aes(spec: ChartSpec, layer: Layer) -> Aes:
    if layer.aes is None:
        return spec.aes
    return spec.aes.model_copy(update=layer.aes.model_dump(exclude_none=True))


def _marker(frame: pl.DataFrame, aes: Aes, spec: ChartSpec, alpha: float) -> dict:
    marker = {"opacity": alpha}
    if aes.size is None:
        return marker

    sizes = frame.get_column(aes.size).cast(pl.Float64).to_numpy()
    largest = float(np.nanmax(sizes)) if sizes.size else 1.0
    largest = largest if largest > 0 else 1.0
    marker["size"] = sizes
    if spec.size_area:
        marker["sizemode"] = "area"
        marker["sizeref"] = 2.0 * largest / spec.max_size**2
    else:
        marker["sizemode"] = "diameter"
        marker["sizeref"] = largest / spec.max_size
    marker["sizemin"] = 1
    return marker


def _xy_traces(
    frame: pl.DataFrame,
    aes: Aes,
    spec: ChartSpec,
    layer: Layer,
) -> list[go.Scatter]:
    mode = "markers" if layer.geom == "point" else "lines"
    if layer.geom == "line":
        frame = frame.sort(aes.x)

    color_numeric = (
        aes.color is not None and frame.schema[aes.color].is_numeric()
    )
    if aes.color is None or color_numeric:
        marker = _marker(frame, aes, spec, layer.alpha)
        if color_numeric:
            marker["color"] = frame.get_column(aes.color).to_list()
            marker["colorbar"] = {"title": aes.color}
        return [
            go.Scatter(
                x=frame.get_column(aes.x).to_list(),
                y=frame.get_column(aes.y).to_list(),
                mode=mode,
                marker=marker if mode == "markers" else None,
                opacity=layer.alpha if mode == "lines" else None,
                name=layer.geom,
            )
        ]

    # Discrete color: one trace per category
    traces = []
    for (level,), part in frame.group_by(
        aes.color, maintain_order=True
    ):
        traces.append(
            go.Scatter(
                x=part.get_column(aes.x).to_list(),
                y=part.get_column(aes.y).to_list(),
                mode=mode,
                marker=_marker(part, aes, spec, layer.alpha)
                if mode == "markers" else None,
                name=str(level),
            )
        )
    return traces


def _smooth_trace(frame: pl.DataFrame, aes: Aes, layer: Layer) -> go.Scatter:
    """Polynomial least squares fit of y on x."""
    x = frame.get_column(aes.x).cast(pl.Float64).to_numpy()
    y = frame.get_column(aes.y).cast(pl.Float64).to_numpy()

    if np.unique(x).size <= layer.degree:
        msg = (
            f"smooth of degree {layer.degree} needs more than "
            f"{layer.degree} distinct x values"
        )
        raise InvalidArgument(msg, argument="degree")

    coefficients = np.polyfit(x, y, layer.degree)
    grid = np.linspace(x.min(), x.max(), SMOOTH_POINTS)
    return go.Scatter(
        x=grid,
        y=np.polyval(coefficients, grid),
        mode="lines",
        opacity=layer.alpha,
        name="smooth",
    )


def render_chart(data: Dataset | pl.DataFrame, spec: ChartSpec) -> go.Figure:
    """Render a dataset according to a chart spec.

    Raises:
        InvalidColumnReference: If the mapping names an absent column
        InvalidArgument: If a layer lacks x or y
    """
    dataset = Dataset.of(data)
    fig = go.Figure()

    for layer in spec.layers:
        aes = _layer_aes(spec, layer)
        if aes.x is None or aes.y is None:
            msg = f"{layer.geom} layer needs both x and y"
            raise InvalidArgument(msg, argument="aes")

        mapped = [c for c in (aes.x, aes.y, aes.size, aes.color) if c]
        check_columns(dataset.columns, mapped)
        frame = dataset.frame.select(list(dict.fromkeys(mapped))).drop_nulls(
            [aes.x, aes.y]
        )

        if layer.geom == "smooth":
            fig.add_trace(_smooth_trace(frame, aes, layer))
        else:
            for trace in _xy_traces(frame, aes, spec, layer):
                fig.add_trace(trace)

    fig.update_layout(
        template=THEMES[spec.theme],
        title=spec.title,
        xaxis_title=spec.aes.x,
        yaxis_title=spec.aes.y,
        showlegend=len(fig.data) > 1,
    )
    logger.debug("Rendered chart with %d traces", len(fig.data))
    return fig


def arrange_grid(
    figures: Sequence[go.Figure],
    nrow: int = 1,
    titles: Sequence[str] | None = None,
) -> go.Figure:
    """Place figures side by side in a grid, filled row by row."""
    if not figures:
        msg = "arrange_grid needs at least one figure"
        raise InvalidArgument(msg, argument="figures")
    if nrow < 1:
        msg = f"nrow must be at least 1, got {nrow}"
        raise InvalidArgument(msg, argument="nrow")

    ncol = math.ceil(len(figures) / nrow)
    grid = make_subplots(
        rows=nrow,
        cols=ncol,
        subplot_titles=list(titles) if titles else None,
    )
    for i, figure in enumerate(figures):
        row, col = divmod(i, ncol)
        for trace in figure.data:
            grid.add_trace(trace, row=row + 1, col=col + 1)

    grid.update_layout(template=figures[0].layout.template, showlegend=False)
    return grid


def ts_plot(values: pl.Series | Sequence[float], name: str | None = None) -> go.Figure:
    """Line plot of values against their 1-based position."""
    series = values if isinstance(values, pl.Series) else pl.Series(values)
    label = name or series.name or "value"
    fig = go.Figure(
        go.Scatter(
            x=list(range(1, series.len() + 1)),
            y=series.to_list(),
            mode="lines",
            name=label,
        )
    )
    fig.update_layout(
        template=THEMES["minimal"], xaxis_title="Time", yaxis_title=label
    )
    return fig


def write_figure(fig: go.Figure, path: str | Path) -> Path:
    """Write a figure to a standalone HTML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(path, include_plotlyjs="cdn")
    logger.info("Wrote figure to %s", path)
    return path
