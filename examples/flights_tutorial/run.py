"""Walk through the dataframe verbs on the flights, iris and mtcars samples.

Figures are written as HTML to ./output next to this script.
"""

import logging
from pathlib import Path

import numpy as np
import polars as pl

from pipeline import DOT, Pipeline, Step, expose, pipe
from pipeline.runner import ConfigPipeline
from processing import (
    arrange,
    desc,
    filter_rows,
    group_by,
    mutate,
    n,
    n_distinct,
    rename,
    sample_frac,
    sample_n,
    select,
    summarise,
    transmute,
)
from reporting import (
    Aes,
    ChartSpec,
    Layer,
    arrange_grid,
    fit_ols,
    glimpse,
    render_chart,
    report_models,
    ts_plot,
    write_figure,
)
from tabular import load_dataset

# ---------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------

HERE = Path(__file__).parent
CONFIG_PATH = HERE / "config.yaml"
OUTPUT_DIR = HERE / "output"

# ---------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
)

logger = logging.getLogger(__name__)

DELAY_CHART = ChartSpec(
    aes=Aes(x="dist", y="delay"),
    layers=[
        Layer(geom="point", aes=Aes(size="count"), alpha=0.5),
        Layer(geom="smooth"),
    ],
    size_area=True,
    theme="minimal",
)


def cor(x: pl.Series, y: pl.Series) -> float:
    """Pearson correlation of two columns."""
    return float(np.corrcoef(x, y)[0, 1])


def single_table_verbs(flights) -> None:
    logger.info("flights: %d rows, %d columns", *flights.shape)

    print(filter_rows(flights, "month = 1", "day = 1"))
    print(arrange(flights, "year", "month", "day"))
    print(arrange(flights, desc("arr_delay")))

    print(select(flights, "year", "month", "day"))
    print(select(flights, "year:day"))
    print(select(flights, "-(year:day)"))
    print(select(flights, tail_num="tailnum"))
    print(rename(flights, tail_num="tailnum"))

    print(
        mutate(
            flights,
            gain=pl.col("arr_delay") - pl.col("dep_delay"),
            speed="distance / air_time * 60",
        )
    )
    print(
        transmute(
            flights,
            gain="arr_delay - dep_delay",
            gain_per_hour="gain / (air_time / 60)",
        )
    )
    print(summarise(flights, delay="mean(dep_delay)"))

    print(sample_n(flights, 10))
    print(sample_frac(flights, 0.01))

    # Column by name or by (0-based) position
    print(select(flights, "year").equals(select(flights, 0)))


def grouped_verbs(flights):
    """Per-plane delays, destinations and daily roll-ups."""
    delay = pipe(
        flights,
        (group_by, "tailnum"),
        Step.call(
            summarise,
            count=n(),
            dist="mean(distance)",
            delay="mean(arr_delay)",
        ),
        (filter_rows, pl.col("count") > 20, "dist < 2000"),
    )
    print(delay)

    print(
        summarise(
            group_by(flights, "dest"),
            planes=n_distinct("tailnum"),
            flights=n(),
        )
    )

    per_day = summarise(group_by(flights, "year", "month", "day"), flights=n())
    per_month = summarise(per_day, flights="sum(flights)")
    per_year = summarise(per_month, flights="sum(flights)")
    print(per_day)
    print(per_month)
    print(per_year)
    return delay


def chained_pipeline(flights) -> None:
    """Step by step, nested and chained forms give the same answer."""
    a1 = group_by(flights, "year", "month", "day")
    a2 = select(a1, "arr_delay", "dep_delay")
    a3 = summarise(a2, arr="mean(arr_delay)", dep="mean(dep_delay)")
    a4 = filter_rows(a3, "arr > 30 OR dep > 30")

    chained = (
        Pipeline()
        .then(group_by, "year", "month", "day")
        .then(select, "arr_delay", "dep_delay")
        .then(summarise, arr="mean(arr_delay)", dep="mean(dep_delay)")
        .then(filter_rows, "arr > 30 OR dep > 30")
    )
    result = chained.run(flights)
    logger.info("Chained result matches step by step: %s", result.equals(a4))

    configured = ConfigPipeline(CONFIG_PATH, caching=HERE / ".cache").run()
    logger.info("Configured result matches: %s", configured.frame.equals(result.frame))


def exposition(iris) -> None:
    """Pass columns, or the piped value itself, to plain functions."""
    r = pipe(
        iris,
        (filter_rows, pl.col("sepal_length") > pl.col("sepal_length").mean()),
        expose(cor, "sepal_length", "sepal_width"),
    )
    logger.info("Correlation of sepal length and width: %.3f", r)

    noise = pl.DataFrame({"z": np.random.default_rng(1).normal(size=100)})
    write_figure(pipe(noise, expose(ts_plot, "z")), OUTPUT_DIR / "ts_plot.html")


def plots(delay) -> None:
    p1 = render_chart(delay, DELAY_CHART)
    p2 = pipe(
        delay,
        (filter_rows, "dist > 500 AND dist <= 1000"),
        Step.call(render_chart, data=DOT, spec=DELAY_CHART),
    )
    write_figure(p1, OUTPUT_DIR / "delay_vs_distance.html")
    write_figure(arrange_grid([p1, p2], nrow=1), OUTPUT_DIR / "grid_1x2.html")
    write_figure(arrange_grid([p1, p2], nrow=2), OUTPUT_DIR / "grid_2x1.html")


def regressions(mtcars) -> None:
    print(mtcars.head(6))
    print(glimpse(mtcars))

    simple = pipe(mtcars, Step.call(fit_ols, dataset=DOT, formula="mpg ~ cyl + wt"))
    print(simple.summary())
    print(report_models(simple))

    interacted = pipe(
        mtcars,
        Step.call(
            fit_ols,
            dataset=DOT,
            formula="mpg ~ cyl + wt + as.factor(vs)*as.factor(am)",
        ),
    )
    print(interacted.summary())
    print(report_models(simple, interacted, title="Fuel economy"))


# ---------------------------------------------------------------------
if __name__ == "__main__":
    logger.info("Starting flights walkthrough")

    flights = load_dataset("flights")
    single_table_verbs(flights)
    delay = grouped_verbs(flights)
    chained_pipeline(flights)
    exposition(load_dataset("iris"))
    plots(delay)
    regressions(load_dataset("mtcars"))

    logger.info("Walkthrough finished successfully.")
