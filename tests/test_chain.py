"""Tests for chained pipeline evaluation."""

import numpy as np
import polars as pl
import pytest

from pipeline import DOT, Pipeline, Step, expose, pipe, step
from processing import (
    arrange,
    desc,
    filter_rows,
    group_by,
    mutate,
    rename,
    sample_n,
    select,
    summarise,
)
from tabular import (
    Dataset,
    InvalidArgument,
    InvalidColumnReference,
    TypeMismatch,
)


class TestChainingEquivalence:
    """Running steps in a pipeline equals nesting the calls."""

    def test_pipeline_equals_nested_calls(self, flights):
        pipeline = (
            Pipeline()
            .then(group_by, "carrier")
            .then(summarise, delay="mean(arr_delay)", flights="n()")
            .then(filter_rows, "flights > 20")
            .then(arrange, desc("delay"))
        )
        nested = arrange(
            filter_rows(
                summarise(
                    group_by(flights, "carrier"),
                    delay="mean(arr_delay)",
                    flights="n()",
                ),
                "flights > 20",
            ),
            desc("delay"),
        )
        assert pipeline.run(flights).equals(nested)

    def test_pipe_accepts_callables_tuples_and_steps(self, three_rows):
        result = pipe(
            three_rows,
            (filter_rows, "month = 1"),
            Step.call(mutate, double=pl.col("delay") * 2),
            lambda d: select(d, "double"),
        )
        assert result.frame.get_column("double").to_list() == [10.0, 20.0]

    def test_empty_pipeline_is_identity(self, three_rows):
        assert Pipeline().run(three_rows) is three_rows

    def test_building_does_not_evaluate(self):
        calls = []
        pipeline = Pipeline().then(lambda value: calls.append(value))
        assert calls == []
        pipeline.run(1)
        assert calls == [1]

    def test_then_returns_a_new_pipeline(self):
        base = Pipeline()
        extended = base.then(len)
        assert len(base) == 0
        assert len(extended) == 1

    def test_pipeline_is_callable(self, three_rows):
        pipeline = Pipeline.of((filter_rows, "month = 2"))
        assert pipeline(three_rows).height == 1


class TestPlaceholder:
    """DOT moves the piped value to any argument."""

    def test_keyword_position(self):
        def describe(label, *, value):
            return f"{label}={value}"

        assert pipe(5, Step.call(describe, "x", value=DOT)) == "x=5"

    def test_positional_position(self):
        assert pipe(3, Step.call(pow, 2, DOT)) == 8

    def test_no_placeholder_prepends(self):
        assert pipe(3, Step.call(pow, 2)) == 9

    def test_several_placeholders(self):
        assert pipe(4, Step.call(np.add, DOT, DOT)) == 8


class TestImmutability:
    """Evaluating steps never changes the source dataset."""

    def test_source_is_unchanged(self, delays):
        snapshot = delays.frame.clone()
        pipeline = (
            Pipeline()
            .then(mutate, dep_delay=pl.col("dep_delay") * 0, extra=1)
            .then(rename, airline="carrier")
            .then(arrange, desc("distance"))
            .then(group_by, "airline")
            .then(sample_n, 1, seed=0)
            .then(select, "-year")
        )
        pipeline.run(delays)
        assert delays.frame.equals(snapshot, null_equal=True)
        assert delays.groups == ()


class TestFailure:
    """The first failing step aborts the pipeline."""

    def test_later_steps_do_not_run(self, delays):
        reached = []
        pipeline = (
            Pipeline()
            .then(select, "dep_dely")
            .then(lambda d: reached.append(d) or d)
        )
        with pytest.raises(InvalidColumnReference) as excinfo:
            pipeline.run(delays)
        assert reached == []
        assert excinfo.value.column == "dep_dely"
        assert excinfo.value.step == "select"

    def test_type_mismatch_is_reported(self, delays):
        with pytest.raises(TypeMismatch):
            pipe(delays, (mutate,), Step.call(mutate, x=pl.col("carrier") - 1))

    def test_named_step_label(self, delays):
        def missing(dataset):
            raise InvalidColumnReference("not here", column="z")

        with pytest.raises(InvalidColumnReference) as excinfo:
            pipe(delays, Step(missing).named("custom"))
        assert excinfo.value.step == "custom"

    def test_non_callable_step(self):
        with pytest.raises(TypeError):
            Pipeline.of(3)


class TestExpose:
    """Calling plain functions on dataset columns."""

    def test_correlation(self, iris):
        r = pipe(iris, expose(np.corrcoef, "sepal_length", "petal_length"))
        assert r[0, 1] == pytest.approx(0.8718, abs=1e-4)

    def test_keyword_arguments(self, three_rows):
        median = pipe(three_rows, expose(np.quantile, "delay", q=0.5))
        assert median == pytest.approx(5.0)

    def test_missing_column(self, iris):
        with pytest.raises(InvalidColumnReference) as excinfo:
            pipe(iris, expose(np.corrcoef, "sepal_length", "petal_lngth"))
        assert excinfo.value.step == "expose(corrcoef)"

    def test_requires_dataset(self):
        with pytest.raises(TypeError):
            pipe([1, 2], expose(np.mean, "x"))


class TestStepDecorator:
    """Custom verbs get dataset coercion and error translation."""

    def test_accepts_dataframe(self, delays):
        @step()
        def first_row(dataset: Dataset) -> Dataset:
            return dataset.head(1)

        result = first_row(delays.frame)
        assert isinstance(result, Dataset)
        assert result.height == 1

    def test_translates_polars_column_errors(self, delays):
        @step(name="pick")
        def pick(dataset: Dataset) -> Dataset:
            return dataset.with_frame(dataset.frame.select(pl.col("nope")))

        with pytest.raises(InvalidColumnReference) as excinfo:
            pick(delays)
        assert excinfo.value.column == "nope"
        assert excinfo.value.step == "pick"

    def test_translates_duplicate_output_columns(self, delays):
        @step(name="dupe")
        def dupe(dataset: Dataset) -> Dataset:
            return dataset.with_frame(
                dataset.frame.select(pl.col("month"), pl.col("day").alias("month"))
            )

        with pytest.raises(InvalidArgument) as excinfo:
            dupe(delays)
        assert excinfo.value.step == "dupe"
        assert "duplicate" in excinfo.value.message
