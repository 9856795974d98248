"""Left-to-right evaluation of chained transformation steps.

A pipeline threads a value through an ordered sequence of steps, each step
receiving the previous result. `pipe(flights, Step.call(filter_rows, expr))`
evaluates `filter_rows(flights, expr)`; the placeholder `DOT` moves the piped
value into any other argument position:

    >>> pipe(mtcars, Step.call(fit_ols, formula="mpg ~ wt", dataset=DOT))
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from tabular import Dataset, InvalidColumnReference, PipelineError

from .decoration import is_polars_frame

logger = logging.getLogger(__name__)


class _Placeholder:
    """Marks where the piped value goes in a step's arguments."""

    _instance = None

    def __new__(cls) -> "_Placeholder":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DOT"


DOT = _Placeholder()


@dataclass(frozen=True)
class Step:
    """A callable plus the arguments it is applied with.

    The piped value is passed as the first positional argument, unless DOT
    appears among the arguments, in which case each DOT is replaced by the
    piped value and nothing is prepended.
    """

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)
    name: str | None = None
    uses_placeholder: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        if not callable(self.func):
            msg = f"Step function must be callable, got {self.func!r}"
            raise TypeError(msg)
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "kwargs", dict(self.kwargs))
        object.__setattr__(
            self,
            "uses_placeholder",
            any(a is DOT for a in self.args)
            or any(v is DOT for v in self.kwargs.values()),
        )

    @classmethod
    def call(cls, func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> "Step":  # noqa: ANN401
        """Build a step from a function and its explicit arguments."""
        return cls(func, args, kwargs)

    def named(self, name: str) -> "Step":
        return replace(self, name=name)

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        return getattr(self.func, "__name__", repr(self.func))

    def __call__(self, value: Any) -> Any:  # noqa: ANN401
        if not self.uses_placeholder:
            return self.func(value, *self.args, **self.kwargs)

        args = [value if a is DOT else a for a in self.args]
        kwargs = {
            k: value if v is DOT else v for k, v in self.kwargs.items()
        }
        return self.func(*args, **kwargs)


def as_step(value: Any) -> Step:  # noqa: ANN401
    """Coerce a Step, a bare callable or a (func, *args) tuple to a Step."""
    if isinstance(value, Step):
        return value
    if isinstance(value, tuple) and value and callable(value[0]):
        return Step(value[0], value[1:])
    if callable(value):
        return Step(value)
    msg = f"Cannot use {value!r} as a pipeline step"
    raise TypeError(msg)


@dataclass(frozen=True)
class Pipeline:
    """Immutable, ordered sequence of steps.

    Building never evaluates anything; `run` threads a source value through
    the steps and returns the last result.
    """

    steps: tuple[Step, ...] = ()

    @classmethod
    def of(cls, *steps: Any) -> "Pipeline":  # noqa: ANN401
        return cls(tuple(as_step(s) for s in steps))

    def then(self, func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> "Pipeline":  # noqa: ANN401
        """Return a new pipeline with one more step appended."""
        return Pipeline((*self.steps, Step(func, args, kwargs)))

    def add(self, step: Any) -> "Pipeline":  # noqa: ANN401
        return Pipeline((*self.steps, as_step(step)))

    def __len__(self) -> int:
        return len(self.steps)

    def run(self, source: Any) -> Any:  # noqa: ANN401
        """Evaluate the steps left to right.

        Raises:
            PipelineError: From the first failing step, tagged with its name.
                Later steps are not run.
        """
        value = source
        n_steps = len(self.steps)

        for i, step in enumerate(self.steps, start=1):
            logger.debug("Step %d/%d: %s", i, n_steps, step.label)
            try:
                value = step(value)
            except PipelineError as e:
                if e.step is None:
                    e.step = step.label
                logger.error(
                    "Pipeline aborted at step %d/%d (%s): %s",
                    i,
                    n_steps,
                    step.label,
                    e,
                )
                raise

        return value

    def __call__(self, source: Any) -> Any:  # noqa: ANN401
        return self.run(source)


def pipe(source: Any, *steps: Any) -> Any:  # noqa: ANN401
    """Evaluate steps on source immediately.

    Equivalent to `steps[-1](...steps[1](steps[0](source)))`.
    """
    return Pipeline.of(*steps).run(source)


def expose(func: Callable[..., Any], *columns: str, **kwargs: Any) -> Step:  # noqa: ANN401
    """Step calling func with columns of the piped dataset as Series.

    `pipe(iris, expose(np.corrcoef, "sepal_length", "sepal_width"))` calls
    `np.corrcoef(iris["sepal_length"], iris["sepal_width"])`.
    """
    func_name = getattr(func, "__name__", "func")

    def exposed(data: Any) -> Any:  # noqa: ANN401
        if not is_polars_frame(data):
            msg = f"expose needs a dataset, got {type(data)}"
            raise TypeError(msg)
        dataset = Dataset.of(data)
        for column in columns:
            if column not in dataset.columns:
                msg = "column not found in dataset"
                raise InvalidColumnReference(msg, column=column)
        series = [dataset.frame.get_column(c) for c in columns]
        return func(*series, **kwargs)

    return Step(exposed, name=f"expose({func_name})")
