"""Run a pipeline of verbs defined in a YAML configuration file.

Example configuration:

    out_dir: output
    source:
      dataset: flights
    steps:
      - name: group_by
        params:
          columns: [year, month, day]
      - name: summarise
        params:
          arr: mean(arr_delay)
          dep: mean(dep_delay)
      - name: filter_rows
        params:
          predicates: ["arr > 30 OR dep > 30"]
    output: "{{ out_dir }}/delayed_days.csv"
"""

import inspect
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from processing import VERBS, load_table, write_table
from tabular import Dataset, load_dataset

from .cache import PipelineCache
from .chain import Pipeline, Step
from .config import PipelineConfig, StepConfig, load_config

logger = logging.getLogger(__name__)


class ConfigPipeline:
    """Class to run a verb pipeline based on a configuration file."""

    config: PipelineConfig
    steps: dict[str, Callable]
    cache: PipelineCache | None

    def __init__(
        self,
        config_path: str | Path,
        steps: list[Callable] | None = None,
        caching: bool | Path | str | None = None,
    ) -> None:
        """Initialize the pipeline with configuration and available steps.

        Args:
            config_path: Path to the YAML configuration.
            steps: Optional list of step functions, defaults to all verbs.
                Each takes the dataset first and returns a Dataset.
            caching: If False or None, disable caching.
                If True, use default cache directory ".cache".
                If str or Path, use specified directory for caching.
        """
        self.config_path = config_path
        self.config = load_config(config_path)
        self.steps = {
            func.__name__: func
            for func in (VERBS if steps is None else steps)
        }

        if caching is None or caching is False:
            self.cache = None
            logger.info("Pipeline caching disabled")
        else:
            cache_dir = Path(".cache") if caching is True else Path(caching)
            self.cache = PipelineCache(cache_dir=cache_dir)
            logger.info("Pipeline cache initialized at: %s", cache_dir)

    def parse_step_args(
        self, step_cfg: StepConfig, step_obj: Callable
    ) -> tuple[list[Any], dict[str, Any]]:
        """Map configured parameters onto the step function's signature.

        The first parameter receives the piped dataset. Named parameters are
        taken from the step "params"; a `*args` parameter takes a list and a
        `**kwargs` parameter takes a mapping under its own name. Remaining
        keys are passed as keyword arguments when the function accepts them.

        Args:
            step_cfg: The step configuration.
            step_obj: The step function.

        Returns:
            Positional and keyword arguments, excluding the dataset.
        """
        step_name = step_cfg.name
        params = dict(step_cfg.params)
        step_args = list(inspect.signature(step_obj).parameters.values())[1:]

        has_var_positional = any(
            p.kind is inspect.Parameter.VAR_POSITIONAL for p in step_args
        )
        var_keyword = next(
            (p for p in step_args if p.kind is inspect.Parameter.VAR_KEYWORD),
            None,
        )
        expected = [
            p.name for p in step_args
            if p.kind is not inspect.Parameter.VAR_KEYWORD
        ]

        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        for param in step_args:
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                values = params.pop(param.name, [])
                args.extend(values if isinstance(values, list) else [values])
            elif param.kind is inspect.Parameter.VAR_KEYWORD:
                values = params.pop(param.name, {})
                if not isinstance(values, dict):
                    msg = (
                        f"Parameter '{param.name}' for step '{step_name}' "
                        "must be a mapping"
                    )
                    raise ValueError(msg)
                kwargs.update(values)
            elif param.name in params:
                value = params.pop(param.name)
                if has_var_positional and param.kind in (
                    inspect.Parameter.POSITIONAL_ONLY,
                    inspect.Parameter.POSITIONAL_OR_KEYWORD,
                ):
                    args.append(value)
                else:
                    kwargs[param.name] = value
            elif param.default is inspect.Parameter.empty:
                msg = (
                    f"Missing required parameter '{param.name}' "
                    f"for step '{step_name}'. Function expects "
                    f""""{'", "'.join(expected)}"."""
                )
                raise ValueError(msg)

        # Leftover keys go to **kwargs, e.g. mutate's new columns
        if params:
            if var_keyword is None:
                msg = (
                    f"Unknown parameters {sorted(params)} for step "
                    f"'{step_name}'. Function expects "
                    f""""{'", "'.join(expected)}"."""
                )
                raise ValueError(msg)
            kwargs.update(params)

        return args, kwargs

    def load_source(self) -> Dataset:
        """Load the configured source dataset."""
        source = self.config.source
        if source.dataset is not None:
            return load_dataset(source.dataset, validate=source.check_rows)
        if source.check_rows:
            logger.warning("Row validation only applies to bundled datasets")
        return load_table(source.path)

    def _build_step(
        self, index: int, step_cfg: StepConfig
    ) -> Step:
        """Wrap a configured step with logging and caching."""
        step_name = step_cfg.name

        if step_name not in self.steps:
            msg = f"Step '{step_name}' not found in pipeline steps."
            raise ValueError(msg)

        step_obj = self.steps[step_name]
        args, kwargs = self.parse_step_args(step_cfg, step_obj)
        n_steps = len(self.config.steps)
        use_cache = self.cache is not None and step_cfg.cache

        def run_step(dataset: Dataset) -> Dataset:
            logger.info("")
            logger.info("=" * 70)
            logger.info("Step %d/%d: %s", index, n_steps, step_name)
            logger.info("=" * 70)

            if use_cache:
                cache_key = self.cache.get_cache_key(
                    step_name, dataset, step_cfg.params
                )
                cached = self.cache.load(step_name, cache_key)
                if cached is not None:
                    return cached

            result = step_obj(dataset, *args, **kwargs)

            if use_cache:
                self.cache.save(step_name, cache_key, result)
            return result

        return Step(run_step, name=step_name)

    def build(self) -> Pipeline:
        """Translate the configured steps into a chained pipeline."""
        return Pipeline(
            tuple(
                self._build_step(i, step_cfg)
                for i, step_cfg in enumerate(self.config.steps, start=1)
            )
        )

    def run(self) -> Dataset:
        """Run the configured pipeline and return the final dataset."""
        pipeline = self.build()
        result = pipeline.run(self.load_source())

        if self.config.output:
            write_table(result, self.config.output)

        # Log cache statistics if caching was enabled
        if self.cache:
            stats = self.cache.get_stats()
            if stats["total"] > 0:
                logger.info(
                    "Cache statistics: %d hits, %d misses (%.1f%% hit rate)",
                    stats["hits"],
                    stats["misses"],
                    stats["hit_rate"] * 100,
                )

        logger.info("Pipeline completed.")
        return result
