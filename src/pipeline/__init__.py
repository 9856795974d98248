"""Pipeline evaluation: chained steps and the verb decorator.

The YAML-configured runner lives in pipeline.runner and the parquet step
cache in pipeline.cache.
"""

from .chain import DOT, Pipeline, Step, as_step, expose, pipe
from .decoration import step

__all__ = [
    "DOT",
    "Pipeline",
    "Step",
    "as_step",
    "expose",
    "pipe",
    "step",
]
