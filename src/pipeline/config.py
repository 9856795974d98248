"""Configuration models for YAML-defined pipelines."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)


class SourceConfig(BaseModel):
    """Where the pipeline's initial dataset comes from.

    Exactly one of `dataset` (a bundled sample name) or `path` (csv or
    parquet file) must be given.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    dataset: str | None = None
    path: str | None = None
    check_rows: bool = Field(
        default=False,
        alias="validate",
        description="Validate every row of a bundled dataset on load",
    )

    @model_validator(mode="after")
    def _one_source(self) -> "SourceConfig":
        if (self.dataset is None) == (self.path is None):
            msg = "source needs exactly one of 'dataset' or 'path'"
            raise ValueError(msg)
        return self


class StepConfig(BaseModel):
    """One configured step: verb name, its parameters and caching flag."""

    model_config = ConfigDict(extra="forbid")

    name: str
    params: dict[str, Any] = Field(default_factory=dict)
    cache: bool = False


class PipelineConfig(BaseModel):
    """Top-level pipeline configuration.

    Extra top-level keys are allowed; string values among them act as
    template variables for `{{ name }}` substitution.
    """

    model_config = ConfigDict(extra="allow")

    source: SourceConfig
    steps: list[StepConfig] = Field(min_length=1)
    output: str | None = None


def load_config(config_path: str | Path) -> PipelineConfig:
    """Load and validate a pipeline configuration from a YAML file.

    Replaces template variables in the format {{ variable_name }} with
    their corresponding values defined in the config.

    Returns:
        The validated configuration.
    """
    with Path(config_path).open() as f:
        config = yaml.safe_load(f)

    if not isinstance(config, dict):
        msg = f"Pipeline config must be a mapping: {config_path}"
        raise ValueError(msg)

    # Extract top-level variables for substitution
    variables = {
        key: value
        for key, value in config.items()
        if isinstance(value, str)
    }

    # Recursively replace template variables
    def replace_templates(obj: Any) -> Any:  # noqa: ANN401
        if isinstance(obj, str):
            # Replace {{ variable_name }} with actual values
            for var_name, var_value in variables.items():
                obj = obj.replace(f"{{{{ {var_name} }}}}", str(var_value))
            return obj

        if isinstance(obj, dict):
            return {k: replace_templates(v) for k, v in obj.items()}

        if isinstance(obj, list):
            return [replace_templates(item) for item in obj]

        return obj

    return PipelineConfig.model_validate(replace_templates(config))
