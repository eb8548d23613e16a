"""Pipeline configuration and stage composition."""

from pipeline.config import load_config, default_config, validate_config, CONFIG_SCHEMA
from pipeline.run import PipelineResult, run_pipeline, write_outputs

__all__ = [
    "load_config",
    "default_config",
    "validate_config",
    "CONFIG_SCHEMA",
    "PipelineResult",
    "run_pipeline",
    "write_outputs",
]
