from __future__ import annotations

from releasegate.config.defaults import DEFAULT_PIPELINE_TOML
from releasegate.config.loaders import load_pipeline_config, parse_pipeline_config
from releasegate.config.models import (
    DirectoryReleaseConfig,
    GitHubReleaseConfig,
    MatrixConfig,
    PipelineSpec,
    ReleaseConfig,
    RuntimeConfig,
    StageConfig,
    StageMatrixConfig,
    StepConfig,
)

__all__ = [
    "DEFAULT_PIPELINE_TOML",
    "DirectoryReleaseConfig",
    "GitHubReleaseConfig",
    "MatrixConfig",
    "PipelineSpec",
    "ReleaseConfig",
    "RuntimeConfig",
    "StageConfig",
    "StageMatrixConfig",
    "StepConfig",
    "load_pipeline_config",
    "parse_pipeline_config",
]
