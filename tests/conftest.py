from __future__ import annotations

import os
from pathlib import Path

import pytest
from hypothesis import HealthCheck, settings

from tests.helpers import InMemoryTagService, ScriptedExecutor, artifact_path, write_pipeline

settings.register_profile(
    "ci_smoke",
    max_examples=30,
    derandomize=True,
    deadline=None,
    suppress_health_check=(HealthCheck.too_slow,),
)
settings.register_profile(
    "nightly_deep",
    max_examples=300,
    derandomize=True,
    deadline=None,
    suppress_health_check=(HealthCheck.too_slow,),
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci_smoke"))


@pytest.fixture()
def pipeline_config_path(tmp_path: Path) -> Path:
    return write_pipeline(tmp_path)


@pytest.fixture()
def executor(tmp_path: Path) -> ScriptedExecutor:
    return ScriptedExecutor(artifacts=[artifact_path(tmp_path)])


@pytest.fixture()
def tag_service() -> InMemoryTagService:
    return InMemoryTagService()
