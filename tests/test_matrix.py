from __future__ import annotations

import pytest

from releasegate.domain import JobInstance
from releasegate.errors import ConfigValidationError
from releasegate.matrix import expand_matrix


def test_expand_matrix_cross_product_os_major() -> None:
    jobs = expand_matrix(["ubuntu-latest", "macos-latest"], ["stable", "nightly"])
    assert jobs == (
        JobInstance("ubuntu-latest", "stable"),
        JobInstance("ubuntu-latest", "nightly"),
        JobInstance("macos-latest", "stable"),
        JobInstance("macos-latest", "nightly"),
    )


def test_expand_matrix_collapses_duplicates_and_strips() -> None:
    jobs = expand_matrix([" ubuntu-latest", "ubuntu-latest"], ["stable", "stable "])
    assert jobs == (JobInstance("ubuntu-latest", "stable"),)


@pytest.mark.parametrize(
    ("oses", "toolchains"),
    [([], ["stable"]), (["ubuntu-latest"], []), ([], [])],
)
def test_expand_matrix_rejects_empty_axis(oses: list[str], toolchains: list[str]) -> None:
    with pytest.raises(ConfigValidationError, match="must not be empty"):
        expand_matrix(oses, toolchains)


def test_expand_matrix_rejects_blank_label() -> None:
    with pytest.raises(ConfigValidationError, match="non-empty"):
        expand_matrix(["  "], ["stable"])


def test_job_instance_is_hashable_identity() -> None:
    assert JobInstance("ubuntu-latest", "stable") == JobInstance("ubuntu-latest", "stable")
    assert len({JobInstance("a", "b"), JobInstance("a", "b")}) == 1
    with pytest.raises(TypeError):
        JobInstance("", "stable")
