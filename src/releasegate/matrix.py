from __future__ import annotations

from collections.abc import Iterable

from releasegate.domain import JobInstance
from releasegate.errors import ConfigValidationError


def _unique_labels(axis: str, labels: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in labels:
        if not isinstance(raw, str):
            raise ConfigValidationError(f"matrix axis '{axis}' entries must be strings")
        label = raw.strip()
        if not label:
            raise ConfigValidationError(f"matrix axis '{axis}' entries must be non-empty")
        if label not in seen:
            seen.add(label)
            cleaned.append(label)
    if not cleaned:
        raise ConfigValidationError(f"matrix axis '{axis}' must not be empty")
    return tuple(cleaned)


def expand_matrix(
    os_labels: Iterable[str],
    toolchains: Iterable[str],
) -> tuple[JobInstance, ...]:
    """Return the OS x toolchain cross product, OS-major in declaration order."""
    oses = _unique_labels("os", os_labels)
    channels = _unique_labels("toolchain", toolchains)
    return tuple(JobInstance(os=os_label, toolchain=channel) for os_label in oses for channel in channels)
