"""Pure release-gating policy.

A policy is a small boolean expression tree evaluated over a
:class:`ReleaseContext`. Nothing here touches the run's stage history, so
identical ``(branch, toolchain, os)`` inputs always yield the same decision.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, Union

from releasegate.domain import JobInstance, PipelineRun, normalize_branch
from releasegate.errors import ConfigValidationError

ContextField = Literal["branch", "toolchain", "os"]
CONTEXT_FIELDS: tuple[str, ...] = ("branch", "toolchain", "os")


@dataclass(frozen=True, slots=True)
class ReleaseContext:
    branch: str | None
    toolchain: str
    os: str

    @classmethod
    def from_run(cls, run: PipelineRun, job_instance: JobInstance) -> "ReleaseContext":
        return cls(branch=run.branch, toolchain=job_instance.toolchain, os=job_instance.os)

    def value(self, field_name: str) -> str | None:
        if field_name == "branch":
            return self.branch
        if field_name == "toolchain":
            return self.toolchain
        if field_name == "os":
            return self.os
        raise ConfigValidationError(f"unknown release context field '{field_name}'")


@dataclass(frozen=True, slots=True)
class Equals:
    field: ContextField
    value: str

    def evaluate(self, context: ReleaseContext) -> bool:
        actual = context.value(self.field)
        if actual is None:
            return False
        if self.field == "branch":
            return actual == normalize_branch(self.value)
        return actual == self.value

    def describe(self) -> str:
        return f"{self.field} == {self.value!r}"


@dataclass(frozen=True, slots=True)
class All:
    clauses: tuple["Expression", ...]

    def evaluate(self, context: ReleaseContext) -> bool:
        return all(clause.evaluate(context) for clause in self.clauses)

    def describe(self) -> str:
        return " AND ".join(f"({clause.describe()})" for clause in self.clauses)


Expression = Union[Equals, All]


@dataclass(frozen=True, slots=True)
class ReleasePolicy:
    expression: Expression

    @classmethod
    def from_mapping(cls, when: Mapping[str, str]) -> "ReleasePolicy":
        if not when:
            raise ConfigValidationError("release policy must name at least one condition")
        clauses: list[Expression] = []
        for key in CONTEXT_FIELDS:
            if key in when:
                value = when[key]
                if not isinstance(value, str) or not value.strip():
                    raise ConfigValidationError(
                        f"release policy value for '{key}' must be a non-empty string"
                    )
                clauses.append(Equals(field=key, value=value.strip()))  # type: ignore[arg-type]
        unknown = sorted(set(when) - set(CONTEXT_FIELDS))
        if unknown:
            raise ConfigValidationError(
                f"release policy has unknown fields: {', '.join(unknown)}"
            )
        return cls(expression=All(clauses=tuple(clauses)))

    def evaluate(self, context: ReleaseContext) -> bool:
        return self.expression.evaluate(context)

    def describe(self) -> str:
        return self.expression.describe()


DEFAULT_POLICY = ReleasePolicy.from_mapping(
    {"branch": "master", "toolchain": "stable", "os": "ubuntu-latest"}
)


def should_release(
    run: PipelineRun,
    job_instance: JobInstance,
    policy: ReleasePolicy = DEFAULT_POLICY,
) -> bool:
    return policy.evaluate(ReleaseContext.from_run(run, job_instance))
