from __future__ import annotations

from importlib import import_module

from releasegate.__about__ import __version__

__all__ = [
    "JobInstance",
    "Outcome",
    "StageResult",
    "PipelineRun",
    "PushEvent",
    "TagPointer",
    "ReleaseArtifact",
    "expand_matrix",
    "StageRunner",
    "CommandSpec",
    "may_proceed",
    "should_release",
    "ReleasePolicy",
    "TagManager",
    "ReleasePublisher",
    "ReleaseGateRuntime",
    "load_pipeline_config",
    "__version__",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "JobInstance": ("releasegate.domain", "JobInstance"),
    "Outcome": ("releasegate.domain", "Outcome"),
    "StageResult": ("releasegate.domain", "StageResult"),
    "PipelineRun": ("releasegate.domain", "PipelineRun"),
    "PushEvent": ("releasegate.domain", "PushEvent"),
    "TagPointer": ("releasegate.domain", "TagPointer"),
    "ReleaseArtifact": ("releasegate.domain", "ReleaseArtifact"),
    "expand_matrix": ("releasegate.matrix", "expand_matrix"),
    "StageRunner": ("releasegate.stages", "StageRunner"),
    "CommandSpec": ("releasegate.stages", "CommandSpec"),
    "may_proceed": ("releasegate.gate", "may_proceed"),
    "should_release": ("releasegate.release", "should_release"),
    "ReleasePolicy": ("releasegate.release", "ReleasePolicy"),
    "TagManager": ("releasegate.release", "TagManager"),
    "ReleasePublisher": ("releasegate.release", "ReleasePublisher"),
    "ReleaseGateRuntime": ("releasegate.runtime", "ReleaseGateRuntime"),
    "load_pipeline_config": ("releasegate.config", "load_pipeline_config"),
}

_SUBMODULES = {
    "cli",
    "config",
    "gate",
    "matrix",
    "release",
    "runtime",
    "stages",
}


def __getattr__(name: str) -> object:
    if name in _SUBMODULES:
        module = import_module(f"releasegate.{name}")
        globals()[name] = module
        return module

    target = _LAZY_IMPORTS.get(name)
    if target is None:
        raise AttributeError(f"module 'releasegate' has no attribute '{name}'")
    module_name, attr_name = target
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
