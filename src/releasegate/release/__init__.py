from __future__ import annotations

from releasegate.release.predicate import (
    DEFAULT_POLICY,
    All,
    Equals,
    ReleaseContext,
    ReleasePolicy,
    should_release,
)
from releasegate.release.publisher import (
    DirectoryReleaseStore,
    GitHubReleaseStore,
    ReleasePublisher,
    ReleaseStore,
)
from releasegate.release.tags import GitTagService, TagManager, TagService

__all__ = [
    "DEFAULT_POLICY",
    "All",
    "DirectoryReleaseStore",
    "Equals",
    "GitHubReleaseStore",
    "GitTagService",
    "ReleaseContext",
    "ReleasePolicy",
    "ReleasePublisher",
    "ReleaseStore",
    "TagManager",
    "TagService",
    "should_release",
]
