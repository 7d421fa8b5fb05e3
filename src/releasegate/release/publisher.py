from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Protocol

import requests

from releasegate.domain import ReleaseArtifact
from releasegate.errors import BuildArtifactMissing, PublishError
from releasegate.release.tags import TagManager

LOGGER = logging.getLogger(__name__)


class ReleaseStore(Protocol):
    def upload(self, release_name: str, file_path: Path, *, overwrite: bool = True) -> None: ...


class DirectoryReleaseStore:
    """Publishes releases as ``<root>/<release_name>/<file name>`` on disk."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser().resolve()

    def path_for(self, release_name: str, file_name: str) -> Path:
        return self.root / release_name / file_name

    def upload(self, release_name: str, file_path: Path, *, overwrite: bool = True) -> None:
        target = self.path_for(release_name, file_path.name)
        if target.exists() and not overwrite:
            raise PublishError(release_name, f"asset '{file_path.name}' already exists")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".upload-", dir=target.parent)
            os.close(fd)
        except OSError as exc:
            raise PublishError(release_name, str(exc)) from exc
        try:
            shutil.copyfile(file_path, tmp_name)
            shutil.copymode(file_path, tmp_name)
            os.replace(tmp_name, target)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise PublishError(release_name, str(exc)) from exc


class GitHubReleaseStore:
    """Uploads release assets through the GitHub REST API.

    The release is looked up by tag and created when absent. An existing
    asset with the same file name is deleted before the new one is uploaded.
    """

    def __init__(
        self,
        repository: str,
        token: str | None = None,
        *,
        tag_name: str = "latest",
        api_url: str = "https://api.github.com",
        session: requests.Session | None = None,
        timeout: int = 60,
    ) -> None:
        if repository.count("/") != 1:
            raise PublishError(tag_name, f"repository must be 'owner/name', got '{repository}'")
        self.repository = repository
        self.token = token if token is not None else os.environ.get("GITHUB_TOKEN")
        self.tag_name = tag_name
        self.api_url = api_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        headers.update(extra)
        return headers

    def _request(self, release_name: str, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise PublishError(release_name, f"{method} {url}: {exc}") from exc
        return response

    @staticmethod
    def _release_payload(release_name: str, response: requests.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except requests.JSONDecodeError as exc:
            raise PublishError(release_name, f"release response is not JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise PublishError(release_name, "release response is not a JSON object")
        return payload

    def _find_or_create_release(self, release_name: str) -> dict[str, Any]:
        base = f"{self.api_url}/repos/{self.repository}/releases"
        response = self._request(
            release_name, "GET", f"{base}/tags/{self.tag_name}", headers=self._headers()
        )
        if response.status_code == 200:
            return self._release_payload(release_name, response)
        if response.status_code != 404:
            raise PublishError(
                release_name, f"release lookup returned HTTP {response.status_code}"
            )
        response = self._request(
            release_name,
            "POST",
            base,
            headers=self._headers(),
            json={"tag_name": self.tag_name, "name": release_name, "prerelease": False},
        )
        if response.status_code not in (200, 201):
            raise PublishError(
                release_name, f"release creation returned HTTP {response.status_code}"
            )
        LOGGER.info("created release %s for tag %s", release_name, self.tag_name)
        return self._release_payload(release_name, response)

    def upload(self, release_name: str, file_path: Path, *, overwrite: bool = True) -> None:
        release = self._find_or_create_release(release_name)
        for asset in release.get("assets", []):
            if asset.get("name") != file_path.name:
                continue
            if not overwrite:
                raise PublishError(release_name, f"asset '{file_path.name}' already exists")
            response = self._request(
                release_name,
                "DELETE",
                f"{self.api_url}/repos/{self.repository}/releases/assets/{asset['id']}",
                headers=self._headers(),
            )
            if response.status_code not in (204, 404):
                raise PublishError(
                    release_name, f"asset deletion returned HTTP {response.status_code}"
                )
            LOGGER.info("deleted previous asset %s from release %s", file_path.name, release_name)

        upload_url = str(release.get("upload_url", "")).split("{", 1)[0]
        if not upload_url:
            raise PublishError(release_name, "release has no upload_url")
        try:
            payload = file_path.read_bytes()
        except OSError as exc:
            raise PublishError(release_name, str(exc)) from exc
        response = self._request(
            release_name,
            "POST",
            upload_url,
            params={"name": file_path.name},
            headers=self._headers(**{"Content-Type": "application/octet-stream"}),
            data=payload,
        )
        if response.status_code not in (200, 201):
            raise PublishError(release_name, f"asset upload returned HTTP {response.status_code}")


class ReleasePublisher:
    def __init__(
        self,
        store: ReleaseStore,
        *,
        tag_manager: TagManager | None = None,
        tag_name: str | None = None,
        commit_sha: str | None = None,
    ) -> None:
        self.store = store
        self.tag_manager = tag_manager
        self.tag_name = tag_name
        self.commit_sha = commit_sha

    def publish(self, release_name: str, file_path: str | Path) -> ReleaseArtifact:
        path = Path(file_path)
        if not path.is_file():
            raise BuildArtifactMissing(
                release_name, "the build stage did not produce it", file_path=path
            )
        if self.tag_manager is not None and self.tag_name is not None:
            moved = self.tag_manager.moved_to(self.tag_name)
            if moved is None or (self.commit_sha is not None and moved != self.commit_sha):
                raise PublishError(
                    release_name,
                    f"tag '{self.tag_name}' has not been moved to the current commit",
                )
        self.store.upload(release_name, path, overwrite=True)
        LOGGER.info("published %s to release %s", path.name, release_name)
        return ReleaseArtifact(release_name=release_name, file_path=path)
