"""Shared fixtures: an in-memory release source and release builders."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from pluginindex.adapters.base import ReleaseSource
from pluginindex.exceptions import AuthError, NotFoundError
from pluginindex.models import ReleaseAsset, ReleaseDescriptor, RepositoryMetadata


class FakeReleaseSource(ReleaseSource):
    """In-memory release source keyed by "owner/repo".

    `releases` values may be a list of releases or an exception to raise.
    Repositories listed in `gates` block in fetch_releases until their
    event is set.
    """

    name = "fake"

    def __init__(
        self,
        releases: dict[str, list[ReleaseDescriptor] | Exception] | None = None,
        repositories: dict[str, RepositoryMetadata] | None = None,
        gates: dict[str, threading.Event] | None = None,
        auth_error: bool = False,
    ) -> None:
        self.releases = releases or {}
        self.repositories = repositories or {}
        self.gates = gates or {}
        self.auth_error = auth_error
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def verify_credentials(self) -> str:
        if self.auth_error:
            raise AuthError("bad credentials")
        return "tester"

    def fetch_releases(self, owner: str, repo: str) -> list[ReleaseDescriptor]:
        key = f"{owner}/{repo}"
        with self._lock:
            self.calls.append(key)

        gate = self.gates.get(key)
        if gate is not None:
            gate.wait(timeout=10)

        value = self.releases.get(key)
        if value is None:
            raise NotFoundError("Not found", key)
        if isinstance(value, Exception):
            raise value
        return value

    def fetch_repository(self, owner: str, repo: str) -> RepositoryMetadata:
        key = f"{owner}/{repo}"
        metadata = self.repositories.get(key)
        if metadata is None:
            raise NotFoundError("Not found", key)
        return metadata


def build_release(
    tag: str = "v1.0.0",
    assets: list[str] | None = None,
    body: str | None = "Changes",
    published_at: datetime | None = None,
) -> ReleaseDescriptor:
    """Build a release whose assets download from example.com/<name>."""
    names = ["Foo-Installer.exe"] if assets is None else assets
    return ReleaseDescriptor(
        tag_name=tag,
        body=body,
        published_at=published_at or datetime(2024, 3, 16, 14, 0, 0, tzinfo=UTC),
        assets=[
            ReleaseAsset(
                name=name,
                download_url=f"https://example.com/{name}",
                is_source_archive=name.startswith("Source code"),
            )
            for name in names
        ],
    )


@pytest.fixture
def make_release() -> Callable[..., ReleaseDescriptor]:
    """Factory for ReleaseDescriptor objects."""
    return build_release


@pytest.fixture
def make_source() -> Callable[..., FakeReleaseSource]:
    """Factory for FakeReleaseSource instances."""

    def factory(**kwargs: Any) -> FakeReleaseSource:
        return FakeReleaseSource(**kwargs)

    return factory


@pytest.fixture
def metadata() -> Callable[[str, str], RepositoryMetadata]:
    """Factory for RepositoryMetadata of "owner/repo"."""

    def factory(identifier: str, description: str = "") -> RepositoryMetadata:
        owner, repo = identifier.split("/")
        return RepositoryMetadata(
            owner=owner,
            html_url=f"https://github.com/{identifier}",
            description=description or None,
        )

    return factory
