from __future__ import annotations

import hashlib
from collections.abc import Callable
from pathlib import Path

import pytest

from mrpack_sync.errors import DownloadFailed
from mrpack_sync.manifest import Environment, FileEntry, FileHashes, PackManifest, Requirement


def hashes_for(content: bytes) -> FileHashes:
    return FileHashes(sha1=hashlib.sha1(content).digest(), sha512=hashlib.sha512(content).digest())


class FakeFetcher:
    """Serves bytes per URL; a missing URL fails after leaving a partial file behind."""

    def __init__(self, responses: dict[str, bytes]) -> None:
        self.responses = responses
        self.calls: list[str] = []

    def fetch(self, url: str, destination: Path) -> None:
        self.calls.append(url)
        if url not in self.responses:
            destination.write_bytes(b"partial")
            raise DownloadFailed(url, "simulated failure")
        destination.write_bytes(self.responses[url])


@pytest.fixture
def make_entry() -> Callable[..., FileEntry]:
    def _make(
        path: str,
        content: bytes,
        urls: list[str] | None = None,
        server: Requirement | None = None,
    ) -> FileEntry:
        env = Environment(client=Requirement.REQUIRED, server=server) if server else None
        return FileEntry(
            path=path,
            hashes=hashes_for(content),
            downloads=tuple(urls or [f"https://cdn.example/{path}"]),
            file_size=len(content),
            env=env,
        )

    return _make


@pytest.fixture
def make_manifest() -> Callable[..., PackManifest]:
    def _make(*entries: FileEntry) -> PackManifest:
        return PackManifest(
            game="minecraft",
            format_version=1,
            version_id="1.0.0",
            name="Test Pack",
            files=tuple(entries),
        )

    return _make
