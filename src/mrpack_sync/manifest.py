from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .errors import ManifestError
from .utils import normalize_relative_path

SHA1_LENGTH = 20
SHA512_LENGTH = 64

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_VERSION_RE = re.compile(r"^\d+(\.\d+){1,3}([-+][0-9A-Za-z.+-]+)?$")


class Requirement(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    UNSUPPORTED = "unsupported"


class KnownDependency(str, Enum):
    MINECRAFT = "minecraft"
    FORGE = "forge"
    NEOFORGE = "neoforge"
    FABRIC_LOADER = "fabric-loader"
    QUILT_LOADER = "quilt-loader"


@dataclass(frozen=True)
class OtherDependency:
    name: str


DependencyId = Union[KnownDependency, OtherDependency]

_DISPLAY_NAMES = {
    KnownDependency.MINECRAFT: "Minecraft",
    KnownDependency.FORGE: "Forge",
    KnownDependency.NEOFORGE: "NeoForge",
    KnownDependency.FABRIC_LOADER: "Fabric",
    KnownDependency.QUILT_LOADER: "Quilt",
}


def parse_dependency_id(raw: str) -> DependencyId:
    try:
        return KnownDependency(raw)
    except ValueError:
        return OtherDependency(raw)


def dependency_display_name(dependency: DependencyId) -> str:
    if isinstance(dependency, OtherDependency):
        return dependency.name
    return _DISPLAY_NAMES[dependency]


@dataclass(frozen=True)
class FileHashes:
    sha1: bytes
    sha512: bytes
    other_hashes: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.sha1) != SHA1_LENGTH:
            raise ManifestError(f"sha1 must be {SHA1_LENGTH} bytes, got {len(self.sha1)}")
        if len(self.sha512) != SHA512_LENGTH:
            raise ManifestError(f"sha512 must be {SHA512_LENGTH} bytes, got {len(self.sha512)}")

    @staticmethod
    def from_hex(sha1: str, sha512: str, other_hashes: dict[str, str] | None = None) -> "FileHashes":
        return FileHashes(
            sha1=_decode_hex("sha1", sha1, SHA1_LENGTH),
            sha512=_decode_hex("sha512", sha512, SHA512_LENGTH),
            other_hashes=dict(other_hashes or {}),
        )


@dataclass(frozen=True)
class Environment:
    client: Requirement
    server: Requirement

    def requirement_for(self, role: str) -> Requirement:
        return self.server if role == "server" else self.client


@dataclass(frozen=True)
class FileEntry:
    path: str
    hashes: FileHashes
    downloads: tuple[str, ...]
    file_size: int = 0
    env: Environment | None = None

    def __post_init__(self) -> None:
        if normalize_relative_path(self.path) != self.path:
            raise ManifestError(f"Unsafe or non-normalized file path: {self.path!r}")
        if not self.downloads:
            raise ManifestError(f"No download URLs declared for {self.path}")
        if self.file_size < 0:
            raise ManifestError(f"Negative fileSize for {self.path}")


@dataclass(frozen=True)
class PackManifest:
    game: str
    format_version: int
    version_id: str
    name: str
    files: tuple[FileEntry, ...] = ()
    dependencies: dict[DependencyId, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for entry in self.files:
            if entry.path in seen:
                raise ManifestError(f"Duplicate file path in manifest: {entry.path}")
            seen.add(entry.path)

    def __str__(self) -> str:
        return f"Name: {self.name}, Format: {self.format_version}, Version: {self.version_id}"


def parse_manifest(raw: Any) -> PackManifest:
    """Build a PackManifest from a decoded ``modrinth.index.json`` document.

    Every structural problem is reported as a ManifestError so callers can
    tell a bad pack apart from a failed sync.
    """
    if not isinstance(raw, dict):
        raise ManifestError("Manifest document is not a JSON object")

    files_raw = raw.get("files")
    if not isinstance(files_raw, list):
        raise ManifestError("Manifest 'files' must be an array")

    deps_raw = raw.get("dependencies") or {}
    if not isinstance(deps_raw, dict):
        raise ManifestError("Manifest 'dependencies' must be an object")

    return PackManifest(
        game=_require_str(raw, "game"),
        format_version=_require_int(raw, "formatVersion"),
        version_id=_require_str(raw, "versionId"),
        name=_require_str(raw, "name"),
        files=tuple(_parse_file(item) for item in files_raw),
        dependencies={
            parse_dependency_id(str(key)): _parse_version(key, value)
            for key, value in deps_raw.items()
        },
    )


def _parse_file(raw: Any) -> FileEntry:
    if not isinstance(raw, dict):
        raise ManifestError("File entry is not a JSON object")

    path = normalize_relative_path(raw.get("path"))
    if path is None:
        raise ManifestError(f"Unsafe or missing file path: {raw.get('path')!r}")

    hashes_raw = raw.get("hashes")
    if not isinstance(hashes_raw, dict):
        raise ManifestError(f"Missing hashes for {path}")
    other: dict[str, str] = {}
    for name, value in hashes_raw.items():
        if name in {"sha1", "sha512"}:
            continue
        if not isinstance(value, str) or not _HEX_RE.match(value):
            raise ManifestError(f"Hash {name!r} must be a hex string for {path}")
        other[str(name)] = value
    hashes = FileHashes.from_hex(
        sha1=hashes_raw.get("sha1"),
        sha512=hashes_raw.get("sha512"),
        other_hashes=other,
    )

    downloads = raw.get("downloads")
    if not isinstance(downloads, list) or not all(isinstance(u, str) for u in downloads):
        raise ManifestError(f"'downloads' must be an array of URLs for {path}")

    size = raw.get("fileSize", 0)
    if isinstance(size, bool) or not isinstance(size, int):
        raise ManifestError(f"'fileSize' must be an integer for {path}")

    return FileEntry(
        path=path,
        hashes=hashes,
        downloads=tuple(downloads),
        file_size=size,
        env=_parse_env(raw.get("env"), path),
    )


def _parse_env(raw: Any, path: str) -> Environment | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ManifestError(f"'env' must be an object for {path}")
    try:
        return Environment(
            client=Requirement(str(raw.get("client")).lower()),
            server=Requirement(str(raw.get("server")).lower()),
        )
    except ValueError as exc:
        raise ManifestError(f"Invalid env requirement for {path}: {exc}") from exc


def _parse_version(key: Any, value: Any) -> str:
    if not isinstance(value, str) or not _VERSION_RE.match(value):
        raise ManifestError(f"Dependency {key!r} must have a dotted version string, got {value!r}")
    return value


def _decode_hex(name: str, value: Any, length: int) -> bytes:
    if not isinstance(value, str) or len(value) != length * 2:
        raise ManifestError(f"{name} must be {length * 2} hex characters")
    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise ManifestError(f"{name} is not valid hex: {value!r}") from exc


def _require_str(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str):
        raise ManifestError(f"Manifest '{key}' must be a string")
    return value


def _require_int(raw: dict[str, Any], key: str) -> int:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ManifestError(f"Manifest '{key}' must be an integer")
    return value
