from __future__ import annotations

import hashlib

import pytest

from conftest import hashes_for
from mrpack_sync.errors import ManifestError
from mrpack_sync.manifest import (
    FileHashes,
    KnownDependency,
    OtherDependency,
    Requirement,
    dependency_display_name,
    parse_manifest,
)
from mrpack_sync.verify import file_is_valid, is_valid


def _raw_file(path: str = "mods/a.jar", content: bytes = b"hello", **extra: object) -> dict:
    raw = {
        "path": path,
        "hashes": {
            "sha1": hashlib.sha1(content).hexdigest(),
            "sha512": hashlib.sha512(content).hexdigest(),
        },
        "downloads": ["https://cdn.example/a.jar"],
        "fileSize": len(content),
    }
    raw.update(extra)
    return raw


def _raw_index(*files: dict) -> dict:
    return {
        "game": "minecraft",
        "formatVersion": 1,
        "versionId": "2.1.0",
        "name": "Example Pack",
        "files": list(files),
        "dependencies": {"minecraft": "1.20.1", "fabric-loader": "0.15.3", "custom": "1.0.0"},
    }


def test_parse_manifest_reads_all_fields() -> None:
    raw_file = _raw_file(env={"client": "required", "server": "unsupported"})
    raw_file["hashes"]["sha256"] = "ab" * 32

    manifest = parse_manifest(_raw_index(raw_file))

    assert str(manifest) == "Name: Example Pack, Format: 1, Version: 2.1.0"
    entry = manifest.files[0]
    assert entry.path == "mods/a.jar"
    assert entry.hashes == FileHashes(
        sha1=hashlib.sha1(b"hello").digest(),
        sha512=hashlib.sha512(b"hello").digest(),
        other_hashes={"sha256": "ab" * 32},
    )
    assert entry.env is not None
    assert entry.env.server is Requirement.UNSUPPORTED
    assert entry.downloads == ("https://cdn.example/a.jar",)
    assert entry.file_size == 5
    assert manifest.dependencies == {
        KnownDependency.MINECRAFT: "1.20.1",
        KnownDependency.FABRIC_LOADER: "0.15.3",
        OtherDependency("custom"): "1.0.0",
    }


def test_dependency_display_names() -> None:
    assert dependency_display_name(KnownDependency.NEOFORGE) == "NeoForge"
    assert dependency_display_name(KnownDependency.QUILT_LOADER) == "Quilt"
    assert dependency_display_name(OtherDependency("iris")) == "iris"


def test_missing_env_means_all_roles() -> None:
    manifest = parse_manifest(_raw_index(_raw_file()))
    assert manifest.files[0].env is None


@pytest.mark.parametrize(
    "override",
    [
        {"hashes": {"sha1": "zz" * 20, "sha512": "00" * 64}},
        {"hashes": {"sha1": "00" * 19, "sha512": "00" * 64}},
        {"hashes": {"sha1": "00" * 20}},
        {"downloads": []},
        {"path": "../outside.jar"},
        {"path": "/etc/passwd"},
        {"env": {"client": "required", "server": "sometimes"}},
        {"fileSize": -1},
        {"path": " mods/a.jar "},
        {"hashes": {"sha1": "00" * 20, "sha512": "00" * 64, "sha256": 5}},
        {"hashes": {"sha1": "00" * 20, "sha512": "00" * 64, "md5": "not hex"}},
    ],
)
def test_malformed_entries_are_rejected(override: dict) -> None:
    with pytest.raises(ManifestError):
        parse_manifest(_raw_index(_raw_file(**override)))


@pytest.mark.parametrize(
    "dependencies",
    [{"minecraft": None}, {"forge": 47}, {"fabric-loader": "latest"}, {"minecraft": "1"}],
)
def test_malformed_dependency_versions_are_rejected(dependencies: dict) -> None:
    raw = _raw_index(_raw_file())
    raw["dependencies"] = dependencies
    with pytest.raises(ManifestError, match="version"):
        parse_manifest(raw)


def test_prerelease_dependency_versions_are_accepted() -> None:
    raw = _raw_index(_raw_file())
    raw["dependencies"] = {"neoforge": "20.4.80-beta", "minecraft": "1.20"}
    manifest = parse_manifest(raw)
    assert manifest.dependencies[KnownDependency.NEOFORGE] == "20.4.80-beta"


def test_duplicate_paths_are_rejected() -> None:
    with pytest.raises(ManifestError, match="Duplicate"):
        parse_manifest(_raw_index(_raw_file(), _raw_file()))


def test_paths_are_normalized() -> None:
    manifest = parse_manifest(_raw_index(_raw_file(path="./mods//a.jar")))
    assert manifest.files[0].path == "mods/a.jar"


def test_hash_lengths_checked_on_construction() -> None:
    with pytest.raises(ManifestError):
        FileHashes(sha1=b"\x00" * 20, sha512=b"\x00" * 32)


def test_manifest_requires_object() -> None:
    with pytest.raises(ManifestError):
        parse_manifest([])
    with pytest.raises(ManifestError):
        parse_manifest({"files": []})


def test_validity_requires_both_digests(tmp_path) -> None:
    good = hashes_for(b"hello")
    other = hashes_for(b"world")
    sha1_only = FileHashes(sha1=good.sha1, sha512=other.sha512)
    sha512_only = FileHashes(sha1=other.sha1, sha512=good.sha512)

    assert is_valid(b"hello", good)
    assert not is_valid(b"hello", sha1_only)
    assert not is_valid(b"hello", sha512_only)
    assert not is_valid(b"hell", good)

    path = tmp_path / "a.jar"
    path.write_bytes(b"hello")
    assert file_is_valid(path, good)
    assert not file_is_valid(path, sha512_only)
