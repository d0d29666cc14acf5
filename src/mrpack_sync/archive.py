from __future__ import annotations

import json
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path

from .environment import Role
from .errors import ManifestError
from .manifest import PackManifest, parse_manifest
from .utils import normalize_relative_path

LOGGER = logging.getLogger(__name__)

INDEX_NAME = "modrinth.index.json"
OVERRIDES_PREFIX = "overrides/"
SIDE_OVERRIDES_PREFIX = {
    Role.SERVER: "server-overrides/",
    Role.CLIENT: "client-overrides/",
}


@dataclass(frozen=True)
class LoadedPack:
    manifest: PackManifest
    overrides: dict[str, bytes]


def read_pack(path: Path, role: Role = Role.SERVER) -> LoadedPack:
    try:
        with zipfile.ZipFile(path) as archive:
            manifest = parse_manifest(_read_index(archive))
            overrides = read_overrides(archive, role)
    except zipfile.BadZipFile as exc:
        raise ManifestError(f"Not a valid pack archive: {path}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ManifestError(f"{INDEX_NAME} is not valid JSON: {exc}") from exc

    LOGGER.info("Loaded pack %s files=%s overrides=%s", manifest, len(manifest.files), len(overrides))
    return LoadedPack(manifest=manifest, overrides=overrides)


def read_overrides(archive: zipfile.ZipFile, role: Role = Role.SERVER) -> dict[str, bytes]:
    """Collect override blobs; the role-specific folder wins over the generic one."""
    overrides: dict[str, bytes] = {}
    for prefix in (OVERRIDES_PREFIX, SIDE_OVERRIDES_PREFIX[role]):
        for info in archive.infolist():
            if info.is_dir() or not info.filename.startswith(prefix):
                continue
            rel_path = normalize_relative_path(info.filename[len(prefix):])
            if rel_path is None:
                raise ManifestError(f"Unsafe override path in archive: {info.filename}")
            overrides[rel_path] = archive.read(info)
    return overrides


def _read_index(archive: zipfile.ZipFile) -> object:
    try:
        data = archive.read(INDEX_NAME)
    except KeyError as exc:
        raise ManifestError(f"{INDEX_NAME} not found in pack archive") from exc
    return json.loads(data)
