from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path, PurePosixPath

CHUNK_SIZE = 1024 * 1024


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def normalize_relative_path(value: object) -> str | None:
    """Return ``value`` as a clean forward-slash relative path, or None if unsafe.

    Absolute paths, drive letters, backslashes, surrounding whitespace and any
    ``..`` component are refused so a pack can never write outside the sync root.
    """
    if not isinstance(value, str):
        return None
    if not value or value != value.strip():
        return None
    if "\\" in value or value.startswith("/") or ":" in value.split("/")[0]:
        return None
    parts = [part for part in PurePosixPath(value).parts if part not in ("", ".")]
    if not parts or any(part == ".." for part in parts):
        return None
    return "/".join(parts)


def iter_files(root: Path) -> Iterator[Path]:
    if not root.is_dir():
        return
    for path in sorted(root.rglob("*")):
        if path.is_file() or path.is_symlink():
            yield path


def relative_key(path: Path, base: Path) -> str:
    return path.relative_to(base).as_posix()


def parse_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    text = str(value).strip().lower()
    if not text:
        return default
    if text in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "f", "no", "n", "off"}:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def split_csv(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None or not value.strip():
        return default
    return tuple(item.strip().strip("/") for item in value.split(",") if item.strip())
