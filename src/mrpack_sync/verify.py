from __future__ import annotations

import hashlib
import hmac
from pathlib import Path
from typing import Any

from .manifest import FileHashes
from .utils import CHUNK_SIZE


def is_valid(buffer: bytes, expected: FileHashes) -> bool:
    """Both SHA-1 and SHA-512 must match; one matching digest is not enough."""
    return _matches(hashlib.sha1(buffer), hashlib.sha512(buffer), expected)


def file_is_valid(path: Path, expected: FileHashes) -> bool:
    sha1 = hashlib.sha1()
    sha512 = hashlib.sha512()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            sha1.update(chunk)
            sha512.update(chunk)
    return _matches(sha1, sha512, expected)


def _matches(sha1: Any, sha512: Any, expected: FileHashes) -> bool:
    return hmac.compare_digest(sha1.digest(), expected.sha1) and hmac.compare_digest(
        sha512.digest(), expected.sha512
    )
