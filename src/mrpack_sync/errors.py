from __future__ import annotations

from pathlib import Path


class SyncError(Exception):
    kind = "SyncError"


class ManifestError(ValueError):
    """Raised when a pack archive or its index document is malformed."""


class PackIOError(SyncError):
    kind = "IOError"

    def __init__(self, path: Path | str, cause: BaseException) -> None:
        super().__init__(f"IO error on {path}: {cause}")
        self.path = str(path)
        self.cause = cause


class DownloadFailed(SyncError):
    kind = "DownloadFailed"

    def __init__(self, url: str, cause: BaseException | str) -> None:
        super().__init__(f"Download failed from {url}: {cause}")
        self.url = url
        self.cause = cause


class AllDownloadsFailed(SyncError):
    kind = "AllDownloadsFailed"

    def __init__(self, path: str, attempts: list[DownloadFailed]) -> None:
        super().__init__(f"All download URLs failed for {path} ({len(attempts)} tried)")
        self.path = path
        self.attempts = attempts


class DeleteFailed(SyncError):
    kind = "DeleteFailed"

    def __init__(self, path: Path | str, cause: BaseException) -> None:
        super().__init__(f"Could not delete {path}: {cause}")
        self.path = str(path)
        self.cause = cause


class PruneFailed(DeleteFailed):
    """Prune pass finished but one or more untracked files could not be removed."""

    kind = "PruneFailed"

    def __init__(self, failures: list[DeleteFailed]) -> None:
        SyncError.__init__(self, f"Prune could not delete {len(failures)} file(s)")
        self.path = failures[0].path if failures else ""
        self.cause = failures[0].cause if failures else None
        self.failures = failures
