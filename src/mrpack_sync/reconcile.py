from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Protocol

from .environment import Role, applicable_files
from .errors import AllDownloadsFailed, DeleteFailed, DownloadFailed, PackIOError, PruneFailed
from .manifest import FileEntry, PackManifest, Requirement
from .utils import ensure_dir, iter_files, relative_key
from .verify import file_is_valid

LOGGER = logging.getLogger(__name__)

DEFAULT_INDEX_DIRS = ("mods",)
DEFAULT_OVERRIDE_DIRS = ("config",)


class Fetcher(Protocol):
    def fetch(self, url: str, destination: Path) -> None: ...


class EntryOutcome(str, Enum):
    VALID = "valid"
    DOWNLOADED = "downloaded"
    REPAIRED = "repaired"


@dataclass(frozen=True)
class ProgressEvent:
    kind: str
    path: str
    detail: str = ""


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass(frozen=True)
class SyncPolicy:
    continue_on_error: bool = False
    optional_failures_fatal: bool = True
    verify_downloads: bool = False
    max_workers: int = 1


@dataclass(frozen=True)
class SyncReport:
    checked: int = 0
    valid: int = 0
    downloaded: int = 0
    repaired: int = 0
    skipped: int = 0
    overrides_written: int = 0
    pruned: int = 0
    failures: tuple[AllDownloadsFailed, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.failures


class PackReconciler:
    """Brings a directory tree in line with a pack manifest and its overrides.

    Declared files are checked, repaired from their mirrors when missing or
    corrupt, then overrides are written, then (optionally) untracked files in
    the managed directories are removed. Each phase starts only after the
    previous one has finished.
    """

    def __init__(
        self,
        manifest: PackManifest,
        overrides: Mapping[str, bytes],
        *,
        root: Path,
        fetcher: Fetcher,
        role: Role = Role.SERVER,
        policy: SyncPolicy | None = None,
        index_dirs: Iterable[str] = DEFAULT_INDEX_DIRS,
        override_dirs: Iterable[str] = DEFAULT_OVERRIDE_DIRS,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.manifest = manifest
        self.overrides = dict(overrides)
        self.root = root
        self.fetcher = fetcher
        self.role = role
        self.policy = policy or SyncPolicy()
        self.index_dirs = tuple(index_dirs)
        self.override_dirs = tuple(override_dirs)
        self.on_progress = on_progress
        self.files = applicable_files(manifest.files, role)

        excluded = len(manifest.files) - len(self.files)
        if excluded:
            LOGGER.info("Skipping %s file(s) not applicable to role=%s", excluded, role.value)

    def sync(self, prune: bool = False) -> SyncReport:
        report = self.reconcile_files()
        report = replace(report, overrides_written=self.write_overrides())
        if prune:
            report = replace(report, pruned=self.prune())
        LOGGER.info(
            "Sync finished checked=%s valid=%s downloaded=%s repaired=%s skipped=%s "
            "overrides=%s pruned=%s failures=%s",
            report.checked,
            report.valid,
            report.downloaded,
            report.repaired,
            report.skipped,
            report.overrides_written,
            report.pruned,
            len(report.failures),
        )
        return report

    def reconcile_files(self) -> SyncReport:
        report = SyncReport()
        if self.policy.max_workers > 1:
            return self._reconcile_parallel(report)
        for entry in self.files:
            report = self._record(report, self._attempt(entry))
        return report

    def reconcile_file(self, entry: FileEntry) -> EntryOutcome:
        target = self.root / entry.path
        self._emit("start", entry.path)

        if not target.exists():
            if target.is_symlink():
                LOGGER.info("Removing dangling symlink %s", entry.path)
                self._delete(target)
            self._download(entry, target)
            outcome = EntryOutcome.DOWNLOADED
        elif self._is_valid(target, entry):
            outcome = EntryOutcome.VALID
        else:
            LOGGER.info("Invalid local file %s, re-downloading", entry.path)
            self._delete(target)
            self._download(entry, target)
            outcome = EntryOutcome.REPAIRED

        self._emit("done", entry.path, outcome.value)
        return outcome

    def write_overrides(self) -> int:
        written = 0
        for rel_path, content in self.overrides.items():
            target = self.root / rel_path
            try:
                ensure_dir(target.parent)
                target.write_bytes(content)
            except OSError as exc:
                raise PackIOError(target, exc) from exc
            written += 1
        LOGGER.info("Overrides written=%s", written)
        return written

    def prune(self) -> int:
        keep = {entry.path for entry in self.files} | set(self.overrides)
        failures: list[DeleteFailed] = []
        removed = 0

        for managed in self.index_dirs + self.override_dirs:
            for path in iter_files(self.root / managed):
                key = relative_key(path, self.root)
                if key in keep:
                    continue
                try:
                    path.unlink()
                except OSError as exc:
                    LOGGER.error("Could not prune %s: %s", key, exc)
                    failures.append(DeleteFailed(path, exc))
                    continue
                LOGGER.info("Pruned untracked file %s", key)
                removed += 1

        if failures:
            raise PruneFailed(failures)
        return removed

    def _attempt(self, entry: FileEntry) -> EntryOutcome | AllDownloadsFailed | None:
        try:
            return self.reconcile_file(entry)
        except AllDownloadsFailed as exc:
            if self._is_optional(entry) and not self.policy.optional_failures_fatal:
                LOGGER.warning("Skipping optional file %s: %s", entry.path, exc)
                return None
            if not self.policy.continue_on_error:
                raise
            LOGGER.error("%s", exc)
            return exc

    def _record(
        self,
        report: SyncReport,
        result: EntryOutcome | AllDownloadsFailed | None,
    ) -> SyncReport:
        report = replace(report, checked=report.checked + 1)
        if result is None:
            return replace(report, skipped=report.skipped + 1)
        if isinstance(result, AllDownloadsFailed):
            return replace(report, failures=report.failures + (result,))
        if result is EntryOutcome.VALID:
            return replace(report, valid=report.valid + 1)
        if result is EntryOutcome.REPAIRED:
            return replace(report, repaired=report.repaired + 1)
        return replace(report, downloaded=report.downloaded + 1)

    def _reconcile_parallel(self, report: SyncReport) -> SyncReport:
        with ThreadPoolExecutor(max_workers=self.policy.max_workers) as executor:
            futures = [executor.submit(self._attempt, entry) for entry in self.files]
            _, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
            for future in futures:
                if future.cancelled() or not future.done():
                    continue
                report = self._record(report, future.result())
        return report

    def _download(self, entry: FileEntry, target: Path) -> None:
        try:
            ensure_dir(target.parent)
        except OSError as exc:
            raise PackIOError(target.parent, exc) from exc

        attempts: list[DownloadFailed] = []
        for url in entry.downloads:
            self._emit("progress", entry.path, url)
            try:
                self.fetcher.fetch(url, target)
                if self.policy.verify_downloads and not self._is_valid(target, entry):
                    raise DownloadFailed(url, "downloaded content does not match declared hashes")
            except DownloadFailed as exc:
                LOGGER.warning("Failed to download %s from %s: %s", entry.path, url, exc.cause)
                attempts.append(exc)
                self._discard(target)
                continue
            LOGGER.info("Downloaded %s", entry.path)
            return

        self._emit("done", entry.path, "failed")
        raise AllDownloadsFailed(entry.path, attempts)

    def _is_valid(self, target: Path, entry: FileEntry) -> bool:
        try:
            return file_is_valid(target, entry.hashes)
        except OSError as exc:
            raise PackIOError(target, exc) from exc

    def _is_optional(self, entry: FileEntry) -> bool:
        return entry.env is not None and (
            entry.env.requirement_for(self.role.value) is Requirement.OPTIONAL
        )

    def _delete(self, target: Path) -> None:
        try:
            target.unlink()
        except OSError as exc:
            raise DeleteFailed(target, exc) from exc

    def _discard(self, target: Path) -> None:
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise PackIOError(target, exc) from exc

    def _emit(self, kind: str, path: str, detail: str = "") -> None:
        if self.on_progress is not None:
            self.on_progress(ProgressEvent(kind=kind, path=path, detail=detail))
