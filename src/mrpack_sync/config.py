from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .environment import Role
from .reconcile import DEFAULT_INDEX_DIRS, DEFAULT_OVERRIDE_DIRS, SyncPolicy
from .utils import parse_bool, split_csv


@dataclass(frozen=True)
class Settings:
    pack_path: Path
    root: Path
    role: Role
    prune: bool
    continue_on_error: bool
    optional_failures_fatal: bool
    verify_downloads: bool
    max_workers: int
    http_timeout: int
    http_max_retries: int
    index_dirs: tuple[str, ...] = DEFAULT_INDEX_DIRS
    override_dirs: tuple[str, ...] = DEFAULT_OVERRIDE_DIRS

    @staticmethod
    def from_sources(
        cli_pack: str | None,
        cli_root: str | None = None,
        cli_role: str | None = None,
        cli_prune: bool | None = None,
        cli_continue_on_error: bool | None = None,
        cli_workers: int | None = None,
    ) -> "Settings":
        pack_raw = cli_pack or os.getenv("PACK_PATH")
        if not pack_raw:
            raise ValueError("No pack given (use --pack or PACK_PATH)")
        pack_path = Path(pack_raw).resolve()

        root = Path(cli_root or os.getenv("SYNC_ROOT") or ".").resolve()

        role_raw = (cli_role or os.getenv("SYNC_ROLE") or Role.SERVER.value).strip().lower()
        if role_raw not in {Role.SERVER.value, Role.CLIENT.value}:
            raise ValueError(f"Invalid SYNC_ROLE: {role_raw}")

        prune = cli_prune or parse_bool(os.getenv("PRUNE"), False)
        continue_on_error = cli_continue_on_error or parse_bool(
            os.getenv("CONTINUE_ON_ERROR"), False
        )
        optional_fatal = parse_bool(os.getenv("OPTIONAL_FAILURES_FATAL"), True)
        verify_downloads = parse_bool(os.getenv("VERIFY_DOWNLOADS"), False)

        workers = cli_workers if cli_workers is not None else int(os.getenv("MAX_WORKERS") or "1")
        timeout = int(os.getenv("HTTP_TIMEOUT") or "60")
        retries = int(os.getenv("HTTP_MAX_RETRIES") or "0")

        if workers <= 0:
            raise ValueError("MAX_WORKERS must be > 0")
        if timeout <= 0:
            raise ValueError("HTTP_TIMEOUT must be > 0")
        if retries < 0:
            raise ValueError("HTTP_MAX_RETRIES must be >= 0")

        return Settings(
            pack_path=pack_path,
            root=root,
            role=Role(role_raw),
            prune=prune,
            continue_on_error=continue_on_error,
            optional_failures_fatal=optional_fatal,
            verify_downloads=verify_downloads,
            max_workers=workers,
            http_timeout=timeout,
            http_max_retries=retries,
            index_dirs=split_csv(os.getenv("INDEX_DIRS"), DEFAULT_INDEX_DIRS),
            override_dirs=split_csv(os.getenv("OVERRIDE_DIRS"), DEFAULT_OVERRIDE_DIRS),
        )

    def policy(self) -> SyncPolicy:
        return SyncPolicy(
            continue_on_error=self.continue_on_error,
            optional_failures_fatal=self.optional_failures_fatal,
            verify_downloads=self.verify_downloads,
            max_workers=self.max_workers,
        )
