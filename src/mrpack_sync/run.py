from __future__ import annotations

import logging

from .archive import read_pack
from .config import Settings
from .errors import ManifestError, SyncError
from .mirror_client import MirrorFetcher
from .reconcile import PackReconciler, ProgressEvent

LOGGER = logging.getLogger(__name__)


def run_sync(settings: Settings) -> int:
    try:
        pack = read_pack(settings.pack_path, settings.role)
    except (OSError, ManifestError) as exc:
        LOGGER.error("Unable to read pack %s: %s", settings.pack_path, exc)
        return 2

    LOGGER.info("%s", pack.manifest)
    LOGGER.info("Total files: %s", len(pack.manifest.files))

    fetcher = MirrorFetcher(
        timeout=settings.http_timeout,
        max_retries=settings.http_max_retries,
    )
    reconciler = PackReconciler(
        pack.manifest,
        pack.overrides,
        root=settings.root,
        fetcher=fetcher,
        role=settings.role,
        policy=settings.policy(),
        index_dirs=settings.index_dirs,
        override_dirs=settings.override_dirs,
        on_progress=_log_progress,
    )

    try:
        report = reconciler.sync(prune=settings.prune)
    except SyncError as exc:
        LOGGER.error("Sync failed (%s): %s", exc.kind, exc)
        return 1
    finally:
        fetcher.close()

    if not report.ok:
        for failure in report.failures:
            LOGGER.error("Sync failed (%s): %s", failure.kind, failure)
        return 1

    LOGGER.info("Sync completed successfully")
    return 0


def _log_progress(event: ProgressEvent) -> None:
    LOGGER.debug("[%s] %s %s", event.kind, event.path, event.detail)
