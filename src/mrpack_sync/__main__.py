from __future__ import annotations

import argparse
import logging
import sys

from .config import Settings
from .environment import Role
from .run import run_sync


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mrpack-sync",
        description="Bring a directory in line with a .mrpack modpack.",
    )
    parser.add_argument(
        "-p",
        "--pack",
        default=None,
        help="Path to the .mrpack archive. Defaults to PACK_PATH.",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Directory to sync. Defaults to SYNC_ROOT or the current directory.",
    )
    parser.add_argument(
        "--role",
        choices=[Role.SERVER.value, Role.CLIENT.value],
        default=None,
        help="Install side. If omitted, SYNC_ROLE is used and defaults to server.",
    )
    parser.add_argument(
        "--prune",
        action="store_true",
        default=None,
        help="Delete untracked files in managed directories after syncing.",
    )
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        default=None,
        help="Keep going when a file cannot be downloaded and report all failures at the end.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of files reconciled in parallel. Defaults to MAX_WORKERS or 1.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    try:
        settings = Settings.from_sources(
            cli_pack=args.pack,
            cli_root=args.root,
            cli_role=args.role,
            cli_prune=args.prune,
            cli_continue_on_error=args.continue_on_error,
            cli_workers=args.workers,
        )
    except ValueError as exc:
        logging.getLogger(__name__).error("Invalid configuration: %s", exc)
        return 2

    return run_sync(settings)


if __name__ == "__main__":
    sys.exit(main())
