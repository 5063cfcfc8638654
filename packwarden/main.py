"""
PackWarden command line entry point.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import Settings, load_config
from .packs.errors import PackWardenError
from .packs.manager import PackManager
from .packs.models import SYSTEM_USER_ID, Release

logger = logging.getLogger(__name__)


def setup_logging(settings: Settings):
    log_path = settings.resolve_path(settings.logging.file_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(str(log_path)),
        ],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="packwarden",
        description="Install and manage signed detection content packs",
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Path to config file (default: config.yml)",
        default=None,
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("releases", help="List releases that support packs")
    commands.add_parser("packs", help="List installed packs")
    commands.add_parser("sync", help="Reconcile installed packs with every available release")

    reconcile = commands.add_parser("reconcile", help="Reconcile installed packs with one release")
    _add_release_arguments(reconcile)

    switch = commands.add_parser("switch", help="Switch a pack to a release")
    switch.add_argument("pack_id", help="Pack to switch")
    _add_release_arguments(switch)
    switch.add_argument(
        "--disable",
        action="store_true",
        help="Leave the pack disabled (only allowed at its current version)",
    )
    switch.add_argument(
        "--user",
        help="User id recorded as the modifier",
        default=SYSTEM_USER_ID,
    )

    return parser


def _add_release_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("--release-id", type=int, required=True, help="Release id")
    parser.add_argument("--release-name", required=True, help="Release tag, e.g. v1.14.0")


def _print_pack(pack):
    current = pack.current_version.name if pack.current_version else "-"
    flags = []
    if pack.enabled:
        flags.append("enabled")
    if pack.update_available:
        flags.append("update available")
    print(f"{pack.id}  {current}  {', '.join(flags) or 'disabled'}")


def run(args: argparse.Namespace, manager: PackManager) -> int:
    if args.command == "releases":
        for release in manager.list_releases():
            print(f"{release.id}  {release.name}")

    elif args.command == "packs":
        for pack in manager.list_packs():
            _print_pack(pack)

    elif args.command == "sync":
        for name, count in manager.sync_releases().items():
            print(f"{name}: {count} packs updated")

    elif args.command == "reconcile":
        release = Release(id=args.release_id, name=args.release_name)
        for pack in manager.reconcile_release(release):
            _print_pack(pack)

    elif args.command == "switch":
        release = Release(id=args.release_id, name=args.release_name)
        pack = manager.switch_pack_version(
            args.pack_id,
            release,
            enabled=not args.disable,
            user_id=args.user,
        )
        _print_pack(pack)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_config(args.config)
    setup_logging(settings)

    manager = PackManager.from_settings(settings)

    try:
        return run(args, manager)
    except PackWardenError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
