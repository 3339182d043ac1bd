from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from filelock import FileLock, Timeout
from pydantic import ValidationError
from tabulate import tabulate

from asset_archiver import __version__
from asset_archiver.application.gateways.mimetypes_resolver import MimetypesResolver
from asset_archiver.application.repositories.blob_repository import BlobRepository
from asset_archiver.config.logging_setup import configure_logging
from asset_archiver.config.settings_loader import SettingsLoader
from asset_archiver.domain.errors import ArchiveError
from asset_archiver.domain.models.app_config import AppConfig
from asset_archiver.domain.models.asset_index import AssetIndex
from asset_archiver.domain.workflows.create_archive import CreateArchive

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_INVALID = 1
EXIT_ARCHIVE_ERROR = 2
EXIT_LOCKED = 3

_log = logging.getLogger("asset_archiver.cli")

_Handler = Callable[[argparse.Namespace, AppConfig], int]


def _cmd_build(args: argparse.Namespace, config: AppConfig) -> int:
    source_dir = Path(args.source)
    blob_path = Path(args.blob)
    index_path = Path(args.index)
    chunk_size = args.chunk_size or config.copy_chunk_size
    builder = CreateArchive(
        mime_resolver=MimetypesResolver(config.extra_mime_types),
        logger=logging.getLogger("asset_archiver.build"),
        sorted_traversal=args.sorted or config.sorted_traversal,
        chunk_size=chunk_size,
    )

    lock = FileLock(f"{index_path}.lock")
    try:
        _ = lock.acquire(timeout=config.lock_timeout_seconds)
    except Timeout:
        _log.warning("Build skipped: another build holds %s", lock.lock_file)
        return EXIT_LOCKED

    try:
        result = builder(
            source_dir,
            blob_path,
            index_path,
            overwrite_existing=args.overwrite or config.overwrite_existing,
            exclude_paths=(Path(lock.lock_file),),
        )
    finally:
        _ = lock.release()

    print(f"Packed {len(result.assets)} assets ({result.blob_size} bytes) into {result.blob_path}")
    return EXIT_OK


def _cmd_locate(args: argparse.Namespace, _config: AppConfig) -> int:
    index = AssetIndex.load(Path(args.index))
    asset = index.locate(args.path)
    if asset is None:
        _log.info("Asset not found: %s", args.path)
        return EXIT_NOT_FOUND
    print(f"{asset.offset} {asset.length} {asset.mime}".rstrip())
    return EXIT_OK


def _cmd_list(args: argparse.Namespace, _config: AppConfig) -> int:
    index = AssetIndex.load(Path(args.index))
    rows = [
        [asset.path, asset.offset, asset.length, asset.mime]
        for asset in index.assets_by_offset()
    ]
    print(tabulate(rows, headers=["PATH", "OFFSET", "LENGTH", "MIME"], tablefmt="fancy_outline"))
    return EXIT_OK


def _cmd_verify(args: argparse.Namespace, _config: AppConfig) -> int:
    index = AssetIndex.load(Path(args.index))
    blob_size = BlobRepository(Path(args.blob)).size()
    report = index.check_layout(blob_size)

    for start, end in report.gaps:
        print(f"gap: bytes {start}..{end} are not covered by any asset")
    for first, second in report.overlaps:
        print(f"overlap: {first} and {second}")
    for path in report.out_of_bounds:
        print(f"out of bounds: {path}")

    if not report.is_valid:
        print(f"INVALID: {report.covered_bytes} of {report.blob_size} bytes indexed")
        return EXIT_INVALID
    print(f"OK: {len(index)} assets cover {report.blob_size} bytes")
    return EXIT_OK


def _cmd_extract(args: argparse.Namespace, config: AppConfig) -> int:
    index = AssetIndex.load(Path(args.index))
    asset = index.locate(args.path)
    if asset is None:
        _log.info("Asset not found: %s", args.path)
        return EXIT_NOT_FOUND

    repository = BlobRepository(Path(args.blob), chunk_size=config.copy_chunk_size)
    written = repository.extract(
        asset,
        Path(args.output),
        overwrite_existing=args.overwrite or config.overwrite_existing,
    )
    print(f"Extracted {asset.path} ({asset.length} bytes) to {written}")
    return EXIT_OK


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an integer: {value}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asset-archiver",
        description="Pack a directory tree into a blob plus a text index, and query it.",
    )
    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _ = parser.add_argument(
        "--settings",
        default=None,
        help="path to settings.ini (default: $SETTINGS_FILE, then ./configs/settings.ini)",
    )
    _ = parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="override LOG_LEVEL from settings",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    build = commands.add_parser("build", help="pack SOURCE into BLOB and INDEX")
    _ = build.add_argument("source")
    _ = build.add_argument("blob")
    _ = build.add_argument("index")
    _ = build.add_argument("--overwrite", action="store_true", help="replace existing outputs")
    _ = build.add_argument("--sorted", action="store_true", help="visit entries in name order")
    _ = build.add_argument("--chunk-size", type=_positive_int, default=None)
    build.set_defaults(handler=_cmd_build)

    locate = commands.add_parser("locate", help="print offset, length and mime of PATH")
    _ = locate.add_argument("index")
    _ = locate.add_argument("path")
    locate.set_defaults(handler=_cmd_locate)

    listing = commands.add_parser("list", help="show every asset in offset order")
    _ = listing.add_argument("index")
    listing.set_defaults(handler=_cmd_list)

    verify = commands.add_parser("verify", help="check that INDEX exactly covers BLOB")
    _ = verify.add_argument("index")
    _ = verify.add_argument("blob")
    verify.set_defaults(handler=_cmd_verify)

    extract = commands.add_parser("extract", help="copy one asset out of BLOB")
    _ = extract.add_argument("index")
    _ = extract.add_argument("blob")
    _ = extract.add_argument("path")
    _ = extract.add_argument("output")
    _ = extract.add_argument("--overwrite", action="store_true", help="replace OUTPUT")
    extract.set_defaults(handler=_cmd_extract)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings_file = args.settings or os.getenv("SETTINGS_FILE")
    try:
        config = SettingsLoader.load(Path(settings_file) if settings_file else None)
    except ValidationError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return EXIT_ARCHIVE_ERROR

    configure_logging(args.log_level or config.log_level, config.paths.error_log_path)

    handler: _Handler = args.handler
    try:
        return handler(args, config)
    except ArchiveError as exc:
        _log.error("%s: %s", exc.kind, exc)
        return EXIT_ARCHIVE_ERROR
    except OSError as exc:
        _log.error("IoError: %s", exc)
        return EXIT_ARCHIVE_ERROR
