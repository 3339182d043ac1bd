from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from collections.abc import Iterable
from typing import BinaryIO, TextIO, final

from asset_archiver.application.gateways.mimetypes_resolver import MimetypesResolver
from asset_archiver.domain.errors import (
    AlreadyExistsError,
    ArchiveIOError,
    InvalidTargetError,
)
from asset_archiver.domain.models.asset import Asset
from asset_archiver.domain.models.index_record import check_fields, encode_record
from asset_archiver.domain.models.results import ArchiveResult
from asset_archiver.domain.protocols.mime_resolver_port import MimeResolverPort

DEFAULT_CHUNK_SIZE = 64 * 1024

_FileKey = tuple[int, int]


def _file_key(stat: os.stat_result) -> _FileKey:
    return (int(stat.st_dev), int(stat.st_ino))


@dataclass(slots=True)
class _ArchiveWriter:
    blob: BinaryIO
    index: TextIO
    chunk_size: int
    skip_keys: frozenset[_FileKey]
    offset: int = 0
    assets: list[Asset] = field(default_factory=list)

    def append(self, source: Path, relative_path: str, mime: str) -> tuple[Asset, int]:
        check_fields(relative_path, mime)

        expected = source.stat().st_size
        copied = 0
        with source.open("rb") as stream:
            while chunk := stream.read(self.chunk_size):
                _ = self.blob.write(chunk)
                copied += len(chunk)

        # The index line records the copied length, so it follows the copy.
        asset = Asset(path=relative_path, offset=self.offset, length=copied, mime=mime)
        _ = self.index.write(encode_record(asset))
        self.offset += copied
        self.assets.append(asset)
        return asset, expected


@final
class CreateArchive:
    def __init__(
        self,
        mime_resolver: MimeResolverPort,
        logger: logging.Logger | None = None,
        sorted_traversal: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._mime_resolver = mime_resolver
        self._logger = logger or logging.getLogger(__name__)
        self._sorted_traversal = bool(sorted_traversal)
        self._chunk_size = max(1, int(chunk_size))

    def _check_destination(self, path: Path, overwrite_existing: bool) -> bool:
        """Raise if `path` cannot be written. Return True when an old file must go first."""
        if path.is_file() or path.is_symlink():
            if not overwrite_existing:
                self._logger.error("File already exists: %s", path)
                raise AlreadyExistsError(path)
            return True

        if path.exists():
            self._logger.error("Path exists but is not a file: %s", path)
            raise InvalidTargetError(path)
        return False

    def _remove_destination(self, path: Path) -> None:
        try:
            path.unlink()
        except OSError as exc:
            raise ArchiveIOError(f"Cannot remove existing file {path}: {exc}") from exc

    @staticmethod
    def _existing_keys(paths: Iterable[Path]) -> set[_FileKey]:
        keys: set[_FileKey] = set()
        for path in paths:
            try:
                keys.add(_file_key(path.stat()))
            except FileNotFoundError:
                continue
        return keys

    def _check_source(self, source_dir: Path) -> _FileKey:
        try:
            stat = source_dir.stat()
        except OSError as exc:
            raise ArchiveIOError(f"Cannot read source directory {source_dir}: {exc}") from exc
        if not source_dir.is_dir():
            raise ArchiveIOError(f"Source is not a directory: {source_dir}")
        return _file_key(stat)

    def _list_entries(self, directory: Path) -> list[os.DirEntry[str]]:
        try:
            with os.scandir(directory) as iterator:
                entries = list(iterator)
        except OSError as exc:
            raise ArchiveIOError(f"Cannot read directory {directory}: {exc}") from exc
        if self._sorted_traversal:
            entries.sort(key=lambda entry: entry.name)
        return entries

    def _pack_file(self, entry: os.DirEntry[str], root: Path, writer: _ArchiveWriter) -> None:
        source = Path(entry.path)
        relative_path = source.relative_to(root).as_posix()
        mime = self._mime_resolver.resolve(source) or ""
        try:
            asset, expected = writer.append(source, relative_path, mime)
        except OSError as exc:
            raise ArchiveIOError(f"Cannot pack {source}: {exc}") from exc

        if asset.length != expected:
            self._logger.warning(
                "Size of %s changed while packing: stat %d bytes, copied %d bytes",
                relative_path,
                expected,
                asset.length,
            )
        self._logger.debug(
            "asset: %s, offset: %d, length: %d, mime: %s",
            asset.path,
            asset.offset,
            asset.length,
            asset.mime,
        )

    def _walk(
        self,
        directory: Path,
        root: Path,
        writer: _ArchiveWriter,
        ancestors: frozenset[_FileKey],
    ) -> None:
        for entry in self._list_entries(directory):
            try:
                is_file = entry.is_file()
                is_dir = not is_file and entry.is_dir()
                key = _file_key(entry.stat()) if is_file or is_dir else None
            except OSError as exc:
                raise ArchiveIOError(f"Cannot stat {entry.path}: {exc}") from exc

            if key is None:
                self._logger.debug("Skipping %s: not a regular file or directory", entry.path)
                continue

            if is_file:
                if key in writer.skip_keys:
                    self._logger.debug("Skipping %s: archive output or excluded file", entry.path)
                    continue
                self._pack_file(entry, root, writer)
                continue

            if key in ancestors:
                self._logger.warning("Skipping %s: directory cycle", entry.path)
                continue
            self._walk(Path(entry.path), root, writer, ancestors | {key})

    def __call__(
        self,
        source_dir: Path,
        blob_path: Path,
        index_path: Path,
        overwrite_existing: bool = False,
        exclude_paths: Iterable[Path] = (),
    ) -> ArchiveResult:
        root_key = self._check_source(source_dir)
        if blob_path.absolute() == index_path.absolute():
            self._logger.error("Blob and index share one path: %s", blob_path)
            raise InvalidTargetError(index_path)
        # Both targets pass validation before either one is removed.
        stale = [
            path
            for path in (blob_path, index_path)
            if self._check_destination(path, overwrite_existing)
        ]
        for path in stale:
            self._remove_destination(path)

        self._logger.debug("Creating archive from %s", source_dir)
        try:
            with (
                blob_path.open("wb") as blob,
                index_path.open("w", encoding="utf-8", newline="\n") as index,
            ):
                writer = _ArchiveWriter(
                    blob=blob,
                    index=index,
                    chunk_size=self._chunk_size,
                    skip_keys=frozenset(
                        {_file_key(os.fstat(handle.fileno())) for handle in (blob, index)}
                        | self._existing_keys(exclude_paths)
                    ),
                )
                self._walk(source_dir, source_dir, writer, frozenset({root_key}))
        except OSError as exc:
            raise ArchiveIOError(f"Cannot write archive {blob_path}: {exc}") from exc

        self._logger.info(
            "Archive created: assets: %d, blob: %s (%d bytes), index: %s",
            len(writer.assets),
            blob_path,
            writer.offset,
            index_path,
        )
        return ArchiveResult(
            blob_path=blob_path,
            index_path=index_path,
            assets=tuple(writer.assets),
            blob_size=writer.offset,
        )


def create_archive(
    source_dir: Path | str,
    blob_path: Path | str,
    index_path: Path | str,
    overwrite_existing: bool = False,
    *,
    mime_resolver: MimeResolverPort | None = None,
    sorted_traversal: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    logger: logging.Logger | None = None,
    exclude_paths: Iterable[Path | str] = (),
) -> ArchiveResult:
    if mime_resolver is None:
        mime_resolver = MimetypesResolver()

    builder = CreateArchive(
        mime_resolver=mime_resolver,
        logger=logger,
        sorted_traversal=sorted_traversal,
        chunk_size=chunk_size,
    )
    return builder(
        Path(source_dir),
        Path(blob_path),
        Path(index_path),
        overwrite_existing,
        exclude_paths=[Path(path) for path in exclude_paths],
    )
