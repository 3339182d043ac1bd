from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import final, override

from asset_archiver.domain.errors import ArchiveIOError, MalformedIndexError
from asset_archiver.domain.models.asset import Asset
from asset_archiver.domain.models.index_record import decode_record
from asset_archiver.domain.models.results import LayoutReport

_log = logging.getLogger(__name__)


@final
class AssetIndex(Mapping[str, Asset]):
    """Read-only ``path -> Asset`` map rebuilt from index text."""

    __slots__ = ("_assets",)

    def __init__(self, assets: Mapping[str, Asset]) -> None:
        self._assets: Mapping[str, Asset] = MappingProxyType(dict(assets))

    @classmethod
    def parse(cls, content: str, logger: logging.Logger | None = None) -> "AssetIndex":
        log = logger or _log
        assets: dict[str, Asset] = {}
        for line_number, raw_line in enumerate(content.split("\n"), start=1):
            line = raw_line.removesuffix("\r")
            if not line:
                continue
            asset = decode_record(line, line_number)
            if asset.path in assets:
                log.debug("Duplicate asset %s on line %d replaces earlier entry", asset.path, line_number)
            assets[asset.path] = asset
            log.debug("asset: %s", asset.path)
        return cls(assets)

    @classmethod
    def load(cls, index_path: Path, logger: logging.Logger | None = None) -> "AssetIndex":
        try:
            raw = index_path.read_bytes()
        except OSError as exc:
            raise ArchiveIOError(f"Cannot read index {index_path}: {exc}") from exc
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            line_number = raw.count(b"\n", 0, exc.start) + 1
            raise MalformedIndexError(line_number, "", "invalid UTF-8") from exc
        return cls.parse(content, logger)

    def locate(self, path: str) -> Asset | None:
        return self._assets.get(path)

    @override
    def __getitem__(self, key: str) -> Asset:
        return self._assets[key]

    @override
    def __iter__(self) -> Iterator[str]:
        return iter(self._assets)

    @override
    def __len__(self) -> int:
        return len(self._assets)

    @override
    def __repr__(self) -> str:
        return f"AssetIndex({len(self._assets)} assets)"

    def assets_by_offset(self) -> tuple[Asset, ...]:
        return tuple(sorted(self._assets.values(), key=lambda a: (a.offset, a.path)))

    def total_length(self) -> int:
        return sum(asset.length for asset in self._assets.values())

    def check_layout(self, blob_size: int) -> LayoutReport:
        gaps: list[tuple[int, int]] = []
        overlaps: list[tuple[str, str]] = []
        out_of_bounds: list[str] = []
        covered = 0
        cursor = 0
        previous: Asset | None = None

        for asset in self.assets_by_offset():
            if asset.end > blob_size:
                out_of_bounds.append(asset.path)
            if asset.offset > cursor:
                gaps.append((cursor, asset.offset))
            elif asset.offset < cursor and previous is not None and asset.length:
                overlaps.append((previous.path, asset.path))
            covered += asset.length
            if asset.end >= cursor:
                cursor = asset.end
                previous = asset

        if cursor < blob_size:
            gaps.append((cursor, blob_size))

        return LayoutReport(
            blob_size=blob_size,
            covered_bytes=covered,
            gaps=tuple(gaps),
            overlaps=tuple(overlaps),
            out_of_bounds=tuple(out_of_bounds),
        )


def parse_index(content: str) -> AssetIndex:
    return AssetIndex.parse(content)


def locate(index_content: str, path: str) -> Asset | None:
    return AssetIndex.parse(index_content).locate(path)
