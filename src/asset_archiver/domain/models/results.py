from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from asset_archiver.domain.models.asset import Asset


@dataclass(frozen=True, slots=True)
class ArchiveResult:
    blob_path: Path
    index_path: Path
    assets: tuple[Asset, ...]
    blob_size: int


@dataclass(frozen=True, slots=True)
class LayoutReport:
    blob_size: int
    covered_bytes: int
    gaps: tuple[tuple[int, int], ...]
    overlaps: tuple[tuple[str, str], ...]
    out_of_bounds: tuple[str, ...]

    @property
    def is_valid(self) -> bool:
        if self.gaps or self.overlaps or self.out_of_bounds:
            return False
        return self.covered_bytes == self.blob_size
