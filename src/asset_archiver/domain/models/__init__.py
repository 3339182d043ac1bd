from asset_archiver.domain.models.asset import Asset
from asset_archiver.domain.models.asset_index import AssetIndex, locate, parse_index
from asset_archiver.domain.models.results import ArchiveResult, LayoutReport

__all__ = [
    "ArchiveResult",
    "Asset",
    "AssetIndex",
    "LayoutReport",
    "locate",
    "parse_index",
]
