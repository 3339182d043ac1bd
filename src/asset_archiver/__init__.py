from importlib import metadata as _metadata

try:
    __version__ = _metadata.version("asset-blob-archiver")
except _metadata.PackageNotFoundError:
    __version__ = "0.0.0"

from asset_archiver.domain.errors import (
    AlreadyExistsError,
    ArchiveError,
    ArchiveIOError,
    InvalidTargetError,
    MalformedIndexError,
    UnencodableAssetError,
)
from asset_archiver.domain.models import (
    ArchiveResult,
    Asset,
    AssetIndex,
    LayoutReport,
    locate,
    parse_index,
)
from asset_archiver.domain.workflows.create_archive import CreateArchive, create_archive

__all__ = [
    "AlreadyExistsError",
    "ArchiveError",
    "ArchiveIOError",
    "ArchiveResult",
    "Asset",
    "AssetIndex",
    "CreateArchive",
    "InvalidTargetError",
    "LayoutReport",
    "MalformedIndexError",
    "UnencodableAssetError",
    "create_archive",
    "locate",
    "parse_index",
]
