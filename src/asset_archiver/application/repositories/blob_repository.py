from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import final

from asset_archiver.domain.errors import AlreadyExistsError, ArchiveIOError, InvalidTargetError
from asset_archiver.domain.models.asset import Asset


@final
class BlobRepository:
    def __init__(self, blob_path: Path, chunk_size: int = 64 * 1024) -> None:
        self._blob_path = blob_path
        self._chunk_size = max(1, int(chunk_size))

    @property
    def blob_path(self) -> Path:
        return self._blob_path

    def size(self) -> int:
        try:
            return int(self._blob_path.stat().st_size)
        except OSError as exc:
            raise ArchiveIOError(f"Cannot stat blob {self._blob_path}: {exc}") from exc

    def iter_chunks(self, asset: Asset, chunk_size: int | None = None) -> Iterator[bytes]:
        step = max(1, int(chunk_size or self._chunk_size))
        remaining = asset.length
        try:
            with self._blob_path.open("rb") as stream:
                _ = stream.seek(asset.offset)
                while remaining > 0:
                    chunk = stream.read(min(step, remaining))
                    if not chunk:
                        raise ArchiveIOError(
                            f"Blob {self._blob_path} ends before {asset.path} "
                            + f"({remaining} of {asset.length} bytes missing)"
                        )
                    remaining -= len(chunk)
                    yield chunk
        except OSError as exc:
            raise ArchiveIOError(f"Cannot read {asset.path} from {self._blob_path}: {exc}") from exc

    def read(self, asset: Asset) -> bytes:
        return b"".join(self.iter_chunks(asset))

    def extract(self, asset: Asset, destination: Path, overwrite_existing: bool = False) -> Path:
        if destination.is_file() or destination.is_symlink():
            if not overwrite_existing:
                raise AlreadyExistsError(destination)
            try:
                destination.unlink()
            except OSError as exc:
                raise ArchiveIOError(f"Cannot remove existing file {destination}: {exc}") from exc
        elif destination.exists():
            raise InvalidTargetError(destination)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with destination.open("wb") as output:
                for chunk in self.iter_chunks(asset):
                    _ = output.write(chunk)
        except OSError as exc:
            raise ArchiveIOError(f"Cannot extract {asset.path} to {destination}: {exc}") from exc
        return destination
