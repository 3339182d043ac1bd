from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from asset_archiver.domain.workflows.create_archive import DEFAULT_CHUNK_SIZE

if TYPE_CHECKING:
    from asset_archiver.config.settings_models import UserSettings


@dataclass(frozen=True)
class RuntimePaths:
    app_root: Path
    settings_path: Path
    logs_dir: Path
    error_log_path: Path


@dataclass(frozen=True)
class AppConfig:
    user: UserSettings
    paths: RuntimePaths

    @property
    def log_level(self) -> str:
        return self.user.log_level or "info"

    @property
    def copy_chunk_size(self) -> int:
        return self.user.copy_chunk_size or DEFAULT_CHUNK_SIZE

    @property
    def sorted_traversal(self) -> bool:
        return bool(self.user.sorted_traversal)

    @property
    def overwrite_existing(self) -> bool:
        return bool(self.user.overwrite_existing)

    @property
    def lock_timeout_seconds(self) -> float:
        if self.user.lock_timeout_seconds is None:
            return 0.0
        return float(self.user.lock_timeout_seconds)

    @property
    def extra_mime_types(self) -> dict[str, str]:
        return dict(self.user.extra_mime_types or {})
