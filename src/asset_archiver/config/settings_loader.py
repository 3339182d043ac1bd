from __future__ import annotations

from pathlib import Path
from typing import ClassVar, final

from asset_archiver.config.settings_models import UserSettings
from asset_archiver.domain.models.app_config import AppConfig, RuntimePaths


@final
class SettingsLoader:
    _KEY_MAP: ClassVar[dict[str, str]] = {
        "LOG_LEVEL": "log_level",
        "COPY_CHUNK_SIZE": "copy_chunk_size",
        "SORTED_TRAVERSAL": "sorted_traversal",
        "OVERWRITE_EXISTING": "overwrite_existing",
        "LOCK_TIMEOUT_SECONDS": "lock_timeout_seconds",
        "EXTRA_MIME_TYPES": "extra_mime_types",
    }
    _BOOL_KEYS: ClassVar[frozenset[str]] = frozenset({"sorted_traversal", "overwrite_existing"})

    @staticmethod
    def _parse_key_value_file(path: Path) -> dict[str, str]:
        data: dict[str, str] = {}
        if not path.exists():
            return data

        for raw_line in path.read_text("utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[7:].strip()
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            data[key.strip()] = value.strip().strip('"').strip("'")
        return data

    @staticmethod
    def _parse_bool(value: str) -> bool:
        return str(value or "").strip().lower() in {"1", "true", "yes", "on"}

    @staticmethod
    def _parse_mime_pairs(text: str) -> dict[str, str] | None:
        pairs: dict[str, str] = {}
        for item in text.split(","):
            if "=" not in item:
                continue
            extension, mime = item.split("=", 1)
            extension = extension.strip().lower()
            mime = mime.strip()
            if not extension or "/" not in mime:
                continue
            pairs[extension] = mime
        return pairs or None

    @classmethod
    def _to_user_settings(cls, raw: dict[str, str]) -> UserSettings:
        mapped: dict[str, object] = {}
        for key, value in raw.items():
            target = cls._KEY_MAP.get(key)
            if not target:
                continue
            text = str(value or "").strip()
            if not text:
                mapped[target] = None
                continue
            if target == "copy_chunk_size":
                try:
                    mapped[target] = int(text)
                except ValueError:
                    mapped[target] = None
                continue
            if target == "lock_timeout_seconds":
                try:
                    mapped[target] = float(text)
                except ValueError:
                    mapped[target] = None
                continue
            if target in cls._BOOL_KEYS:
                mapped[target] = cls._parse_bool(text)
                continue
            if target == "extra_mime_types":
                mapped[target] = cls._parse_mime_pairs(text)
                continue

            mapped[target] = text

        return UserSettings.model_validate(mapped)

    @staticmethod
    def _build_paths(app_root: Path, settings_path: Path) -> RuntimePaths:
        logs_dir = app_root / "data" / "logs"
        return RuntimePaths(
            app_root=app_root,
            settings_path=settings_path,
            logs_dir=logs_dir,
            error_log_path=logs_dir / "archiver_errors.log",
        )

    @classmethod
    def load(cls, settings_path: Path | None = None) -> AppConfig:
        app_root = Path.cwd()
        resolved_settings = settings_path or app_root / "configs" / "settings.ini"
        raw = cls._parse_key_value_file(resolved_settings)
        user = cls._to_user_settings(raw)
        paths = cls._build_paths(app_root, resolved_settings)
        return AppConfig(user=user, paths=paths)
