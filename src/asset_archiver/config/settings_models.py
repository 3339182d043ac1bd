from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class UserSettings(BaseModel):
    log_level: str | None = Field(default=None)
    copy_chunk_size: int | None = Field(default=None, ge=1)
    sorted_traversal: bool | None = Field(default=None)
    overwrite_existing: bool | None = Field(default=None)
    lock_timeout_seconds: float | None = Field(default=None, ge=0)
    extra_mime_types: dict[str, str] | None = Field(default=None)

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = str(value or "").strip().lower()
        if not normalized:
            return None
        if normalized not in {"debug", "info", "warn", "warning", "error"}:
            raise ValueError("LOG_LEVEL must be one of: debug, info, warn, error")
        return "warning" if normalized == "warn" else normalized

    @field_validator("extra_mime_types")
    @classmethod
    def _validate_extra_mime_types(cls, value: dict[str, str] | None) -> dict[str, str] | None:
        if value is None:
            return None
        normalized: dict[str, str] = {}
        for extension, mime in value.items():
            ext = str(extension or "").strip().lower()
            content_type = str(mime or "").strip()
            if not ext or "/" not in content_type:
                raise ValueError(f"Invalid EXTRA_MIME_TYPES entry: {extension}={mime}")
            normalized[ext if ext.startswith(".") else f".{ext}"] = content_type
        return normalized or None
