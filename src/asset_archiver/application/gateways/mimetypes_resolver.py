from __future__ import annotations

import mimetypes
from collections.abc import Mapping
from pathlib import Path
from typing import final

from asset_archiver.domain.protocols.mime_resolver_port import MimeResolverPort


# Compressed files are typed by their compression, not by what they unpack to.
_ENCODING_TYPES: dict[str, str] = {
    "gzip": "application/gzip",
    "bzip2": "application/x-bzip2",
    "xz": "application/x-xz",
    "br": "application/x-brotli",
    "compress": "application/x-compress",
}


@final
class MimetypesResolver(MimeResolverPort):
    def __init__(self, extra_types: Mapping[str, str] | None = None) -> None:
        self._types = mimetypes.MimeTypes()
        for extension, mime in (extra_types or {}).items():
            normalized = str(extension or "").strip().lower()
            if not normalized:
                continue
            if not normalized.startswith("."):
                normalized = f".{normalized}"
            self._types.add_type(str(mime).strip(), normalized)

    def resolve(self, path: Path) -> str:
        mime, encoding = self._types.guess_type(path.name)
        if encoding:
            return _ENCODING_TYPES.get(encoding, "")
        return mime or ""
