"""Line format of the sidecar index.

One record per asset, newline terminated::

    <path>//<offset>//<length>//<mime>

The delimiter is not escaped, so neither it nor a line break may appear in
``path`` or ``mime``.
"""

from __future__ import annotations

import re

from asset_archiver.domain.errors import MalformedIndexError, UnencodableAssetError
from asset_archiver.domain.models.asset import Asset

DELIMITER = "//"
FIELD_COUNT = 4

_DECIMAL = re.compile(r"[0-9]+")
_FORBIDDEN = (DELIMITER, "\n", "\r")


def _check_encodable(field: str, value: str) -> None:
    if any(token in value for token in _FORBIDDEN):
        raise UnencodableAssetError(field, value)
    try:
        _ = value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise UnencodableAssetError(field, value) from exc


def check_fields(path: str, mime: str) -> None:
    if not path:
        raise UnencodableAssetError("path", path)
    _check_encodable("path", path)
    _check_encodable("mime", mime)


def encode_record(asset: Asset) -> str:
    check_fields(asset.path, asset.mime)
    fields = (asset.path, str(asset.offset), str(asset.length), asset.mime)
    return DELIMITER.join(fields) + "\n"


def _parse_number(value: str, name: str, line_number: int, line: str) -> int:
    if not _DECIMAL.fullmatch(value):
        raise MalformedIndexError(line_number, line, f"{name} is not a non-negative integer")
    return int(value)


def decode_record(line: str, line_number: int) -> Asset:
    fields = line.split(DELIMITER)
    if len(fields) != FIELD_COUNT:
        raise MalformedIndexError(
            line_number, line, f"expected {FIELD_COUNT} fields, got {len(fields)}"
        )

    path, raw_offset, raw_length, mime = fields
    if not path:
        raise MalformedIndexError(line_number, line, "empty path")

    return Asset(
        path=path,
        offset=_parse_number(raw_offset, "offset", line_number, line),
        length=_parse_number(raw_length, "length", line_number, line),
        mime=mime,
    )
