from __future__ import annotations

from pathlib import Path
from typing import ClassVar


class ArchiveError(Exception):
    kind: ClassVar[str] = "ArchiveError"


class AlreadyExistsError(ArchiveError, FileExistsError):
    kind: ClassVar[str] = "AlreadyExists"

    def __init__(self, path: Path) -> None:
        super().__init__(f"File already exists: {path}")
        self.path = path


class InvalidTargetError(ArchiveError):
    kind: ClassVar[str] = "InvalidTarget"

    def __init__(self, path: Path) -> None:
        super().__init__(f"Path exists but is not a file: {path}")
        self.path = path


class ArchiveIOError(ArchiveError):
    kind: ClassVar[str] = "IoError"


class MalformedIndexError(ArchiveError, ValueError):
    kind: ClassVar[str] = "MalformedIndex"

    def __init__(self, line_number: int, line: str, reason: str) -> None:
        super().__init__(f"Malformed index line {line_number} ({reason}): {line!r}")
        self.line_number = line_number
        self.line = line
        self.reason = reason


class UnencodableAssetError(ArchiveError, ValueError):
    kind: ClassVar[str] = "UnencodableAsset"

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"Asset {field} cannot be stored in the index: {value!r}")
        self.field = field
        self.value = value
