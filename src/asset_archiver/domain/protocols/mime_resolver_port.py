from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class MimeResolverPort(Protocol):
    def resolve(self, path: Path) -> str: ...
