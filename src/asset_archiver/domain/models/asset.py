from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Asset:
    path: str
    offset: int
    length: int
    mime: str = ""

    @property
    def end(self) -> int:
        return self.offset + self.length
