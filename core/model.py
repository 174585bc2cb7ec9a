from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class DecompiledLine:
    text: str
    address: Optional[int] = None  # None: not attributable to a single address


@dataclass
class DecompiledCode:
    lines: List[DecompiledLine] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.lines


@dataclass(frozen=True)
class LineRecord:
    text: str
    address: Optional[int]
    position: int

    @property
    def end(self) -> int:
        return self.position + len(self.text)


def format_address(address: int) -> str:
    return f"0x{address:x}"


def parse_address(text: str) -> int:
    raw = text.strip()
    if raw.lower().startswith("0x"):
        value = int(raw, 16)
    else:
        value = int(raw, 10)
    if value < 0:
        raise ValueError(f"Address must not be negative: {text}")
    return value
