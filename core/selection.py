from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

WORD_RE = re.compile(r"[A-Za-z0-9_]+")


class HighlightKind(Enum):
    LINE = "line"
    WORD = "word"


@dataclass(frozen=True)
class HighlightRange:
    start: int
    end: int
    kind: HighlightKind = HighlightKind.LINE


def line_bounds(text: str, position: int) -> Tuple[int, int]:
    position = max(0, min(position, len(text)))
    start = text.rfind("\n", 0, position) + 1
    end = text.find("\n", position)
    if end == -1:
        end = len(text)
    return start, end


def word_at(text: str, position: int) -> str:
    start, end = line_bounds(text, position)
    for match in WORD_RE.finditer(text, start, end):
        if match.start() <= position <= match.end():
            return match.group(0)
    return ""


def same_word_ranges(text: str, word: str) -> List[HighlightRange]:
    if not word:
        return []
    pattern = re.compile(rf"(?<![A-Za-z0-9_]){re.escape(word)}(?![A-Za-z0-9_])")
    return [HighlightRange(m.start(), m.end(), HighlightKind.WORD) for m in pattern.finditer(text)]


def index_to_utf16(text: str, index: int) -> int:
    return len(text[:index].encode("utf-16-le")) // 2


def utf16_to_index(text: str, units: int) -> int:
    count = 0
    for index, char in enumerate(text):
        if count >= units:
            return index
        # characters outside the BMP take a surrogate pair
        count += 2 if ord(char) > 0xFFFF else 1
    return len(text)
