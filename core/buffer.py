from __future__ import annotations

from typing import Callable, List, Protocol, Sequence

from core.selection import HighlightRange

CaretCallback = Callable[[int], None]


class TextBuffer(Protocol):
    def clear(self) -> None: ...

    def append_line(self, text: str) -> None: ...

    def length(self) -> int: ...

    def text(self) -> str: ...

    def show_message(self, text: str) -> None: ...

    def caret_position(self) -> int: ...

    def set_caret_position(self, position: int) -> None: ...

    def connect_caret_moved(self, callback: CaretCallback) -> None: ...

    def disconnect_caret_moved(self, callback: CaretCallback) -> None: ...

    def set_highlight_ranges(self, ranges: Sequence[HighlightRange]) -> None: ...


class PlainTextBuffer:
    """In-memory text buffer with a caret, used when no widget is attached."""

    def __init__(self) -> None:
        self._chunks: List[str] = []
        self._length = 0
        self._caret = 0
        self._callbacks: List[CaretCallback] = []
        self.highlights: List[HighlightRange] = []

    def clear(self) -> None:
        self._chunks = []
        self._length = 0
        self.highlights = []
        self._move_caret(0)

    def append_line(self, text: str) -> None:
        line = text + "\n"
        self._chunks.append(line)
        self._length += len(line)

    def length(self) -> int:
        return self._length

    def text(self) -> str:
        return "".join(self._chunks)

    def show_message(self, text: str) -> None:
        self._chunks = [text]
        self._length = len(text)
        self.highlights = []

    def caret_position(self) -> int:
        return self._caret

    def set_caret_position(self, position: int) -> None:
        self._move_caret(max(0, min(position, self._length)))

    def connect_caret_moved(self, callback: CaretCallback) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def disconnect_caret_moved(self, callback: CaretCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def set_highlight_ranges(self, ranges: Sequence[HighlightRange]) -> None:
        self.highlights = list(ranges)

    def _move_caret(self, position: int) -> None:
        if position == self._caret:
            return
        self._caret = position
        for callback in list(self._callbacks):
            callback(position)
