from __future__ import annotations

import logging
from typing import Callable, List, Optional

from core.model import format_address

logger = logging.getLogger(__name__)

SeekCallback = Callable[[int], None]

MAX_HISTORY = 100


class SeekHost:
    """The application-wide current offset shared by all views."""

    def __init__(self, offset: Optional[int] = None, max_history: int = MAX_HISTORY) -> None:
        self._offset = offset
        self._callbacks: List[SeekCallback] = []
        self._history: List[int] = [] if offset is None else [offset]
        self._history_index = len(self._history) - 1
        self.max_history = max_history

    def current_offset(self) -> Optional[int]:
        return self._offset

    def on_seek_changed(self, callback: SeekCallback) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def remove_seek_callback(self, callback: SeekCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def seek(self, address: int) -> None:
        if not isinstance(address, int) or isinstance(address, bool) or address < 0:
            raise ValueError(f"Invalid address: {address!r}")
        if self._offset != address:
            del self._history[self._history_index + 1 :]
            self._history.append(address)
            if len(self._history) > self.max_history:
                del self._history[: len(self._history) - self.max_history]
            self._history_index = len(self._history) - 1
        self._set_offset(address)

    def can_seek_prev(self) -> bool:
        return self._history_index > 0

    def can_seek_next(self) -> bool:
        return self._history_index < len(self._history) - 1

    def seek_prev(self) -> bool:
        if not self.can_seek_prev():
            return False
        self._history_index -= 1
        self._set_offset(self._history[self._history_index])
        return True

    def seek_next(self) -> bool:
        if not self.can_seek_next():
            return False
        self._history_index += 1
        self._set_offset(self._history[self._history_index])
        return True

    def _set_offset(self, address: int) -> None:
        self._offset = address
        logger.debug("Seek to %s", format_address(address))
        for callback in list(self._callbacks):
            callback(address)
