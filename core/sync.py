from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

from core.buffer import TextBuffer
from core.decompilers import Decompiler, DecompilerError
from core.document import DecompiledDocument, build_document
from core.host import SeekHost
from core.model import format_address
from core.selection import HighlightKind, HighlightRange, line_bounds, same_word_ranges, word_at

logger = logging.getLogger(__name__)

NO_DECOMPILER_MESSAGE = "No decompiler selected."
NO_ADDRESS_MESSAGE = "Click Refresh to decompile from current offset."


def cannot_decompile_message(address: int) -> str:
    return f"Cannot decompile at {format_address(address)} (Not a function?)"


class SyncState(Enum):
    IDLE = "Idle"
    PROPAGATING_FROM_CARET = "PropagatingFromCaret"
    PROPAGATING_FROM_OFFSET = "PropagatingFromOffset"


class RefreshStatus(Enum):
    OK = "ok"
    NO_DECOMPILER = "no decompiler"
    NO_ADDRESS = "no address"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class FocusState:
    state: SyncState = SyncState.IDLE
    last_known_offset: Optional[int] = None

    def is_idle(self) -> bool:
        return self.state is SyncState.IDLE


class SyncController:
    """Keeps the caret of a decompiled text buffer and the host offset in step.

    Caret moves seek the host to the address under the caret; host seeks move
    the caret to the first line of the matching address. ``FocusState.state``
    guards each direction against the notification the other one causes.
    """

    def __init__(self, buffer: TextBuffer, host: SeekHost, decompiler: Optional[Decompiler] = None) -> None:
        self.buffer = buffer
        self.host = host
        self._decompiler = decompiler
        self._document: Optional[DecompiledDocument] = None
        self.focus = FocusState(last_known_offset=host.current_offset())
        self.host.on_seek_changed(self.on_seek_changed)
        self.buffer.connect_caret_moved(self.on_caret_moved)

    @property
    def document(self) -> Optional[DecompiledDocument]:
        return self._document

    @property
    def state(self) -> SyncState:
        return self.focus.state

    @property
    def decompiler(self) -> Optional[Decompiler]:
        return self._decompiler

    def set_decompiler(self, decompiler: Optional[Decompiler]) -> None:
        self._decompiler = decompiler
        self._discard_document()
        self._show_message(NO_ADDRESS_MESSAGE if decompiler else NO_DECOMPILER_MESSAGE)

    def refresh(self, address: Optional[int]) -> RefreshStatus:
        self._discard_document()
        if self._decompiler is None:
            self._show_message(NO_DECOMPILER_MESSAGE)
            return RefreshStatus.NO_DECOMPILER
        if address is None:
            self._show_message(NO_ADDRESS_MESSAGE)
            return RefreshStatus.NO_ADDRESS

        try:
            code = self._decompiler.decompile_at(address)
        except DecompilerError as exc:
            logger.warning("%s failed at %s: %s", self._decompiler.id, format_address(address), exc.message)
            self._show_message(f"Decompiler error: {exc.message}")
            return RefreshStatus.FAILED
        except Exception as exc:
            # provider failures never reach the host
            logger.exception("%s crashed at %s", self._decompiler.id, format_address(address))
            self._show_message(f"Decompiler error: {exc}")
            return RefreshStatus.FAILED

        with self._caret_notifications_detached():
            document = build_document(code, self.buffer)
        if document is None:
            logger.info("%s returned no lines at %s", self._decompiler.id, format_address(address))
            self._show_message(cannot_decompile_message(address))
            return RefreshStatus.EMPTY

        self._document = document
        logger.info(
            "Decompiled %s with %s: %d lines", format_address(address), self._decompiler.id, len(document)
        )
        offset = self.host.current_offset()
        if offset is None:
            self.update_highlights()
        else:
            self.focus.last_known_offset = offset
            self._move_caret_to(offset)
        return RefreshStatus.OK

    def on_caret_moved(self, position: int) -> None:
        if not self.focus.is_idle():
            return
        address = self._document.address_at(position) if self._document else None
        if address is not None and address != self.focus.last_known_offset:
            self.focus.state = SyncState.PROPAGATING_FROM_CARET
            logger.debug("Caret at %d seeks %s", position, format_address(address))
            try:
                self.focus.last_known_offset = address
                self.host.seek(address)
            finally:
                self.focus.state = SyncState.IDLE
        self.update_highlights()

    def on_seek_changed(self, offset: int) -> None:
        self.focus.last_known_offset = offset
        if not self.focus.is_idle():
            # our own seek, or a seek triggered while moving the caret
            return
        self._move_caret_to(offset)

    def highlight_ranges(self) -> List[HighlightRange]:
        caret = self.buffer.caret_position()
        text = self.buffer.text()
        ranges: List[HighlightRange] = []
        if self._document is not None:
            address = self._document.address_at(caret)
            if address is not None:
                ranges = [
                    HighlightRange(self._document[i].position, self._document[i].end, HighlightKind.LINE)
                    for i in self._document.highlight_indices(address)
                ]
        if not ranges:
            start, end = line_bounds(text, caret)
            ranges = [HighlightRange(start, end, HighlightKind.LINE)]
        ranges.extend(same_word_ranges(text, word_at(text, caret)))
        return ranges

    def update_highlights(self) -> None:
        self.buffer.set_highlight_ranges(self.highlight_ranges())

    def close(self) -> None:
        self.host.remove_seek_callback(self.on_seek_changed)
        self.buffer.disconnect_caret_moved(self.on_caret_moved)

    def _move_caret_to(self, offset: int) -> None:
        if self._document is None:
            return
        index = self._document.index_for_address(offset)
        if index is None:
            return
        # the first line of an address, not e.g. its closing brace
        index = self._document.run_start(index)
        self.focus.state = SyncState.PROPAGATING_FROM_OFFSET
        try:
            with self._caret_notifications_detached():
                self.buffer.set_caret_position(self._document[index].position)
        finally:
            self.focus.state = SyncState.IDLE
        logger.debug("Seek to %s moved caret to line %d", format_address(offset), index + 1)
        self.update_highlights()

    def _discard_document(self) -> None:
        self._document = None
        self.focus.state = SyncState.IDLE

    def _show_message(self, message: str) -> None:
        with self._caret_notifications_detached():
            self.buffer.show_message(message)
        self.update_highlights()

    @contextmanager
    def _caret_notifications_detached(self) -> Iterator[None]:
        self.buffer.disconnect_caret_moved(self.on_caret_moved)
        try:
            yield
        finally:
            self.buffer.connect_caret_moved(self.on_caret_moved)
