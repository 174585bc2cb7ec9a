from __future__ import annotations

import re
from typing import Callable, List, Optional, Sequence

from PyQt6.QtCore import QRect, QSize, Qt
from PyQt6.QtGui import QColor, QFont, QPainter, QSyntaxHighlighter, QTextCharFormat, QTextCursor, QTextFormat
from PyQt6.QtWidgets import QPlainTextEdit, QTextEdit, QWidget

from core.document import DecompiledDocument
from core.model import format_address
from core.selection import HighlightKind, HighlightRange, index_to_utf16, utf16_to_index

KEYWORDS = {
    "if",
    "else",
    "for",
    "while",
    "do",
    "return",
    "break",
    "continue",
    "goto",
    "switch",
    "case",
    "default",
    "sizeof",
}
TYPES = {
    "void",
    "char",
    "short",
    "int",
    "long",
    "unsigned",
    "signed",
    "float",
    "double",
    "struct",
    "union",
    "enum",
    "const",
    "bool",
    "uint8_t",
    "uint16_t",
    "uint32_t",
    "uint64_t",
    "int8_t",
    "int16_t",
    "int32_t",
    "int64_t",
    "size_t",
}
TOKEN_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*|0x[0-9A-Fa-f]+|\d+")
STRING_RE = re.compile(r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\'')


class PseudoCHighlighter(QSyntaxHighlighter):
    def __init__(self, parent) -> None:
        super().__init__(parent)
        self.keyword_format = QTextCharFormat()
        self.keyword_format.setForeground(QColor("#ff79c6"))
        self.keyword_format.setFontWeight(QFont.Weight.Bold)

        self.type_format = QTextCharFormat()
        self.type_format.setForeground(QColor("#8be9fd"))

        self.number_format = QTextCharFormat()
        self.number_format.setForeground(QColor("#ffb86c"))

        self.string_format = QTextCharFormat()
        self.string_format.setForeground(QColor("#f1fa8c"))

        self.comment_format = QTextCharFormat()
        self.comment_format.setForeground(QColor("#6272a4"))

    def highlightBlock(self, text: str) -> None:
        if not text.strip():
            return

        for match in TOKEN_RE.finditer(text):
            token = match.group(0)
            if token in KEYWORDS:
                self.setFormat(match.start(), len(token), self.keyword_format)
            elif token in TYPES:
                self.setFormat(match.start(), len(token), self.type_format)
            elif token[0].isdigit():
                self.setFormat(match.start(), len(token), self.number_format)

        for match in STRING_RE.finditer(text):
            self.setFormat(match.start(), match.end() - match.start(), self.string_format)

        for match in re.finditer(r"/\*.*?\*/", text):
            self.setFormat(match.start(), match.end() - match.start(), self.comment_format)
        comment_index = text.find("//")
        if comment_index >= 0:
            self.setFormat(comment_index, len(text) - comment_index, self.comment_format)


class AddressArea(QWidget):
    def __init__(self, editor: "DecompiledCodeEdit") -> None:
        super().__init__(editor)
        self.editor = editor

    def sizeHint(self) -> QSize:
        return QSize(self.editor.address_area_width(), 0)

    def paintEvent(self, event) -> None:
        self.editor.address_area_paint_event(event)


class DecompiledCodeEdit(QPlainTextEdit):
    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setReadOnly(True)
        self.setTextInteractionFlags(
            Qt.TextInteractionFlag.TextSelectableByMouse | Qt.TextInteractionFlag.TextSelectableByKeyboard
        )
        self.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        self._address_bg = QColor("#1e1f29")
        self._address_fg = QColor("#6272a4")
        self._document: Optional[DecompiledDocument] = None
        self.address_area = AddressArea(self)

        self.blockCountChanged.connect(self.update_address_area_width)
        self.updateRequest.connect(self.update_address_area)
        self.update_address_area_width(0)

    def set_address_colors(self, background: QColor, foreground: QColor) -> None:
        self._address_bg = background
        self._address_fg = foreground
        self.address_area.update()

    def set_decompiled_document(self, document: Optional[DecompiledDocument]) -> None:
        self._document = document
        self.update_address_area_width(0)
        self.address_area.update()

    def address_area_width(self) -> int:
        digits = 4
        if self._document is not None:
            addresses = self._document.addresses()
            if addresses:
                digits = len(format_address(addresses[-1]))
        return 16 + self.fontMetrics().horizontalAdvance("9") * digits

    def update_address_area_width(self, _block_count: int) -> None:
        self.setViewportMargins(self.address_area_width(), 0, 0, 0)

    def update_address_area(self, rect: QRect, dy: int) -> None:
        if dy:
            self.address_area.scroll(0, dy)
        else:
            self.address_area.update(0, rect.y(), self.address_area.width(), rect.height())
        if rect.contains(self.viewport().rect()):
            self.update_address_area_width(0)

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        contents = self.contentsRect()
        self.address_area.setGeometry(
            QRect(contents.left(), contents.top(), self.address_area_width(), contents.height())
        )

    def address_area_paint_event(self, event) -> None:
        painter = QPainter(self.address_area)
        painter.fillRect(event.rect(), self._address_bg)
        if self._document is None:
            return

        block = self.firstVisibleBlock()
        block_number = block.blockNumber()
        top = self.blockBoundingGeometry(block).translated(self.contentOffset()).top()
        bottom = top + self.blockBoundingRect(block).height()

        painter.setPen(self._address_fg)
        while block.isValid() and top <= event.rect().bottom():
            if block.isVisible() and bottom >= event.rect().top() and block_number < len(self._document):
                address = self._document[block_number].address
                if address is not None:
                    painter.drawText(
                        4,
                        int(top),
                        self.address_area.width() - 10,
                        int(self.fontMetrics().height()),
                        Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter,
                        format_address(address),
                    )
            block = block.next()
            top = bottom
            bottom = top + self.blockBoundingRect(block).height()
            block_number += 1


class QtTextBuffer:
    """Drives a DecompiledCodeEdit through the core text buffer contract.

    Positions handed to and from the core are indices into ``text()``; Qt
    cursors count UTF-16 units, so every position is converted here.
    """

    def __init__(self, editor: DecompiledCodeEdit) -> None:
        self.editor = editor
        self.line_color = QColor("#44475a")
        self.word_color = QColor("#4b5d7a")
        self._callbacks: List[Callable[[int], None]] = []
        self.editor.cursorPositionChanged.connect(self._on_cursor_position_changed)

    def clear(self) -> None:
        self.editor.document().clear()
        self.editor.setExtraSelections([])

    def append_line(self, text: str) -> None:
        cursor = QTextCursor(self.editor.document())
        cursor.movePosition(QTextCursor.MoveOperation.End)
        cursor.insertText(text + "\n")

    def length(self) -> int:
        return len(self.text())

    def text(self) -> str:
        return self.editor.toPlainText()

    def show_message(self, text: str) -> None:
        caret = self.caret_position()
        self.editor.setPlainText(text)
        self.editor.setExtraSelections([])
        # setPlainText resets the cursor to the start
        self._set_cursor(min(caret, len(text)))

    def caret_position(self) -> int:
        return utf16_to_index(self.text(), self.editor.textCursor().position())

    def set_caret_position(self, position: int) -> None:
        self._set_cursor(max(0, min(position, self.length())))
        self.editor.centerCursor()

    def connect_caret_moved(self, callback: Callable[[int], None]) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def disconnect_caret_moved(self, callback: Callable[[int], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def set_highlight_ranges(self, ranges: Sequence[HighlightRange]) -> None:
        text = self.text()
        selections = []
        for item in ranges:
            cursor = QTextCursor(self.editor.document())
            selection = QTextEdit.ExtraSelection()
            cursor.setPosition(index_to_utf16(text, item.start))
            if item.kind is HighlightKind.LINE:
                selection.format.setBackground(self.line_color)
                selection.format.setProperty(QTextFormat.Property.FullWidthSelection, True)
            else:
                cursor.setPosition(index_to_utf16(text, item.end), QTextCursor.MoveMode.KeepAnchor)
                selection.format.setBackground(self.word_color)
            selection.cursor = cursor
            selections.append(selection)
        self.editor.setExtraSelections(selections)

    def _set_cursor(self, position: int) -> None:
        cursor = self.editor.textCursor()
        cursor.setPosition(index_to_utf16(self.text(), position))
        self.editor.setTextCursor(cursor)

    def _on_cursor_position_changed(self) -> None:
        position = self.caret_position()
        for callback in list(self._callbacks):
            callback(position)
