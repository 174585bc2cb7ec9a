from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QComboBox, QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget

from core.config import Configuration
from core.decompilers import DecompilerRegistry
from core.host import SeekHost
from core.model import format_address
from core.sync import RefreshStatus, SyncController
from ui.code_view import DecompiledCodeEdit, PseudoCHighlighter, QtTextBuffer

logger = logging.getLogger(__name__)

NO_DECOMPILER_AVAILABLE = "No Decompiler available."


class DecompilerWidget(QWidget):
    message = pyqtSignal(str)

    def __init__(
        self,
        host: SeekHost,
        config: Configuration,
        registry: Optional[DecompilerRegistry] = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.host = host
        self.config = config
        self.registry = registry or DecompilerRegistry()
        self._build_ui()

        self.text_buffer = QtTextBuffer(self.editor)
        self.syntax_highlighter = PseudoCHighlighter(self.editor.document())
        self.controller = SyncController(self.text_buffer, self.host)
        self._populate_decompilers()
        self.refresh(None)

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        header = QHBoxLayout()
        header.setContentsMargins(4, 4, 4, 0)
        self.title_label = QLabel()
        header.addWidget(self.title_label)
        header.addStretch(1)
        self.decompiler_combo = QComboBox()
        self.decompiler_combo.currentIndexChanged.connect(self._on_decompiler_selected)
        header.addWidget(self.decompiler_combo)
        self.refresh_button = QPushButton("Refresh")
        self.refresh_button.clicked.connect(self.refresh_at_current_offset)
        header.addWidget(self.refresh_button)
        layout.addLayout(header)

        self.editor = DecompiledCodeEdit()
        layout.addWidget(self.editor)

    def set_font(self, font: QFont) -> None:
        self.editor.setFont(font)
        self.editor.update_address_area_width(0)

    def set_registry(self, registry: DecompilerRegistry) -> None:
        self.registry = registry
        self._populate_decompilers()
        self.refresh_at_current_offset()

    def _populate_decompilers(self) -> None:
        self.decompiler_combo.blockSignals(True)
        self.decompiler_combo.clear()
        selected_index = 0
        for decompiler in self.registry.list_all():
            self.decompiler_combo.addItem(decompiler.name, decompiler.id)
            if decompiler.id == self.config.selected_decompiler:
                selected_index = self.decompiler_combo.count() - 1
        if self.decompiler_combo.count():
            self.decompiler_combo.setCurrentIndex(selected_index)
        self.decompiler_combo.blockSignals(False)
        self.decompiler_combo.setEnabled(len(self.registry) > 1)
        self.controller.set_decompiler(self.registry.get(self.selected_decompiler_id()))
        self._update_title()
        if not len(self.registry):
            self.text_buffer.show_message(NO_DECOMPILER_AVAILABLE)

    def selected_decompiler_id(self) -> Optional[str]:
        data = self.decompiler_combo.currentData()
        return data if isinstance(data, str) else None

    def _on_decompiler_selected(self, _index: int) -> None:
        decompiler_id = self.selected_decompiler_id()
        logger.info("Selected decompiler %s", decompiler_id)
        self.config.set_selected_decompiler(decompiler_id)
        self.controller.set_decompiler(self.registry.get(decompiler_id))
        self._update_title()
        self.refresh_at_current_offset()

    def _update_title(self) -> None:
        title = "Decompiler"
        decompiler_id = self.selected_decompiler_id()
        if decompiler_id is not None:
            title += f" ({decompiler_id})"
        self.title_label.setText(title)
        self.setWindowTitle(title)

    def refresh_at_current_offset(self) -> None:
        self.refresh(self.host.current_offset())

    def refresh(self, address: Optional[int]) -> RefreshStatus:
        if not len(self.registry):
            self.editor.set_decompiled_document(None)
            self.text_buffer.show_message(NO_DECOMPILER_AVAILABLE)
            return RefreshStatus.NO_DECOMPILER
        status = self.controller.refresh(address)
        self.editor.set_decompiled_document(self.controller.document)
        if status is RefreshStatus.EMPTY and address is not None:
            self.message.emit(f"Cannot decompile at {format_address(address)}")
        elif status is RefreshStatus.FAILED:
            self.message.emit(self.text_buffer.text())
        return status

    def close_view(self) -> None:
        self.controller.close()
