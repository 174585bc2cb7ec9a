from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QColor, QFont, QFontDatabase, QKeySequence, QPalette
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QDockWidget,
    QFileDialog,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from core.config import Configuration
from core.decompilers import DecompilerError, Listing, create_default_registry, load_listing
from core.host import SeekHost
from core.model import format_address, parse_address
from ui.decompiler_widget import DecompilerWidget

logger = logging.getLogger(__name__)


def _sample_listing_path() -> Path:
    return Path(__file__).resolve().parent.parent / "assets" / "listings" / "sample.json"


class MainWindow(QMainWindow):
    def __init__(self, config: Optional[Configuration] = None) -> None:
        super().__init__()
        self.setWindowTitle("Decompiler View")
        self.resize(1100, 700)

        self.config = config or Configuration().load()
        self.host = SeekHost()
        self.listing: Optional[Listing] = None

        self._build_ui()
        self._apply_dracula_theme()
        self.host.on_seek_changed(self._on_seek_changed)
        self._update_status()
        self._open_initial_listing()

    def _build_ui(self) -> None:
        file_menu = self.menuBar().addMenu("File")
        open_action = QAction("Open Listing...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self.open_listing)
        file_menu.addAction(open_action)
        file_menu.addSeparator()
        exit_action = QAction("Exit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        navigate_menu = self.menuBar().addMenu("Navigate")
        self.back_action = QAction("Back", self)
        self.back_action.setShortcut(QKeySequence("Alt+Left"))
        self.back_action.triggered.connect(self.seek_back)
        navigate_menu.addAction(self.back_action)
        self.forward_action = QAction("Forward", self)
        self.forward_action.setShortcut(QKeySequence("Alt+Right"))
        self.forward_action.triggered.connect(self.seek_forward)
        navigate_menu.addAction(self.forward_action)
        refresh_action = QAction("Refresh Decompiler", self)
        refresh_action.setShortcut(QKeySequence("F5"))
        refresh_action.triggered.connect(self.refresh_decompiler)
        navigate_menu.addAction(refresh_action)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setContentsMargins(4, 4, 4, 4)
        seek_bar = QHBoxLayout()
        seek_bar.addWidget(QLabel("Address"))
        self.seek_edit = QLineEdit()
        self.seek_edit.setPlaceholderText("0x1040")
        self.seek_edit.returnPressed.connect(self.seek_from_input)
        seek_bar.addWidget(self.seek_edit, 1)
        go_button = QPushButton("Go")
        go_button.clicked.connect(self.seek_from_input)
        seek_bar.addWidget(go_button)
        layout.addLayout(seek_bar)

        self.decompiler_widget = DecompilerWidget(self.host, self.config)
        self.decompiler_widget.set_font(self._default_font())
        self.decompiler_widget.message.connect(self.log)
        layout.addWidget(self.decompiler_widget, 1)
        self.setCentralWidget(central)

        self.function_table = QTableWidget(0, 2)
        self.function_table.setHorizontalHeaderLabels(["Function", "Address"])
        self.function_table.verticalHeader().setVisible(False)
        self.function_table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self.function_table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.function_table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        self.function_table.cellDoubleClicked.connect(self.on_function_double_clicked)
        functions_dock = QDockWidget("Functions", self)
        functions_dock.setObjectName("functions_dock")
        functions_dock.setWidget(self.function_table)
        self.addDockWidget(Qt.DockWidgetArea.LeftDockWidgetArea, functions_dock)

        self.log_output = QPlainTextEdit()
        self.log_output.setReadOnly(True)
        log_dock = QDockWidget("Output", self)
        log_dock.setObjectName("log_dock")
        log_dock.setWidget(self.log_output)
        self.addDockWidget(Qt.DockWidgetArea.BottomDockWidgetArea, log_dock)

        self.offset_label = QLabel()
        self.statusBar().addPermanentWidget(self.offset_label)

    def _default_font(self) -> QFont:
        preferred = [
            "JetBrains Mono",
            "Cascadia Code",
            "Fira Code",
            "Source Code Pro",
            "DejaVu Sans Mono",
            "Consolas",
            "Menlo",
        ]
        available = set(QFontDatabase.families())
        for name in preferred:
            if name in available:
                return QFont(name, 11)
        return QFont("Monospace", 11)

    def _apply_dracula_theme(self) -> None:
        base_bg = QColor("#282a36")
        text_fg = QColor("#f8f8f2")
        highlight_bg = QColor("#44475a")
        panel_bg = QColor("#1e1f29")
        border = QColor("#3c3f58")

        for edit in (self.decompiler_widget.editor, self.log_output):
            edit.setStyleSheet(
                "QPlainTextEdit {"
                f" background-color: {base_bg.name()};"
                f" color: {text_fg.name()};"
                f" selection-background-color: {highlight_bg.name()};"
                f" selection-color: {text_fg.name()};"
                " }"
            )
        self.decompiler_widget.editor.set_address_colors(panel_bg, QColor("#6272a4"))
        self.function_table.setStyleSheet(
            "QTableWidget {"
            f" background-color: {panel_bg.name()};"
            f" color: {text_fg.name()};"
            f" gridline-color: {border.name()};"
            "}"
            "QHeaderView::section {"
            f" background-color: {border.name()};"
            f" color: {text_fg.name()};"
            " padding: 4px;"
            "}"
        )

        palette = self.palette()
        palette.setColor(QPalette.ColorRole.Window, panel_bg)
        palette.setColor(QPalette.ColorRole.Base, base_bg)
        palette.setColor(QPalette.ColorRole.Text, text_fg)
        palette.setColor(QPalette.ColorRole.Button, panel_bg)
        palette.setColor(QPalette.ColorRole.ButtonText, text_fg)
        palette.setColor(QPalette.ColorRole.WindowText, text_fg)
        palette.setColor(QPalette.ColorRole.Highlight, highlight_bg)
        self.setPalette(palette)

    def _open_initial_listing(self) -> None:
        candidates = [self.config.last_listing, str(_sample_listing_path())]
        for path in candidates:
            if path and os.path.exists(path) and self._load_listing_path(path):
                return

    def open_listing(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open Listing", "", "Listings (*.json);;All Files (*)")
        if path:
            self._load_listing_path(path)

    def _load_listing_path(self, path: str) -> bool:
        try:
            listing = load_listing(path)
        except DecompilerError as exc:
            self.log(exc.message)
            QMessageBox.warning(self, "Open Failed", exc.message)
            return False
        self.listing = listing
        self.config.last_listing = str(Path(path).resolve())
        self.config.save()
        self.setWindowTitle(f"Decompiler View - {listing.name}")
        self._populate_functions()
        self.decompiler_widget.set_registry(create_default_registry(listing))
        self.log(f"Opened {path}")
        if listing.functions and self.host.current_offset() is None:
            self.seek_and_refresh(listing.functions[0].address)
        return True

    def _populate_functions(self) -> None:
        functions = self.listing.functions if self.listing else []
        self.function_table.setRowCount(len(functions))
        for row, function in enumerate(functions):
            name_item = QTableWidgetItem(function.name)
            name_item.setData(Qt.ItemDataRole.UserRole, function.address)
            self.function_table.setItem(row, 0, name_item)
            self.function_table.setItem(row, 1, QTableWidgetItem(format_address(function.address)))

    def on_function_double_clicked(self, row: int, _column: int) -> None:
        item = self.function_table.item(row, 0)
        if item is None:
            return
        address = item.data(Qt.ItemDataRole.UserRole)
        if address is not None:
            self.seek_and_refresh(int(address))

    def seek_from_input(self) -> None:
        text = self.seek_edit.text()
        try:
            address = parse_address(text)
        except ValueError:
            self.log(f"Invalid address: {text}")
            return
        self.seek_and_refresh(address)

    def seek_and_refresh(self, address: int) -> None:
        self.host.seek(address)
        self.decompiler_widget.refresh(address)

    def seek_back(self) -> None:
        if self.host.seek_prev():
            self.decompiler_widget.refresh_at_current_offset()

    def seek_forward(self) -> None:
        if self.host.seek_next():
            self.decompiler_widget.refresh_at_current_offset()

    def refresh_decompiler(self) -> None:
        self.decompiler_widget.refresh_at_current_offset()

    def _on_seek_changed(self, _offset: int) -> None:
        self._update_status()

    def _update_status(self) -> None:
        offset = self.host.current_offset()
        self.offset_label.setText("Offset: -" if offset is None else f"Offset: {format_address(offset)}")
        self.back_action.setEnabled(self.host.can_seek_prev())
        self.forward_action.setEnabled(self.host.can_seek_next())

    def log(self, message: str) -> None:
        logger.info(message)
        self.log_output.appendPlainText(message)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.decompiler_widget.close_view()
        self.config.save()
        super().closeEvent(event)


def run_app() -> None:
    logging.basicConfig(
        level=os.environ.get("DECOMPILER_VIEW_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    app.exec()
