# rows.py
from __future__ import annotations

from typing import List

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QComboBox, QHBoxLayout, QLineEdit, QPushButton, QSizePolicy, QWidget

from models import JackPortIntent
from widgets import StatusPill


def _port_combo(placeholder: str) -> QComboBox:
    c = QComboBox()
    c.setEditable(True)
    c.setInsertPolicy(QComboBox.NoInsert)
    c.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)
    c.lineEdit().setPlaceholderText(placeholder)
    return c


class IntentRow(QWidget):
    """
    One connection intent: filter tags, source port, search pattern, target.
    """

    edited = Signal(int, dict)
    remove_requested = Signal(int)

    def __init__(self, index: int, intent: JackPortIntent) -> None:
        super().__init__()
        self.setObjectName("IntentRow")
        self.setAttribute(Qt.WA_StyledBackground, True)
        self.index = index

        self.filter_edit = QLineEdit(intent.filter)
        self.filter_edit.setPlaceholderText("filter tags")
        self.filter_edit.setFixedWidth(130)

        self.source = _port_combo("source port")
        self.search_edit = QLineEdit(intent.target_search_name)
        self.search_edit.setPlaceholderText("search pattern")
        self.target = _port_combo("target port or pattern")

        self.kind = StatusPill(width=80)

        self.remove_btn = QPushButton("✕")
        self.remove_btn.setObjectName("Remove")
        self.remove_btn.setFixedSize(32, 28)
        self.remove_btn.setCursor(Qt.PointingHandCursor)
        self.remove_btn.clicked.connect(lambda: self.remove_requested.emit(self.index))

        row = QHBoxLayout()
        row.setContentsMargins(10, 8, 10, 8)
        row.setSpacing(8)
        row.addWidget(self.filter_edit)
        row.addWidget(self.source, 2)
        row.addWidget(self.search_edit, 1)
        row.addWidget(self.target, 2)
        row.addWidget(self.kind, 0, Qt.AlignVCenter)
        row.addWidget(self.remove_btn, 0, Qt.AlignVCenter)
        self.setLayout(row)

        self.source.setEditText(intent.source_name)
        self.target.setEditText(intent.target_name)
        self._show_kind(intent.is_pattern)

        self.filter_edit.editingFinished.connect(lambda: self._emit("filter", self.filter_edit.text()))
        self.search_edit.editingFinished.connect(
            lambda: self._emit("target_search_name", self.search_edit.text())
        )
        self.source.lineEdit().editingFinished.connect(lambda: self._emit("source_name", self.source.currentText()))
        self.target.lineEdit().editingFinished.connect(self._on_target_edited)
        self.source.activated.connect(lambda _i: self._emit("source_name", self.source.currentText()))
        self.target.activated.connect(lambda _i: self._on_target_edited())

    def _emit(self, key: str, value: str) -> None:
        self.edited.emit(self.index, {key: value})

    def _on_target_edited(self) -> None:
        text = self.target.currentText()
        self._show_kind("*" in text)
        self._emit("target_name", text)

    def _show_kind(self, is_pattern: bool) -> None:
        if is_pattern:
            self.kind.show_state("pattern", "Pattern", "Resolved against live ports on activation.")
        else:
            self.kind.show_state("bound", "Fixed", "Connected to this exact port.")

    def set_port_choices(self, sources: List[str], targets: List[str]) -> None:
        for combo, items in ((self.source, sources), (self.target, targets)):
            text = combo.currentText()
            combo.blockSignals(True)
            combo.clear()
            combo.addItems(items)
            combo.setEditText(text)
            combo.blockSignals(False)
