# main_window.py
from __future__ import annotations

import logging
from typing import List, Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QFormLayout,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)

from backend import JackStreamingBackend
from jack_cli import JackCommandError
from rows import IntentRow
from widgets import StatusPill


APP_NAME = "JACK Streaming Manager"

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, backend: JackStreamingBackend, startup_messages: Optional[List[str]] = None) -> None:
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self.resize(1280, 680)

        self.backend = backend
        self._sources: List[str] = []
        self._targets: List[str] = []

        self._build_ui()

        self.refresh_programs()
        self.refresh_ports()
        self.refresh_use_cases()
        if startup_messages:
            self._report("Load", startup_messages)

    def _build_ui(self) -> None:
        root = QWidget()
        outer = QVBoxLayout()
        outer.setContentsMargins(12, 12, 12, 12)
        outer.setSpacing(10)
        root.setLayout(outer)
        self.setCentralWidget(root)

        outer.addLayout(self._build_header())
        outer.addLayout(self._build_body(), 1)

    def _build_header(self) -> QHBoxLayout:
        header = QHBoxLayout()
        header.setSpacing(10)

        title = QLabel(APP_NAME)
        title.setObjectName("Title")

        server = QLabel(self.backend.server_label())
        server.setObjectName("Caption")
        server.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Preferred)

        refresh_btn = QPushButton("Refresh ports")
        refresh_btn.clicked.connect(self.refresh_ports)

        header.addWidget(title)
        header.addSpacing(8)
        header.addWidget(server, 2)
        header.addStretch(1)
        header.addWidget(refresh_btn)
        return header

    def _build_body(self) -> QHBoxLayout:
        body = QHBoxLayout()
        body.setSpacing(12)
        body.addWidget(self._build_programs_panel(), 2)
        body.addWidget(self._build_editor_panel(), 6)
        body.addWidget(self._build_use_case_panel(), 3)
        return body

    def _make_panel(self, title: str) -> tuple[QFrame, QVBoxLayout, QHBoxLayout]:
        frame = QFrame()
        frame.setObjectName("Panel")

        layout = QVBoxLayout()
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(10)
        frame.setLayout(layout)

        top = QHBoxLayout()
        top.setSpacing(8)
        t = QLabel(title)
        f = QFont()
        f.setPointSize(12)
        f.setWeight(QFont.DemiBold)
        t.setFont(f)
        top.addWidget(t)
        top.addStretch(1)
        layout.addLayout(top)

        return frame, layout, top

    def _build_programs_panel(self) -> QFrame:
        frame, layout, top = self._make_panel("Programs")

        add_btn = QPushButton("+")
        add_btn.setToolTip("Add program")
        add_btn.clicked.connect(self.add_program)
        top.addWidget(add_btn)

        self.program_list = QListWidget()
        self.program_list.currentTextChanged.connect(self._on_program_selected)
        layout.addWidget(self.program_list, 1)

        remove_btn = QPushButton("Remove program")
        remove_btn.setObjectName("Danger")
        remove_btn.clicked.connect(self.remove_program)
        layout.addWidget(remove_btn)
        return frame

    def _build_editor_panel(self) -> QFrame:
        frame, layout, top = self._make_panel("Program")

        self.status = StatusPill()
        top.addWidget(self.status, 0, Qt.AlignVCenter)

        form = QFormLayout()
        form.setSpacing(8)
        self.name_edit = QLineEdit()
        self.command_edit = QLineEdit()
        self.params_edit = QLineEdit()
        self.params_edit.setPlaceholderText("arguments, separated by spaces")
        form.addRow("Name", self.name_edit)
        form.addRow("Command", self.command_edit)
        form.addRow("Parameters", self.params_edit)
        layout.addLayout(form)

        self.name_edit.editingFinished.connect(self._on_name_edited)
        self.command_edit.editingFinished.connect(
            lambda: self._update_selected(command_name=self.command_edit.text())
        )
        self.params_edit.editingFinished.connect(
            lambda: self._update_selected(start_params=self.params_edit.text().split())
        )

        actions = QHBoxLayout()
        actions.setSpacing(8)
        for label, cb, obj in (
            ("Save", self.save_program, "Primary"),
            ("Start", self.start_program, ""),
            ("Stop", self.stop_program, ""),
            ("Reset node binding", self.reset_affinity, ""),
        ):
            b = QPushButton(label)
            if obj:
                b.setObjectName(obj)
            b.clicked.connect(cb)
            actions.addWidget(b)
        actions.addStretch(1)
        add_conn = QPushButton("+ Connection")
        add_conn.clicked.connect(self.add_intent)
        actions.addWidget(add_conn)
        layout.addLayout(actions)

        container = QWidget()
        self.rows_layout = QVBoxLayout()
        self.rows_layout.setContentsMargins(0, 0, 0, 0)
        self.rows_layout.setSpacing(8)
        self.rows_layout.addStretch(1)
        container.setLayout(self.rows_layout)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        scroll.setWidget(container)
        layout.addWidget(scroll, 1)
        return frame

    def _build_use_case_panel(self) -> QFrame:
        frame, layout, _top = self._make_panel("Use cases")

        self.use_case_box = QVBoxLayout()
        self.use_case_box.setSpacing(6)
        layout.addLayout(self.use_case_box)

        off_btn = QPushButton("No filter")
        off_btn.setToolTip("Keep only connections without a filter.")
        off_btn.clicked.connect(self.deactivate)
        layout.addWidget(off_btn)

        self.log = QPlainTextEdit()
        self.log.setObjectName("Log")
        self.log.setReadOnly(True)
        layout.addWidget(self.log, 1)
        return frame

    # helpers

    def selected_program(self) -> Optional[str]:
        item = self.program_list.currentItem()
        return item.text() if item is not None else None

    def _report(self, what: str, errors: List[str]) -> None:
        if not errors:
            self.log.appendPlainText(f"{what}: ok")
            return
        for e in errors:
            self.log.appendPlainText(f"{what}: {e}")

    def intent_rows(self) -> List[IntentRow]:
        out: List[IntentRow] = []
        for i in range(self.rows_layout.count()):
            w = self.rows_layout.itemAt(i).widget()
            if isinstance(w, IntentRow):
                out.append(w)
        return out

    # refresh

    def refresh_programs(self, select: Optional[str] = None) -> None:
        names = self.backend.program_names()
        current = select or self.selected_program()

        self.program_list.blockSignals(True)
        self.program_list.clear()
        self.program_list.addItems(names)
        self.program_list.blockSignals(False)

        if names:
            row = names.index(current) if current in names else 0
            self.program_list.setCurrentRow(row)
        self._load_editor()

    def refresh_ports(self) -> None:
        try:
            self._sources, self._targets = self.backend.port_choices()
        except JackCommandError as e:
            self._sources, self._targets = [], []
            self._report("Ports", [str(e)])
        for r in self.intent_rows():
            r.set_port_choices(self._sources, self._targets)
        self._update_status()

    def refresh_use_cases(self) -> None:
        while self.use_case_box.count():
            w = self.use_case_box.takeAt(0).widget()
            if w is not None:
                w.setParent(None)
                w.deleteLater()

        for tag in self.backend.compute_filters():
            b = QPushButton(tag)
            b.setObjectName("UseCaseActive" if tag == self.backend.active_use_case else "")
            b.clicked.connect(lambda _c=False, t=tag: self.activate(t))
            self.use_case_box.addWidget(b)

    def _load_editor(self) -> None:
        for r in self.intent_rows():
            self.rows_layout.removeWidget(r)
            r.setParent(None)
            r.deleteLater()

        name = self.selected_program()
        if name is None:
            for e in (self.name_edit, self.command_edit, self.params_edit):
                e.clear()
            self._update_status()
            return

        cfg = self.backend.program_config(name)
        self.name_edit.setText(cfg.program_name)
        self.command_edit.setText(cfg.command_name)
        self.params_edit.setText(" ".join(cfg.start_params))

        for i, intent in enumerate(cfg.jack_ports):
            row = IntentRow(i, intent)
            row.set_port_choices(self._sources, self._targets)
            row.edited.connect(self._on_intent_edited)
            row.remove_requested.connect(self.remove_intent)
            self.rows_layout.insertWidget(self.rows_layout.count() - 1, row)
        self._update_status()

    def _update_status(self) -> None:
        name = self.selected_program()
        if name is None:
            self.status.show_state("stopped", "-")
            return
        running, node = self.backend.program_status(name)
        tip = f"Bound to JACK node '{node}'." if node else "No JACK node bound yet."
        if running:
            self.status.show_state("running", "Running", tip)
        else:
            self.status.show_state("stopped", "Stopped", tip)

    # actions

    def _on_program_selected(self, _text: str) -> None:
        self._load_editor()

    def _update_selected(self, **fields) -> None:
        name = self.selected_program()
        if name is None:
            return
        errors = self.backend.update_program(name, **fields)
        if errors:
            self._report(name, errors)

    def _on_name_edited(self) -> None:
        name = self.selected_program()
        new_name = self.name_edit.text().strip()
        if name is None or not new_name or new_name == name:
            return
        errors = self.backend.update_program(name, program_name=new_name)
        self._report("Rename", errors)
        self.refresh_programs(select=new_name if not errors else name)

    def _on_intent_edited(self, index: int, change: dict) -> None:
        name = self.selected_program()
        if name is None:
            return
        errors = self.backend.update_intent(name, index, **change)
        if errors:
            self._report(name, errors)
        if "filter" in change:
            self.refresh_use_cases()

    def add_program(self) -> None:
        name = self.backend.add_program()
        self.refresh_programs(select=name)

    def remove_program(self) -> None:
        name = self.selected_program()
        if name is None:
            return
        q = QMessageBox.question(
            self,
            "Remove program",
            f"Remove '{name}' and its stored configuration?",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No,
        )
        if q != QMessageBox.Yes:
            return
        self._report(f"Remove {name}", self.backend.remove_program(name))
        self.refresh_programs()
        self.refresh_use_cases()

    def save_program(self) -> None:
        name = self.selected_program()
        if name is not None:
            self._report(f"Save {name}", self.backend.save_program(name))

    def start_program(self) -> None:
        name = self.selected_program()
        if name is not None:
            self._report(f"Start {name}", self.backend.start_program(name))
            self.refresh_ports()

    def stop_program(self) -> None:
        name = self.selected_program()
        if name is not None:
            self._report(f"Stop {name}", self.backend.stop_program(name))
            self._update_status()

    def reset_affinity(self) -> None:
        name = self.selected_program()
        if name is not None:
            self._report(f"Reset {name}", self.backend.reset_affinity(name))
            self._load_editor()

    def add_intent(self) -> None:
        name = self.selected_program()
        if name is None:
            return
        _idx, errors = self.backend.add_intent(name)
        if errors:
            self._report(name, errors)
        self._load_editor()

    def remove_intent(self, index: int) -> None:
        name = self.selected_program()
        if name is None:
            return
        errors = self.backend.remove_intent(name, index)
        if errors:
            self._report(name, errors)
        self._load_editor()
        self.refresh_use_cases()

    def activate(self, use_case: str) -> None:
        logger.info("activating use case %s", use_case)
        self._report(f"Activate {use_case}", self.backend.activate(use_case))
        self.refresh_use_cases()
        self.refresh_ports()
        self._load_editor()

    def deactivate(self) -> None:
        self._report("No filter", self.backend.deactivate())
        self.refresh_use_cases()
