# widgets.py
from __future__ import annotations

from typing import Dict, Tuple

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel


_PILL_COLORS: Dict[str, Tuple[str, str, str]] = {
    "running": ("#233a2c", "#2f6b45", "#cfeedd"),
    "bound": ("#23303a", "#2f516b", "#cfe3ee"),
    "pattern": ("#3a3424", "#7a6231", "#f3e6c8"),
    "error": ("#3a2424", "#7a3131", "#f3c8c8"),
}
_PILL_IDLE = ("#2a2a30", "#3a3a42", "#d6d6d6")


class StatusPill(QLabel):
    def __init__(self, parent=None, width: int = 90) -> None:
        super().__init__(parent)
        self.setAlignment(Qt.AlignCenter)
        self.setFixedWidth(width)
        self.show_state("stopped", "Stopped")

    def show_state(self, state: str, text: str, tip: str = "") -> None:
        self.setText(text)
        self.setToolTip(tip)
        self.set_state(state)

    def set_state(self, state: str) -> None:
        bg, bd, fg = _PILL_COLORS.get(state, _PILL_IDLE)
        self.setStyleSheet(
            f"""
            QLabel {{
                background: {bg};
                border: 1px solid {bd};
                border-radius: 10px;
                padding: 4px 8px;
                color: {fg};
                font-weight: 600;
            }}
            """
        )
