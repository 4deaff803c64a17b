# main.py
from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from backend import JackStreamingBackend
from logging_utils import configure_logging
from main_window import MainWindow
from store_config import ConfigStore
from theme import apply_dark_theme


def main() -> int:
    store = ConfigStore()
    settings = store.settings()
    configure_logging(settings.log_level)

    app = QApplication(sys.argv)
    apply_dark_theme(app)

    backend = JackStreamingBackend.from_settings(settings, store)
    messages = backend.load()

    w = MainWindow(backend, startup_messages=messages)
    w.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
