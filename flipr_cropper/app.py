"""
Application entry point and dark-theme stylesheet.

Usage:
    python -m flipr_cropper.app
    flipr-cropper          (after pip install)

Set FLIPR_API_URL to point at the content-management server.
"""

import logging
import sys

from PyQt6.QtWidgets import QApplication

from flipr_cropper.api_client import ApiClient
from flipr_cropper.config import LOG_LEVEL
from flipr_cropper.main_window import MainWindow

DARK_STYLESHEET = """
    QMainWindow, QDialog { background: #2b2b2b; }
    QWidget { background: #2b2b2b; color: #ddd; font-size: 10pt; }
    QLineEdit, QTextEdit, QListWidget { background: #1e1e1e; border: 1px solid #444; }
    QGroupBox { border: 1px solid #555; border-radius: 4px; margin-top: 8px; padding-top: 12px; font-weight: bold; }
    QGroupBox::title { subcontrol-origin: margin; left: 8px; padding: 0 4px; }
    QPushButton { background: #3a3a3a; border: 1px solid #555; border-radius: 4px; padding: 6px 12px; }
    QPushButton:hover { background: #4a4a4a; }
    QPushButton:pressed { background: #2a2a2a; }
    QPushButton:default { background: #3a6ea5; border-color: #5a8ec5; }
    QPushButton:disabled { color: #666; }
    QTabBar::tab { background: #333; padding: 6px 16px; }
    QTabBar::tab:selected { background: #3a6ea5; }
    QStatusBar { background: #333; border-top: 1px solid #444; }
"""


def main():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv)
    app.setStyleSheet(DARK_STYLESHEET)

    window = MainWindow(ApiClient())
    window.show()

    try:
        sys.exit(app.exec())
    except (SystemExit, KeyboardInterrupt):
        pass


if __name__ == "__main__":
    main()
