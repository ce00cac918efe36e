"""
Admin window.

Projects and Clients tabs, each with a record form, an image picker that
routes the chosen file through ``CropDialog``, and a list of the records
already on the server.  Contact Forms and Newsletter Subscriptions tabs
list what visitors submitted through the public site.
"""

import logging
from pathlib import Path

from PyQt6.QtWidgets import (
    QAbstractItemView, QFileDialog, QFormLayout, QGroupBox, QHBoxLayout, QHeaderView, QLabel,
    QLineEdit, QListWidget, QMainWindow, QMessageBox, QPushButton, QStatusBar, QTabWidget,
    QTableWidget, QTableWidgetItem, QTextEdit, QVBoxLayout, QWidget,
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QPixmap

from flipr_cropper.api_client import ApiClient
from flipr_cropper.config import IMAGE_EXTENSIONS
from flipr_cropper.crop_dialog import CropDialog
from flipr_cropper.exceptions import DecodeError, UploadError
from flipr_cropper.image_io import read_image_file
from flipr_cropper.models import OutputImage
from flipr_cropper.presets import get_preset, load_presets

logger = logging.getLogger(__name__)


class RecordForm(QWidget):
    """Form for one record type (``project`` or ``client``)."""

    def __init__(self, kind: str, window: "MainWindow", parent=None):
        super().__init__(parent)
        self._kind = kind
        self._window = window
        self._image: OutputImage | None = None

        layout = QHBoxLayout(self)

        form_box = QGroupBox(f"Add {kind.title()}")
        form = QFormLayout(form_box)
        self._name = QLineEdit()
        form.addRow("Name:", self._name)
        self._designation: QLineEdit | None = None
        if kind == "client":
            self._designation = QLineEdit()
            form.addRow("Designation:", self._designation)
        self._description = QTextEdit()
        self._description.setAcceptRichText(False)
        form.addRow("Description:", self._description)

        preset = window.preset(kind)
        pick_btn = QPushButton("Choose Image…")
        pick_btn.clicked.connect(self._pick_image)
        form.addRow(f"Image ({preset['output_w']}×{preset['output_h']}):", pick_btn)
        self._image_label = QLabel("No image selected")
        form.addRow("", self._image_label)
        self._preview = QLabel()
        self._preview.setAlignment(Qt.AlignmentFlag.AlignCenter)
        form.addRow("", self._preview)

        submit_btn = QPushButton(f"Add {kind.title()}")
        submit_btn.clicked.connect(self._submit)
        form.addRow("", submit_btn)
        layout.addWidget(form_box, stretch=1)

        list_box = QGroupBox(f"Existing {kind.title()}s")
        list_layout = QVBoxLayout(list_box)
        self._records = QListWidget()
        list_layout.addWidget(self._records)
        refresh_btn = QPushButton("Refresh")
        refresh_btn.clicked.connect(self.refresh)
        list_layout.addWidget(refresh_btn)
        layout.addWidget(list_box, stretch=1)

    def _pick_image(self):
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        path, _ = QFileDialog.getOpenFileName(self, "Select Image", "", f"Images ({patterns})")
        if not path:
            return
        try:
            data = read_image_file(Path(path))
        except DecodeError as e:
            QMessageBox.warning(self, "Open Failed", str(e))
            return

        dialog = CropDialog(data, self._window.preset(self._kind), self)
        if dialog.exec() and dialog.output is not None:
            self._image = dialog.output
            self._image_label.setText(f"Image selected: {self._image.filename}")
            pixmap = QPixmap()
            pixmap.loadFromData(self._image.data)
            self._preview.setPixmap(pixmap.scaledToWidth(225, Qt.TransformationMode.SmoothTransformation))

    def _submit(self):
        api = self._window.api
        try:
            if self._kind == "client":
                record = api.add_client(
                    self._name.text(), self._description.toPlainText(),
                    self._designation.text(), self._image,
                )
            else:
                record = api.add_project(self._name.text(), self._description.toPlainText(), self._image)
        except UploadError as e:
            logger.warning("Adding %s failed: %s", self._kind, e.message)
            QMessageBox.warning(self, "Error", e.message)
            return

        self._window.show_message(f"{self._kind.title()} '{record.get('name')}' added successfully")
        self._reset()
        self.refresh()

    def _reset(self):
        self._name.clear()
        self._description.clear()
        if self._designation is not None:
            self._designation.clear()
        self._image = None
        self._image_label.setText("No image selected")
        self._preview.clear()

    def refresh(self):
        api = self._window.api
        try:
            records = api.get_clients() if self._kind == "client" else api.get_projects()
        except UploadError as e:
            self._window.show_message(f"Could not load {self._kind}s: {e.message}")
            return
        self._records.clear()
        for rec in records:
            label = rec.get("name", "")
            if rec.get("designation"):
                label += f" — {rec['designation']}"
            self._records.addItem(f"{label}  ({api.image_url(rec.get('image'))})")


class SubmissionsTable(QWidget):
    """Read-only table of visitor submissions fetched by *fetch*."""

    def __init__(self, title: str, columns: list[tuple[str, str]], fetch, window: "MainWindow", parent=None):
        super().__init__(parent)
        self._title = title
        self._columns = columns
        self._fetch = fetch
        self._window = window

        layout = QVBoxLayout(self)
        header = QHBoxLayout()
        self._heading = QLabel(f"{title} (0)")
        header.addWidget(self._heading)
        header.addStretch()
        refresh_btn = QPushButton("Refresh")
        refresh_btn.clicked.connect(self.refresh)
        header.addWidget(refresh_btn)
        layout.addLayout(header)

        self._table = QTableWidget(0, len(columns))
        self._table.setHorizontalHeaderLabels([label for label, _ in columns])
        self._table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self._table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self._table.verticalHeader().setVisible(False)
        self._table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        layout.addWidget(self._table)

        self._empty = QLabel(f"No {title.lower()} yet.")
        self._empty.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._empty)

    def refresh(self):
        try:
            rows = self._fetch()
        except UploadError as e:
            self._window.show_message(f"Could not load {self._title.lower()}: {e.message}")
            return
        self._heading.setText(f"{self._title} ({len(rows)})")
        self._table.setRowCount(len(rows))
        for r, row in enumerate(rows):
            for c, (_, key) in enumerate(self._columns):
                value = row.get(key)
                self._table.setItem(r, c, QTableWidgetItem("" if value is None else str(value)))
        self._table.setVisible(bool(rows))
        self._empty.setVisible(not rows)


class MainWindow(QMainWindow):
    def __init__(self, api: ApiClient):
        super().__init__()
        self.setWindowTitle("Admin Panel")
        self.setMinimumSize(900, 600)

        self.api = api
        self._presets = load_presets()

        tabs = QTabWidget()
        self._forms = [RecordForm("project", self), RecordForm("client", self)]
        tabs.addTab(self._forms[0], "Projects")
        tabs.addTab(self._forms[1], "Clients")
        self._submissions = [
            SubmissionsTable(
                "Contact Form Submissions",
                [("Full Name", "full_name"), ("Email", "email"), ("Mobile Number", "mobile_number"),
                 ("City", "city"), ("Submitted At", "created_at")],
                api.get_contacts, self,
            ),
            SubmissionsTable(
                "Newsletter Subscriptions",
                [("Email Address", "email"), ("Subscribed At", "created_at")],
                api.get_newsletter_subscriptions, self,
            ),
        ]
        tabs.addTab(self._submissions[0], "Contact Forms")
        tabs.addTab(self._submissions[1], "Newsletter")
        self.setCentralWidget(tabs)

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self.show_message(f"Connected to {api.base_url}")

        for tab in self._forms + self._submissions:
            tab.refresh()

    def preset(self, kind: str) -> dict:
        return get_preset(self._presets, kind)

    def show_message(self, text: str):
        self._status.showMessage(text, 5000)

    def closeEvent(self, event):
        self.api.close()
        super().closeEvent(event)
