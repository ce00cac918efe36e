"""
Modal crop dialog.

Wraps a ``CropViewportWidget`` with a zoom slider and Cancel / Crop & Save
buttons.  On success ``output`` holds the encoded ``OutputImage``; closing
or cancelling the dialog always cancels the crop session.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor

from PyQt6.QtWidgets import (
    QApplication, QDialog, QHBoxLayout, QLabel, QMessageBox, QPushButton, QSlider, QVBoxLayout,
)
from PyQt6.QtCore import Qt

from flipr_cropper.config import ZOOM_STEP
from flipr_cropper.crop_widget import CropViewportWidget, ImageLoaderThread
from flipr_cropper.engine import CropSession
from flipr_cropper.exceptions import CropError, CropNotReadyError, SessionCancelledError
from flipr_cropper.models import CropRegion, OutputImage, SourceImage

logger = logging.getLogger(__name__)


class CropDialog(QDialog):
    """Crop a user-selected image to a preset's aspect ratio and output size."""

    def __init__(self, data: bytes, preset: dict, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Crop Image")
        self.setModal(True)
        self.resize(900, 700)

        self.output: OutputImage | None = None
        self._preset = preset
        self._session = CropSession.from_preset(preset)
        self._steps = int(round(1 / ZOOM_STEP))

        self._build_ui()

        self._loader = ImageLoaderThread(self._session, data, self)
        self._loader.loaded.connect(self._on_loaded)
        self._loader.error.connect(self._on_load_error)
        self._viewport.set_loading(True)
        self._loader.start()

    def _build_ui(self):
        layout = QVBoxLayout(self)

        self._viewport = CropViewportWidget(self._session)
        self._viewport.viewport_changed.connect(self._on_viewport_changed)
        self._viewport.zoom_changed.connect(self._on_zoom_changed)
        layout.addWidget(self._viewport, stretch=1)

        zoom_row = QHBoxLayout()
        zoom_row.addWidget(QLabel("Zoom:"))
        self._zoom_slider = QSlider(Qt.Orientation.Horizontal)
        self._zoom_slider.setRange(
            int(round(self._session.min_zoom * self._steps)),
            int(round(self._session.max_zoom * self._steps)),
        )
        self._zoom_slider.setEnabled(False)
        self._zoom_slider.valueChanged.connect(self._on_slider_moved)
        zoom_row.addWidget(self._zoom_slider, stretch=1)
        self._info_label = QLabel("")
        zoom_row.addWidget(self._info_label)
        layout.addLayout(zoom_row)

        buttons = QHBoxLayout()
        buttons.addStretch(1)
        cancel_btn = QPushButton("Cancel")
        cancel_btn.clicked.connect(self.reject)
        buttons.addWidget(cancel_btn)
        self._crop_btn = QPushButton("Crop && Save")
        self._crop_btn.setDefault(True)
        self._crop_btn.clicked.connect(self._handle_crop)
        buttons.addWidget(self._crop_btn)
        layout.addLayout(buttons)

    # --- Loader callbacks ---

    def _on_loaded(self, source: SourceImage):
        self._viewport.set_source(source)
        self._zoom_slider.setEnabled(True)

    def _on_load_error(self, error: str):
        self._viewport.set_loading(False)
        QMessageBox.warning(self, "Unsupported Image", f"Could not open the selected image:\n{error}")
        self.reject()

    # --- Viewport ---

    def _on_slider_moved(self, value: int):
        self._viewport.set_zoom(value / self._steps)

    def _on_zoom_changed(self, zoom: float):
        value = int(round(zoom * self._steps))
        if self._zoom_slider.value() != value:
            self._zoom_slider.blockSignals(True)
            self._zoom_slider.setValue(value)
            self._zoom_slider.blockSignals(False)

    def _on_viewport_changed(self, region: CropRegion):
        _, _, w, h = region.rounded()
        p = self._preset
        self._info_label.setText(f"{w}×{h} → {p['output_w']}×{p['output_h']}")

    # --- Confirm ---

    def _handle_crop(self):
        if self._session.region is None:
            QMessageBox.information(
                self, "Crop Image", "Please wait for the image to load and adjust the crop area",
            )
            return

        self._crop_btn.setEnabled(False)
        try:
            with ThreadPoolExecutor(max_workers=1) as executor:
                pending = self._session.submit_crop(executor)
                while not pending.done():
                    QApplication.processEvents()
                    time.sleep(0.02)
                self.output = pending.result()
        except CropNotReadyError as e:
            self._crop_btn.setEnabled(True)
            QMessageBox.information(self, "Crop Image", str(e))
            return
        except SessionCancelledError:
            return
        except CropError as e:
            logger.error("Error cropping image: %s", e)
            QMessageBox.critical(self, "Error", "Error cropping image. Please try again.")
            self.reject()
            return

        logger.info("Cropped image ready: %s (%d bytes)", self.output.filename, self.output.size_bytes)
        self.accept()

    def done(self, result: int):
        """Every close path ends the session."""
        if self._loader.isRunning():
            self._loader.wait()
        self._session.cancel_session()
        super().done(result)
