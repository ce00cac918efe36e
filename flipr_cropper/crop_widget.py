"""
Interactive crop viewport and Qt image helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qpixmap``, the background ``ImageLoaderThread``, and the
``CropViewportWidget`` that turns drag/wheel input into
``CropSession.update_viewport`` calls.

The crop window is fixed in the middle of the widget; dragging moves the
image under it and zooming shrinks the region it covers, like a
phone-style cropper.
"""

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QRectF, QPointF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPixmap, QColor, QPen, QImage,
    QMouseEvent, QPaintEvent, QResizeEvent, QWheelEvent,
)

from flipr_cropper.config import ZOOM_STEP
from flipr_cropper.engine import CropSession
from flipr_cropper.exceptions import CropError
from flipr_cropper.models import CropRegion, SourceImage

# Fraction of the widget the crop window may occupy
_WINDOW_FILL = 0.9


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgb = pil_img.convert("RGBA")
    data = img_rgb.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgb.width, img_rgb.height, QImage.Format.Format_RGBA8888)
    return QPixmap.fromImage(qimg)


# =============================================================================
# Background image loader
# =============================================================================

class ImageLoaderThread(QThread):
    """Background thread that decodes the source and starts the session."""
    loaded = pyqtSignal(object)  # SourceImage
    error = pyqtSignal(str)

    def __init__(self, session: CropSession, data: bytes, parent=None):
        super().__init__(parent)
        self._session = session
        self._data = data

    def run(self):
        try:
            source = self._session.begin_session(self._data)
            self.loaded.emit(source)
        except CropError as e:
            self.error.emit(str(e))


# =============================================================================
# Crop viewport widget
# =============================================================================

class CropViewportWidget(QWidget):
    """Shows the source image under a fixed-aspect crop window with drag/zoom."""

    viewport_changed = pyqtSignal(object)  # CropRegion
    zoom_changed = pyqtSignal(float)

    def __init__(self, session: CropSession, parent=None):
        super().__init__(parent)
        self.setMinimumSize(480, 360)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setCursor(Qt.CursorShape.OpenHandCursor)

        self._session = session
        self._pixmap: QPixmap | None = None
        self._loading = False

        self._dragging = False
        self._drag_start = QPointF()
        self._pan_start = (0.0, 0.0)

    def set_loading(self, loading: bool):
        """Show/hide loading indicator."""
        self._loading = loading
        self.update()

    def set_source(self, source: SourceImage):
        """Display a freshly decoded source and publish the initial region."""
        self._loading = False
        self._pixmap = pil_to_qpixmap(source.image)
        self._apply(self._session.min_zoom, (0.0, 0.0))

    def clear(self):
        self._pixmap = None
        self.update()

    def set_zoom(self, zoom: float):
        """Zoom around the current pan (slider input)."""
        if not self._pixmap:
            return
        vp = self._session.viewport
        self._apply(zoom, (vp.pan_x, vp.pan_y))

    # --- Geometry ---

    def _window_rect(self) -> QRectF:
        """Crop window in widget coordinates: largest centred box of the target aspect."""
        aspect = self._session.aspect_ratio
        avail_w = self.width() * _WINDOW_FILL
        avail_h = self.height() * _WINDOW_FILL
        w = avail_w
        h = w / aspect
        if h > avail_h:
            h = avail_h
            w = h * aspect
        return QRectF((self.width() - w) / 2, (self.height() - h) / 2, w, h)

    def _scale(self) -> float:
        """Display pixels per source pixel at the current region."""
        region = self._session.region
        if region is None or region.width == 0:
            return 0.0
        return self._window_rect().width() / region.width

    def _apply(self, zoom: float, pan: tuple[float, float]):
        region = self._session.update_viewport(zoom, pan)
        self.viewport_changed.emit(region)
        self.zoom_changed.emit(self._session.viewport.zoom)
        self.update()

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        region: CropRegion | None = self._session.region
        if not self._pixmap or region is None:
            painter.setPen(QColor(128, 128, 128))
            msg = "Loading image…" if self._loading else "No image loaded"
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        window = self._window_rect()
        scale = self._scale()
        dest = QRectF(
            window.left() - region.x * scale,
            window.top() - region.y * scale,
            self._pixmap.width() * scale,
            self._pixmap.height() * scale,
        )
        painter.drawPixmap(dest, self._pixmap, QRectF(self._pixmap.rect()))

        # Dim everything outside the crop window
        dim = QColor(0, 0, 0, 140)
        full = QRectF(self.rect())
        painter.fillRect(QRectF(full.left(), full.top(), full.width(), window.top()), dim)
        painter.fillRect(QRectF(full.left(), window.bottom(), full.width(), full.bottom() - window.bottom()), dim)
        painter.fillRect(QRectF(full.left(), window.top(), window.left(), window.height()), dim)
        painter.fillRect(QRectF(window.right(), window.top(), full.right() - window.right(), window.height()), dim)

        painter.setPen(QPen(QColor(255, 255, 255), 2))
        painter.drawRect(window)

        # Rule-of-thirds lines
        painter.setPen(QPen(QColor(255, 255, 255, 80), 1, Qt.PenStyle.DashLine))
        for i in range(1, 3):
            x = window.left() + window.width() * i / 3
            painter.drawLine(QPointF(x, window.top()), QPointF(x, window.bottom()))
            y = window.top() + window.height() * i / 3
            painter.drawLine(QPointF(window.left(), y), QPointF(window.right(), y))

        # Region size label
        painter.setPen(QColor(255, 255, 255))
        _, _, rw, rh = region.rounded()
        painter.drawText(
            window.adjusted(0, -20, 0, 0).toRect(),
            Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
            f"{rw} × {rh}",
        )
        painter.end()

    def resizeEvent(self, event: QResizeEvent):
        self.update()
        super().resizeEvent(event)

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self._pixmap:
            return
        vp = self._session.viewport
        self._dragging = True
        self._drag_start = event.position()
        self._pan_start = (vp.pan_x, vp.pan_y)
        self.setCursor(Qt.CursorShape.ClosedHandCursor)

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self._dragging or not self._pixmap:
            return
        scale = self._scale()
        if scale == 0:
            return
        delta = event.position() - self._drag_start
        # Dragging the image right moves the window left over the source
        pan = (self._pan_start[0] - delta.x() / scale, self._pan_start[1] - delta.y() / scale)
        self._apply(self._session.viewport.zoom, pan)

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self._dragging = False
            self.setCursor(Qt.CursorShape.OpenHandCursor)

    def wheelEvent(self, event: QWheelEvent):
        if not self._pixmap:
            return
        steps = event.angleDelta().y() / 120
        if steps:
            self.set_zoom(self._session.viewport.zoom + steps * ZOOM_STEP)
