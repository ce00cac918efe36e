"""
Data models and crop-geometry utilities.

SourceImage, ViewportState, CropRegion and OutputImage are the data
structures shared by the crop engine, the render worker and the UI.  The
helper functions map a zoom/pan viewport onto a fixed-aspect region in
source pixels and clamp it to the image bounds.  All geometry here is pure:
identical inputs always give an identical region.
"""

import math
import time
from dataclasses import dataclass, field

from PIL import Image

from flipr_cropper.config import ASPECT_TOLERANCE, FORMAT_EXTENSION, FORMAT_MIME


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class SourceImage:
    """Decoded source raster, immutable for the lifetime of a crop session."""
    image: Image.Image
    width: int
    height: int
    format: str = ""


@dataclass(frozen=True)
class CropRegion:
    """Crop rectangle in source-image pixel coordinates (floats)."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def aspect(self) -> float:
        return self.width / self.height if self.height else 0.0

    def as_box(self) -> tuple[float, float, float, float]:
        """Return ``(left, upper, right, lower)`` for Pillow's ``box`` arguments."""
        return (self.x, self.y, self.right, self.bottom)

    def rounded(self) -> tuple[int, int, int, int]:
        """Integer ``(x, y, w, h)`` for display labels."""
        return (int(round(self.x)), int(round(self.y)),
                int(round(self.width)), int(round(self.height)))


@dataclass
class ViewportState:
    """Mutable zoom/pan state of one crop session plus the derived region."""
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    region: CropRegion | None = None


@dataclass(frozen=True)
class OutputImage:
    """Encoded, fixed-size result of a confirmed crop."""
    data: bytes
    width: int
    height: int
    format: str
    quality: float
    created_ms: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def mime_type(self) -> str:
        return FORMAT_MIME.get(self.format, "application/octet-stream")

    @property
    def filename(self) -> str:
        """Upload filename, e.g. ``cropped-1718000000000.jpg``."""
        ext = FORMAT_EXTENSION.get(self.format, "")
        return f"cropped-{self.created_ms}{ext}"

    @property
    def size_bytes(self) -> int:
        return len(self.data)


# =============================================================================
# Crop math utilities
# =============================================================================
def calculate_max_crop(img_w: int, img_h: int, aspect: float) -> tuple[float, float]:
    """Largest ``(w, h)`` with ``w / h == aspect`` that fits inside the image."""
    if aspect <= 0 or not math.isfinite(aspect):
        raise ValueError(f"aspect ratio must be a positive number, got {aspect!r}")
    # Try full width
    crop_w = float(img_w)
    crop_h = crop_w / aspect
    if crop_h <= img_h:
        return crop_w, crop_h
    # Full height
    crop_h = float(img_h)
    return crop_h * aspect, crop_h


def clamp_zoom(zoom: float, min_zoom: float, max_zoom: float) -> float:
    """Clamp *zoom* into ``[min_zoom, max_zoom]``; non-positive zoom is a caller bug."""
    if not isinstance(zoom, (int, float)) or not math.isfinite(zoom) or zoom <= 0:
        raise ValueError(f"zoom must be a positive finite number, got {zoom!r}")
    return max(min_zoom, min(float(zoom), max_zoom))


def restrict_pan(
    img_w: int, img_h: int, aspect: float, zoom: float, pan: tuple[float, float],
) -> tuple[float, float]:
    """Clamp *pan* so the zoomed crop window stays inside the image.

    Pan is the offset of the window centre from the image centre, in
    source pixels.
    """
    pan_x, pan_y = pan
    if not (math.isfinite(pan_x) and math.isfinite(pan_y)):
        raise ValueError(f"pan must be finite, got {pan!r}")
    base_w, base_h = calculate_max_crop(img_w, img_h, aspect)
    max_x = max(0.0, (img_w - base_w / zoom) / 2)
    max_y = max(0.0, (img_h - base_h / zoom) / 2)
    return max(-max_x, min(pan_x, max_x)), max(-max_y, min(pan_y, max_y))


def clamp_region(region: CropRegion, img_w: int, img_h: int) -> CropRegion:
    """Move *region* back inside the image, shrinking it (aspect kept) if too large."""
    w, h = region.width, region.height
    if w > img_w or h > img_h:
        scale = min(img_w / w, img_h / h)
        w, h = w * scale, h * scale
    x = max(0.0, min(region.x, img_w - w))
    y = max(0.0, min(region.y, img_h - h))
    return CropRegion(x, y, w, h)


def region_for_viewport(
    img_w: int, img_h: int, aspect: float, zoom: float, pan: tuple[float, float] = (0.0, 0.0),
) -> CropRegion:
    """Map a zoom/pan viewport to the crop region it shows.

    At zoom 1 the region is the largest centred rectangle of *aspect*; at
    zoom ``z`` both sides are divided by ``z``.  The window is centred on
    image centre + pan and clamped to the image edges.
    """
    base_w, base_h = calculate_max_crop(img_w, img_h, aspect)
    w = base_w / zoom
    h = base_h / zoom
    pan_x, pan_y = restrict_pan(img_w, img_h, aspect, zoom, pan)
    x = img_w / 2 + pan_x - w / 2
    y = img_h / 2 + pan_y - h / 2
    return clamp_region(CropRegion(x, y, w, h), img_w, img_h)


def check_aspect(region: CropRegion, aspect: float) -> None:
    """Raise ValueError if *region* does not have the target aspect ratio."""
    if region.width <= 0 or region.height <= 0:
        raise ValueError(f"crop region has no area: {region!r}")
    if not math.isclose(region.aspect, aspect, rel_tol=ASPECT_TOLERANCE):
        raise ValueError(
            f"crop region aspect {region.aspect:.6f} does not match target {aspect:.6f}"
        )
