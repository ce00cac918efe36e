"""
Render worker for confirmed crops (Qt-free).

``render_crop`` is submitted to a ``concurrent.futures`` executor by
``CropSession.submit_crop`` and is also called inline by
``CropSession.confirm_crop``.  It must **never** import PyQt6.
"""

import logging

from PIL import Image

from flipr_cropper.config import RESAMPLE_DEFAULT, RESAMPLE_FILTERS
from flipr_cropper.exceptions import RenderError
from flipr_cropper.image_io import encode_image, normalize_format
from flipr_cropper.models import CropRegion, OutputImage

logger = logging.getLogger(__name__)

# Modes Pillow can resample with a real filter; palette/bilevel fall back to NEAREST
_RESAMPLE_MODES = {"RGB", "RGBA", "L", "LA"}


def resample_filter(name: str) -> Image.Resampling:
    """Look up a Pillow resampling filter by name (BILINEAR or better)."""
    key = name.upper()
    if key not in RESAMPLE_FILTERS:
        raise ValueError(f"resample filter must be one of {RESAMPLE_FILTERS}, got {name!r}")
    return Image.Resampling[key]


def render_crop(
    image: Image.Image,
    region: CropRegion,
    output_w: int,
    output_h: int,
    fmt: str = "JPEG",
    quality: float = 0.9,
    resample: str = RESAMPLE_DEFAULT,
) -> OutputImage:
    """Scale *region* of *image* to exactly ``output_w x output_h`` and encode it.

    The region is resampled in a single pass (``Image.resize`` with a
    fractional ``box``), so it is always stretched to the output size, never
    letterboxed or cropped pixel-for-pixel.
    """
    if output_w <= 0 or output_h <= 0:
        raise ValueError(f"output size must be positive, got {output_w}x{output_h}")
    fmt = normalize_format(fmt)
    filt = resample_filter(resample)

    # Pillow rejects boxes that overshoot the image by even a rounding error
    left, upper, right, lower = region.as_box()
    box = (max(0.0, left), max(0.0, upper), min(right, image.width), min(lower, image.height))

    try:
        src = image if image.mode in _RESAMPLE_MODES else image.convert("RGBA")
        resized = src.resize((output_w, output_h), filt, box=box)
    except (OSError, ValueError, MemoryError) as exc:
        raise RenderError(f"could not rasterize crop: {exc}") from exc

    data = encode_image(resized, fmt, quality)
    logger.debug(
        "Rendered region %s -> %dx%d %s (%d bytes)",
        region.rounded(), output_w, output_h, fmt, len(data),
    )
    return OutputImage(data=data, width=output_w, height=output_h, format=fmt, quality=quality)
