"""
Qt-free image I/O utilities.

Decodes user-supplied buffers (including PSD) into Pillow images, encodes
rendered crops and reads image files.  Library errors are translated into
``DecodeError``/``RenderError`` here so callers only deal with the crop
exception hierarchy.
"""

import io
import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError
from psd_tools import PSDImage

from flipr_cropper.config import (
    JPEG_QUALITY_MAX, JPEG_QUALITY_MIN, JPEG_SUBSAMPLING_DEFAULT, JPEG_SUBSAMPLING_MAP,
    OUTPUT_FORMATS, PNG_COMPRESS_LEVEL,
)
from flipr_cropper.exceptions import DecodeError, RenderError

logger = logging.getLogger(__name__)

_PSD_SIGNATURE = b"8BPS"


def _open_psd(data: bytes) -> Image.Image:
    try:
        psd = PSDImage.open(io.BytesIO(data))
        composite = psd.composite()
    except Exception as exc:
        # psd-tools surfaces malformed files as assorted struct/parse errors
        raise DecodeError(f"could not decode PSD: {exc}") from exc
    if composite is None:
        raise DecodeError("PSD has no renderable layers")
    return composite


def decode_image(data: bytes) -> tuple[Image.Image, str]:
    """Decode *data* into a fully loaded image and its source format.

    PSD buffers go through psd-tools, everything else through Pillow.  EXIF
    orientation is applied so width/height match what the user sees.
    Raises ``DecodeError`` for empty, truncated or unsupported buffers.
    """
    if not data:
        raise DecodeError("image buffer is empty")

    try:
        if data[:4] == _PSD_SIGNATURE:
            return _open_psd(data), "PSD"

        img = Image.open(io.BytesIO(data))
        fmt = img.format or ""
        # Image.open is lazy; force the full decode so truncation fails here
        img.load()
        img = ImageOps.exif_transpose(img)
    except DecodeError:
        raise
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"unsupported image data: {exc}") from exc
    except (OSError, ValueError, SyntaxError) as exc:
        raise DecodeError(f"could not decode image: {exc}") from exc

    if img.width <= 0 or img.height <= 0:
        raise DecodeError(f"image has no pixels ({img.width}x{img.height})")

    logger.debug("Decoded %s image %dx%d (%d bytes)", fmt, img.width, img.height, len(data))
    return img, fmt


def pillow_quality(quality: float) -> int:
    """Map a 0-1 canvas-style quality to Pillow's 1-100 scale.

    Values above 1 are taken as already on the 1-100 scale.
    """
    if quality <= 0:
        raise ValueError(f"quality must be positive, got {quality!r}")
    q = quality * 100 if quality <= 1 else quality
    return max(JPEG_QUALITY_MIN, min(int(round(q)), JPEG_QUALITY_MAX))


def normalize_format(fmt: str) -> str:
    """Return the Pillow format name for *fmt* (``"jpg"`` -> ``"JPEG"``)."""
    name = fmt.upper()
    if name == "JPG":
        name = "JPEG"
    if name not in OUTPUT_FORMATS:
        raise ValueError(f"unsupported output format {fmt!r}; expected one of {OUTPUT_FORMATS}")
    return name


def encode_image(
    img: Image.Image,
    fmt: str = "JPEG",
    quality: float = 0.9,
    subsampling: str = JPEG_SUBSAMPLING_DEFAULT,
    optimize: bool = True,
) -> bytes:
    """Encode *img* to bytes in *fmt*.  Raises ``RenderError`` on failure."""
    fmt = normalize_format(fmt)

    buf = io.BytesIO()
    try:
        if fmt == "JPEG":
            img.convert("RGB").save(
                buf, "JPEG",
                quality=pillow_quality(quality),
                optimize=optimize,
                subsampling=JPEG_SUBSAMPLING_MAP[subsampling],
            )
        elif fmt == "WEBP":
            img.save(buf, "WEBP", quality=pillow_quality(quality))
        else:
            img.save(buf, "PNG", compress_level=PNG_COMPRESS_LEVEL)
    except (OSError, ValueError, MemoryError) as exc:
        raise RenderError(f"could not encode {fmt}: {exc}") from exc
    return buf.getvalue()


def read_image_file(path: Path) -> bytes:
    """Read an image file from disk.  Unreadable files raise ``DecodeError``."""
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise DecodeError(f"could not read {path}: {exc}") from exc
