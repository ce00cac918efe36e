"""
Application constants and configuration.

DEFAULT_PRESETS provides the built-in crop presets. Runtime presets are
loaded from presets.json via the presets module. All other constants control
the crop viewport, output encoding, and the upload endpoint.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "flipr-cropper"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory


# =============================================================================
# DEFAULT PRESETS — Built-in fallback when presets.json is missing or corrupt
# =============================================================================
DEFAULT_PRESETS = [
    {
        "name": "project",
        "ratio_w": 450,
        "ratio_h": 350,
        "output_w": 450,
        "output_h": 350,
        "format": "JPEG",
        "quality": 0.9,
    },
    {
        "name": "client",
        "ratio_w": 450,
        "ratio_h": 350,
        "output_w": 450,
        "output_h": 350,
        "format": "JPEG",
        "quality": 0.9,
    },
]

# Crop window shape and output size used when no preset is given
DEFAULT_ASPECT_RATIO = 450 / 350
DEFAULT_OUTPUT_W = 450
DEFAULT_OUTPUT_H = 350

# Relative tolerance when checking a region against the target aspect ratio
ASPECT_TOLERANCE = 1e-6

# Zoom slider range
ZOOM_MIN = 1.0
ZOOM_MAX = 3.0
ZOOM_STEP = 0.1

# Output format options (Pillow format names)
OUTPUT_FORMATS = ["JPEG", "PNG", "WEBP"]
OUTPUT_FORMAT_DEFAULT = "JPEG"

FORMAT_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}
FORMAT_EXTENSION = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "WEBP": ".webp",
}

# Quality is expressed as a 0-1 float, like canvas.toBlob()
QUALITY_DEFAULT = 0.9
JPEG_QUALITY_MIN = 1
JPEG_QUALITY_MAX = 100

JPEG_SUBSAMPLING_DEFAULT = "4:2:0"
# Map subsampling labels to Pillow integer values
JPEG_SUBSAMPLING_MAP = {"4:4:4": 0, "4:2:2": 1, "4:2:0": 2}

# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 9

# Resampling filter for the render pass; BILINEAR is the lowest allowed
RESAMPLE_DEFAULT = "LANCZOS"
RESAMPLE_FILTERS = ["BILINEAR", "BICUBIC", "LANCZOS"]

# Supported source image extensions for the file picker
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff", ".tif", ".webp", ".psd"}

# =============================================================================
# UPLOAD ENDPOINT
# =============================================================================
API_BASE_URL = os.environ.get("FLIPR_API_URL", "http://localhost:5001").rstrip("/")
REQUEST_TIMEOUT = int(os.environ.get("FLIPR_REQUEST_TIMEOUT", "30"))

# Limits enforced by the upload endpoint
UPLOAD_MAX_BYTES = 5 * 1024 * 1024
UPLOAD_ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}
UPLOAD_ALLOWED_MIME = {"image/jpeg", "image/png", "image/gif", "image/webp"}

LOG_LEVEL = os.environ.get("FLIPR_LOG_LEVEL", "INFO").upper()
