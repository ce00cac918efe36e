"""
Crop presets persistence: load, save, and validate preset configuration.

Each call site that crops an image (a project card, a client testimonial)
has a preset naming its aspect ratio, output size and encoding.  Runtime
presets are stored in a JSON file in the user's config directory (provided
by ``config.config_dir()``).  On first launch (or if the file is
missing/corrupt), the file is created from DEFAULT_PRESETS.

The on-disk format uses a versioned envelope::

    {"version": 1, "presets": [ ... ]}
"""

import json
import logging
from copy import deepcopy
from math import gcd
from pathlib import Path

from flipr_cropper.config import DEFAULT_PRESETS, OUTPUT_FORMATS, config_dir

logger = logging.getLogger(__name__)

_PRESETS_FILENAME = "presets.json"
_FORMAT_VERSION = 1

_REQUIRED_KEYS = {"name", "ratio_w", "ratio_h", "output_w", "output_h", "format", "quality"}
_INT_KEYS = ("ratio_w", "ratio_h", "output_w", "output_h")


# =============================================================================
# Aspect-ratio helpers
# =============================================================================
def normalize_ratio(w: int, h: int) -> tuple[int, int]:
    """Reduce ratio to simplest form via GCD. (450, 350) → (9, 7)"""
    g = gcd(w, h)
    return w // g, h // g


def aspect_key(w: int, h: int) -> str:
    """Normalized string key for a ratio. (450, 350) → '9:7'"""
    nw, nh = normalize_ratio(w, h)
    return f"{nw}:{nh}"


def _presets_path() -> Path:
    """Return the full path to presets.json."""
    return config_dir() / _PRESETS_FILENAME


# =============================================================================
# Validation
# =============================================================================
def validate_presets(data: object) -> list[str]:
    """
    Validate a presets data structure.

    Returns a list of error strings (empty means valid).
    """
    errors: list[str] = []

    if not isinstance(data, list):
        errors.append("Presets data must be a list")
        return errors

    names_seen: set[str] = set()

    for i, preset in enumerate(data):
        prefix = f"Preset #{i + 1}"

        if not isinstance(preset, dict):
            errors.append(f"{prefix}: must be a dict")
            continue

        missing = _REQUIRED_KEYS - preset.keys()
        if missing:
            errors.append(f"{prefix}: missing keys: {', '.join(sorted(missing))}")
            continue

        name = preset.get("name", "")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"{prefix}: name must be a non-empty string")
        elif name in names_seen:
            errors.append(f"{prefix}: duplicate name '{name}'")
        else:
            names_seen.add(name)

        for key in _INT_KEYS:
            val = preset.get(key)
            # bool is an int subclass; reject it explicitly
            if not isinstance(val, int) or isinstance(val, bool) or val <= 0:
                errors.append(f"{prefix}: {key} must be a positive integer, got {val!r}")

        fmt = preset.get("format")
        if not isinstance(fmt, str) or fmt.upper() not in OUTPUT_FORMATS:
            errors.append(f"{prefix}: format must be one of {', '.join(OUTPUT_FORMATS)}, got {fmt!r}")

        quality = preset.get("quality")
        if (not isinstance(quality, (int, float)) or isinstance(quality, bool)
                or not 0 < quality <= 1):
            errors.append(f"{prefix}: quality must be in (0, 1], got {quality!r}")

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def load_presets() -> list[dict]:
    """
    Load presets from presets.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _presets_path()

    if not path.exists():
        logger.info("presets.json not found — creating with defaults at %s", path)
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read presets.json (%s) — restoring defaults", exc)
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION or "presets" not in raw:
        logger.warning("presets.json missing version envelope — restoring defaults")
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    data = raw["presets"]
    errors = validate_presets(data)
    if errors:
        logger.warning(
            "presets.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    return data


def save_presets(presets: list[dict]) -> None:
    """
    Validate and write presets to presets.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    errors = validate_presets(presets)
    if errors:
        raise ValueError("Invalid presets data:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "presets": presets}
    path = _presets_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved %d preset(s) to %s", len(presets), path)


def get_preset(presets: list[dict], name: str) -> dict:
    """Return the preset called *name*.  Raises KeyError if there is none."""
    for preset in presets:
        if preset["name"] == name:
            return preset
    raise KeyError(f"no crop preset named {name!r}")


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_PRESETS to the given path in versioned envelope."""
    try:
        envelope = {"version": _FORMAT_VERSION, "presets": deepcopy(DEFAULT_PRESETS)}
        path.write_text(
            json.dumps(envelope, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as exc:
        logger.error("Could not write default presets to %s: %s", path, exc)
