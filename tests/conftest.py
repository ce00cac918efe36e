"""
Shared pytest fixtures.

Images are generated in memory with Pillow so no binary fixtures are
checked in.  The config directory is redirected to ``tmp_path`` for any
test touching presets.json.
"""

import io

import pytest
from PIL import Image

from flipr_cropper.engine import CropSession


def make_image_bytes(width: int, height: int, fmt: str = "PNG", mode: str = "RGB",
                     color=(200, 120, 40), **save_kwargs) -> bytes:
    """Encode a solid-colour image of the given size."""
    img = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    img.save(buf, fmt, **save_kwargs)
    return buf.getvalue()


def decoded_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


@pytest.fixture
def landscape_png():
    """1600×1200 PNG, the reference source from the crop scenarios."""
    return make_image_bytes(1600, 1200)


@pytest.fixture
def split_png():
    """400×300 PNG: left half red, right half blue."""
    img = Image.new("RGB", (400, 300), (255, 0, 0))
    img.paste((0, 0, 255), (200, 0, 400, 300))
    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture
def session():
    """Session with the admin panel's 450:350 → 450×350 JPEG settings."""
    return CropSession(aspect_ratio=450 / 350)


@pytest.fixture
def active_session(session, landscape_png):
    session.begin_session(landscape_png)
    return session


@pytest.fixture
def temp_config_dir(tmp_path, monkeypatch):
    """Point presets persistence at a fresh temporary directory."""
    monkeypatch.setattr("flipr_cropper.presets.config_dir", lambda: tmp_path)
    return tmp_path
