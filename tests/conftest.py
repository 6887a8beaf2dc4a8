"""Shared test configuration and fixtures for PageBinder test suite."""

import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# Add backend to Python path so imports work
backend_dir = str(Path(__file__).parent.parent / "backend")
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)


def image_bytes(width: int, height: int, fmt: str = "JPEG", color=(200, 40, 40), mode: str = "RGB", exif=None) -> bytes:
    """Encode a solid-colour image in memory."""
    img = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    kwargs = {"exif": exif} if exif is not None else {}
    img.save(buf, format=fmt, **kwargs)
    return buf.getvalue()


@pytest.fixture(scope="session")
def project_root():
    return Path(__file__).parent.parent


@pytest.fixture
def make_image():
    return image_bytes


@pytest.fixture
def jpeg_bytes():
    return image_bytes(64, 48, "JPEG")


@pytest.fixture
def png_bytes():
    return image_bytes(30, 60, "PNG", color=(10, 120, 200, 128), mode="RGBA")
