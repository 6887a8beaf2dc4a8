"""PageBinder — Clockwise quarter-turn rotation of raster surfaces."""

from __future__ import annotations

from PIL import Image

from app.errors import InvalidRotationError
from app.models.raster import RasterSurface
from app.models.record import VALID_ROTATIONS

# Pillow's ROTATE_* constants turn counter-clockwise.
_CLOCKWISE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def rotated_size(width: int, height: int, rotation: int) -> tuple[int, int]:
    if rotation not in VALID_ROTATIONS:
        raise InvalidRotationError(rotation)
    if rotation in (90, 270):
        return height, width
    return width, height


def next_rotation(rotation: int) -> int:
    return (rotation + 90) % 360


def rotate_surface(surface: RasterSurface, rotation: int) -> RasterSurface:
    """
    Rotate clockwise about the image centre into a canvas sized for the result.

    A rotation of 0 returns the same surface object.
    """
    target = rotated_size(surface.width, surface.height, rotation)
    if rotation == 0:
        return surface

    canvas = Image.new(surface.mode, target)
    canvas.paste(surface.image.transpose(_CLOCKWISE[rotation]), (0, 0))
    return RasterSurface(image=canvas, decoder=surface.decoder)
