"""
PageBinder — Safe image decoder.

Turns JPEG/PNG bytes into an RGB RasterSurface no larger than
max_dimension on either side.

Strategies are tried in order, first success wins:
  1. pillow  — Pillow with JPEG draft-mode downscaling and EXIF orientation
  2. pymupdf — PyMuPDF pixmap decode, clamped independently

The platform profile guards input size before any strategy runs; some
mobile decoders crash or hang above 25 MB of input.
"""

from __future__ import annotations

import asyncio
import io
import math
from dataclasses import dataclass
from typing import Protocol

import fitz
from PIL import Image, ImageOps

from app.errors import DecodeFailedError, OversizedForPlatformError
from app.models.raster import RasterSurface
from app.utils.logging import logger, step_timer

MAX_DIMENSION = 4096
MIB = 1024 * 1024
EXIF_ORIENTATION = 0x0112


@dataclass(frozen=True)
class PlatformProfile:
    name: str
    max_input_bytes: int | None = None
    prefer_fast_decode_tier: bool = True


DESKTOP = PlatformProfile(name="desktop")
MOBILE = PlatformProfile(name="mobile", max_input_bytes=25 * MIB)


def platform_profile(name: str, mobile_max_input_mb: float = 25.0) -> PlatformProfile:
    if name == "mobile":
        return PlatformProfile(name="mobile", max_input_bytes=int(mobile_max_input_mb * MIB))
    return DESKTOP


def clamp_dimensions(width: int, height: int, max_dimension: int = MAX_DIMENSION) -> tuple[int, int]:
    """Scale both sides by the same ratio so neither exceeds max_dimension (floored)."""
    if width <= max_dimension and height <= max_dimension:
        return width, height
    ratio = min(max_dimension / width, max_dimension / height)
    return max(1, math.floor(width * ratio)), max(1, math.floor(height * ratio))


def to_rgb(image: Image.Image) -> Image.Image:
    """Flatten to RGB; transparent pixels become white."""
    if image.mode == "RGB":
        return image
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


class DecodeStrategy(Protocol):
    name: str

    def decode(self, data: bytes, max_dimension: int) -> RasterSurface: ...


class PillowDecoder:
    """Fast tier: lets libjpeg decode at reduced scale when the image is oversized."""

    name = "pillow"

    def decode(self, data: bytes, max_dimension: int) -> RasterSurface:
        with Image.open(io.BytesIO(data)) as img:
            target = clamp_dimensions(img.width, img.height, max_dimension)
            if img.getexif().get(EXIF_ORIENTATION, 1) in (5, 6, 7, 8):
                swapped = (target[1], target[0])
            else:
                swapped = target
            if img.format == "JPEG" and target != img.size:
                img.draft("RGB", target)
            img.load()
            frame = to_rgb(ImageOps.exif_transpose(img))
        if frame.size != swapped:
            frame = frame.resize(swapped, Image.Resampling.LANCZOS)
        return RasterSurface(image=frame, decoder=self.name)


class PyMuPDFDecoder:
    """Fallback tier: decodes through MuPDF's own image codecs."""

    name = "pymupdf"

    def decode(self, data: bytes, max_dimension: int) -> RasterSurface:
        pix = fitz.Pixmap(data)
        if pix.alpha:
            pix = fitz.Pixmap(pix, 0)
        if pix.n != 3:
            pix = fitz.Pixmap(fitz.csRGB, pix)

        img = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
        w, h = pix.width, pix.height
        if w > max_dimension or h > max_dimension:
            r = min(max_dimension / w, max_dimension / h)
            img = img.resize(
                (max(1, math.floor(w * r)), max(1, math.floor(h * r))),
                Image.Resampling.LANCZOS,
            )
        return RasterSurface(image=img, decoder=self.name)


DEFAULT_STRATEGIES: tuple[DecodeStrategy, ...] = (PillowDecoder(), PyMuPDFDecoder())


class SafeDecoder:
    """Applies the platform guard, then runs the strategy list in order."""

    def __init__(
        self,
        profile: PlatformProfile = DESKTOP,
        strategies: tuple[DecodeStrategy, ...] = DEFAULT_STRATEGIES,
        max_dimension: int = MAX_DIMENSION,
    ):
        self.profile = profile
        self.max_dimension = max_dimension
        if profile.prefer_fast_decode_tier or len(strategies) < 2:
            self.strategies = tuple(strategies)
        else:
            self.strategies = tuple(strategies[1:])

    def check_size(self, size: int) -> None:
        limit = self.profile.max_input_bytes
        if limit is not None and size > limit:
            raise OversizedForPlatformError(self.profile.name, size / MIB, limit / MIB)

    async def decode(self, data: bytes, name: str = "") -> RasterSurface:
        self.check_size(len(data))

        attempts: list[str] = []
        with step_timer(f"Decode {name}".strip()):
            for strategy in self.strategies:
                try:
                    surface = await asyncio.to_thread(strategy.decode, data, self.max_dimension)
                except Exception as exc:
                    logger.warning("  %s decoder failed for %s: %s", strategy.name, name, exc)
                    attempts.append(f"{strategy.name}: {exc}")
                    continue
                logger.info(
                    "  Decoded %s with %s → %dx%d",
                    name, strategy.name, surface.width, surface.height,
                )
                return surface

        raise DecodeFailedError(attempts)
