"""
PageBinder — HEIC/HEIF → JPEG transcoding.

The transcoder is an optional capability: it is probed once and may be
absent, in which case HEIC records fail individually with
TranscoderUnavailableError while the rest of the batch carries on.
"""

from __future__ import annotations

import asyncio
import io
from typing import Protocol, Union

from PIL import Image, ImageSequence

from app.errors import TranscodeFailedError, TranscoderUnavailableError
from app.models.record import file_extension
from app.utils.logging import logger, step_timer

HEIC_EXTENSIONS = {"heic", "heif"}
DEFAULT_QUALITY = 0.85

TranscodeResult = Union[bytes, list[bytes]]


class Transcoder(Protocol):
    def transcode(self, data: bytes, target_format: str = "jpeg", quality: float = DEFAULT_QUALITY) -> TranscodeResult: ...


def requires_transcoding(name: str) -> bool:
    return file_extension(name) in HEIC_EXTENSIONS


class PillowHeifTranscoder:
    """Transcoder backed by pillow-heif; multi-image containers yield one JPEG per frame."""

    def __init__(self):
        from pillow_heif import register_heif_opener

        register_heif_opener()

    def transcode(self, data: bytes, target_format: str = "jpeg", quality: float = DEFAULT_QUALITY) -> TranscodeResult:
        pil_format = "JPEG" if target_format.lower() in ("jpeg", "jpg") else target_format.upper()
        frames: list[bytes] = []
        with Image.open(io.BytesIO(data)) as img:
            for frame in ImageSequence.Iterator(img):
                buf = io.BytesIO()
                frame.convert("RGB").save(buf, format=pil_format, quality=round(quality * 100))
                frames.append(buf.getvalue())
        return frames[0] if len(frames) == 1 else frames


def probe_transcoder() -> Transcoder | None:
    """Return the default transcoder, or None if pillow-heif is not installed."""
    try:
        return PillowHeifTranscoder()
    except ImportError:
        logger.warning("pillow-heif not installed — HEIC/HEIF conversion unavailable")
        return None


async def transcode_heic(
    data: bytes,
    transcoder: Transcoder | None,
    name: str = "",
    quality: float = DEFAULT_QUALITY,
) -> bytes:
    """Convert HEIC bytes to JPEG bytes; a list result yields its first element."""
    if transcoder is None:
        raise TranscoderUnavailableError()

    with step_timer(f"Transcode HEIC {name}".strip()):
        try:
            result = await asyncio.to_thread(transcoder.transcode, data, "jpeg", quality)
        except Exception as exc:
            raise TranscodeFailedError(name, str(exc) or type(exc).__name__) from exc

    if isinstance(result, list):
        if not result:
            raise TranscodeFailedError(name, "transcoder returned no images")
        if len(result) > 1:
            logger.info("  %s holds %d images; using the first", name, len(result))
        result = result[0]
    if not isinstance(result, (bytes, bytearray)) or not result:
        raise TranscodeFailedError(name, "transcoder returned no data")
    return bytes(result)
