"""
PageBinder — Byte source reading.

Records keep a reference to their bytes rather than a copy; the bytes
are read when the record is processed.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from app.errors import ReadFailedError
from app.models.record import ByteSource


async def read_source(source: ByteSource, name: str = "") -> bytes:
    """Read all bytes of a record's source, raising ReadFailedError on any read problem."""
    try:
        if isinstance(source, (bytes, bytearray, memoryview)):
            return bytes(source)
        if isinstance(source, Path):
            return await asyncio.to_thread(source.read_bytes)
        data = await source()
    except Exception as exc:
        raise ReadFailedError(name, str(exc)) from exc
    if not isinstance(data, (bytes, bytearray)):
        raise ReadFailedError(name, f"reader returned {type(data).__name__}")
    return bytes(data)
