"""
PageBinder — Queued image records and ordering state.

Records are immutable; the store replaces them instead of mutating
them in place.
"""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Union

# In-memory bytes, a file on disk, or an async reader (e.g. an upload).
ByteSource = Union[bytes, Path, Callable[[], Awaitable[bytes]]]

VALID_ROTATIONS = (0, 90, 180, 270)


def file_extension(name: str) -> str:
    """Lowercased text after the last dot; a leading-dot name like ".jpg" counts."""
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def record_identity(name: str, size: int) -> str:
    """Stable id derived from name + size; two files are duplicates iff ids match."""
    return hashlib.sha256(f"{name}\0{size}".encode()).hexdigest()[:16]


@dataclass(frozen=True)
class Candidate:
    """A raw file offered for intake by a file chooser or an upload."""
    name: str
    size: int
    source: ByteSource
    last_modified: int | None = None  # epoch ms


@dataclass(frozen=True)
class ImageRecord:
    identity: str
    name: str
    size: int
    source: ByteSource
    sequence: int
    last_modified: int | None = None
    rotation: int = 0

    @property
    def extension(self) -> str:
        return file_extension(self.name)


class SortKey(str, enum.Enum):
    NATURAL = "natural"
    NAME = "name"
    DATE = "date"


@dataclass(frozen=True)
class OrderState:
    """
    Active ordering for the store.

    ``explicit_ids`` is set by a manual reorder and wins over ``sort_key``
    as long as it still matches the store. Clearing it falls back to
    ``sort_key`` (natural insertion order by default).
    """
    sort_key: SortKey = SortKey.NATURAL
    explicit_ids: tuple[str, ...] | None = None

    @property
    def is_explicit(self) -> bool:
        return self.explicit_ids is not None

    def cleared(self) -> "OrderState":
        return OrderState(sort_key=self.sort_key)

    def with_explicit(self, ids: tuple[str, ...]) -> "OrderState":
        return OrderState(sort_key=self.sort_key, explicit_ids=tuple(ids))
