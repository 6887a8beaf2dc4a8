"""
PageBinder — Image record store.

An immutable arena of queued images keyed by identity. Every mutation
returns a new store, so callers pass the store explicitly instead of
sharing a global queue.

Invariants:
  - identities are unique (name + size)
  - add/remove clear any explicit order; rotate does not
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Iterator

from app.errors import InvalidRotationError, RecordNotFoundError
from app.models.record import (
    VALID_ROTATIONS,
    Candidate,
    ImageRecord,
    OrderState,
    SortKey,
    record_identity,
)


@dataclass(frozen=True)
class ImageStore:
    records: tuple[ImageRecord, ...] = ()
    order: OrderState = OrderState()
    next_sequence: int = 0

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ImageRecord]:
        return iter(self.records)

    def __contains__(self, identity: object) -> bool:
        return any(r.identity == identity for r in self.records)

    @property
    def identities(self) -> tuple[str, ...]:
        return tuple(r.identity for r in self.records)

    def get(self, identity: str) -> ImageRecord:
        for record in self.records:
            if record.identity == identity:
                return record
        raise RecordNotFoundError(identity)

    def find_by_name(self, name: str) -> list[ImageRecord]:
        return [r for r in self.records if r.name == name]

    def add(self, candidate: Candidate) -> "ImageStore":
        record = ImageRecord(
            identity=record_identity(candidate.name, candidate.size),
            name=candidate.name,
            size=candidate.size,
            source=candidate.source,
            sequence=self.next_sequence,
            last_modified=candidate.last_modified,
        )
        return replace(
            self,
            records=self.records + (record,),
            order=self.order.cleared(),
            next_sequence=self.next_sequence + 1,
        )

    def remove(self, identity: str) -> "ImageStore":
        self.get(identity)
        return replace(
            self,
            records=tuple(r for r in self.records if r.identity != identity),
            order=self.order.cleared(),
        )

    def rotate(self, identity: str, rotation: int | None = None) -> "ImageStore":
        """Set a record's rotation; without ``rotation`` advance it by 90°."""
        current = self.get(identity)
        if rotation is None:
            rotation = (current.rotation + 90) % 360
        if rotation not in VALID_ROTATIONS:
            raise InvalidRotationError(rotation)
        updated = replace(current, rotation=rotation)
        return replace(
            self,
            records=tuple(updated if r.identity == identity else r for r in self.records),
        )

    def reorder(self, identities: Iterable[str]) -> "ImageStore":
        """Record a manual order; the resolver decides whether it still applies."""
        return replace(self, order=self.order.with_explicit(tuple(identities)))

    def with_sort_key(self, sort_key: SortKey) -> "ImageStore":
        return replace(self, order=OrderState(sort_key=SortKey(sort_key)))
