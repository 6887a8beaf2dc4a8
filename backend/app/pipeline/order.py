"""
PageBinder — Processing order resolution.

An explicit (manual) order wins when it still names exactly the records
in the store. Anything else falls back to the active sort key:
  - natural: insertion order
  - name:    case-insensitive, Unicode Collation Algorithm (so "ё" sits
             between "е" and "ж", "É" between "a" and "z")
  - date:    last-modified ascending, missing timestamps count as 0
Ties always break on insertion sequence, so every ordering is total.
"""

from __future__ import annotations

from functools import lru_cache

from pyuca import Collator

from app.models.record import ImageRecord, OrderState, SortKey
from app.pipeline.store import ImageStore
from app.utils.logging import logger


class InconsistentOrderError(Exception):
    """Explicit order references identities the store does not hold."""


@lru_cache(maxsize=1)
def _collator() -> Collator:
    # Loads the full DUCET table; built once per process.
    return Collator()


def _name_key(record: ImageRecord) -> tuple[tuple[int, ...], int]:
    return _collator().sort_key(record.name.casefold()), record.sequence


def _date_key(record: ImageRecord) -> tuple[int, int]:
    return record.last_modified or 0, record.sequence


def sort_records(records: list[ImageRecord], sort_key: SortKey) -> list[ImageRecord]:
    if sort_key == SortKey.NAME:
        return sorted(records, key=_name_key)
    if sort_key == SortKey.DATE:
        return sorted(records, key=_date_key)
    return sorted(records, key=lambda r: r.sequence)


def _apply_explicit(store: ImageStore, ids: tuple[str, ...]) -> list[ImageRecord]:
    by_id = {r.identity: r for r in store.records}
    if len(set(ids)) != len(ids):
        raise InconsistentOrderError("explicit order repeats an identity")
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise InconsistentOrderError(f"unknown identities: {', '.join(missing)}")
    return [by_id[i] for i in ids]


def resolve(store: ImageStore, order: OrderState | None = None) -> list[ImageRecord]:
    """Return the store's records in the order they should become pages."""
    order = order or store.order
    records = list(store.records)

    if order.explicit_ids is not None and len(order.explicit_ids) == len(records):
        try:
            return _apply_explicit(store, order.explicit_ids)
        except InconsistentOrderError as exc:
            logger.warning("  Ignoring manual order (%s); using %s order", exc, order.sort_key.value)

    return sort_records(records, order.sort_key)
