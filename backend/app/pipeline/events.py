"""
PageBinder — Progress events.

The orchestrator publishes; whoever renders progress subscribes. A
subscriber that raises is logged and skipped so presentation bugs never
break a conversion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

from app.models.job import RecordStatus
from app.utils.logging import logger


@dataclass(frozen=True)
class ProgressEvent:
    name: str
    stage: str
    percent: int


@dataclass(frozen=True)
class OutcomeEvent:
    name: str
    status: RecordStatus
    reason: str = ""


Event = Union[ProgressEvent, OutcomeEvent]
Subscriber = Callable[[Event], None]


def batch_percent(done: int, total: int) -> int:
    """round(100 * done / total) with halves rounded up."""
    if total <= 0:
        return 0
    return (200 * done + total) // (2 * total)


class ProgressBus:
    def __init__(self):
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: Event) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Progress subscriber %r failed", callback)
