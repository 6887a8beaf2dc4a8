"""
PageBinder — Batch result and pipeline output contracts.

Every conversion returns a BatchResult with full traceability:
per-image outcomes, step timings, and artifact metadata.
"""

from __future__ import annotations

import enum
from typing import Literal

from pydantic import BaseModel, Field

from app.models.record import SortKey


class BatchState(str, enum.Enum):
    IDLE = "IDLE"
    PREPARING = "PREPARING"
    PROCESSING = "PROCESSING"
    FINALIZING = "FINALIZING"
    DONE = "DONE"
    ABORTED = "ABORTED"


class RecordStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class ConversionOptions(BaseModel):
    """Settings chosen by the user for one conversion."""

    orientation: Literal["portrait", "landscape"] = "portrait"
    sort_key: SortKey = SortKey.NATURAL


class ProcessingOutcome(BaseModel):
    identity: str
    name: str
    status: RecordStatus = RecordStatus.PENDING
    stage: str = ""
    reason: str = ""
    error_code: str = ""
    page_number: int | None = None  # 1-based page in the output, if any


class StepTiming(BaseModel):
    step: str
    duration_ms: int
    status: str = "ok"  # ok | skipped | failed
    detail: str = ""


class ArtifactMetadata(BaseModel):
    filename: str
    size_bytes: int
    pages: int = 0
    content_hash: str = ""  # SHA-256 of final PDF


class IntakeRejection(BaseModel):
    name: str
    error_code: str
    message: str


class BatchResult(BaseModel):
    """Complete output contract for every conversion batch."""

    batch_id: str
    state: BatchState
    orientation: str = "portrait"
    artifact: ArtifactMetadata | None = None
    outcomes: list[ProcessingOutcome] = Field(default_factory=list)
    timings: list[StepTiming] = Field(default_factory=list)
    rejected: list[IntakeRejection] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[ProcessingOutcome]:
        return [o for o in self.outcomes if o.status == RecordStatus.SUCCESS]

    @property
    def failed(self) -> list[ProcessingOutcome]:
        return [o for o in self.outcomes if o.status == RecordStatus.FAILED]
