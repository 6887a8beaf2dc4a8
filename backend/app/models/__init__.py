"""PageBinder data models — typed contracts for the entire pipeline."""

from app.models.record import (
    VALID_ROTATIONS,
    Candidate,
    ImageRecord,
    OrderState,
    SortKey,
    record_identity,
)
from app.models.job import (
    ArtifactMetadata,
    BatchResult,
    BatchState,
    ConversionOptions,
    IntakeRejection,
    ProcessingOutcome,
    RecordStatus,
    StepTiming,
)
from app.models.raster import PageGeometry, RasterSurface

__all__ = [
    "VALID_ROTATIONS",
    "Candidate",
    "ImageRecord",
    "OrderState",
    "SortKey",
    "record_identity",
    "ArtifactMetadata",
    "BatchResult",
    "BatchState",
    "ConversionOptions",
    "IntakeRejection",
    "ProcessingOutcome",
    "RecordStatus",
    "StepTiming",
    "PageGeometry",
    "RasterSurface",
]
