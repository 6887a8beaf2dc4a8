"""
PageBinder — Structured error catalog.

Every error has a code, human message, and suggested fix.
No raw exceptions leak to the frontend.
"""

from __future__ import annotations

from typing import Any


class PageBinderError(Exception):
    """Base error with structured code + suggestion."""

    def __init__(self, code: str, message: str, suggestion: str = "", detail: Any = None):
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "error_code": self.code,
            "message": self.message,
        }
        if self.suggestion:
            d["suggestion"] = self.suggestion
        if self.detail:
            d["detail"] = self.detail
        return d


# ── Intake ────────────────────────────────────────────────


class IntakeError(PageBinderError):
    """Candidate rejected before it reaches the store."""


class UnsupportedTypeError(IntakeError):
    def __init__(self, name: str):
        super().__init__(
            code="UNSUPPORTED_TYPE",
            message=f"File {name} is not supported",
            suggestion="Allowed types: jpg, jpeg, png, heic, heif.",
        )


class EmptyFileError(IntakeError):
    def __init__(self, name: str):
        super().__init__(
            code="EMPTY_FILE",
            message=f"File {name} is empty",
            suggestion="Re-export the image and try again.",
        )


# ── Per-record capability / decode ────────────────────────


class CapabilityError(PageBinderError):
    """An external capability needed for a record is missing or failed."""


class TranscoderUnavailableError(CapabilityError):
    def __init__(self):
        super().__init__(
            code="TRANSCODER_UNAVAILABLE",
            message="HEIC transcoder is not available",
            suggestion="Install pillow-heif to enable HEIC/HEIF conversion.",
        )


class TranscodeFailedError(CapabilityError):
    def __init__(self, name: str, reason: str):
        super().__init__(
            code="TRANSCODE_FAILED",
            message=f"HEIC conversion failed for {name}: {reason}",
            suggestion="Convert the image to JPEG on the device and upload it again.",
        )


class DecodeError(PageBinderError):
    """The record's bytes could not be turned into a raster surface."""


class ReadFailedError(DecodeError):
    def __init__(self, name: str, reason: str = ""):
        super().__init__(
            code="READ_FAILED",
            message=f"Could not read file {name}" + (f": {reason}" if reason else ""),
            suggestion="Check that the file still exists and is readable.",
        )


class DecodeFailedError(DecodeError):
    def __init__(self, attempts: list[str]):
        super().__init__(
            code="DECODE_FAILED",
            message="Image could not be decoded",
            suggestion="The file may be corrupt or in an unsupported encoding.",
            detail=attempts,
        )


class OversizedForPlatformError(DecodeError):
    def __init__(self, platform: str, size_mb: float, limit_mb: float):
        super().__init__(
            code="OVERSIZED_FOR_PLATFORM",
            message=f"Image too large for {platform} ({size_mb:.1f}MB, limit {limit_mb:.0f}MB)",
            suggestion="Resize or compress the image before adding it.",
        )


class InvalidRotationError(PageBinderError):
    def __init__(self, rotation: Any):
        super().__init__(
            code="INVALID_ROTATION",
            message=f"Invalid rotation: {rotation!r}",
            suggestion="Rotation must be one of 0, 90, 180, 270.",
        )


class StepTimeoutError(PageBinderError):
    def __init__(self, step: str, timeout_s: float):
        super().__init__(
            code="STEP_TIMEOUT",
            message=f"Step '{step}' timed out after {timeout_s:g}s",
            suggestion="Raise PAGEBINDER_STEP_TIMEOUT or remove the image from the batch.",
        )


# ── Batch ─────────────────────────────────────────────────


class BatchError(PageBinderError):
    """Fatal to the whole conversion run."""


class EmptyBatchError(BatchError):
    def __init__(self):
        super().__init__(
            code="EMPTY_BATCH",
            message="No images to convert",
            suggestion="Add at least one jpg, png or heic image.",
        )


class NoImagesProcessedError(BatchError):
    def __init__(self, failures: list[str]):
        super().__init__(
            code="NO_IMAGES_PROCESSED",
            message=f"None of the {len(failures)} images could be processed",
            suggestion="Check the per-image errors and try different files.",
            detail=failures,
        )


# ── Session ───────────────────────────────────────────────


class StoreLockedError(PageBinderError):
    def __init__(self, action: str):
        super().__init__(
            code="STORE_LOCKED",
            message=f"Cannot {action} while a conversion is running",
            suggestion="Wait for the current conversion to finish.",
        )


class RecordNotFoundError(PageBinderError):
    def __init__(self, identity: str):
        super().__init__(
            code="RECORD_NOT_FOUND",
            message=f"No queued image with id {identity}",
            suggestion="Refresh the image list; it may have been removed.",
        )
