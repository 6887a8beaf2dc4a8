"""
PageBinder — Intake validation and de-duplication.

Checks each candidate in arrival order:
  1. extension in the allowlist (jpg, jpeg, png, heic, heif)
  2. non-empty payload
  3. not already queued (same name and size) — dropped silently

A rejected candidate never aborts the rest of the batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from app.errors import EmptyFileError, IntakeError, UnsupportedTypeError
from app.models.job import IntakeRejection
from app.models.record import Candidate, ImageRecord, file_extension, record_identity
from app.pipeline.store import ImageStore
from app.utils.logging import logger

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "heic", "heif"}


@dataclass
class IntakeReport:
    store: ImageStore
    accepted: list[ImageRecord] = field(default_factory=list)
    rejected: list[tuple[str, IntakeError]] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)

    def rejections(self) -> list[IntakeRejection]:
        return [
            IntakeRejection(name=name, error_code=err.code, message=err.message)
            for name, err in self.rejected
        ]


def validate_candidate(candidate: Candidate) -> None:
    """Raise an IntakeError if the candidate may not enter the store."""
    if file_extension(candidate.name or "") not in ALLOWED_EXTENSIONS:
        raise UnsupportedTypeError(candidate.name)
    if not candidate.size:
        raise EmptyFileError(candidate.name)


def intake(store: ImageStore, candidates: Iterable[Candidate]) -> IntakeReport:
    """
    Validate candidates and append the accepted ones to a new store.

    Returns an IntakeReport holding the new store and what happened to
    each candidate. The input store is left untouched.
    """
    report = IntakeReport(store=store)

    for candidate in candidates:
        try:
            validate_candidate(candidate)
        except IntakeError as exc:
            logger.warning("  Rejected %s: %s", candidate.name, exc.code)
            report.rejected.append((candidate.name, exc))
            continue

        identity = record_identity(candidate.name, candidate.size)
        if identity in report.store:
            logger.info("  Skipped duplicate %s (%d bytes)", candidate.name, candidate.size)
            report.duplicates.append(candidate.name)
            continue

        report.store = report.store.add(candidate)
        report.accepted.append(report.store.get(identity))

    logger.info(
        "  Intake: %d accepted, %d rejected, %d duplicates",
        len(report.accepted), len(report.rejected), len(report.duplicates),
    )
    return report
