"""
PageBinder — PDF inspection module.

Opens a produced PDF locally with pymupdf (fitz) and reports what is in
it, so the pipeline can confirm the document matches the batch.

Checks:
  1. PDF opens and parses
  2. Page count matches the expected number of images
  3. Every page holds exactly one image
  4. Document is not encrypted
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

import fitz

from app.utils.logging import logger, step_timer


@dataclass
class InspectionResult:
    page_count: int = 0
    page_sizes: list[tuple[float, float]] = field(default_factory=list)  # points
    images_per_page: list[int] = field(default_factory=list)
    is_encrypted: bool = False
    file_size: int = 0
    content_hash: str = ""
    checks_passed: int = 0
    checks_total: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.checks_total > 0 and self.checks_passed == self.checks_total


class PDFInspector:
    """Local PDF inspection using pymupdf."""

    def inspect(self, pdf_bytes: bytes, expected_pages: int | None = None) -> InspectionResult:
        with step_timer("Inspect PDF"):
            doc = fitz.open(stream=pdf_bytes, filetype="pdf")

            checks: dict[str, bool] = {}
            checks["opens_and_parses"] = len(doc) > 0

            if expected_pages is not None:
                checks["page_count_matches"] = len(doc) == expected_pages
            else:
                checks["page_count_matches"] = True

            images_per_page = [len(page.get_images(full=True)) for page in doc]
            checks["one_image_per_page"] = all(n == 1 for n in images_per_page)

            checks["not_encrypted"] = not doc.is_encrypted

            result = InspectionResult(
                page_count=len(doc),
                page_sizes=[(page.rect.width, page.rect.height) for page in doc],
                images_per_page=images_per_page,
                is_encrypted=doc.is_encrypted,
                file_size=len(pdf_bytes),
                content_hash=hashlib.sha256(pdf_bytes).hexdigest(),
                checks_passed=sum(checks.values()),
                checks_total=len(checks),
                failures=[name for name, ok in checks.items() if not ok],
            )
            doc.close()

            logger.info(
                "  Inspection: %d/%d checks passed %s",
                result.checks_passed, result.checks_total,
                "✓" if result.passed else "✗",
            )
            return result
