"""
PageBinder — Image to PDF assembler.

Builds the output document one page at a time. Each surface is encoded
as JPEG and placed on its own page at the rectangle computed by the
layout engine.
"""

from __future__ import annotations

import io

import fitz

from app.models.raster import PageGeometry, RasterSurface
from app.utils.logging import logger

DEFAULT_JPEG_QUALITY = 80


def encode_jpeg(surface: RasterSurface, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    buf = io.BytesIO()
    surface.image.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


class PdfAssembler:
    """Accumulates pages in a PyMuPDF document; one image per page."""

    def __init__(self, jpeg_quality: int = DEFAULT_JPEG_QUALITY):
        self.jpeg_quality = jpeg_quality
        self.doc = fitz.open()

    @property
    def page_count(self) -> int:
        return len(self.doc)

    def add_page(self, surface: RasterSurface, geometry: PageGeometry) -> int:
        """Append a page holding ``surface``; returns its 1-based page number."""
        img_bytes = encode_jpeg(surface, self.jpeg_quality)

        page_w, page_h = geometry.page_size_pt()
        page = self.doc.new_page(width=page_w, height=page_h)
        try:
            page.insert_image(fitz.Rect(*geometry.rect_pt()), stream=img_bytes)
        except Exception:
            self.doc.delete_page(-1)
            raise

        logger.info(
            "  Page %d: %dx%d px → %.1fx%.1f mm at (%.2f, %.2f)",
            self.page_count, surface.width, surface.height,
            geometry.scaled_width, geometry.scaled_height, geometry.x, geometry.y,
        )
        return self.page_count

    def finish(self) -> bytes:
        pages = self.page_count
        pdf_bytes = self.doc.tobytes()
        self.doc.close()
        logger.info("  Created %d-page PDF (%d bytes)", pages, len(pdf_bytes))
        return pdf_bytes
