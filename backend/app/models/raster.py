"""
PageBinder — Raster surfaces and page geometry.
"""

from __future__ import annotations

from dataclasses import dataclass

from PIL import Image

MM_TO_PT = 72 / 25.4


@dataclass
class RasterSurface:
    """Decoded pixels for one processing step. Never persisted."""
    image: Image.Image
    decoder: str = ""

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def mode(self) -> str:
        return self.image.mode


@dataclass(frozen=True)
class PageGeometry:
    """Placement of one image on one page; all lengths in millimetres."""
    page_width: float
    page_height: float
    margin: float
    image_width: float
    image_height: float
    scale: float
    x: float
    y: float

    @property
    def scaled_width(self) -> float:
        return self.image_width * self.scale

    @property
    def scaled_height(self) -> float:
        return self.image_height * self.scale

    def page_size_pt(self) -> tuple[float, float]:
        return self.page_width * MM_TO_PT, self.page_height * MM_TO_PT

    def rect_pt(self) -> tuple[float, float, float, float]:
        """Image rectangle (x0, y0, x1, y1) in PDF points, origin top-left."""
        x0 = self.x * MM_TO_PT
        y0 = self.y * MM_TO_PT
        return (
            x0,
            y0,
            x0 + self.scaled_width * MM_TO_PT,
            y0 + self.scaled_height * MM_TO_PT,
        )
