"""
PageBinder — Page-fit geometry.

Converts pixel dimensions to millimetres at 96 DPI, fits the image into
the page minus a hard margin without distortion, and centres it.
"""

from __future__ import annotations

from app.models.raster import PageGeometry

PX_TO_MM = 0.264583  # 25.4 / 96
PAGE_SIZES_MM = {
    "A4": (210.0, 297.0),
}
DEFAULT_MARGIN_MM = 1.0


def page_dimensions(orientation: str = "portrait", page_format: str = "A4") -> tuple[float, float]:
    """Page (width, height) in mm; landscape swaps the sides."""
    short, long_ = PAGE_SIZES_MM[page_format]
    if orientation == "landscape":
        return long_, short
    return short, long_


def compute_geometry(
    page_width: float,
    page_height: float,
    pixel_width: int,
    pixel_height: int,
    margin: float = DEFAULT_MARGIN_MM,
    px_to_mm: float = PX_TO_MM,
    shrink_factor: float = 1.0,
) -> PageGeometry:
    """
    Fit an image of pixel_width x pixel_height onto the page.

    ``shrink_factor`` (0 < f <= 1) reduces the available box before the
    fit, leaving extra white space beyond the hard margin.
    """
    if pixel_width <= 0 or pixel_height <= 0:
        raise ValueError(f"image has no area: {pixel_width}x{pixel_height}")

    img_w = pixel_width * px_to_mm
    img_h = pixel_height * px_to_mm

    avail_w = (page_width - 2 * margin) * shrink_factor
    avail_h = (page_height - 2 * margin) * shrink_factor

    scale = min(avail_w / img_w, avail_h / img_h)
    scaled_w = img_w * scale
    scaled_h = img_h * scale

    return PageGeometry(
        page_width=page_width,
        page_height=page_height,
        margin=margin,
        image_width=img_w,
        image_height=img_h,
        scale=scale,
        x=(page_width - scaled_w) / 2,
        y=(page_height - scaled_h) / 2,
    )
