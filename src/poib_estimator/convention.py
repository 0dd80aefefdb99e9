"""Coordinate convention shared by every stage that touches inch space.

Pixel space has its origin at the top-left of the image with Y growing
downward. Inch space has its origin at a corner of the target paper and X
growing to the right. Its Y direction is set by ``AxisConvention``:

- ``Y_UP``: origin at the bottom-left corner, Y grows upward. The pixel to
  inch conversion flips Y here and nowhere else.
- ``Y_DOWN``: origin at the top-left corner, Y grows downward, no flip.

A correction is always ``bull - poib``. Direction labels are read from the
sign of the correction under the active convention and never from raw pixel
positions.
"""

from __future__ import annotations

from poib_estimator.models import AxisConvention, CorrectionVector, Frame, InchPoint

NEUTRAL_LABEL = "CENTER"


def box_edges(box: tuple[int, int, int, int]) -> tuple[float, float, float, float]:
    """Outer edges of an inclusive pixel box, in pixel-center coordinates."""
    min_x, min_y, max_x, max_y = box
    return (min_x - 0.5, min_y - 0.5, max_x + 0.5, max_y + 0.5)


def frame_origin(
    edges: tuple[float, float, float, float], convention: AxisConvention
) -> tuple[float, float]:
    """Pixel position of inch-space (0, 0) for paper edges (left, top, right, bottom)."""
    left, top, _, bottom = edges
    if convention == AxisConvention.Y_UP:
        return (left, bottom)
    return (left, top)


def pixel_to_inches(point_px: tuple[float, float], frame: Frame) -> InchPoint:
    px, py = point_px
    ox, oy = frame.origin_px
    ppi = frame.pixels_per_inch
    x = (px - ox) / ppi
    if frame.convention == AxisConvention.Y_UP:
        y = (oy - py) / ppi
    else:
        y = (py - oy) / ppi
    return InchPoint(x=x, y=y)


def inches_to_pixel(point: InchPoint, frame: Frame) -> tuple[float, float]:
    ox, oy = frame.origin_px
    ppi = frame.pixels_per_inch
    px = ox + point.x * ppi
    if frame.convention == AxisConvention.Y_UP:
        py = oy - point.y * ppi
    else:
        py = oy + point.y * ppi
    return (px, py)


def correction_vector(bull: InchPoint, poib: InchPoint) -> CorrectionVector:
    return CorrectionVector(dx_in=bull.x - poib.x, dy_in=bull.y - poib.y)


def windage_label(clicks: float) -> str:
    if clicks > 0:
        return "RIGHT"
    if clicks < 0:
        return "LEFT"
    return NEUTRAL_LABEL


def elevation_label(clicks: float, convention: AxisConvention) -> str:
    if clicks == 0:
        return NEUTRAL_LABEL
    up = clicks > 0 if convention == AxisConvention.Y_UP else clicks < 0
    return "UP" if up else "DOWN"


def dial_text(label: str, clicks: float) -> str:
    return f"{label} {abs(clicks):.2f} clicks"
