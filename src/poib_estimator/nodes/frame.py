"""Frame locator: pixel origin and pixels-per-inch from target fiducials.

Strategies:
- border: dense dark rows/columns mark the printed border of the paper
- crosshair: border for scale, darkest central column/row for the aim point
- corners: four square markers inset from the paper corners

Every strategy either returns a plausible Frame or a ``frame_not_found``
error. None of them substitutes the image bounds for a missing border.
"""

from __future__ import annotations

import logging
import math
from typing import Literal

import numpy as np
from numpy.typing import NDArray

from poib_estimator import config
from poib_estimator.convention import box_edges, frame_origin
from poib_estimator.models import (
    AxisConvention,
    Blob,
    ErrorKind,
    Frame,
    PipelineConfig,
    PipelineState,
    ProcessingError,
    ProcessingStage,
    TargetSize,
)

logger = logging.getLogger(__name__)

FrameStrategy = Literal["border", "crosshair", "corners"]


def _frame_error(message: str, **details: object) -> ProcessingError:
    return ProcessingError(
        stage=ProcessingStage.FRAME,
        error_type=ErrorKind.FRAME_NOT_FOUND,
        recoverable=True,
        message=message,
        details=dict(details),
    )


def _dense_span(fractions: NDArray[np.float64], threshold: float) -> tuple[int, int] | None:
    idx = np.flatnonzero(fractions >= threshold)
    if idx.size == 0:
        return None
    return int(idx[0]), int(idx[-1])


def _check_aspect(
    width_px: float,
    height_px: float,
    target_size: TargetSize,
    tolerance: float,
) -> tuple[TargetSize, float] | None:
    """Orient the target to the measured box and return it with the relative aspect error."""
    if width_px <= 0 or height_px <= 0:
        return None
    oriented = target_size.oriented(landscape=width_px > height_px)
    measured = width_px / height_px
    error = abs(measured - oriented.aspect) / oriented.aspect
    if error > tolerance:
        return None
    return oriented, error


# =============================================================================
# BORDER SCAN
# =============================================================================


def find_border_box(
    mask: NDArray[np.bool_],
    density_threshold: float = config.BORDER_DENSITY_THRESHOLD,
) -> tuple[int, int, int, int] | None:
    """
    Bounding box of the outermost dense rows and columns.

    Args:
        mask: (height, width) boolean mask, True = dark
        density_threshold: Minimum dark fraction for a row/column to count

    Returns:
        Inclusive (min_x, min_y, max_x, max_y) or None if no line is dense enough
    """
    if mask.size == 0:
        return None
    col_fraction = mask.mean(axis=0)
    row_fraction = mask.mean(axis=1)
    cols = _dense_span(col_fraction, density_threshold)
    rows = _dense_span(row_fraction, density_threshold)
    if cols is None or rows is None:
        return None
    return (cols[0], rows[0], cols[1], rows[1])


def locate_border(
    mask: NDArray[np.bool_],
    target_size: TargetSize,
    convention: AxisConvention = AxisConvention.Y_UP,
    cfg: PipelineConfig | None = None,
) -> Frame | ProcessingError:
    cfg = cfg or PipelineConfig()
    height, width = mask.shape
    box = find_border_box(mask, cfg.border_density_threshold)
    if box is None:
        return _frame_error(
            "No printed border found",
            density_threshold=cfg.border_density_threshold,
        )

    left, top, right, bottom = box_edges(box)
    box_w = right - left
    box_h = bottom - top

    if box_w < cfg.min_border_fraction * width or box_h < cfg.min_border_fraction * height:
        return _frame_error(
            f"Border box {box_w:.0f}x{box_h:.0f}px is too small for a {width}x{height} image",
            box=list(box),
        )

    checked = _check_aspect(box_w, box_h, target_size, cfg.aspect_tolerance)
    if checked is None:
        return _frame_error(
            f"Border box aspect {box_w / box_h:.3f} does not match target "
            f"{target_size.width_in}x{target_size.height_in}",
            box=list(box),
            tolerance=cfg.aspect_tolerance,
        )
    oriented, aspect_error = checked

    # A target that is mostly dark inside its border is not a paper target
    inset_x = max(1, int(box_w * 0.1))
    inset_y = max(1, int(box_h * 0.1))
    interior = mask[box[1] + inset_y : box[3] - inset_y + 1, box[0] + inset_x : box[2] - inset_x + 1]
    if interior.size and float(interior.mean()) > config.MAX_INTERIOR_DARK_FRACTION:
        return _frame_error(
            "Border interior is mostly dark",
            box=list(box),
            interior_dark_fraction=float(interior.mean()),
        )

    ppi = box_w / oriented.width_in
    logger.debug("border: box=%s ppi=%.3f aspect_error=%.3f", box, ppi, aspect_error)
    return Frame(
        origin_px=frame_origin((left, top, right, bottom), convention),
        pixels_per_inch=ppi,
        convention=convention,
        strategy="border",
        border_box_px=box,
        target_size=oriented,
    )


# =============================================================================
# CROSSHAIR PEAK
# =============================================================================


def _peak_center(profile: NDArray[np.float64], lo: int, hi: int) -> tuple[float, float]:
    """Center of the plateau around the strongest value in profile[lo:hi]."""
    band = profile[lo:hi]
    peak = int(np.argmax(band))
    peak_value = float(band[peak])
    floor = 0.95 * peak_value
    start = peak
    while start > 0 and band[start - 1] >= floor:
        start -= 1
    end = peak
    while end < band.size - 1 and band[end + 1] >= floor:
        end += 1
    return lo + (start + end) / 2.0, peak_value


def find_crosshair(
    gray: NDArray[np.uint8],
    mask: NDArray[np.bool_],
    box: tuple[int, int, int, int],
    band_fraction: float = config.CROSSHAIR_BAND_FRACTION,
    density_threshold: float = config.BORDER_DENSITY_THRESHOLD,
) -> tuple[float, float] | None:
    """
    Intersection of the darkest column and row in the central band of a box.

    Darkness of a column is the sum of ``255 - intensity`` over the rows of
    the box. The peak must also be a dense line in the mask.
    """
    min_x, min_y, max_x, max_y = box
    # Skip the border lines themselves
    inner_gray = np.asarray(gray, dtype=np.float64)[min_y + 1 : max_y, min_x + 1 : max_x]
    inner_mask = mask[min_y + 1 : max_y, min_x + 1 : max_x]
    if inner_gray.size == 0:
        return None

    inner_h, inner_w = inner_gray.shape
    darkness = 255.0 - inner_gray
    col_profile = darkness.sum(axis=0)
    row_profile = darkness.sum(axis=1)

    half_w = max(1, int(inner_w * band_fraction / 2))
    half_h = max(1, int(inner_h * band_fraction / 2))
    cx, cy = inner_w // 2, inner_h // 2
    col, _ = _peak_center(col_profile, max(0, cx - half_w), min(inner_w, cx + half_w + 1))
    row, _ = _peak_center(row_profile, max(0, cy - half_h), min(inner_h, cy + half_h + 1))

    if inner_mask[:, int(round(col))].mean() < density_threshold:
        return None
    if inner_mask[int(round(row)), :].mean() < density_threshold:
        return None
    return (min_x + 1 + col, min_y + 1 + row)


def locate_crosshair(
    gray: NDArray[np.uint8],
    mask: NDArray[np.bool_],
    target_size: TargetSize,
    convention: AxisConvention = AxisConvention.Y_UP,
    cfg: PipelineConfig | None = None,
) -> Frame | ProcessingError:
    cfg = cfg or PipelineConfig()
    border = locate_border(mask, target_size, convention, cfg)
    if isinstance(border, ProcessingError):
        return border
    assert border.border_box_px is not None

    aim = find_crosshair(
        gray,
        mask,
        border.border_box_px,
        band_fraction=cfg.crosshair_band_fraction,
        density_threshold=cfg.border_density_threshold,
    )
    if aim is None:
        return _frame_error("No crosshair found inside the border", box=list(border.border_box_px))

    logger.debug("crosshair: aim=(%.1f, %.1f)", aim[0], aim[1])
    return border.model_copy(update={"strategy": "crosshair", "aim_px": aim})


# =============================================================================
# CORNER FIDUCIALS
# =============================================================================


def _is_fiducial(blob: Blob) -> bool:
    if blob.oversized or blob.area < config.FIDUCIAL_MIN_AREA:
        return False
    if blob.aspect_ratio > config.FIDUCIAL_MAX_ASPECT_RATIO:
        return False
    fill = blob.area / float(blob.bbox_width * blob.bbox_height)
    return fill >= config.FIDUCIAL_MIN_FILL


def find_corner_fiducials(
    blobs: list[Blob], width: int, height: int
) -> list[tuple[float, float]] | None:
    """
    Pick the square blob nearest each image corner.

    Returns:
        Centroids ordered top-left, top-right, bottom-left, bottom-right, or
        None if any corner has no candidate in its own quadrant
    """
    candidates = [b.centroid for b in blobs if _is_fiducial(b)]
    corners = [(0.0, 0.0), (width - 1.0, 0.0), (0.0, height - 1.0), (width - 1.0, height - 1.0)]
    picked: list[tuple[float, float]] = []
    for i, (cx, cy) in enumerate(corners):
        right = i in (1, 3)
        lower = i in (2, 3)
        in_quadrant = [
            p
            for p in candidates
            if (p[0] >= width / 2) == right and (p[1] >= height / 2) == lower
        ]
        if not in_quadrant:
            return None
        picked.append(min(in_quadrant, key=lambda p: math.hypot(p[0] - cx, p[1] - cy)))
    return picked


def locate_corners(
    blobs: list[Blob],
    width: int,
    height: int,
    target_size: TargetSize,
    convention: AxisConvention = AxisConvention.Y_UP,
    cfg: PipelineConfig | None = None,
) -> Frame | ProcessingError:
    cfg = cfg or PipelineConfig()
    fiducials = find_corner_fiducials(blobs, width, height)
    if fiducials is None:
        return _frame_error("Could not find a square marker near each corner")

    tl, tr, bl, br = fiducials
    top_span = tr[0] - tl[0]
    bottom_span = br[0] - bl[0]
    left_span = bl[1] - tl[1]
    right_span = br[1] - tr[1]
    h_span = (top_span + bottom_span) / 2
    v_span = (left_span + right_span) / 2

    if h_span <= 0 or v_span <= 0:
        return _frame_error("Corner markers are degenerate", fiducials=fiducials)
    if (
        abs(top_span - bottom_span) > cfg.aspect_tolerance * h_span
        or abs(left_span - right_span) > cfg.aspect_tolerance * v_span
    ):
        return _frame_error("Corner markers do not form a rectangle", fiducials=fiducials)

    inset = cfg.fiducial_inset_in
    oriented = target_size.oriented(landscape=h_span > v_span)
    span_w_in = oriented.width_in - 2 * inset
    span_h_in = oriented.height_in - 2 * inset
    if span_w_in <= 0 or span_h_in <= 0:
        return _frame_error(
            "Fiducial inset leaves no span on this target size",
            inset_in=inset,
        )

    ppi = h_span / span_w_in
    ppi_v = v_span / span_h_in
    if abs(ppi - ppi_v) > cfg.aspect_tolerance * ppi:
        return _frame_error(
            f"Marker spacing scale {ppi:.2f} vs {ppi_v:.2f} px/in does not match target",
            fiducials=fiducials,
        )

    left = (tl[0] + bl[0]) / 2 - inset * ppi
    right = (tr[0] + br[0]) / 2 + inset * ppi
    top = (tl[1] + tr[1]) / 2 - inset * ppi
    bottom = (bl[1] + br[1]) / 2 + inset * ppi
    aim = (
        sum(p[0] for p in fiducials) / 4,
        sum(p[1] for p in fiducials) / 4,
    )

    logger.debug("corners: fiducials=%s ppi=%.3f", fiducials, ppi)
    return Frame(
        origin_px=frame_origin((left, top, right, bottom), convention),
        pixels_per_inch=ppi,
        convention=convention,
        strategy="corners",
        border_box_px=(
            int(math.floor(left + 0.5)),
            int(math.floor(top + 0.5)),
            int(math.ceil(right - 0.5)),
            int(math.ceil(bottom - 0.5)),
        ),
        aim_px=aim,
        fiducials_px=list(fiducials),
        target_size=oriented,
    )


# =============================================================================
# NODE
# =============================================================================


def locate_frame(
    mask: NDArray[np.bool_],
    gray: NDArray[np.uint8],
    target_size: TargetSize,
    strategy: FrameStrategy = "border",
    convention: AxisConvention = AxisConvention.Y_UP,
    blobs: list[Blob] | None = None,
    cfg: PipelineConfig | None = None,
) -> Frame | ProcessingError:
    if strategy == "border":
        return locate_border(mask, target_size, convention, cfg)
    if strategy == "crosshair":
        return locate_crosshair(gray, mask, target_size, convention, cfg)
    if strategy == "corners":
        height, width = mask.shape
        return locate_corners(blobs or [], width, height, target_size, convention, cfg)
    raise ValueError(f"Unknown frame strategy: {strategy}")


def frame_node(state: PipelineState) -> PipelineState:
    req = state.request
    frame = locate_frame(
        state.mask,
        state.gray,
        req.target_size,
        strategy=req.frame_strategy,
        convention=req.convention,
        blobs=state.blobs,
        cfg=state.config,
    )
    if isinstance(frame, ProcessingError):
        logger.info("frame: %s", frame.message)
        return state.model_copy(update={"errors": state.errors + [frame]})
    return state.model_copy(update={"frame": frame})
