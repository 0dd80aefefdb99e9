"""Blob classifier: separate hole-like blobs from lines, borders and markers."""

from __future__ import annotations

import logging

from poib_estimator.models import (
    Blob,
    Classification,
    ErrorKind,
    ExclusionZone,
    Frame,
    PipelineConfig,
    PipelineState,
    ProcessingError,
    ProcessingStage,
    RejectedBlob,
    RejectReason,
)

logger = logging.getLogger(__name__)


def default_exclusion_zones(
    frame: Frame | None,
    width: int,
    height: int,
    cfg: PipelineConfig | None = None,
) -> list[ExclusionZone]:
    """
    Zones whose blobs are never holes.

    - border: everything outside the border box shrunk by the border margin
    - crosshair: bands of half-width ``crosshair_half_width_in`` through the aim point
    - header/footer: top and bottom fractions of the image
    - fiducial: squares around detected corner markers
    """
    cfg = cfg or PipelineConfig()
    zones: list[ExclusionZone] = []
    x_max = float(width - 1)
    y_max = float(height - 1)

    if cfg.header_fraction > 0:
        zones.append(ExclusionZone(name="header", rect=(0.0, 0.0, x_max, height * cfg.header_fraction)))
    if cfg.footer_fraction > 0:
        zones.append(
            ExclusionZone(name="footer", rect=(0.0, height * (1 - cfg.footer_fraction), x_max, y_max))
        )

    if frame is None:
        return zones

    ppi = frame.pixels_per_inch

    if frame.border_box_px is not None:
        min_x, min_y, max_x, max_y = frame.border_box_px
        margin = cfg.border_margin_in * ppi
        zones.extend(
            [
                ExclusionZone(name="border", rect=(0.0, 0.0, x_max, min_y + margin)),
                ExclusionZone(name="border", rect=(0.0, max_y - margin, x_max, y_max)),
                ExclusionZone(name="border", rect=(0.0, 0.0, min_x + margin, y_max)),
                ExclusionZone(name="border", rect=(max_x - margin, 0.0, x_max, y_max)),
            ]
        )

    if frame.strategy == "crosshair" and frame.aim_px is not None:
        ax, ay = frame.aim_px
        half = cfg.crosshair_half_width_in * ppi
        zones.extend(
            [
                ExclusionZone(name="crosshair", rect=(ax - half, 0.0, ax + half, y_max)),
                ExclusionZone(name="crosshair", rect=(0.0, ay - half, x_max, ay + half)),
            ]
        )

    half_fid = cfg.fiducial_zone_in * ppi / 2
    for fx, fy in frame.fiducials_px:
        zones.append(
            ExclusionZone(name="fiducial", rect=(fx - half_fid, fy - half_fid, fx + half_fid, fy + half_fid))
        )

    return zones


def _reject_reason(
    blob: Blob,
    min_area: int,
    max_area: int,
    max_aspect_ratio: float,
    zones: list[ExclusionZone],
) -> tuple[RejectReason, str | None] | None:
    if blob.oversized:
        return RejectReason.OVERSIZED, None
    if blob.area < min_area:
        return RejectReason.TOO_SMALL, None
    if blob.area > max_area:
        return RejectReason.TOO_LARGE, None
    if blob.aspect_ratio > max_aspect_ratio:
        return RejectReason.TOO_ELONGATED, None
    cx, cy = blob.centroid
    for zone in zones:
        if zone.contains(cx, cy):
            return RejectReason.EXCLUDED_ZONE, zone.name
    return None


def classify_blobs(
    blobs: list[Blob],
    min_area: int,
    max_area: int,
    max_aspect_ratio: float,
    zones: list[ExclusionZone] | None = None,
) -> Classification:
    """
    Partition blobs into hole candidates and rejects.

    Checks run in order: oversized, area bounds, aspect ratio
    (``max(w, h) / max(1, min(w, h))`` of the bounding box), then exclusion
    zones by centroid. The first failing check is the recorded reason.
    """
    zones = zones or []
    holes: list[Blob] = []
    rejected: list[RejectedBlob] = []
    for blob in blobs:
        reason = _reject_reason(blob, min_area, max_area, max_aspect_ratio, zones)
        if reason is None:
            holes.append(blob)
        else:
            rejected.append(RejectedBlob(blob=blob, reason=reason[0], zone=reason[1]))
    return Classification(hole_candidates=holes, rejected=rejected)


def classify_node(state: PipelineState) -> PipelineState:
    cfg = state.config
    height, width = state.mask.shape
    zones = default_exclusion_zones(state.frame, width, height, cfg)
    result = classify_blobs(
        state.blobs or [],
        min_area=cfg.min_hole_area,
        max_area=cfg.max_hole_area,
        max_aspect_ratio=cfg.max_aspect_ratio,
        zones=zones,
    )
    logger.debug(
        "classify: %d hole candidates, %d rejected",
        len(result.hole_candidates),
        len(result.rejected),
    )

    if not result.hole_candidates:
        return state.model_copy(
            update={
                "classification": result,
                "errors": state.errors
                + [
                    ProcessingError(
                        stage=ProcessingStage.CLASSIFY,
                        error_type=ErrorKind.NO_HOLES_DETECTED,
                        recoverable=True,
                        message="No bullet holes detected",
                        details={
                            "blobs": len(state.blobs or []),
                            "rejected": {
                                r.value: sum(1 for b in result.rejected if b.reason == r)
                                for r in RejectReason
                            },
                        },
                    )
                ],
            }
        )
    return state.model_copy(update={"classification": result})
