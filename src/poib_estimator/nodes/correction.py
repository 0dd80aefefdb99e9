"""Correction engine: point of impact to signed scope clicks."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

from poib_estimator import config
from poib_estimator.convention import (
    correction_vector,
    dial_text,
    elevation_label,
    pixel_to_inches,
    windage_label,
)
from poib_estimator.models import (
    AxisConvention,
    ClickResult,
    CorrectionResult,
    Diagnostics,
    DialReadout,
    ErrorKind,
    InchPoint,
    PipelineState,
    ProcessingError,
    ProcessingStage,
)

logger = logging.getLogger(__name__)


def inches_per_moa(distance_yards: float) -> float:
    """True MOA: 1.047 inches at 100 yards, linear in distance."""
    return config.TRUE_MOA_INCHES_AT_100_YARDS * (distance_yards / 100.0)


def inches_per_click(distance_yards: float, click_value_moa: float) -> float:
    return inches_per_moa(distance_yards) * click_value_moa


def _round(value: float) -> float:
    # + 0.0 turns -0.0 into 0.0
    return round(value, config.CLICK_DECIMALS) + 0.0


def _invalid(message: str, **details: object) -> ProcessingError:
    return ProcessingError(
        stage=ProcessingStage.CORRECT,
        error_type=ErrorKind.INVALID_PARAMETER,
        recoverable=True,
        message=message,
        details=dict(details),
    )


def validate_parameters(
    distance_yards: float,
    click_value_moa: float,
    deadband_in: float = 0.0,
    pixels_per_inch: float | None = None,
) -> ProcessingError | None:
    """Reject settings that would otherwise produce a misleading zero or NaN correction."""
    if not math.isfinite(distance_yards) or distance_yards <= 0:
        return _invalid(f"distance_yards must be > 0, got {distance_yards}", distance_yards=distance_yards)
    if not math.isfinite(click_value_moa) or click_value_moa <= 0:
        return _invalid(f"click_value_moa must be > 0, got {click_value_moa}", click_value_moa=click_value_moa)
    if not math.isfinite(deadband_in) or deadband_in < 0:
        return _invalid(f"deadband_in must be >= 0, got {deadband_in}", deadband_in=deadband_in)
    if pixels_per_inch is not None and (not math.isfinite(pixels_per_inch) or pixels_per_inch <= 0):
        return _invalid(
            f"pixels_per_inch must be > 0, got {pixels_per_inch}", pixels_per_inch=pixels_per_inch
        )
    return None


def mean_point(points: Sequence[InchPoint]) -> InchPoint | ProcessingError:
    """Centroid of the group; empty or non-finite input is malformed."""
    if not points:
        return ProcessingError(
            stage=ProcessingStage.INPUT,
            error_type=ErrorKind.MALFORMED_INPUT,
            recoverable=True,
            message="No hole coordinates given",
        )
    bad = [i for i, p in enumerate(points) if not (math.isfinite(p.x) and math.isfinite(p.y))]
    if bad:
        return ProcessingError(
            stage=ProcessingStage.INPUT,
            error_type=ErrorKind.MALFORMED_INPUT,
            recoverable=True,
            message=f"Non-finite hole coordinates at index {bad}",
            details={"indices": bad},
        )
    n = len(points)
    return InchPoint(x=sum(p.x for p in points) / n, y=sum(p.y for p in points) / n)


def compute_clicks(
    poib: InchPoint,
    bull: InchPoint,
    distance_yards: float,
    click_value_moa: float,
    deadband_in: float = config.DEFAULT_DEADBAND_INCHES,
    convention: AxisConvention = AxisConvention.Y_UP,
    diagnostics: dict[str, Any] | None = None,
) -> CorrectionResult | ProcessingError:
    """
    Turn a point of impact and a bull into signed clicks with direction labels.

    The correction is ``bull - poib`` in inch space. An axis whose correction
    magnitude is below ``deadband_in`` is zeroed before conversion. Values
    stay at full precision until the final rounding to two decimals, and the
    labels are read from the rounded signed clicks.

    Args:
        poib: Group centroid in inches
        bull: Aim point in inches, same convention as ``poib``
        distance_yards: Range to target
        click_value_moa: Sight adjustment per click
        deadband_in: Per-axis tolerance below which no correction is reported
        convention: Y direction of the inch space
        diagnostics: Optional extra Diagnostics fields (frame, detection counts)

    Returns:
        CorrectionResult or ProcessingError(invalid_parameter / malformed_input)
    """
    invalid = validate_parameters(distance_yards, click_value_moa, deadband_in)
    if invalid is not None:
        return invalid

    for name, point in (("poib", poib), ("bull", bull)):
        if not (math.isfinite(point.x) and math.isfinite(point.y)):
            return ProcessingError(
                stage=ProcessingStage.CORRECT,
                error_type=ErrorKind.MALFORMED_INPUT,
                recoverable=True,
                message=f"Non-finite {name} coordinates",
                details={"x": point.x, "y": point.y},
            )

    correction = correction_vector(bull, poib)
    dx = 0.0 if abs(correction.dx_in) < deadband_in else correction.dx_in
    dy = 0.0 if abs(correction.dy_in) < deadband_in else correction.dy_in

    ipm = inches_per_moa(distance_yards)
    ipc = ipm * click_value_moa
    windage = _round(dx / ipc)
    elevation = _round(dy / ipc)

    w_label = windage_label(windage)
    e_label = elevation_label(elevation, convention)

    extra = dict(diagnostics or {})
    extra.update({"inches_per_moa": ipm, "inches_per_click": ipc})

    logger.debug(
        "correct: poib=(%.3f, %.3f) bull=(%.3f, %.3f) clicks=(%.2f, %.2f)",
        poib.x,
        poib.y,
        bull.x,
        bull.y,
        windage,
        elevation,
    )
    return CorrectionResult(
        poib_inches=poib,
        bull_inches=bull,
        correction_inches=correction,
        correction_moa=(_round(dx / ipm), _round(dy / ipm)),
        clicks=ClickResult(
            windage_clicks_signed=windage,
            elevation_clicks_signed=elevation,
            windage_label=w_label,
            elevation_label=e_label,
        ),
        dial=DialReadout(
            windage=dial_text(w_label, windage),
            elevation=dial_text(e_label, elevation),
        ),
        convention=convention,
        diagnostics=Diagnostics(**extra),
    )


def correct_node(state: PipelineState) -> PipelineState:
    """
    Convert the selected group to inches through the frame and compute clicks.

    Updates state with:
    - output: CorrectionResult
    - errors: invalid parameters
    """
    req = state.request
    frame = state.frame
    selected = state.selected or []

    invalid = validate_parameters(
        req.distance_yards, req.click_value_moa, req.deadband_in, frame.pixels_per_inch
    )
    if invalid is not None:
        return state.model_copy(update={"errors": state.errors + [invalid]})

    n = len(selected)
    poib_px = (
        sum(b.centroid[0] for b in selected) / n,
        sum(b.centroid[1] for b in selected) / n,
    )
    poib = pixel_to_inches(poib_px, frame)

    if req.bull is not None:
        bull = req.bull
    elif frame.aim_px is not None:
        bull = pixel_to_inches(frame.aim_px, frame)
    else:
        bull = frame.target_size.center if frame.target_size else req.target_size.center

    warnings = list(state.warnings)
    if n < config.RECOMMENDED_MIN_SHOTS:
        logger.warning("only %d shot(s) in group, %d recommended", n, config.RECOMMENDED_MIN_SHOTS)
        warnings.append(f"Only {n} shot(s) in group; {config.RECOMMENDED_MIN_SHOTS} or more recommended")

    diagnostics = dict(
        pixels_per_inch=frame.pixels_per_inch,
        holes_detected=len(state.classification.hole_candidates) if state.classification else n,
        holes_selected=n,
        holes_rejected=len(state.classification.rejected) if state.classification else None,
        frame_origin=frame.origin_px,
        frame_strategy=frame.strategy,
        threshold=state.mask_info.threshold if state.mask_info else None,
        mean_intensity=state.mask_info.mean_intensity if state.mask_info else None,
        warnings=warnings,
    )

    result = compute_clicks(
        poib,
        bull,
        req.distance_yards,
        req.click_value_moa,
        deadband_in=req.deadband_in,
        convention=frame.convention,
        diagnostics=diagnostics,
    )
    if isinstance(result, ProcessingError):
        return state.model_copy(update={"errors": state.errors + [result]})
    return state.model_copy(update={"output": result, "warnings": warnings})
