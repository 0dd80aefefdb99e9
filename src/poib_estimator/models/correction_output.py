from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from .geometry import AxisConvention, InchPoint


class ProcessingStage(str, Enum):
    INPUT = "input"
    MASK = "mask"
    BLOBS = "blobs"
    FRAME = "frame"
    CLASSIFY = "classify"
    CLUSTER = "cluster"
    CORRECT = "correct"


class ErrorKind(str, Enum):
    NO_HOLES_DETECTED = "no_holes_detected"
    INSUFFICIENT_SHOTS = "insufficient_shots"
    FRAME_NOT_FOUND = "frame_not_found"
    INVALID_PARAMETER = "invalid_parameter"
    MALFORMED_INPUT = "malformed_input"
    INTERNAL_ERROR = "internal_error"


class ProcessingError(BaseModel):
    stage: ProcessingStage
    error_type: ErrorKind
    recoverable: bool
    message: str
    details: dict[str, Any] = {}


class CorrectionVector(BaseModel):
    """Bull minus point of impact, in inches."""

    model_config = ConfigDict(frozen=True)

    dx_in: float
    dy_in: float


class ClickResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    windage_clicks_signed: float
    elevation_clicks_signed: float
    windage_label: str
    elevation_label: str


class DialReadout(BaseModel):
    model_config = ConfigDict(frozen=True)

    windage: str
    elevation: str


class Diagnostics(BaseModel):
    inches_per_moa: float
    inches_per_click: float
    pixels_per_inch: float | None = None
    holes_detected: int | None = None
    holes_selected: int | None = None
    holes_rejected: int | None = None
    frame_origin: tuple[float, float] | None = None
    frame_strategy: str | None = None
    threshold: float | None = None
    mean_intensity: float | None = None
    warnings: list[str] = []


class CorrectionResult(BaseModel):
    poib_inches: InchPoint
    bull_inches: InchPoint
    correction_inches: CorrectionVector
    correction_moa: tuple[float, float]
    clicks: ClickResult
    dial: DialReadout
    convention: AxisConvention
    diagnostics: Diagnostics
