import re
from typing import Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from poib_estimator import config

from .correction_output import ErrorKind, ProcessingError, ProcessingStage
from .geometry import AxisConvention, InchPoint, TargetSize

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:[xX×*]\s*(\d+(?:\.\d+)?))?\s*(?:in|\")?\s*$")


def _size_from_text(text: str) -> TargetSize:
    match = _SIZE_PATTERN.match(text)
    if match is None:
        raise ValueError(f"Unrecognized target size: {text!r}")
    width = float(match.group(1))
    height = float(match.group(2)) if match.group(2) is not None else width
    return TargetSize(width_in=width, height_in=height)


def parse_target_size(value: str | TargetSize) -> TargetSize | ProcessingError:
    """Parse "8.5x11" style sizes. A single number means a square target."""
    if isinstance(value, TargetSize):
        return value
    try:
        return _size_from_text(str(value))
    except (ValueError, ValidationError) as e:
        return ProcessingError(
            stage=ProcessingStage.INPUT,
            error_type=ErrorKind.MALFORMED_INPUT,
            recoverable=True,
            message=f"Invalid target size: {value!r}",
            details={"value": str(value), "error": str(e)},
        )


class PixelBuffer(BaseModel):
    """Grayscale intensities, 0=black..255=white, row-major."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    data: np.ndarray
    width: int
    height: int

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        arr = np.asarray(array)
        if arr.ndim != 2:
            raise ValueError(f"Expected a 2-D grayscale array, got shape {arr.shape}")
        return cls(data=arr, width=int(arr.shape[1]), height=int(arr.shape[0]))

    def validate_shape(self) -> ProcessingError | None:
        if self.width <= 0 or self.height <= 0 or self.data.size != self.width * self.height:
            return ProcessingError(
                stage=ProcessingStage.INPUT,
                error_type=ErrorKind.INTERNAL_ERROR,
                recoverable=False,
                message=(
                    f"Pixel buffer holds {self.data.size} values, "
                    f"expected {self.width}x{self.height}"
                ),
                details={"size": int(self.data.size), "width": self.width, "height": self.height},
            )
        return None

    def grid(self) -> np.ndarray:
        """Read-only (height, width) view of the intensities."""
        view = np.asarray(self.data).reshape(self.height, self.width).view()
        view.flags.writeable = False
        return view


class ThresholdStrategy(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Literal["fixed", "adaptive"] = "fixed"
    value: float = config.FIXED_THRESHOLD
    offset: float = config.ADAPTIVE_OFFSET
    min_value: float = config.ADAPTIVE_MIN_THRESHOLD
    max_value: float = config.ADAPTIVE_MAX_THRESHOLD

    @classmethod
    def fixed(cls, value: float = config.FIXED_THRESHOLD) -> "ThresholdStrategy":
        return cls(mode="fixed", value=value)

    @classmethod
    def adaptive(
        cls,
        offset: float = config.ADAPTIVE_OFFSET,
        min_value: float = config.ADAPTIVE_MIN_THRESHOLD,
        max_value: float = config.ADAPTIVE_MAX_THRESHOLD,
    ) -> "ThresholdStrategy":
        return cls(mode="adaptive", offset=offset, min_value=min_value, max_value=max_value)


class ImageRequest(BaseModel):
    pixels: PixelBuffer
    target_size: TargetSize
    distance_yards: float = config.DEFAULT_DISTANCE_YARDS
    click_value_moa: float = config.DEFAULT_CLICK_VALUE_MOA
    bull: InchPoint | None = None
    deadband_in: float = config.DEFAULT_DEADBAND_INCHES
    min_shots: int = config.DEFAULT_MIN_SHOTS
    max_shots: int = config.DEFAULT_MAX_SHOTS
    threshold: ThresholdStrategy = ThresholdStrategy()
    frame_strategy: Literal["border", "crosshair", "corners"] = "border"
    convention: AxisConvention = AxisConvention.Y_UP
    connectivity: Literal[4, 8] = config.DEFAULT_CONNECTIVITY

    @field_validator("target_size", mode="before")
    @classmethod
    def _parse_size(cls, value: object) -> object:
        if isinstance(value, str):
            return _size_from_text(value)
        return value


class CoordinateRequest(BaseModel):
    """Hole coordinates already expressed in inch space under ``convention``."""

    holes: list[InchPoint]
    bull: InchPoint
    distance_yards: float = config.DEFAULT_DISTANCE_YARDS
    click_value_moa: float = config.DEFAULT_CLICK_VALUE_MOA
    deadband_in: float = config.DEFAULT_DEADBAND_INCHES
    convention: AxisConvention = AxisConvention.Y_UP
