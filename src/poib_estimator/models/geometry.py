from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class AxisConvention(str, Enum):
    """Direction of positive Y in inch space. Positive X is always right."""

    Y_UP = "y_up"
    Y_DOWN = "y_down"


class InchPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class TargetSize(BaseModel):
    model_config = ConfigDict(frozen=True)

    width_in: float = Field(gt=0)
    height_in: float = Field(gt=0)

    @property
    def long_in(self) -> float:
        return max(self.width_in, self.height_in)

    @property
    def short_in(self) -> float:
        return min(self.width_in, self.height_in)

    @property
    def aspect(self) -> float:
        return self.width_in / self.height_in

    @property
    def center(self) -> InchPoint:
        return InchPoint(x=self.width_in / 2, y=self.height_in / 2)

    def oriented(self, landscape: bool) -> "TargetSize":
        """Return the same paper turned so its long side runs horizontally or vertically."""
        if landscape:
            return TargetSize(width_in=self.long_in, height_in=self.short_in)
        return TargetSize(width_in=self.short_in, height_in=self.long_in)


class MaskInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Literal["fixed", "adaptive"]
    threshold: float
    mean_intensity: float
    dark_pixels: int


class Blob(BaseModel):
    model_config = ConfigDict(frozen=True)

    area: int
    centroid: tuple[float, float]
    bbox: tuple[int, int, int, int]  # (min_x, min_y, max_x, max_y), inclusive
    oversized: bool = False

    @property
    def bbox_width(self) -> int:
        return self.bbox[2] - self.bbox[0] + 1

    @property
    def bbox_height(self) -> int:
        return self.bbox[3] - self.bbox[1] + 1

    @property
    def aspect_ratio(self) -> float:
        w, h = self.bbox_width, self.bbox_height
        return max(w, h) / max(1, min(w, h))


class RejectReason(str, Enum):
    OVERSIZED = "oversized"
    TOO_SMALL = "too_small"
    TOO_LARGE = "too_large"
    TOO_ELONGATED = "too_elongated"
    EXCLUDED_ZONE = "excluded_zone"


class RejectedBlob(BaseModel):
    model_config = ConfigDict(frozen=True)

    blob: Blob
    reason: RejectReason
    zone: str | None = None


class ExclusionZone(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    rect: tuple[float, float, float, float]  # (x0, y0, x1, y1) in pixels, inclusive

    def contains(self, x: float, y: float) -> bool:
        x0, y0, x1, y1 = self.rect
        return x0 <= x <= x1 and y0 <= y <= y1


class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    hole_candidates: list[Blob]
    rejected: list[RejectedBlob] = []


class Frame(BaseModel):
    """Detected physical reference grid of the target paper."""

    model_config = ConfigDict(frozen=True)

    origin_px: tuple[float, float]
    pixels_per_inch: float = Field(gt=0, allow_inf_nan=False)
    convention: AxisConvention = AxisConvention.Y_UP
    strategy: Literal["border", "crosshair", "corners"] = "border"
    border_box_px: tuple[int, int, int, int] | None = None
    aim_px: tuple[float, float] | None = None
    fiducials_px: list[tuple[float, float]] = []
    target_size: TargetSize | None = None
