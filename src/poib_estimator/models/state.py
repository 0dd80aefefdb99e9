import numpy as np
from pydantic import BaseModel, ConfigDict

from poib_estimator import config

from .correction_output import CorrectionResult, ProcessingError
from .geometry import Blob, Classification, Frame, MaskInfo
from .inputs import ImageRequest


class PipelineConfig(BaseModel):
    min_hole_area: int = config.MIN_HOLE_AREA
    max_hole_area: int = config.MAX_HOLE_AREA
    max_aspect_ratio: float = config.MAX_ASPECT_RATIO
    oversize_area_factor: int = config.OVERSIZE_AREA_FACTOR

    border_margin_in: float = config.BORDER_MARGIN_INCHES
    crosshair_half_width_in: float = config.CROSSHAIR_HALF_WIDTH_INCHES
    header_fraction: float = config.HEADER_FRACTION
    footer_fraction: float = config.FOOTER_FRACTION
    fiducial_zone_in: float = config.FIDUCIAL_ZONE_INCHES

    border_density_threshold: float = config.BORDER_DENSITY_THRESHOLD
    min_border_fraction: float = config.MIN_BORDER_FRACTION
    aspect_tolerance: float = config.ASPECT_TOLERANCE
    crosshair_band_fraction: float = config.CROSSHAIR_BAND_FRACTION
    fiducial_inset_in: float = config.FIDUCIAL_INSET_INCHES

    cluster_min_k: int = config.CLUSTER_MIN_K
    cluster_growth_limit: float = config.CLUSTER_GROWTH_LIMIT

    min_image_dimension: int = config.MIN_IMAGE_DIMENSION
    max_image_dimension: int = config.MAX_IMAGE_DIMENSION


class PipelineState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    request: ImageRequest
    config: PipelineConfig = PipelineConfig()

    gray: np.ndarray | None = None
    mask: np.ndarray | None = None
    mask_info: MaskInfo | None = None

    blobs: list[Blob] | None = None
    frame: Frame | None = None
    classification: Classification | None = None
    selected: list[Blob] | None = None

    output: CorrectionResult | None = None
    warnings: list[str] = []

    errors: list[ProcessingError] = []
