from .correction_output import (
    ClickResult,
    CorrectionResult,
    CorrectionVector,
    Diagnostics,
    DialReadout,
    ErrorKind,
    ProcessingError,
    ProcessingStage,
)
from .geometry import (
    AxisConvention,
    Blob,
    Classification,
    ExclusionZone,
    Frame,
    InchPoint,
    MaskInfo,
    RejectedBlob,
    RejectReason,
    TargetSize,
)
from .inputs import (
    CoordinateRequest,
    ImageRequest,
    PixelBuffer,
    ThresholdStrategy,
    parse_target_size,
)
from .state import PipelineConfig, PipelineState

__all__ = [
    "AxisConvention",
    "Blob",
    "Classification",
    "ClickResult",
    "CoordinateRequest",
    "CorrectionResult",
    "CorrectionVector",
    "Diagnostics",
    "DialReadout",
    "ErrorKind",
    "ExclusionZone",
    "Frame",
    "ImageRequest",
    "InchPoint",
    "MaskInfo",
    "PipelineConfig",
    "PipelineState",
    "PixelBuffer",
    "ProcessingError",
    "ProcessingStage",
    "RejectedBlob",
    "RejectReason",
    "TargetSize",
    "ThresholdStrategy",
    "parse_target_size",
]
