"""Input guard node for validating image requests before any pixel work."""

from poib_estimator.models import ErrorKind, PipelineState, ProcessingError, ProcessingStage
from poib_estimator.nodes.correction import validate_parameters


def input_guard(state: PipelineState) -> PipelineState:
    """
    Validate the request: buffer shape, image bounds, ballistics and shot counts.

    Updates state with:
    - errors: internal_error for a buffer that does not match its dimensions,
      invalid_parameter for everything else
    """
    req = state.request
    cfg = state.config

    shape_error = req.pixels.validate_shape()
    if shape_error is not None:
        return state.model_copy(update={"errors": state.errors + [shape_error]})

    longest = max(req.pixels.width, req.pixels.height)
    shortest = min(req.pixels.width, req.pixels.height)
    if shortest < cfg.min_image_dimension or longest > cfg.max_image_dimension:
        return state.model_copy(update={
            "errors": state.errors + [ProcessingError(
                stage=ProcessingStage.INPUT,
                error_type=ErrorKind.INVALID_PARAMETER,
                recoverable=True,
                message=(
                    f"Image {req.pixels.width}x{req.pixels.height} outside "
                    f"{cfg.min_image_dimension}..{cfg.max_image_dimension}px"
                ),
                details={
                    "width": req.pixels.width,
                    "height": req.pixels.height,
                    "min_dimension": cfg.min_image_dimension,
                    "max_dimension": cfg.max_image_dimension,
                },
            )],
        })

    invalid = validate_parameters(req.distance_yards, req.click_value_moa, req.deadband_in)
    if invalid is not None:
        return state.model_copy(update={
            "errors": state.errors + [invalid.model_copy(update={"stage": ProcessingStage.INPUT})],
        })

    if req.max_shots < 1 or req.min_shots < 1 or req.min_shots > req.max_shots:
        return state.model_copy(update={
            "errors": state.errors + [ProcessingError(
                stage=ProcessingStage.INPUT,
                error_type=ErrorKind.INVALID_PARAMETER,
                recoverable=True,
                message=f"Need 1 <= min_shots <= max_shots, got {req.min_shots}..{req.max_shots}",
                details={"min_shots": req.min_shots, "max_shots": req.max_shots},
            )],
        })

    return state
