"""LangGraph pipeline from target image to sight correction."""

import logging

from langgraph.graph import END, StateGraph
from pydantic import ValidationError

from poib_estimator import config as settings
from poib_estimator.models import (
    CoordinateRequest,
    CorrectionResult,
    ErrorKind,
    ImageRequest,
    PipelineConfig,
    PipelineState,
    ProcessingError,
    ProcessingStage,
)
from poib_estimator.nodes import (
    classify_holes,
    correct,
    find_blobs,
    guard_input,
    locate_frame,
    select_group,
    threshold,
)
from poib_estimator.nodes.correction import compute_clicks, mean_point

logger = logging.getLogger(__name__)


def _failed(state: PipelineState, stage: ProcessingStage) -> bool:
    return any(err.stage == stage for err in state.errors)


def _route_input_guard(state: PipelineState) -> str:
    if _failed(state, ProcessingStage.INPUT):
        return END
    return "threshold"


def _route_threshold(state: PipelineState) -> str:
    if state.mask is not None:
        return "find_blobs"
    return END


def _route_blobs(state: PipelineState) -> str:
    if state.blobs is not None:
        return "locate_frame"
    return END


def _route_frame(state: PipelineState) -> str:
    if _failed(state, ProcessingStage.FRAME):
        return END
    if state.frame is not None:
        return "classify"
    return END


def _route_classify(state: PipelineState) -> str:
    if state.classification and len(state.classification.hole_candidates) > 0:
        return "select_group"
    return END


def _route_cluster(state: PipelineState) -> str:
    if _failed(state, ProcessingStage.CLUSTER):
        return END
    if state.selected:
        return "correct"
    return END


def create_pipeline():
    graph = StateGraph(PipelineState)

    graph.add_node("input_guard", guard_input)
    graph.add_node("threshold", threshold)
    graph.add_node("find_blobs", find_blobs)
    graph.add_node("locate_frame", locate_frame)
    graph.add_node("classify", classify_holes)
    graph.add_node("select_group", select_group)
    graph.add_node("correct", correct)

    graph.set_entry_point("input_guard")

    graph.add_conditional_edges(
        "input_guard", _route_input_guard, {"threshold": "threshold", END: END}
    )
    graph.add_conditional_edges(
        "threshold", _route_threshold, {"find_blobs": "find_blobs", END: END}
    )
    graph.add_conditional_edges(
        "find_blobs", _route_blobs, {"locate_frame": "locate_frame", END: END}
    )
    graph.add_conditional_edges(
        "locate_frame", _route_frame, {"classify": "classify", END: END}
    )
    graph.add_conditional_edges(
        "classify", _route_classify, {"select_group": "select_group", END: END}
    )
    graph.add_conditional_edges(
        "select_group", _route_cluster, {"correct": "correct", END: END}
    )
    graph.add_edge("correct", END)

    return graph.compile()


def run_pipeline(request: ImageRequest, config: PipelineConfig | None = None) -> PipelineState:
    initial = PipelineState(request=request, config=config or PipelineConfig())
    result = pipeline.invoke(initial)
    return result if isinstance(result, PipelineState) else PipelineState(**result)


async def run_pipeline_async(
    request: ImageRequest, config: PipelineConfig | None = None
) -> PipelineState:
    """Async runner; each call works on its own state so calls can overlap freely."""
    initial = PipelineState(request=request, config=config or PipelineConfig())
    result = await pipeline.ainvoke(initial)
    return result if isinstance(result, PipelineState) else PipelineState(**result)


def internal_error(stage: ProcessingStage, exc: Exception) -> ProcessingError:
    return ProcessingError(
        stage=stage,
        error_type=ErrorKind.INTERNAL_ERROR,
        recoverable=False,
        message=f"Unexpected error: {exc}",
        details={"exception": type(exc).__name__},
    )


def malformed_request(e: ValidationError) -> ProcessingError:
    return ProcessingError(
        stage=ProcessingStage.INPUT,
        error_type=ErrorKind.MALFORMED_INPUT,
        recoverable=True,
        message="Malformed request",
        details={"errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]},
    )


def result_from_state(state: PipelineState) -> CorrectionResult | ProcessingError:
    """First recorded error, or the output of a completed run."""
    if state.errors:
        return state.errors[0]
    if state.output is None:
        return ProcessingError(
            stage=ProcessingStage.CORRECT,
            error_type=ErrorKind.INTERNAL_ERROR,
            recoverable=False,
            message="Pipeline finished without a result",
        )
    return state.output


def compute_coordinates(request: CoordinateRequest) -> CorrectionResult | ProcessingError:
    """Coordinate mode: holes already in inches go straight to the correction engine."""
    poib = mean_point(request.holes)
    if isinstance(poib, ProcessingError):
        return poib

    n = len(request.holes)
    warnings = []
    if n < settings.RECOMMENDED_MIN_SHOTS:
        logger.warning("only %d shot(s) in group, %d recommended", n, settings.RECOMMENDED_MIN_SHOTS)
        warnings.append(
            f"Only {n} shot(s) in group; {settings.RECOMMENDED_MIN_SHOTS} or more recommended"
        )

    return compute_clicks(
        poib,
        request.bull,
        request.distance_yards,
        request.click_value_moa,
        deadband_in=request.deadband_in,
        convention=request.convention,
        diagnostics={"holes_detected": n, "holes_selected": n, "warnings": warnings},
    )


def compute_correction(
    request: ImageRequest | CoordinateRequest | dict,
    config: PipelineConfig | None = None,
) -> CorrectionResult | ProcessingError:
    """
    Compute the sight correction for an image or for explicit hole coordinates.

    Expected failures come back as ProcessingError values; nothing raised by
    the stages crosses this boundary.

    Args:
        request: ImageRequest, CoordinateRequest, or a dict for either
            (a dict with "holes" is coordinate mode)
        config: Detection tuning for image mode

    Returns:
        CorrectionResult or ProcessingError
    """
    if isinstance(request, dict):
        try:
            if "holes" in request:
                request = CoordinateRequest.model_validate(request)
            else:
                request = ImageRequest.model_validate(request)
        except ValidationError as e:
            return malformed_request(e)

    if isinstance(request, CoordinateRequest):
        try:
            return compute_coordinates(request)
        except Exception as e:
            logger.exception("coordinate correction failed")
            return internal_error(ProcessingStage.CORRECT, e)

    try:
        state = run_pipeline(request, config)
    except Exception as e:
        logger.exception("image pipeline failed")
        return internal_error(ProcessingStage.INPUT, e)
    return result_from_state(state)


pipeline = create_pipeline()
