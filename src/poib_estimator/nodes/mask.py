"""Binary mask node: grayscale pixels to a dark/light mask."""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

from poib_estimator.models import MaskInfo, PipelineState, ThresholdStrategy

logger = logging.getLogger(__name__)


def resolve_threshold(gray: NDArray[np.uint8], strategy: ThresholdStrategy) -> tuple[float, float]:
    """Return (threshold, mean_intensity) for a grayscale grid."""
    mean = float(np.mean(gray)) if gray.size else 0.0
    if strategy.mode == "fixed":
        return float(strategy.value), mean
    lo, hi = sorted((strategy.min_value, strategy.max_value))
    threshold = float(np.clip(mean - strategy.offset, lo, hi))
    return threshold, mean


def build_mask(
    gray: NDArray[np.uint8], strategy: ThresholdStrategy
) -> tuple[NDArray[np.bool_], MaskInfo]:
    """
    Mark every pixel strictly darker than the resolved threshold.

    Args:
        gray: (height, width) intensities, 0=black..255=white
        strategy: fixed threshold or adaptive mean-minus-offset

    Returns:
        Boolean mask (True = dark) and the threshold metadata
    """
    threshold, mean = resolve_threshold(gray, strategy)
    mask = np.asarray(gray, dtype=np.float64) < threshold
    info = MaskInfo(
        mode=strategy.mode,
        threshold=threshold,
        mean_intensity=mean,
        dark_pixels=int(np.count_nonzero(mask)),
    )
    return mask, info


def threshold_node(state: PipelineState) -> PipelineState:
    """
    Build the binary mask for the request image.

    Updates state with:
    - gray: read-only intensity grid
    - mask: dark pixel mask
    - mask_info: resolved threshold and mean intensity
    """
    gray = state.request.pixels.grid()
    mask, info = build_mask(gray, state.request.threshold)
    logger.debug(
        "mask: mode=%s threshold=%.1f mean=%.1f dark=%d",
        info.mode,
        info.threshold,
        info.mean_intensity,
        info.dark_pixels,
    )
    return state.model_copy(update={"gray": gray, "mask": mask, "mask_info": info})
