"""Connected-component blob finder over a binary mask."""

from __future__ import annotations

import logging

import cv2
import numpy as np
from numpy.typing import NDArray

from poib_estimator.models import Blob, PipelineState

logger = logging.getLogger(__name__)


def find_blobs(
    mask: NDArray[np.bool_],
    connectivity: int = 8,
    max_area: int | None = None,
) -> list[Blob]:
    """
    Find connected regions of dark pixels.

    Components are labelled in one pass with OpenCV and emitted in row-major
    order of their first pixel, so every dark pixel belongs to exactly one
    blob.

    A component larger than ``max_area`` pixels is still emitted, flagged
    ``oversized=True`` so the classifier rejects it explicitly.

    Args:
        mask: (height, width) boolean mask, True = dark
        connectivity: 4 or 8
        max_area: Optional ceiling on pixels per hole-sized component

    Returns:
        Blobs in scan order (empty list if the mask has no dark pixels)
    """
    if connectivity not in (4, 8):
        raise ValueError(f"connectivity must be 4 or 8, got {connectivity}")

    grid = np.asarray(mask, dtype=bool)
    if grid.ndim != 2 or grid.size == 0 or not grid.any():
        return []

    num_labels, labels, stats, centroids = cv2.connectedComponentsWithStats(
        grid.astype(np.uint8), connectivity=connectivity
    )

    # First raster index of each label fixes the emission order
    found, first = np.unique(labels.ravel(), return_index=True)
    order = [int(label) for _, label in sorted(zip(first.tolist(), found.tolist())) if label != 0]

    blobs: list[Blob] = []
    for label_idx in order:
        area = int(stats[label_idx, cv2.CC_STAT_AREA])
        x = int(stats[label_idx, cv2.CC_STAT_LEFT])
        y = int(stats[label_idx, cv2.CC_STAT_TOP])
        w = int(stats[label_idx, cv2.CC_STAT_WIDTH])
        h = int(stats[label_idx, cv2.CC_STAT_HEIGHT])
        cx, cy = centroids[label_idx]
        blobs.append(
            Blob(
                area=area,
                centroid=(float(cx), float(cy)),
                bbox=(x, y, x + w - 1, y + h - 1),
                oversized=max_area is not None and area > max_area,
            )
        )

    logger.debug("labelled %d components", num_labels - 1)
    return blobs


def blobs_node(state: PipelineState) -> PipelineState:
    """Run connected-component analysis on the state mask."""
    cfg = state.config
    max_area = cfg.max_hole_area * cfg.oversize_area_factor
    blobs = find_blobs(state.mask, connectivity=state.request.connectivity, max_area=max_area)
    logger.debug(
        "blobs: %d components (%d oversized)",
        len(blobs),
        sum(1 for b in blobs if b.oversized),
    )
    return state.model_copy(update={"blobs": blobs})
