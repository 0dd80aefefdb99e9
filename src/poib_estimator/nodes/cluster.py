"""Shot group selection: keep the tightest cluster, drop flyers."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from poib_estimator import config
from poib_estimator.models import ErrorKind, PipelineState, ProcessingError, ProcessingStage

logger = logging.getLogger(__name__)


def cluster_radius(points: np.ndarray) -> float:
    """Largest distance from the subset centroid."""
    center = points.mean(axis=0)
    return float(np.max(np.hypot(points[:, 0] - center[0], points[:, 1] - center[1])))


def _tightest_for_k(points: np.ndarray, order: np.ndarray, k: int) -> tuple[float, list[int]]:
    best_radius = math.inf
    best_subset: list[int] = []
    for row in order:
        subset = row[:k]
        radius = cluster_radius(points[subset])
        if radius < best_radius:
            best_radius = radius
            best_subset = sorted(int(i) for i in subset)
    return best_radius, best_subset


def select_cluster(
    points: Sequence[tuple[float, float]],
    max_shots: int = config.DEFAULT_MAX_SHOTS,
    min_shots: int = config.DEFAULT_MIN_SHOTS,
    min_k: int = config.CLUSTER_MIN_K,
    growth_limit: float = config.CLUSTER_GROWTH_LIMIT,
    radius_floor: float = 0.0,
) -> list[int] | ProcessingError:
    """
    Select the indices of the points that form the shot group.

    With at most ``max_shots`` points all of them are kept. Otherwise every
    size ``k`` from ``max(min_shots, min_k)`` (capped at ``max_shots``) up to
    ``max_shots`` is tried around every point as a center, taking its ``k``
    nearest neighbours and measuring the subset's radius. The tightest subset
    of each size is kept. Sizes then grow one shot at a time: size ``k`` is
    accepted while its radius stays within ``growth_limit`` times the scale
    of size ``k - 1``, and the first refused step ends the search. The scale
    is the larger of the previous radius, the median nearest-neighbour
    spacing of all points and ``radius_floor``, so a few touching holes do
    not make the rest of a spread group look like flyers.

    Args:
        points: Hole centroids
        max_shots: Upper bound on the group size
        min_shots: Fewer candidates than this is an error
        min_k: Smallest group size considered when searching
        growth_limit: Allowed radius ratio between consecutive group sizes
        radius_floor: Lower bound on the scale, in the units of ``points``

    Returns:
        Sorted indices into ``points`` or ProcessingError(insufficient_shots)
    """
    n = len(points)
    if n < max(1, min_shots):
        return ProcessingError(
            stage=ProcessingStage.CLUSTER,
            error_type=ErrorKind.INSUFFICIENT_SHOTS,
            recoverable=True,
            message=f"Found {n} hole(s), need at least {min_shots}",
            details={"found": n, "min_shots": min_shots},
        )
    if n <= max_shots:
        return list(range(n))

    pts = np.asarray(points, dtype=np.float64)
    diff = pts[:, None, :] - pts[None, :, :]
    dist = np.hypot(diff[..., 0], diff[..., 1])
    # Stable sort: ties resolve by index
    order = np.argsort(dist, axis=1, kind="stable")

    k_lo = min(max_shots, max(min_shots, min_k))
    best: dict[int, tuple[float, list[int]]] = {
        k: _tightest_for_k(pts, order, k) for k in range(k_lo, max_shots + 1)
    }

    np.fill_diagonal(dist, np.inf)
    spacing = float(np.median(dist.min(axis=1)))

    chosen = k_lo
    for k in range(k_lo + 1, max_shots + 1):
        scale = max(best[k - 1][0], spacing, radius_floor)
        if best[k][0] > growth_limit * scale:
            break
        chosen = k

    logger.debug(
        "cluster: %d candidates, k=%d radius=%.2f (spacing %.2f)",
        n,
        chosen,
        best[chosen][0],
        spacing,
    )
    return best[chosen][1]


def cluster_node(state: PipelineState) -> PipelineState:
    req = state.request
    cfg = state.config
    holes = state.classification.hole_candidates if state.classification else []

    # Growth scale is at least one median hole diameter
    areas = sorted(b.area for b in holes)
    radius_floor = 2 * math.sqrt(areas[len(areas) // 2] / math.pi) if areas else 0.0

    result = select_cluster(
        [b.centroid for b in holes],
        max_shots=req.max_shots,
        min_shots=req.min_shots,
        min_k=cfg.cluster_min_k,
        growth_limit=cfg.cluster_growth_limit,
        radius_floor=radius_floor,
    )
    if isinstance(result, ProcessingError):
        return state.model_copy(update={"errors": state.errors + [result]})

    selected = [holes[i] for i in result]
    warnings = list(state.warnings)
    if len(selected) < len(holes):
        warnings.append(f"Discarded {len(holes) - len(selected)} outlying hole(s)")
    return state.model_copy(update={"selected": selected, "warnings": warnings})
