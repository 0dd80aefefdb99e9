"""Pipeline nodes for target image processing.

Each wrapper imports its node lazily so importing the package does not pull
in every stage.
"""

from __future__ import annotations

from poib_estimator.models import PipelineState


def guard_input(state: PipelineState) -> PipelineState:
    from poib_estimator.nodes.input_guard import input_guard as _input_guard

    return _input_guard(state)


def threshold(state: PipelineState) -> PipelineState:
    from poib_estimator.nodes.mask import threshold_node

    return threshold_node(state)


def find_blobs(state: PipelineState) -> PipelineState:
    from poib_estimator.nodes.blobs import blobs_node

    return blobs_node(state)


def locate_frame(state: PipelineState) -> PipelineState:
    from poib_estimator.nodes.frame import frame_node

    return frame_node(state)


def classify_holes(state: PipelineState) -> PipelineState:
    from poib_estimator.nodes.classify import classify_node

    return classify_node(state)


def select_group(state: PipelineState) -> PipelineState:
    from poib_estimator.nodes.cluster import cluster_node

    return cluster_node(state)


def correct(state: PipelineState) -> PipelineState:
    from poib_estimator.nodes.correction import correct_node

    return correct_node(state)


__all__ = [
    "classify_holes",
    "correct",
    "find_blobs",
    "guard_input",
    "locate_frame",
    "select_group",
    "threshold",
]
