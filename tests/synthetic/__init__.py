"""Synthetic paper target harness.

Render grayscale target photographs with known ground truth for pipeline
tests.

Usage:
    from tests.synthetic import SyntheticTarget, render_target
    from tests.synthetic import expected_poib, expected_clicks, save_test_case
"""

from .ground_truth import (
    SyntheticTarget,
    build_ground_truth,
    expected_clicks,
    expected_origin,
    expected_poib,
    load_ground_truth,
    save_test_case,
    to_convention,
    to_pixel,
)
from .modifiers import (
    CornerMarkers,
    Crosshair,
    GaussianBlur,
    GridLines,
    Modifier,
    ModifierStage,
    NoBorder,
    NoisyBackground,
    Speckle,
    StrayLine,
)
from .renderer import marker_centers, render_target

__all__ = [
    "CornerMarkers",
    "Crosshair",
    "GaussianBlur",
    "GridLines",
    "Modifier",
    "ModifierStage",
    "NoBorder",
    "NoisyBackground",
    "Speckle",
    "StrayLine",
    "SyntheticTarget",
    "build_ground_truth",
    "expected_clicks",
    "expected_origin",
    "expected_poib",
    "load_ground_truth",
    "marker_centers",
    "render_target",
    "save_test_case",
    "to_convention",
    "to_pixel",
]
