"""Visual modifier definitions for synthetic paper targets.

Modifiers are split into two stages:
- PAPER: printed on the paper before the holes are punched
- POST_RENDER: applied to the finished grayscale image
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ModifierStage(Enum):
    PAPER = "paper"
    POST_RENDER = "post"


@dataclass
class Modifier:
    stage: ModifierStage


# --- Paper-stage modifiers ---


@dataclass
class GridLines(Modifier):
    """Light inch grid, lighter than any threshold the pipeline resolves."""

    spacing_in: float = 1.0
    intensity: int = 215
    stage: ModifierStage = field(default=ModifierStage.PAPER, init=False)


@dataclass
class Crosshair(Modifier):
    """Dark lines through the paper center, border to border."""

    thickness: int = 2
    stage: ModifierStage = field(default=ModifierStage.PAPER, init=False)


@dataclass
class CornerMarkers(Modifier):
    """Solid square fiducials inset from each paper corner."""

    inset_in: float = 0.5
    size_in: float = 0.4
    stage: ModifierStage = field(default=ModifierStage.PAPER, init=False)


@dataclass
class NoBorder(Modifier):
    """Leave the printed border off."""

    stage: ModifierStage = field(default=ModifierStage.PAPER, init=False)


@dataclass
class StrayLine(Modifier):
    """1px dark horizontal line between two x positions (inches), not touching the border."""

    y_in: float = 9.0
    x0_in: float = 1.0
    x1_in: float = 7.5
    stage: ModifierStage = field(default=ModifierStage.PAPER, init=False)


@dataclass
class Speckle(Modifier):
    """Isolated dark pixels scattered over the paper interior."""

    count: int = 30
    seed: int = 7
    stage: ModifierStage = field(default=ModifierStage.PAPER, init=False)


# --- Post-render modifiers ---


@dataclass
class NoisyBackground(Modifier):
    """Gaussian sensor noise."""

    sigma: float = 4.0
    seed: int = 11
    stage: ModifierStage = field(default=ModifierStage.POST_RENDER, init=False)


@dataclass
class GaussianBlur(Modifier):
    """Slight defocus."""

    kernel_size: int = 3
    stage: ModifierStage = field(default=ModifierStage.POST_RENDER, init=False)


def get_modifier_names(modifiers: list[Modifier]) -> list[str]:
    return [type(m).__name__ for m in modifiers]
