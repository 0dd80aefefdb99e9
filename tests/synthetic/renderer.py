"""NumPy/OpenCV rendering of synthetic paper targets.

Paper-stage modifiers are drawn first, then the holes, then the
post-render modifiers run over the finished grayscale image.
"""

from __future__ import annotations

import cv2
import numpy as np

from .ground_truth import SyntheticTarget, to_pixel
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

PAPER_WHITE = 250


def _draw_border(img: np.ndarray, case: SyntheticTarget) -> None:
    width, height = case.paper_px
    m, t = case.margin_px, case.border_px
    img[m : m + t, m : m + width] = 0
    img[m + height - t : m + height, m : m + width] = 0
    img[m : m + height, m : m + t] = 0
    img[m : m + height, m + width - t : m + width] = 0


def _draw_grid(img: np.ndarray, case: SyntheticTarget, mod: GridLines) -> None:
    width, height = case.paper_px
    m = case.margin_px
    step = mod.spacing_in * case.ppi
    pos = step
    while pos < width - 1:
        img[m : m + height, m + int(round(pos))] = mod.intensity
        pos += step
    pos = step
    while pos < height - 1:
        img[m + int(round(pos)), m : m + width] = mod.intensity
        pos += step


def _draw_crosshair(img: np.ndarray, case: SyntheticTarget, mod: Crosshair) -> None:
    width, height = case.paper_px
    m = case.margin_px
    # Lines centered on the paper center in pixel-center coordinates
    cx = m + (width - mod.thickness) // 2
    cy = m + (height - mod.thickness) // 2
    img[m : m + height, cx : cx + mod.thickness] = 0
    img[cy : cy + mod.thickness, m : m + width] = 0


def marker_centers(case: SyntheticTarget, mod: CornerMarkers) -> list[tuple[float, float]]:
    """Marker centers in pixels, ordered top-left, top-right, bottom-left, bottom-right."""
    left, top, right, bottom = case.paper_edges
    inset = mod.inset_in * case.ppi
    return [
        (left + inset, top + inset),
        (right - inset, top + inset),
        (left + inset, bottom - inset),
        (right - inset, bottom - inset),
    ]


def _draw_markers(img: np.ndarray, case: SyntheticTarget, mod: CornerMarkers) -> None:
    size = int(round(mod.size_in * case.ppi))
    for cx, cy in marker_centers(case, mod):
        x0 = int(round(cx - size / 2 + 0.5))
        y0 = int(round(cy - size / 2 + 0.5))
        img[y0 : y0 + size, x0 : x0 + size] = 0


def _draw_stray_line(img: np.ndarray, case: SyntheticTarget, mod: StrayLine) -> None:
    x0, y = to_pixel(case, mod.x0_in, mod.y_in)
    x1, _ = to_pixel(case, mod.x1_in, mod.y_in)
    img[int(round(y)), int(round(x0)) : int(round(x1)) + 1] = 0


def _draw_speckle(img: np.ndarray, case: SyntheticTarget, mod: Speckle) -> None:
    rng = np.random.default_rng(mod.seed)
    width, height = case.paper_px
    m = case.margin_px
    pad = case.ppi
    xs = rng.integers(m + pad, m + width - pad, size=mod.count)
    ys = rng.integers(m + pad, m + height - pad, size=mod.count)
    img[ys, xs] = 0


def _draw_holes(img: np.ndarray, case: SyntheticTarget) -> None:
    yy, xx = np.mgrid[0 : img.shape[0], 0 : img.shape[1]]
    r2 = case.hole_radius_px**2
    for x_in, y_in in case.holes_in:
        px, py = to_pixel(case, x_in, y_in)
        img[(xx - px) ** 2 + (yy - py) ** 2 <= r2] = case.hole_intensity


def _apply_post(img: np.ndarray, mod: Modifier) -> np.ndarray:
    if isinstance(mod, NoisyBackground):
        rng = np.random.default_rng(mod.seed)
        noisy = img.astype(np.float64) + rng.normal(0.0, mod.sigma, img.shape)
        return np.clip(noisy, 0, 255).astype(np.uint8)
    if isinstance(mod, GaussianBlur):
        k = mod.kernel_size | 1
        return cv2.GaussianBlur(img, (k, k), 0)
    raise ValueError(f"Not a post-render modifier: {type(mod).__name__}")


def render_target(case: SyntheticTarget) -> np.ndarray:
    """Render the target as an 8-bit grayscale image (0=black..255=white)."""
    img = np.full(case.image_shape, 255, dtype=np.uint8)
    width, height = case.paper_px
    m = case.margin_px
    img[m : m + height, m : m + width] = PAPER_WHITE

    paper_mods = [mod for mod in case.modifiers if mod.stage == ModifierStage.PAPER]
    for mod in paper_mods:
        if isinstance(mod, GridLines):
            _draw_grid(img, case, mod)
    if not case.has(NoBorder):
        _draw_border(img, case)
    for mod in paper_mods:
        if isinstance(mod, Crosshair):
            _draw_crosshair(img, case, mod)
        elif isinstance(mod, CornerMarkers):
            _draw_markers(img, case, mod)
        elif isinstance(mod, StrayLine):
            _draw_stray_line(img, case, mod)
        elif isinstance(mod, Speckle):
            _draw_speckle(img, case, mod)

    _draw_holes(img, case)

    for mod in case.modifiers:
        if mod.stage == ModifierStage.POST_RENDER:
            img = _apply_post(img, mod)
    return img
