"""
OpenCV utility functions for getting target photographs into the pipeline.

This module provides:
- Image I/O with validation (files and in-memory bytes)
- Grayscale conversion
- Downsampling oversized photographs
- PixelBuffer construction

All fallible functions follow the Result | ProcessingError pattern.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeAlias

import cv2
import numpy as np
from numpy.typing import NDArray

from poib_estimator import config
from poib_estimator.models import ErrorKind, PixelBuffer, ProcessingError, ProcessingStage

# =============================================================================
# TYPE ALIASES
# =============================================================================

# Use Any for dtype to avoid MatLike compatibility issues with OpenCV
Image: TypeAlias = NDArray[Any]  # BGR or grayscale image
GrayImage: TypeAlias = NDArray[Any]  # Single channel grayscale


# =============================================================================
# SECTION 1: IMAGE I/O
# =============================================================================


def _io_error(error_type: str, message: str, **details: object) -> ProcessingError:
    return ProcessingError(
        stage=ProcessingStage.INPUT,
        error_type=ErrorKind.MALFORMED_INPUT,
        recoverable=False,
        message=message,
        details={"reason": error_type, **details},
    )


def load_image(path: str | Path) -> GrayImage | ProcessingError:
    """
    Load an image from disk as 8-bit grayscale.

    Handles:
    - Corrupted images (cv2.imread failure)
    - Color and alpha images (converted to grayscale)
    - File not found

    Args:
        path: Path to image file

    Returns:
        Grayscale image array or ProcessingError
    """
    path = Path(path)

    if not path.exists():
        return _io_error("file_not_found", f"Image file not found: {path}", path=str(path))

    # cv2.imread returns None on failure, including unreadable files
    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        return _io_error(
            "imread_failed", f"Failed to read image (may be corrupted): {path}", path=str(path)
        )
    return to_grayscale(img)


def decode_image(data: bytes) -> GrayImage | ProcessingError:
    """
    Decode encoded image bytes (JPEG, PNG, ...) to 8-bit grayscale.

    Args:
        data: Encoded image file contents

    Returns:
        Grayscale image array or ProcessingError
    """
    if not data:
        return _io_error("empty_image", "Image data is empty")

    buf = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    if img is None:
        return _io_error("imdecode_failed", "Failed to decode image data", bytes=len(data))
    return to_grayscale(img)


# =============================================================================
# SECTION 2: SCALING
# =============================================================================


def downsample_to_limit(
    image: Image,
    max_dimension: int = config.TARGET_RESOLUTION,
    max_pixels: int = config.MAX_PIXELS,
) -> Image:
    """
    Downsample an image so its longest edge and pixel count fit the limits.

    Uses INTER_AREA, which averages source pixels and keeps small dark holes
    from vanishing the way nearest-neighbour sampling can.

    Args:
        image: Input image
        max_dimension: Longest edge allowed
        max_pixels: Maximum number of pixels allowed

    Returns:
        Downsampled image if needed, or original if within limits
    """
    if image.size == 0:
        return image

    height, width = image.shape[:2]
    scale = min(1.0, max_dimension / max(height, width), np.sqrt(max_pixels / (height * width)))
    if scale >= 1.0:
        return image

    new_width = max(1, int(width * scale))
    new_height = max(1, int(height * scale))
    return cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_AREA)


# =============================================================================
# SECTION 3: HELPERS
# =============================================================================


def to_grayscale(image: Image) -> GrayImage:
    """
    Convert an image to single-channel 8-bit grayscale.

    Args:
        image: BGR, BGRA, or already grayscale; 16-bit input is scaled down
            and float input is taken as 0..1 intensity

    Returns:
        Single-channel uint8 grayscale image
    """
    if image.dtype == np.uint16:
        image = (image / 257).astype(np.uint8)
    elif np.issubdtype(image.dtype, np.floating):
        image = (np.clip(image, 0.0, 1.0) * 255).round().astype(np.uint8)

    if len(image.shape) == 3:
        channels = image.shape[2]
        if channels == 1:
            image = image[:, :, 0]
        elif channels == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        else:
            # Assume BGR for 3 channels
            image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    return np.ascontiguousarray(image, dtype=np.uint8)


def pixel_buffer_from_image(image: Image) -> PixelBuffer:
    """Wrap a decoded image as the pipeline's grayscale PixelBuffer."""
    return PixelBuffer.from_array(to_grayscale(image))
