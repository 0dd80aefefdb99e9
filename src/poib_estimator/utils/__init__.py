"""Utility modules for poib-estimator."""

from poib_estimator.utils.cv_utils import (
    GrayImage,
    # Type aliases
    Image,
    # Image I/O
    decode_image,
    # Scaling
    downsample_to_limit,
    load_image,
    pixel_buffer_from_image,
    # Helpers
    to_grayscale,
)

__all__ = [
    # Type aliases
    "Image",
    "GrayImage",
    # Image I/O
    "load_image",
    "decode_image",
    # Scaling
    "downsample_to_limit",
    # Helpers
    "to_grayscale",
    "pixel_buffer_from_image",
]
