"""
Function-based interface for the EZ module.

This module provides one-call helpers for common grayscale workflows.
"""

from typing import Any, Iterable, Optional, Tuple

from graygpu.constants.constants import Axis
from graygpu.core.image import GrayGpuImage
from graygpu.processing.backends.base import ComputeBackend
from graygpu.processing.filters import GaussianBlurFilter, ImageFilter


def gaussian_blur_filters(sigma: float) -> Tuple[GaussianBlurFilter, GaussianBlurFilter]:
    """
    The two passes of a 2D Gaussian blur.

    Args:
        sigma: Standard deviation in pixels, applied along both axes

    Returns:
        Horizontal pass followed by vertical pass
    """
    return GaussianBlurFilter(Axis.X, sigma), GaussianBlurFilter(Axis.Y, sigma)


def process_gray8(data: Any, width: int, height: int,
                  filters: Iterable[ImageFilter] = (),
                  stride: Optional[int] = None,
                  backend: Optional[ComputeBackend] = None) -> bytearray:
    """
    One-liner function to run a filter pipeline over 8-bit grayscale samples.

    The image is uploaded, filtered in order, read back and released.

    Args:
        data: Row-major samples, exactly ``width * height`` bytes
        width: Image width
        height: Image height
        filters: Filters to apply in order
        stride: Bytes between output row starts (default: output width)
        backend: Compute backend (default: process-wide default backend)

    Returns:
        bytearray: Packed rows of the filtered image. A rotation by an odd
        number of quarter turns swaps the output width and height.
    """
    with GrayGpuImage.from_gray8(data, width, height, backend=backend) as image:
        image.apply_filters(filters)
        return image.get_bytes(stride)
