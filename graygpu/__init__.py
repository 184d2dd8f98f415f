"""
graygpu: grayscale image processing on compute backends.

Images live in backend memory as float32 samples, run through a pipeline of
filters and are read back as stride-conforming 8-bit rows.
"""

import logging

__version__ = "0.1.0"


# Set up basic logging configuration if none exists
def _ensure_basic_logging():
    """Ensure basic logging is configured if no configuration exists."""
    root_logger = logging.getLogger()

    # Only configure if no handlers exist and level is too high
    if not root_logger.handlers and root_logger.level > logging.INFO:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

# Configure basic logging on import
_ensure_basic_logging()

# Re-export public API
from graygpu.constants import Axis, BackendType
from graygpu.core.config import ComputeConfig
from graygpu.core.exceptions import (BackendFailureError,
                                     BackendNotAvailableError,
                                     DimensionMismatchError, GrayGpuError,
                                     InvalidDimensionError,
                                     InvalidStrideError,
                                     UnsupportedKernelError,
                                     UseAfterDisposeError)
from graygpu.core.image import GrayGpuImage
from graygpu.ez import gaussian_blur_filters, process_gray8
from graygpu.processing.backends import (ComputeBackend, get_backend,
                                         get_default_backend,
                                         list_available_backends,
                                         reset_default_backend)
from graygpu.processing.filters import (FlipFilter, GammaFilter,
                                        GaussianBlurFilter, ImageFilter,
                                        LevelFilter, Rotate90Filter,
                                        ThresholdFilter)
from graygpu.processing.generators import (CheckerboardGenerator,
                                           FillGenerator, GradientGenerator,
                                           ImageGenerator)

__all__ = [
    # Image
    "GrayGpuImage",

    # Filters and generators
    "ImageFilter",
    "LevelFilter",
    "GammaFilter",
    "ThresholdFilter",
    "GaussianBlurFilter",
    "Rotate90Filter",
    "FlipFilter",
    "ImageGenerator",
    "FillGenerator",
    "GradientGenerator",
    "CheckerboardGenerator",
    "Axis",

    # Backends
    "BackendType",
    "ComputeBackend",
    "ComputeConfig",
    "get_backend",
    "get_default_backend",
    "list_available_backends",
    "reset_default_backend",

    # Convenience
    "process_gray8",
    "gaussian_blur_filters",

    # Errors
    "GrayGpuError",
    "InvalidDimensionError",
    "DimensionMismatchError",
    "InvalidStrideError",
    "UseAfterDisposeError",
    "BackendFailureError",
    "BackendNotAvailableError",
    "UnsupportedKernelError",
]
