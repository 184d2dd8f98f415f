"""
Core of graygpu: configuration, errors and the image container.

``GrayGpuImage`` lives in ``graygpu.core.image`` and is not imported here,
since it depends on ``graygpu.processing``.
"""

from graygpu.core.config import ComputeConfig
from graygpu.core.exceptions import (BackendFailureError,
                                     BackendNotAvailableError,
                                     DimensionMismatchError, GrayGpuError,
                                     InvalidDimensionError,
                                     InvalidStrideError,
                                     UnsupportedKernelError,
                                     UseAfterDisposeError)

__all__ = [
    'ComputeConfig',
    'GrayGpuError',
    'InvalidDimensionError',
    'DimensionMismatchError',
    'InvalidStrideError',
    'UseAfterDisposeError',
    'BackendFailureError',
    'BackendNotAvailableError',
    'UnsupportedKernelError',
]
