"""
Compute backends for graygpu.

This package provides the backend interface and its NumPy and CuPy
implementations, together with the factory that picks one at runtime.
"""

from graygpu.processing.backends.base import ComputeBackend, DeviceBuffer
from graygpu.processing.backends.cupy_backend import CuPyComputeBackend
from graygpu.processing.backends.factory import (get_available_backends,
                                                 get_backend,
                                                 get_default_backend,
                                                 list_available_backends,
                                                 reset_default_backend)
from graygpu.processing.backends.numpy_backend import NumPyComputeBackend

__all__ = [
    'ComputeBackend',
    'DeviceBuffer',
    'NumPyComputeBackend',
    'CuPyComputeBackend',
    'get_available_backends',
    'get_backend',
    'get_default_backend',
    'list_available_backends',
    'reset_default_backend',
]
