"""
Device memory helpers for graygpu: GPU availability checks, out-of-memory
classification and memory pool cleanup.
"""

from .gpu_cleanup import cleanup_cupy_gpu
from .gpu_utils import check_cupy_gpu_available, is_oom_error

__all__ = [
    'check_cupy_gpu_available',
    'cleanup_cupy_gpu',
    'is_oom_error',
]
