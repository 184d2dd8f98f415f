"""
GPU utility functions for graygpu.

This module checks GPU availability for the CuPy backend and classifies
out-of-memory errors raised by the device libraries.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

_OOM_PATTERNS = (
    'out of memory', 'outofmemoryerror', 'cuda_error_out_of_memory',
    'cannot allocate memory', 'allocation failure', 'memory exhausted',
)


def check_cupy_gpu_available() -> Optional[int]:
    """
    Check if cupy is available and can access a GPU.

    Returns:
        GPU device ID if available, None otherwise
    """
    try:
        import cupy as cp

        if cp.cuda.is_available():
            device_id = cp.cuda.runtime.getDevice()
            logger.debug("Cupy GPU available: device_id=%s", device_id)
            return device_id
        else:
            logger.debug("Cupy CUDA not available")
            return None
    except ImportError:
        logger.debug("Cupy not installed")
        return None
    except Exception as e:
        logger.debug("Error checking cupy GPU availability: %s", e)
        return None


def is_oom_error(e: Exception) -> bool:
    """
    Detect device out-of-memory errors.

    Args:
        e: Exception raised by a device library

    Returns:
        True if the exception reports memory exhaustion
    """
    if isinstance(e, MemoryError):
        return True

    try:
        import cupy as cp
        if isinstance(e, cp.cuda.memory.OutOfMemoryError):
            return True
    except ImportError:
        pass

    error_str = str(e).lower()
    return any(pattern in error_str for pattern in _OOM_PATTERNS)
