"""
GPU memory cleanup utilities.

Releasing a buffer only drops the last reference to it; CuPy keeps the freed
blocks in its memory pools. These helpers hand pooled memory back to the
driver when a backend is closed.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


def cleanup_cupy_gpu(device_id: Optional[int] = None) -> None:
    """
    Free CuPy memory pools.

    Args:
        device_id: Optional GPU device ID. If None, cleans current device.
    """
    try:
        import cupy
    except ImportError:
        logger.debug("CuPy not available, skipping CuPy GPU cleanup")
        return

    def _free_pools():
        mempool = cupy.get_default_memory_pool()
        used_before = mempool.total_bytes()

        cupy.cuda.runtime.deviceSynchronize()
        mempool.free_all_blocks()
        cupy.get_default_pinned_memory_pool().free_all_blocks()

        freed_mb = (used_before - mempool.total_bytes()) / 1e6
        return freed_mb

    try:
        if device_id is not None:
            with cupy.cuda.Device(device_id):
                freed_mb = _free_pools()
            logger.debug("GPU CLEANUP: Cleared CuPy memory pools for device %s, freed %.1fMB", device_id, freed_mb)
        else:
            freed_mb = _free_pools()
            logger.debug("GPU CLEANUP: Cleared CuPy memory pools for current device, freed %.1fMB", freed_mb)
    except Exception as e:
        logger.warning(f"Failed to cleanup CuPy GPU memory: {e}")
