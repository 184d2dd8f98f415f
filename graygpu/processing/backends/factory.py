"""
Compute Backend Factory

This module provides factory functions to create the appropriate compute
backend based on the available libraries and user preferences.
"""

import logging
import threading
from typing import Dict, List, Optional, Type, Union

from graygpu.constants.constants import (CPU_BACKEND_PREFERENCE,
                                         GPU_BACKEND_PREFERENCE, BackendType)
from graygpu.core.config import ComputeConfig
from graygpu.core.exceptions import BackendNotAvailableError
from graygpu.core.memory.gpu_utils import check_cupy_gpu_available
from graygpu.processing.backends.base import ComputeBackend
from graygpu.processing.backends.cupy_backend import CuPyComputeBackend
from graygpu.processing.backends.cupy_backend import cp as _cupy
from graygpu.processing.backends.numpy_backend import NumPyComputeBackend

logger = logging.getLogger(__name__)

HAS_CUPY = bool(_cupy)
if not HAS_CUPY:
    logger.debug("CuPy backend not available")

_default_backend: Optional[ComputeBackend] = None
_default_lock = threading.Lock()


def get_available_backends() -> Dict[BackendType, Type[ComputeBackend]]:
    """
    Get a dictionary of usable compute backend classes.

    GPU backends are only listed when their library imports and a device is
    visible.

    Returns:
        Dictionary mapping backend types to backend classes
    """
    backends: Dict[BackendType, Type[ComputeBackend]] = {BackendType.NUMPY: NumPyComputeBackend}

    if HAS_CUPY and check_cupy_gpu_available() is not None:
        backends[BackendType.CUPY] = CuPyComputeBackend

    return backends


def _instantiate(backend_type: BackendType, cls: Type[ComputeBackend], config: ComputeConfig) -> ComputeBackend:
    if backend_type is BackendType.CUPY:
        return cls(device_id=config.device_id, threads_per_block=config.threads_per_block)
    return cls()


def get_backend(
    backend: Optional[Union[BackendType, str]] = None,
    prefer_gpu: bool = True,
    fallback_to_cpu: bool = True,
    config: Optional[ComputeConfig] = None,
) -> ComputeBackend:
    """
    Create a compute backend based on availability and user preferences.

    Args:
        backend: Specific backend to use. If None, will select based on preferences.
        prefer_gpu: Whether to prefer GPU backends over CPU backends.
        fallback_to_cpu: Whether to fall back to CPU if the requested backend is not available.
            If False and the requested backend is not available, raises BackendNotAvailableError.
        config: Optional configuration; its fields override the keyword arguments.

    Returns:
        A new compute backend instance

    Raises:
        BackendNotAvailableError: If the requested backend is not available and
            fallback_to_cpu is False.
        ValueError: If ``backend`` is not a known backend name
    """
    if config is not None:
        backend = config.backend if config.backend is not None else backend
        prefer_gpu = config.prefer_gpu
        fallback_to_cpu = config.fallback_to_cpu
    else:
        config = ComputeConfig()

    if isinstance(backend, str):
        backend = BackendType(backend.lower())

    backends = get_available_backends()

    # If a specific backend is requested, try to use it
    if backend is not None:
        if backend in backends:
            logger.debug("Using requested %s backend", backend.value)
            return _instantiate(backend, backends[backend], config)

        if not fallback_to_cpu:
            raise BackendNotAvailableError(
                f"Requested backend '{backend.value}' is not available. "
                f"Available backends: {[bt.value for bt in backends]}"
            )

        logger.warning(
            "Requested backend '%s' is not available. Falling back to CPU backend.",
            backend.value
        )

    if prefer_gpu:
        preferred_order = GPU_BACKEND_PREFERENCE + CPU_BACKEND_PREFERENCE
    else:
        preferred_order = CPU_BACKEND_PREFERENCE + GPU_BACKEND_PREFERENCE

    for backend_type in preferred_order:
        if backend_type in backends:
            logger.info("Selected %s compute backend", backend_type.value)
            return _instantiate(backend_type, backends[backend_type], config)

    # NumPy is always registered, so this is unreachable in practice
    raise BackendNotAvailableError("No compute backends are available")


def get_default_backend() -> ComputeBackend:
    """
    Return the process-wide default backend, creating it on first use from
    ``ComputeConfig.from_env()``.
    """
    global _default_backend
    with _default_lock:
        if _default_backend is None or _default_backend.closed:
            _default_backend = get_backend(config=ComputeConfig.from_env())
        return _default_backend


def reset_default_backend() -> None:
    """Close and forget the process-wide default backend."""
    global _default_backend
    with _default_lock:
        if _default_backend is not None:
            _default_backend.close()
        _default_backend = None


def list_available_backends() -> List[str]:
    """
    List the names of all available backends.

    Returns:
        List of backend names
    """
    return [backend_type.value for backend_type in get_available_backends()]
