"""
Abstract base class for compute backends.

A compute backend owns device memory and runs kernels over 2D index grids.
The image container only ever talks to a backend through this interface, so a
backend can be swapped without touching the dispatch protocol.

Contract shared by every implementation:

- Dispatches are strictly ordered. A dispatch or host copy observes the
  completed effect of every earlier dispatch that wrote the same buffer.
- Device failures are raised as ``BackendFailureError`` chained to the native
  exception. Nothing is retried.
- ``release`` is idempotent per buffer.
"""

import abc
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from graygpu.constants.constants import BackendType, KernelKind
from graygpu.core.exceptions import (BackendFailureError,
                                     DimensionMismatchError,
                                     InvalidDimensionError,
                                     UnsupportedKernelError)
from graygpu.core.memory.gpu_utils import is_oom_error
from graygpu.processing.kernels import KernelDescriptor

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class DeviceBuffer:
    """
    Handle to a backend allocation.

    2D buffers are float32 with shape (height, width); 1D buffers have shape
    (count,). ``storage`` is the backend-native array and is dropped on release.
    """

    shape: Tuple[int, ...]
    dtype: np.dtype
    storage: Any = field(repr=False)
    backend: str = ""
    owner: Any = field(default=None, repr=False, compare=False)
    released: bool = False

    @property
    def width(self) -> int:
        return self.shape[-1]

    @property
    def height(self) -> int:
        return self.shape[0] if len(self.shape) == 2 else 1

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) of a 2D buffer."""
        return self.width, self.height


KernelFunc = Callable[[KernelDescriptor, int, int], None]


class ComputeBackend(abc.ABC):
    """
    Interface for compute backends.

    Subclasses implement the storage primitives and register one kernel per
    ``KernelKind`` in ``_kernel_table``. ``dispatch`` looks the kernel up by
    the descriptor's kind; there is no generic kernel instantiation.
    """

    backend_type: BackendType
    is_gpu: bool = False

    def __init__(self):
        self._closed = False
        self._live_buffers = 0
        self._kernel_table: Dict[KernelKind, KernelFunc] = self._build_kernel_table()

    @property
    def name(self) -> str:
        return self.backend_type.value

    @property
    def live_buffers(self) -> int:
        """Number of allocations not yet released."""
        return self._live_buffers

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Primitives implemented by subclasses
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def _build_kernel_table(self) -> Dict[KernelKind, KernelFunc]:
        """Map every supported kernel kind to a callable(descriptor, grid_w, grid_h)."""
        pass

    @abc.abstractmethod
    def _alloc(self, shape: Tuple[int, ...], dtype: np.dtype) -> Any:
        """Allocate zeroed native storage."""
        pass

    @abc.abstractmethod
    def _upload(self, storage: Any, array: np.ndarray) -> None:
        """Copy a host array into native storage of the same shape."""
        pass

    @abc.abstractmethod
    def _download(self, storage: Any) -> np.ndarray:
        """Copy native storage into a new host array."""
        pass

    @abc.abstractmethod
    def _copy(self, source: Any, destination: Any) -> None:
        """Device-side copy between two native storages of the same shape."""
        pass

    def _free(self, storage: Any) -> None:
        """Return native storage to the backend. Dropping the reference is enough by default."""
        pass

    def _close(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def allocate_2d(self, width: int, height: int, initial: Optional[np.ndarray] = None) -> DeviceBuffer:
        """
        Allocate a float32 2D buffer.

        Args:
            width: Buffer width in samples
            height: Buffer height in samples
            initial: Optional host array of shape (height, width) to upload;
                the buffer is zero-initialised otherwise

        Returns:
            DeviceBuffer of shape (height, width)

        Raises:
            InvalidDimensionError: If width or height is not positive
            DimensionMismatchError: If ``initial`` has the wrong shape
            BackendFailureError: If the device allocation fails
        """
        if width <= 0 or height <= 0:
            raise InvalidDimensionError(f"Buffer dimensions must be positive, got {width}x{height}")
        if initial is not None and tuple(initial.shape) != (height, width):
            raise DimensionMismatchError(
                f"Initial samples have shape {tuple(initial.shape)}, expected {(height, width)}"
            )

        buffer = self._allocate((height, width), np.dtype(np.float32))
        if initial is not None:
            self.copy_host_to_device(buffer, initial)
        return buffer

    def allocate_1d(self, count: int, dtype: Any) -> DeviceBuffer:
        """
        Allocate a zeroed 1D buffer of ``count`` elements of ``dtype``.

        Raises:
            InvalidDimensionError: If count is not positive
            BackendFailureError: If the device allocation fails
        """
        if count <= 0:
            raise InvalidDimensionError(f"Buffer length must be positive, got {count}")
        return self._allocate((count,), np.dtype(dtype))

    def dispatch(self, grid_width: int, grid_height: int, descriptor: KernelDescriptor) -> None:
        """
        Run the descriptor's kernel once per cell of a grid_width x grid_height grid.

        Raises:
            UnsupportedKernelError: If this backend has no kernel for the kind
            BackendFailureError: If the kernel launch fails
        """
        self._ensure_open()
        kernel = self._kernel_table.get(descriptor.kind)
        if kernel is None:
            raise UnsupportedKernelError(f"{self.name} backend has no kernel for {descriptor.kind.value}")

        self._ensure_live(descriptor.output)
        if descriptor.input is not None:
            self._ensure_live(descriptor.input)

        logger.debug("%s dispatch %s over %dx%d grid", self.name, descriptor.kind.value, grid_width, grid_height)
        try:
            kernel(descriptor, grid_width, grid_height)
        except Exception as e:
            raise BackendFailureError(self.name, f"dispatch of {descriptor.kind.value}", str(e)) from e

    def copy_device_to_host(self, buffer: DeviceBuffer) -> np.ndarray:
        """Return a new host array holding the buffer's contents."""
        self._ensure_live(buffer)
        try:
            return self._download(buffer.storage)
        except Exception as e:
            raise BackendFailureError(self.name, "device to host copy", str(e)) from e

    def copy_host_to_device(self, buffer: DeviceBuffer, array: np.ndarray) -> None:
        """Overwrite the buffer with a host array of the same shape."""
        self._ensure_live(buffer)
        host = np.ascontiguousarray(array, dtype=buffer.dtype)
        if host.shape != buffer.shape:
            raise DimensionMismatchError(f"Host array has shape {host.shape}, buffer has shape {buffer.shape}")
        try:
            self._upload(buffer.storage, host)
        except Exception as e:
            raise BackendFailureError(self.name, "host to device copy", str(e)) from e

    def copy_device_to_device(self, source: DeviceBuffer, destination: DeviceBuffer) -> None:
        """Copy one buffer into another of the same shape without a host round trip."""
        self._ensure_live(source)
        self._ensure_live(destination)
        if source.shape != destination.shape:
            raise DimensionMismatchError(
                f"Cannot copy buffer of shape {source.shape} into buffer of shape {destination.shape}"
            )
        try:
            self._copy(source.storage, destination.storage)
        except Exception as e:
            raise BackendFailureError(self.name, "device to device copy", str(e)) from e

    def release(self, buffer: Optional[DeviceBuffer]) -> None:
        """Release a buffer. Releasing None or an already-released buffer is a no-op."""
        if buffer is None or buffer.released:
            return
        storage = buffer.storage
        buffer.storage = None
        buffer.released = True
        self._live_buffers -= 1
        self._free(storage)
        logger.debug("%s released buffer %s", self.name, buffer.shape)

    def close(self) -> None:
        """Shut the backend down. Buffers must not be used afterwards."""
        if self._closed:
            return
        if self._live_buffers:
            logger.warning("Closing %s backend with %d live buffers", self.name, self._live_buffers)
        self._close()
        self._closed = True
        logger.debug("Closed %s backend", self.name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        return f"<{type(self).__name__} live_buffers={self._live_buffers} closed={self._closed}>"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _allocate(self, shape: Tuple[int, ...], dtype: np.dtype) -> DeviceBuffer:
        self._ensure_open()
        try:
            storage = self._alloc(shape, dtype)
        except Exception as e:
            reason = f"out of memory ({e})" if is_oom_error(e) else str(e)
            raise BackendFailureError(self.name, f"allocation of {shape} {dtype}", reason) from e
        self._live_buffers += 1
        logger.debug("%s allocated buffer %s %s", self.name, shape, dtype)
        return DeviceBuffer(shape=shape, dtype=dtype, storage=storage, backend=self.name, owner=self)

    def _ensure_open(self) -> None:
        if self._closed:
            raise BackendFailureError(self.name, "use", "backend has been closed")

    def _ensure_live(self, buffer: DeviceBuffer) -> None:
        self._ensure_open()
        if buffer.released:
            raise BackendFailureError(self.name, "buffer access", f"buffer {buffer.shape} has been released")
        if buffer.owner is not self:
            raise BackendFailureError(
                self.name, "buffer access", f"buffer belongs to another {buffer.backend} backend instance"
            )
