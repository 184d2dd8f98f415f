"""
Device-resident grayscale image.

``GrayGpuImage`` keeps its samples in float32 device buffers owned by a
compute backend. Filters never write into the buffer they read: the image
holds two buffer slots and an active index, each filter reads the active slot,
writes the other one and the index flips. The second slot is allocated on the
first filter application and reused afterwards while its size still matches.

Example:

    with GrayGpuImage.from_gray8(data, width, height) as image:
        image.apply_filter(GaussianBlurFilter(Axis.X, 1.5))
        image.apply_filter(GaussianBlurFilter(Axis.Y, 1.5))
        result = image.get_bytes()
"""

import logging
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np

from graygpu.constants.constants import GRAY8_MAX, KernelKind
from graygpu.core.exceptions import (DimensionMismatchError,
                                     InvalidDimensionError,
                                     UseAfterDisposeError)
from graygpu.core.packer import (copy_packed_rows, packed_rows,
                                 validate_stride, words_per_row,
                                 writable_view)
from graygpu.processing.backends.base import ComputeBackend, DeviceBuffer
from graygpu.processing.backends.factory import get_default_backend
from graygpu.processing.filters import ImageFilter
from graygpu.processing.generators import ImageGenerator
from graygpu.processing.kernels import KernelDescriptor

logger = logging.getLogger(__name__)


def _validate_dimensions(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise InvalidDimensionError(f"Image dimensions must be positive, got {width}x{height}")


def decode_gray8(data: Any, width: int, height: int) -> np.ndarray:
    """
    Convert row-major 8-bit samples into an (height, width) float32 array in [0, 1].

    Args:
        data: bytes-like object holding exactly ``width * height`` samples
        width: Image width
        height: Image height

    Raises:
        InvalidDimensionError: If width or height is not positive
        DimensionMismatchError: If ``data`` does not hold ``width * height`` bytes
    """
    _validate_dimensions(width, height)
    raw = np.frombuffer(data, dtype=np.uint8)
    if raw.size != width * height:
        raise DimensionMismatchError(
            f"Expected {width * height} bytes for a {width}x{height} image, got {raw.size}"
        )
    # float32 division keeps floor(v * 255) == b exact on readback
    return (raw.astype(np.float32) / np.float32(GRAY8_MAX)).reshape(height, width)


class GrayGpuImage:
    """
    Grayscale image held in compute backend memory.

    Create instances with ``create`` or ``from_gray8``. The image owns its
    device buffers and releases them on ``dispose`` (or on leaving a ``with``
    block). Every other method raises ``UseAfterDisposeError`` afterwards.
    """

    def __init__(self, backend: ComputeBackend, buffer: DeviceBuffer):
        self._backend = backend
        self._buffers: List[Optional[DeviceBuffer]] = [buffer, None]
        self._active_index = 0
        self._disposed = False

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, width: int, height: int, backend: Optional[ComputeBackend] = None) -> "GrayGpuImage":
        """
        Create a zero-filled image.

        Args:
            width: Image width, must be positive
            height: Image height, must be positive
            backend: Compute backend to allocate on. Defaults to the
                process-wide default backend.

        Raises:
            InvalidDimensionError: If width or height is not positive
        """
        _validate_dimensions(width, height)
        if backend is None:
            backend = get_default_backend()
        image = cls(backend, backend.allocate_2d(width, height))
        logger.debug("Created %dx%d image on %s backend", width, height, backend.name)
        return image

    @classmethod
    def from_gray8(cls, data: Any, width: int, height: int,
                   backend: Optional[ComputeBackend] = None) -> "GrayGpuImage":
        """
        Create an image from row-major 8-bit samples; byte b becomes b / 255.

        Raises:
            InvalidDimensionError: If width or height is not positive
            DimensionMismatchError: If ``len(data) != width * height``
        """
        samples = decode_gray8(data, width, height)
        if backend is None:
            backend = get_default_backend()
        image = cls(backend, backend.allocate_2d(width, height, initial=samples))
        logger.debug("Uploaded %dx%d image to %s backend", width, height, backend.name)
        return image

    def copy_from(self, data: Any, width: int, height: int) -> None:
        """
        Replace the image contents with new 8-bit samples.

        Same-sized data is written into the active buffer in place and the
        scratch buffer is kept. A different size reallocates the image and
        drops the scratch buffer.
        """
        self._ensure_alive()
        samples = decode_gray8(data, width, height)
        active = self._active
        if active.size == (width, height):
            self._backend.copy_host_to_device(active, samples)
            return

        replacement = self._backend.allocate_2d(width, height, initial=samples)
        self._release_buffers()
        self._buffers = [replacement, None]
        self._active_index = 0
        logger.debug("Resized image from %dx%d to %dx%d", active.width, active.height, width, height)

    def clone(self) -> "GrayGpuImage":
        """Return an independent image with a device-side copy of the current samples."""
        self._ensure_alive()
        active = self._active
        buffer = self._backend.allocate_2d(active.width, active.height)
        try:
            self._backend.copy_device_to_device(active, buffer)
        except Exception:
            self._backend.release(buffer)
            raise
        return GrayGpuImage(self._backend, buffer)

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Release both device buffers. Calling it again does nothing."""
        if self._disposed:
            return
        self._release_buffers()
        self._disposed = True
        logger.debug("Disposed image")

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def __enter__(self):
        self._ensure_alive()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        self._ensure_alive()
        return self._active.width

    @property
    def height(self) -> int:
        self._ensure_alive()
        return self._active.height

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height)"""
        self._ensure_alive()
        return self._active.size

    @property
    def backend(self) -> ComputeBackend:
        return self._backend

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def apply_generator(self, generator: ImageGenerator) -> None:
        """Overwrite every sample with the generator's output, in place."""
        self._ensure_alive()
        if not isinstance(generator, ImageGenerator):
            raise TypeError(f"Expected an ImageGenerator, got {type(generator).__name__}")

        active = self._active
        descriptor = KernelDescriptor(kind=generator.kind, output=active, params=generator.kernel_params())
        self._backend.dispatch(active.width, active.height, descriptor)

    def apply_filter(self, image_filter: ImageFilter) -> None:
        """
        Run one filter. The result becomes the image contents.

        The image takes the filter's output size, so an odd ``Rotate90Filter``
        swaps width and height.
        """
        self._ensure_alive()
        if not isinstance(image_filter, ImageFilter):
            raise TypeError(f"Expected an ImageFilter, got {type(image_filter).__name__}")

        source = self._active
        out_width, out_height = image_filter.output_size(source.width, source.height)
        slot = 1 - self._active_index
        scratch = self._buffers[slot]
        if scratch is not None and scratch.size == (out_width, out_height):
            target = scratch
        else:
            # Only stored in the slot once the dispatch has succeeded
            target = self._backend.allocate_2d(out_width, out_height)

        descriptor = KernelDescriptor(
            kind=image_filter.kind,
            output=target,
            input=source,
            params=image_filter.kernel_params(),
        )
        try:
            self._backend.dispatch(out_width, out_height, descriptor)
        except Exception:
            if target is not scratch:
                self._backend.release(target)
            raise

        if target is not scratch:
            self._backend.release(scratch)
            self._buffers[slot] = target
        self._active_index = slot

        # Scratch must always match the active size
        if source.size != target.size:
            self._backend.release(source)
            self._buffers[1 - self._active_index] = None

    def apply_filters(self, filters: Iterable[ImageFilter]) -> None:
        """Run filters in order."""
        for image_filter in filters:
            self.apply_filter(image_filter)

    # ------------------------------------------------------------------
    # Readback
    # ------------------------------------------------------------------

    def get_bytes(self, stride: Optional[int] = None) -> bytearray:
        """
        Read the image back as 8-bit rows.

        Each sample v becomes ``floor(clamp(v, 0, 1) * 255)``. Row y starts
        at byte ``y * stride``; padding bytes between ``width`` and ``stride``
        repeat the last sample of the row.

        Args:
            stride: Bytes between row starts, ``width <= stride <= 4 * ceil(width / 4)``.
                Defaults to the width.

        Returns:
            New bytearray of ``stride * height`` bytes

        Raises:
            InvalidStrideError: If the stride is out of range
        """
        self._ensure_alive()
        stride = validate_stride(self._active.width, stride)
        result = bytearray(stride * self._active.height)
        copy_packed_rows(self._pack(), stride, np.frombuffer(result, dtype=np.uint8))
        return result

    def copy_bytes(self, destination: Any, stride: Optional[int] = None) -> None:
        """
        Read the image back as 8-bit rows into a caller buffer.

        Same layout as ``get_bytes``. Bytes of ``destination`` past
        ``stride * height`` are left untouched.

        Raises:
            InvalidStrideError: If the stride is out of range
            TypeError: If ``destination`` is not a writable buffer
            DimensionMismatchError: If ``destination`` is too small
        """
        self._ensure_alive()
        stride = validate_stride(self._active.width, stride)
        target = writable_view(destination, stride * self._active.height)
        copy_packed_rows(self._pack(), stride, target)

    def get_samples(self) -> np.ndarray:
        """Return a host copy of the float samples, shape (height, width)."""
        self._ensure_alive()
        return self._backend.copy_device_to_host(self._active)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @property
    def _active(self) -> DeviceBuffer:
        return self._buffers[self._active_index]

    def _pack(self) -> np.ndarray:
        """Run the pack kernel and return the packed rows as a (height, row_bytes) uint8 array."""
        active = self._active
        word_columns = words_per_row(active.width)
        words = self._backend.allocate_1d(word_columns * active.height, np.uint32)
        try:
            descriptor = KernelDescriptor(kind=KernelKind.PACK_GRAY8, output=words, input=active)
            self._backend.dispatch(word_columns, active.height, descriptor)
            host_words = self._backend.copy_device_to_host(words)
        finally:
            self._backend.release(words)
        return packed_rows(host_words, active.height)

    def _release_buffers(self) -> None:
        for slot, buffer in enumerate(self._buffers):
            self._backend.release(buffer)
            self._buffers[slot] = None

    def _ensure_alive(self) -> None:
        if self._disposed:
            raise UseAfterDisposeError("Image has been disposed")

    def __repr__(self):
        if self._disposed:
            return "<GrayGpuImage disposed>"
        active = self._active
        return f"<GrayGpuImage {active.width}x{active.height} on {self._backend.name}>"
