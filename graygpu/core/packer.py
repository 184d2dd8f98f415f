"""
Packed 8-bit readback geometry.

The pack kernel writes ``words_per_row(W)`` little-endian uint32 words per
image row, four samples per word, so a packed row is always a multiple of
four bytes wide. Callers ask for rows ``stride`` bytes apart, with
``W <= stride <= packed_row_bytes(W)``. This module validates that stride
and moves the packed rows into the caller's buffer.
"""

import logging
from typing import Any, Optional

import numpy as np

from graygpu.constants.constants import SAMPLES_PER_WORD
from graygpu.core.exceptions import DimensionMismatchError, InvalidStrideError
from graygpu.core.utils import ceil_div

logger = logging.getLogger(__name__)


def words_per_row(width: int) -> int:
    """Number of packed uint32 words covering one row of ``width`` samples."""
    return ceil_div(width, SAMPLES_PER_WORD)


def packed_row_bytes(width: int) -> int:
    """Byte width of one packed row, i.e. the widest stride readback supports."""
    return words_per_row(width) * SAMPLES_PER_WORD


def validate_stride(width: int, stride: Optional[int] = None) -> int:
    """
    Resolve and validate a readback stride.

    Args:
        width: Image width in samples
        stride: Requested distance in bytes between row starts. None means
            tightly packed rows (``stride == width``).

    Returns:
        The stride to use

    Raises:
        InvalidStrideError: If the stride is narrower than the image or wider
            than a packed row
    """
    if stride is None:
        return width
    if stride < width:
        raise InvalidStrideError(f"Stride {stride} is smaller than image width {width}")
    limit = packed_row_bytes(width)
    if stride > limit:
        raise InvalidStrideError(
            f"Stride {stride} exceeds packed row width {limit} for image width {width}"
        )
    return stride


def packed_rows(words: np.ndarray, height: int) -> np.ndarray:
    """
    View a host copy of the packed word buffer as (height, packed_row_bytes) bytes.

    Byte order is fixed little-endian so byte k of a word is sample k on every host.
    """
    little_endian = np.ascontiguousarray(words, dtype="<u4")
    return little_endian.view(np.uint8).reshape(height, -1)


def writable_view(destination: Any, required: int) -> np.ndarray:
    """
    Expose a caller buffer as a flat writable uint8 array.

    Args:
        destination: Any C-contiguous object supporting the buffer protocol
            (bytearray, writable memoryview, NumPy array)
        required: Minimum size in bytes

    Returns:
        uint8 array sharing memory with ``destination``

    Raises:
        TypeError: If ``destination`` is read-only or not a contiguous buffer
        DimensionMismatchError: If ``destination`` is smaller than ``required`` bytes
    """
    view = memoryview(destination)
    if view.readonly:
        raise TypeError(f"Destination buffer of type {type(destination).__name__} is read-only")
    view = view.cast("B")
    if view.nbytes < required:
        raise DimensionMismatchError(
            f"Destination holds {view.nbytes} bytes, readback needs {required}"
        )
    return np.frombuffer(view, dtype=np.uint8)


def copy_packed_rows(rows: np.ndarray, stride: int, destination: np.ndarray) -> None:
    """
    Copy packed rows into ``destination`` with rows ``stride`` bytes apart.

    Only the first ``stride * height`` bytes of ``destination`` are written.
    """
    height, row_bytes = rows.shape
    target = destination[:stride * height]
    if stride == row_bytes:
        target[...] = rows.reshape(-1)
        logger.debug("Bulk copied %d packed rows of %d bytes", height, row_bytes)
    else:
        target.reshape(height, stride)[...] = rows[:, :stride]
        logger.debug("Copied %d packed rows of %d bytes at stride %d", height, row_bytes, stride)
