"""
NumPy compute backend.

Host memory plays the role of the device. Each kernel is written as a pure
function of (input array, output coordinate grids, parameters) and evaluated
for every cell of the dispatch grid at once, which keeps the per-cell
semantics of the GPU kernels while staying vectorised. Arithmetic is float32
except the blur accumulator, so results match the CUDA kernels to float32
rounding and packed bytes match exactly.
"""

import logging
import math
from typing import Any, Dict, Tuple

import numpy as np

from graygpu.constants.constants import (GRAY8_MAX, SAMPLES_PER_WORD, Axis,
                                         BackendType, KernelKind)
from graygpu.processing.backends.base import ComputeBackend, KernelFunc
from graygpu.processing.kernels import KernelDescriptor

logger = logging.getLogger(__name__)

_ZERO = np.float32(0.0)
_ONE = np.float32(1.0)


def _clamp01(values: np.ndarray) -> np.ndarray:
    # fmin/fmax ignore NaN, matching fminf/fmaxf on the device
    return np.fmin(np.fmax(values, _ZERO), _ONE)


def _coordinates(grid_width: int, grid_height: int) -> Tuple[np.ndarray, np.ndarray]:
    """Per-cell (x, y) index arrays of shape (grid_height, grid_width)."""
    ys, xs = np.indices((grid_height, grid_width))
    return xs, ys


def _output(descriptor: KernelDescriptor, grid_width: int, grid_height: int) -> np.ndarray:
    output = descriptor.output.storage
    if output.shape != (grid_height, grid_width):
        raise ValueError(
            f"Dispatch grid {grid_width}x{grid_height} does not cover output buffer of shape {output.shape}"
        )
    return output


# ---------------------------------------------------------------------------
# Filter kernels
# ---------------------------------------------------------------------------

def level_kernel(source: np.ndarray, xs: np.ndarray, ys: np.ndarray,
                 black_level: float, white_level: float) -> np.ndarray:
    value = source[ys, xs]
    black = np.float32(black_level)
    span = np.float32(white_level) - black
    with np.errstate(divide="ignore", invalid="ignore"):
        result = (value - black) / span
    return _clamp01(result)


def gamma_kernel(source: np.ndarray, xs: np.ndarray, ys: np.ndarray, gamma: float) -> np.ndarray:
    value = source[ys, xs]
    with np.errstate(divide="ignore", invalid="ignore"):
        result = np.power(value, np.float32(gamma))
    return _clamp01(result)


def threshold_kernel(source: np.ndarray, xs: np.ndarray, ys: np.ndarray, threshold: float) -> np.ndarray:
    return np.where(source[ys, xs] > np.float32(threshold), _ONE, _ZERO)


def flip_kernel(source: np.ndarray, xs: np.ndarray, ys: np.ndarray, axis: Axis) -> np.ndarray:
    height, width = source.shape
    if axis is Axis.X:
        return source[ys, width - 1 - xs]
    return source[height - 1 - ys, xs]


def rotate90_kernel(source: np.ndarray, xs: np.ndarray, ys: np.ndarray, turns: int) -> np.ndarray:
    height, width = source.shape
    turns %= 4
    if turns == 1:
        return source[height - 1 - xs, ys]
    if turns == 2:
        return source[height - 1 - ys, width - 1 - xs]
    if turns == 3:
        return source[xs, width - 1 - ys]
    return source[ys, xs]


def gaussian_blur_kernel(source: np.ndarray, xs: np.ndarray, ys: np.ndarray,
                         axis: Axis, sigma: float, radius: int) -> np.ndarray:
    if radius == 0:
        return source[ys, xs]

    height, width = source.shape
    centre, limit = (xs, width) if axis is Axis.X else (ys, height)
    total = np.zeros(xs.shape, dtype=np.float64)
    weight_sum = np.zeros(xs.shape, dtype=np.float64)
    two_sigma_sq = 2.0 * sigma * sigma

    for offset in range(-radius, radius + 1):
        coord = centre + offset
        inside = (coord >= 0) & (coord < limit)
        coord = np.clip(coord, 0, limit - 1)
        pixel = (source[ys, coord] if axis is Axis.X else source[coord, xs]).astype(np.float64)
        weight = math.exp(-(offset * offset) / two_sigma_sq)
        # Out-of-range taps are skipped, not clamped or zero-padded
        total += np.where(inside, pixel * weight, 0.0)
        weight_sum += np.where(inside, weight, 0.0)

    # Centre tap is always inside, so weight_sum > 0
    return (total / weight_sum).astype(np.float32)


# ---------------------------------------------------------------------------
# Generator kernels
# ---------------------------------------------------------------------------

def fill_kernel(xs: np.ndarray, ys: np.ndarray, width: int, height: int, value: float) -> np.ndarray:
    return np.full(xs.shape, np.float32(value), dtype=np.float32)


def gradient_kernel(xs: np.ndarray, ys: np.ndarray, width: int, height: int, axis: Axis) -> np.ndarray:
    if axis is Axis.X:
        return xs.astype(np.float32) / np.float32(max(width - 1, 1))
    return ys.astype(np.float32) / np.float32(max(height - 1, 1))


def checkerboard_kernel(xs: np.ndarray, ys: np.ndarray, width: int, height: int,
                        cell_size: int, low: float, high: float) -> np.ndarray:
    odd = ((xs // cell_size) + (ys // cell_size)) % 2 == 1
    return np.where(odd, np.float32(high), np.float32(low))


# ---------------------------------------------------------------------------
# Readback kernel
# ---------------------------------------------------------------------------

def pack_gray8_kernel(source: np.ndarray, wxs: np.ndarray, wys: np.ndarray) -> np.ndarray:
    """
    Pack four horizontally adjacent samples into one little-endian uint32.

    Byte k of word (wx, wy) is floor(clamp01(in[clamp(4*wx + k), wy]) * 255);
    columns past the right edge replicate the last real column.
    """
    width = source.shape[1]
    words = np.zeros(wxs.shape, dtype=np.uint32)
    for k in range(SAMPLES_PER_WORD):
        cols = np.clip(wxs * SAMPLES_PER_WORD + k, 0, width - 1)
        scaled = _clamp01(source[wys, cols]) * np.float32(GRAY8_MAX)
        words |= np.floor(scaled).astype(np.uint32) << np.uint32(8 * k)
    return words


class NumPyComputeBackend(ComputeBackend):
    """CPU reference backend. Always available."""

    backend_type = BackendType.NUMPY
    is_gpu = False

    def _build_kernel_table(self) -> Dict[KernelKind, KernelFunc]:
        return {
            KernelKind.LEVEL: self._run_filter(level_kernel),
            KernelKind.GAMMA: self._run_filter(gamma_kernel),
            KernelKind.THRESHOLD: self._run_filter(threshold_kernel),
            KernelKind.GAUSSIAN_BLUR: self._run_filter(gaussian_blur_kernel),
            KernelKind.ROTATE90: self._run_filter(rotate90_kernel),
            KernelKind.FLIP: self._run_filter(flip_kernel),
            KernelKind.FILL: self._run_generator(fill_kernel),
            KernelKind.GRADIENT: self._run_generator(gradient_kernel),
            KernelKind.CHECKERBOARD: self._run_generator(checkerboard_kernel),
            KernelKind.PACK_GRAY8: self._run_pack,
        }

    @staticmethod
    def _run_filter(kernel) -> KernelFunc:
        def run(descriptor: KernelDescriptor, grid_width: int, grid_height: int) -> None:
            output = _output(descriptor, grid_width, grid_height)
            xs, ys = _coordinates(grid_width, grid_height)
            output[...] = kernel(descriptor.input.storage, xs, ys, **descriptor.params)
        return run

    @staticmethod
    def _run_generator(kernel) -> KernelFunc:
        def run(descriptor: KernelDescriptor, grid_width: int, grid_height: int) -> None:
            output = _output(descriptor, grid_width, grid_height)
            xs, ys = _coordinates(grid_width, grid_height)
            output[...] = kernel(xs, ys, grid_width, grid_height, **descriptor.params)
        return run

    @staticmethod
    def _run_pack(descriptor: KernelDescriptor, grid_width: int, grid_height: int) -> None:
        output = descriptor.output.storage
        if output.shape != (grid_width * grid_height,):
            raise ValueError(
                f"Pack grid {grid_width}x{grid_height} does not cover word buffer of shape {output.shape}"
            )
        wxs, wys = _coordinates(grid_width, grid_height)
        output.reshape(grid_height, grid_width)[...] = pack_gray8_kernel(descriptor.input.storage, wxs, wys)

    def _alloc(self, shape: Tuple[int, ...], dtype: np.dtype) -> Any:
        return np.zeros(shape, dtype=dtype)

    def _upload(self, storage: np.ndarray, array: np.ndarray) -> None:
        np.copyto(storage, array)

    def _download(self, storage: np.ndarray) -> np.ndarray:
        return storage.copy()

    def _copy(self, source: np.ndarray, destination: np.ndarray) -> None:
        np.copyto(destination, source)
