"""
CuPy compute backend.

Device buffers are CuPy arrays; kernels are CUDA C compiled once per process
through ``cupy.RawModule`` and launched over 2D thread grids. All work runs on
the current stream, so a later launch or a host copy always observes earlier
launches that wrote the same buffer.

Kernels can only write whole words to the packed readback buffer, so the pack
kernel assembles four 8-bit samples per thread into one uint32.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from graygpu.constants.constants import (DEFAULT_THREADS_PER_BLOCK,
                                         FILTER_KERNELS, GENERATOR_KERNELS,
                                         Axis, BackendType, KernelKind)
from graygpu.core.exceptions import BackendNotAvailableError
from graygpu.core.memory.gpu_cleanup import cleanup_cupy_gpu
from graygpu.core.memory.gpu_utils import check_cupy_gpu_available
from graygpu.core.utils import ceil_div, optional_import
from graygpu.processing.backends.base import ComputeBackend, KernelFunc
from graygpu.processing.kernels import KernelDescriptor

# Import CuPy as an optional dependency
cp = optional_import("cupy")

logger = logging.getLogger(__name__)

_KERNEL_SOURCE = r'''
extern "C" {

__device__ __forceinline__ float clamp01(float v)
{
    return fminf(fmaxf(v, 0.0f), 1.0f);
}

__global__ void level_kernel(const float* input, int in_w, int in_h,
                             float* output, int out_w, int out_h,
                             float black_level, float white_level)
{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= out_w || y >= out_h) return;

    float value = input[y * in_w + x];
    output[y * out_w + x] = clamp01((value - black_level) / (white_level - black_level));
}

__global__ void gamma_kernel(const float* input, int in_w, int in_h,
                             float* output, int out_w, int out_h,
                             float gamma)
{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= out_w || y >= out_h) return;

    output[y * out_w + x] = clamp01(powf(input[y * in_w + x], gamma));
}

__global__ void threshold_kernel(const float* input, int in_w, int in_h,
                                 float* output, int out_w, int out_h,
                                 float threshold)
{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= out_w || y >= out_h) return;

    output[y * out_w + x] = (input[y * in_w + x] > threshold) ? 1.0f : 0.0f;
}

__global__ void flip_kernel(const float* input, int in_w, int in_h,
                            float* output, int out_w, int out_h,
                            int axis)
{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= out_w || y >= out_h) return;

    int sx = (axis == 0) ? (in_w - 1 - x) : x;
    int sy = (axis == 0) ? y : (in_h - 1 - y);
    output[y * out_w + x] = input[sy * in_w + sx];
}

__global__ void rotate90_kernel(const float* input, int in_w, int in_h,
                                float* output, int out_w, int out_h,
                                int turns)
{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= out_w || y >= out_h) return;

    int sx, sy;
    switch (turns & 3) {
        case 1:  sx = y;            sy = in_h - 1 - x; break;
        case 2:  sx = in_w - 1 - x; sy = in_h - 1 - y; break;
        case 3:  sx = in_w - 1 - y; sy = x;            break;
        default: sx = x;            sy = y;            break;
    }
    output[y * out_w + x] = input[sy * in_w + sx];
}

__global__ void gaussian_blur_kernel(const float* input, int in_w, int in_h,
                                     float* output, int out_w, int out_h,
                                     int axis, float sigma, int radius)
{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= out_w || y >= out_h) return;

    if (radius == 0) {
        output[y * out_w + x] = input[y * in_w + x];
        return;
    }

    double sum = 0.0;
    double weight_sum = 0.0;
    for (int i = -radius; i <= radius; ++i) {
        int sx = x;
        int sy = y;
        if (axis == 0) {
            sx = x + i;
            if (sx < 0 || sx >= in_w) continue;
        } else {
            sy = y + i;
            if (sy < 0 || sy >= in_h) continue;
        }
        double weight = exp(-(double)(i * i) / (2.0 * (double)sigma * (double)sigma));
        sum += (double)input[sy * in_w + sx] * weight;
        weight_sum += weight;
    }
    output[y * out_w + x] = (float)(sum / weight_sum);
}

__global__ void fill_kernel(float* output, int out_w, int out_h, float value)
{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= out_w || y >= out_h) return;

    output[y * out_w + x] = value;
}

__global__ void gradient_kernel(float* output, int out_w, int out_h, int axis)
{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= out_w || y >= out_h) return;

    if (axis == 0) {
        output[y * out_w + x] = (float)x / (float)max(out_w - 1, 1);
    } else {
        output[y * out_w + x] = (float)y / (float)max(out_h - 1, 1);
    }
}

__global__ void checkerboard_kernel(float* output, int out_w, int out_h,
                                    int cell_size, float low, float high)
{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= out_w || y >= out_h) return;

    int parity = ((x / cell_size) + (y / cell_size)) & 1;
    output[y * out_w + x] = parity ? high : low;
}

__global__ void pack_gray8_kernel(const float* input, int in_w, int in_h,
                                  unsigned int* output, int words_per_row)
{
    int wx = blockIdx.x * blockDim.x + threadIdx.x;
    int wy = blockIdx.y * blockDim.y + threadIdx.y;
    if (wx >= words_per_row || wy >= in_h) return;

    unsigned int word = 0u;
    for (int k = 0; k < 4; ++k) {
        int col = min(max(wx * 4 + k, 0), in_w - 1);
        float value = clamp01(input[wy * in_w + col]);
        word |= ((unsigned int)(value * 255.0f)) << (8 * k);
    }
    output[wy * words_per_row + wx] = word;
}

}
'''

_KERNEL_NAMES = {
    KernelKind.LEVEL: "level_kernel",
    KernelKind.GAMMA: "gamma_kernel",
    KernelKind.THRESHOLD: "threshold_kernel",
    KernelKind.FLIP: "flip_kernel",
    KernelKind.ROTATE90: "rotate90_kernel",
    KernelKind.GAUSSIAN_BLUR: "gaussian_blur_kernel",
    KernelKind.FILL: "fill_kernel",
    KernelKind.GRADIENT: "gradient_kernel",
    KernelKind.CHECKERBOARD: "checkerboard_kernel",
    KernelKind.PACK_GRAY8: "pack_gray8_kernel",
}

# Lazy initialization of the RawModule to avoid compiling at import time
_module = None


def _get_module():
    """Get or compile the module holding every graygpu kernel."""
    global _module
    if _module is None:
        if not cp:
            raise ImportError("CuPy is required for the CuPy compute backend")
        _module = cp.RawModule(code=_KERNEL_SOURCE)
        logger.debug("Compiled %d CUDA kernels", len(_KERNEL_NAMES))
    return _module


def _axis_code(axis: Axis) -> np.int32:
    return np.int32(0 if axis is Axis.X else 1)


# Kernel-specific scalar arguments, in CUDA signature order
_PARAM_PACKERS: Dict[KernelKind, Callable[[Dict[str, Any]], Tuple]] = {
    KernelKind.LEVEL: lambda p: (np.float32(p["black_level"]), np.float32(p["white_level"])),
    KernelKind.GAMMA: lambda p: (np.float32(p["gamma"]),),
    KernelKind.THRESHOLD: lambda p: (np.float32(p["threshold"]),),
    KernelKind.FLIP: lambda p: (_axis_code(p["axis"]),),
    KernelKind.ROTATE90: lambda p: (np.int32(p["turns"] % 4),),
    KernelKind.GAUSSIAN_BLUR: lambda p: (_axis_code(p["axis"]), np.float32(p["sigma"]), np.int32(p["radius"])),
    KernelKind.FILL: lambda p: (np.float32(p["value"]),),
    KernelKind.GRADIENT: lambda p: (_axis_code(p["axis"]),),
    KernelKind.CHECKERBOARD: lambda p: (np.int32(p["cell_size"]), np.float32(p["low"]), np.float32(p["high"])),
}


class CuPyComputeBackend(ComputeBackend):
    """CUDA backend built on CuPy. Requires CuPy and a visible CUDA device."""

    backend_type = BackendType.CUPY
    is_gpu = True

    def __init__(self, device_id: Optional[int] = None,
                 threads_per_block: Tuple[int, int] = DEFAULT_THREADS_PER_BLOCK):
        if not cp:
            raise BackendNotAvailableError("CuPy is not installed. Install with: pip install \"graygpu[gpu]\"")
        if check_cupy_gpu_available() is None:
            raise BackendNotAvailableError("CuPy is installed but no CUDA device is available")

        self._device_id = device_id
        self._threads_per_block = tuple(int(t) for t in threads_per_block)
        if device_id is not None:
            cp.cuda.Device(device_id).use()
        super().__init__()
        logger.info("CuPy backend ready on device %s", cp.cuda.runtime.getDevice())

    def _build_kernel_table(self) -> Dict[KernelKind, KernelFunc]:
        table = {kind: self._run_filter(kind) for kind in FILTER_KERNELS}
        table.update({kind: self._run_generator(kind) for kind in GENERATOR_KERNELS})
        table[KernelKind.PACK_GRAY8] = self._run_pack
        return table

    def _launch(self, kind: KernelKind, grid_width: int, grid_height: int, args: Tuple) -> None:
        block_x, block_y = self._threads_per_block
        grid = (ceil_div(grid_width, block_x), ceil_div(grid_height, block_y))
        kernel = _get_module().get_function(_KERNEL_NAMES[kind])
        kernel(grid, (block_x, block_y), args)

    @staticmethod
    def _check_grid(descriptor: KernelDescriptor, grid_width: int, grid_height: int) -> None:
        shape = descriptor.output.shape
        if shape != (grid_height, grid_width):
            raise ValueError(
                f"Dispatch grid {grid_width}x{grid_height} does not cover output buffer of shape {shape}"
            )

    def _run_filter(self, kind: KernelKind) -> KernelFunc:
        pack_params = _PARAM_PACKERS[kind]

        def run(descriptor: KernelDescriptor, grid_width: int, grid_height: int) -> None:
            self._check_grid(descriptor, grid_width, grid_height)
            source = descriptor.input
            args = (source.storage, np.int32(source.width), np.int32(source.height),
                    descriptor.output.storage, np.int32(grid_width), np.int32(grid_height)
                    ) + pack_params(descriptor.params)
            self._launch(kind, grid_width, grid_height, args)
        return run

    def _run_generator(self, kind: KernelKind) -> KernelFunc:
        pack_params = _PARAM_PACKERS[kind]

        def run(descriptor: KernelDescriptor, grid_width: int, grid_height: int) -> None:
            self._check_grid(descriptor, grid_width, grid_height)
            args = (descriptor.output.storage, np.int32(grid_width), np.int32(grid_height)
                    ) + pack_params(descriptor.params)
            self._launch(kind, grid_width, grid_height, args)
        return run

    def _run_pack(self, descriptor: KernelDescriptor, grid_width: int, grid_height: int) -> None:
        if descriptor.output.shape != (grid_width * grid_height,):
            raise ValueError(
                f"Pack grid {grid_width}x{grid_height} does not cover word buffer of shape {descriptor.output.shape}"
            )
        source = descriptor.input
        args = (source.storage, np.int32(source.width), np.int32(source.height),
                descriptor.output.storage, np.int32(grid_width))
        self._launch(KernelKind.PACK_GRAY8, grid_width, grid_height, args)

    def _alloc(self, shape: Tuple[int, ...], dtype: np.dtype) -> Any:
        return cp.zeros(shape, dtype=dtype)

    def _upload(self, storage: "cp.ndarray", array: np.ndarray) -> None:
        storage.set(array)

    def _download(self, storage: "cp.ndarray") -> np.ndarray:
        return cp.asnumpy(storage)

    def _copy(self, source: "cp.ndarray", destination: "cp.ndarray") -> None:
        cp.copyto(destination, source)

    def _close(self) -> None:
        cleanup_cupy_gpu(self._device_id)
