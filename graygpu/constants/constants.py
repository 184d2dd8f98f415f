"""
Consolidated constants for graygpu.

This module defines the enums and numeric constants shared by the image
container, the kernel descriptors and the compute backends.
"""

from enum import Enum
from typing import Set, Tuple


class Axis(Enum):
    X = "x"
    Y = "y"


class BackendType(Enum):
    NUMPY = "numpy"
    CUPY = "cupy"


VALID_BACKEND_NAMES = {bt.value for bt in BackendType}

# Order in which backends are tried when none is requested explicitly
GPU_BACKEND_PREFERENCE = [BackendType.CUPY]
CPU_BACKEND_PREFERENCE = [BackendType.NUMPY]


class KernelKind(Enum):
    # Filters: read an input buffer, write an output buffer
    LEVEL = "level"
    GAMMA = "gamma"
    THRESHOLD = "threshold"
    GAUSSIAN_BLUR = "gaussian_blur"
    ROTATE90 = "rotate90"
    FLIP = "flip"

    # Generators: write an output buffer from coordinates only
    FILL = "fill"
    GRADIENT = "gradient"
    CHECKERBOARD = "checkerboard"

    # Readback
    PACK_GRAY8 = "pack_gray8"


FILTER_KERNELS: Set[KernelKind] = {
    KernelKind.LEVEL,
    KernelKind.GAMMA,
    KernelKind.THRESHOLD,
    KernelKind.GAUSSIAN_BLUR,
    KernelKind.ROTATE90,
    KernelKind.FLIP,
}
GENERATOR_KERNELS: Set[KernelKind] = {
    KernelKind.FILL,
    KernelKind.GRADIENT,
    KernelKind.CHECKERBOARD,
}

# Pixel format
GRAY8_MAX = 255.0
SAMPLES_PER_WORD = 4  # uint32 word holds four 8-bit samples

# Filter defaults
DEFAULT_BLACK_LEVEL = 0.0
DEFAULT_WHITE_LEVEL = 1.0
DEFAULT_GAMMA = 1.0
DEFAULT_THRESHOLD = 0.5
GAUSSIAN_RADIUS_SIGMAS = 3.0  # kernel radius = ceil(3 * sigma)

# Dispatch
DEFAULT_THREADS_PER_BLOCK: Tuple[int, int] = (8, 8)

# Environment variables read by ComputeConfig.from_env()
ENV_BACKEND = "GRAYGPU_BACKEND"
ENV_PREFER_GPU = "GRAYGPU_PREFER_GPU"
ENV_DEVICE_ID = "GRAYGPU_DEVICE_ID"
