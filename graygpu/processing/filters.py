"""
Filter definitions.

Filters form a closed set of immutable values. Each one names the kernel that
implements it, the parameters that kernel receives and the size of the output
it produces. The per-pixel math itself lives in the backends, one kernel per
``KernelKind``.

Coordinate conventions used by every kernel (input is W x H):

    Level          clamp((in[x, y] - black) / (white - black), 0, 1)
    Gamma          clamp(pow(in[x, y], gamma), 0, 1)
    Threshold      1 if in[x, y] > threshold else 0
    Flip X / Y     in[W-1-x, y] / in[x, H-1-y]
    Rotate90 n%4   0: in[x, y]            1: in[y, H-1-x]
                   2: in[W-1-x, H-1-y]    3: in[W-1-y, x]
    GaussianBlur   renormalised weighted mean over the in-bounds taps of
                   [-r, r] along one axis, r = ceil(3 * sigma)
"""

import abc
import math
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Tuple

import numpy as np

from graygpu.constants.constants import (DEFAULT_BLACK_LEVEL, DEFAULT_GAMMA,
                                         DEFAULT_THRESHOLD,
                                         DEFAULT_WHITE_LEVEL,
                                         GAUSSIAN_RADIUS_SIGMAS, Axis,
                                         KernelKind)
from graygpu.core.utils import gaussian_radius


class ImageFilter(abc.ABC):
    """
    Interface for filters applied through ``GrayGpuImage.apply_filter``.

    Implementations are frozen dataclasses; ``kind`` selects the backend
    kernel and ``kernel_params`` supplies its scalar arguments.
    """

    kind: ClassVar[KernelKind]

    @abc.abstractmethod
    def kernel_params(self) -> Dict[str, Any]:
        """Scalar parameters passed to the backend kernel."""
        pass

    def output_size(self, width: int, height: int) -> Tuple[int, int]:
        """Output (width, height) for an input of the given size."""
        return width, height


@dataclass(frozen=True)
class LevelFilter(ImageFilter):
    """Linear remap of [black_level, white_level] onto [0, 1], clamped."""

    kind: ClassVar[KernelKind] = KernelKind.LEVEL

    black_level: float = DEFAULT_BLACK_LEVEL
    white_level: float = DEFAULT_WHITE_LEVEL

    def kernel_params(self) -> Dict[str, Any]:
        return {"black_level": float(self.black_level), "white_level": float(self.white_level)}


@dataclass(frozen=True)
class GammaFilter(ImageFilter):
    kind: ClassVar[KernelKind] = KernelKind.GAMMA

    gamma: float = DEFAULT_GAMMA

    def kernel_params(self) -> Dict[str, Any]:
        return {"gamma": float(self.gamma)}


@dataclass(frozen=True)
class ThresholdFilter(ImageFilter):
    kind: ClassVar[KernelKind] = KernelKind.THRESHOLD

    threshold: float = DEFAULT_THRESHOLD

    def kernel_params(self) -> Dict[str, Any]:
        return {"threshold": float(self.threshold)}


@dataclass(frozen=True)
class GaussianBlurFilter(ImageFilter):
    """
    One pass of a separable Gaussian blur along ``axis``.

    Apply once per axis for a 2D blur. Taps falling outside the image are
    skipped and the remaining weights renormalised, so edge pixels average
    over a truncated window. ``sigma == 0`` leaves the image unchanged.
    """

    kind: ClassVar[KernelKind] = KernelKind.GAUSSIAN_BLUR

    axis: Axis
    sigma: float

    def __post_init__(self):
        if not isinstance(self.axis, Axis):
            raise TypeError(f"axis must be an Axis, got {type(self.axis).__name__}")
        if not math.isfinite(self.sigma) or self.sigma < 0:
            raise ValueError(f"sigma must be a finite non-negative number, got {self.sigma}")

    @property
    def radius(self) -> int:
        return gaussian_radius(self.sigma, GAUSSIAN_RADIUS_SIGMAS)

    def kernel_params(self) -> Dict[str, Any]:
        radius = self.radius
        # Only the centre tap keeps any weight once sigma or 2 * sigma^2 underflows
        if float(np.float32(self.sigma)) == 0.0 or 2.0 * self.sigma * self.sigma == 0.0:
            radius = 0
        return {"axis": self.axis, "sigma": float(self.sigma), "radius": radius}


@dataclass(frozen=True)
class Rotate90Filter(ImageFilter):
    """Rotation by ``turn_count`` quarter turns; odd counts swap width and height."""

    kind: ClassVar[KernelKind] = KernelKind.ROTATE90

    turn_count: int

    @property
    def normalized_turns(self) -> int:
        # Python's modulo is already non-negative for negative counts
        return int(self.turn_count) % 4

    def kernel_params(self) -> Dict[str, Any]:
        return {"turns": self.normalized_turns}

    def output_size(self, width: int, height: int) -> Tuple[int, int]:
        if self.normalized_turns % 2 == 1:
            return height, width
        return width, height


@dataclass(frozen=True)
class FlipFilter(ImageFilter):
    kind: ClassVar[KernelKind] = KernelKind.FLIP

    axis: Axis

    def __post_init__(self):
        if not isinstance(self.axis, Axis):
            raise TypeError(f"axis must be an Axis, got {type(self.axis).__name__}")

    def kernel_params(self) -> Dict[str, Any]:
        return {"axis": self.axis}
