"""
Generator definitions.

Generators write every cell of an image from its coordinates and their own
parameters, without sampling any input. They are applied in place through
``GrayGpuImage.apply_generator`` and are mainly used to synthesise test
patterns on the device.
"""

import abc
from dataclasses import dataclass
from typing import Any, ClassVar, Dict

from graygpu.constants.constants import Axis, KernelKind


class ImageGenerator(abc.ABC):
    """Interface for generators applied through ``GrayGpuImage.apply_generator``."""

    kind: ClassVar[KernelKind]

    @abc.abstractmethod
    def kernel_params(self) -> Dict[str, Any]:
        """Scalar parameters passed to the backend kernel."""
        pass


@dataclass(frozen=True)
class FillGenerator(ImageGenerator):
    """Constant image."""

    kind: ClassVar[KernelKind] = KernelKind.FILL

    value: float = 0.0

    def kernel_params(self) -> Dict[str, Any]:
        return {"value": float(self.value)}


@dataclass(frozen=True)
class GradientGenerator(ImageGenerator):
    """
    Linear ramp from 0 at the first column (row) to 1 at the last.

    A single-column (single-row) image along the ramp axis is all zeros.
    """

    kind: ClassVar[KernelKind] = KernelKind.GRADIENT

    axis: Axis = Axis.X

    def __post_init__(self):
        if not isinstance(self.axis, Axis):
            raise TypeError(f"axis must be an Axis, got {type(self.axis).__name__}")

    def kernel_params(self) -> Dict[str, Any]:
        return {"axis": self.axis}


@dataclass(frozen=True)
class CheckerboardGenerator(ImageGenerator):
    """Square cells of ``cell_size`` pixels alternating between ``low`` and ``high``, ``low`` at the origin."""

    kind: ClassVar[KernelKind] = KernelKind.CHECKERBOARD

    cell_size: int = 8
    low: float = 0.0
    high: float = 1.0

    def __post_init__(self):
        if int(self.cell_size) < 1:
            raise ValueError(f"cell_size must be at least 1, got {self.cell_size}")

    def kernel_params(self) -> Dict[str, Any]:
        return {"cell_size": int(self.cell_size), "low": float(self.low), "high": float(self.high)}
