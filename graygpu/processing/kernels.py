"""
Kernel descriptors.

A descriptor is what the image container hands to ``ComputeBackend.dispatch``:
the kernel kind tag, its immutable parameters and the buffers it touches.
Backends select the kernel to run from a table keyed on ``kind``.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Optional

from graygpu.constants.constants import FILTER_KERNELS, KernelKind

if TYPE_CHECKING:
    from graygpu.processing.backends.base import DeviceBuffer


@dataclass(frozen=True, eq=False)
class KernelDescriptor:
    """Kind tag, parameters and buffer handles for one dispatch."""

    kind: KernelKind
    output: "DeviceBuffer"
    input: Optional["DeviceBuffer"] = None
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.kind in FILTER_KERNELS and self.input is None:
            raise ValueError(f"{self.kind.value} kernel requires an input buffer")
        if self.input is not None and self.input is self.output:
            # Filters must never read partially-updated state
            raise ValueError(f"{self.kind.value} kernel input and output must be distinct buffers")
