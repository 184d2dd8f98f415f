from graygpu.constants.constants import (Axis, BackendType, KernelKind,
                                        FILTER_KERNELS, GENERATOR_KERNELS)

__all__ = [
    'Axis',
    'BackendType',
    'KernelKind',
    'FILTER_KERNELS',
    'GENERATOR_KERNELS',
]
