"""
Filter and generator definitions, kernel descriptors and compute backends.
"""

from graygpu.processing.filters import (FlipFilter, GammaFilter,
                                        GaussianBlurFilter, ImageFilter,
                                        LevelFilter, Rotate90Filter,
                                        ThresholdFilter)
from graygpu.processing.generators import (CheckerboardGenerator,
                                           FillGenerator, GradientGenerator,
                                           ImageGenerator)
from graygpu.processing.kernels import KernelDescriptor

__all__ = [
    'ImageFilter',
    'LevelFilter',
    'GammaFilter',
    'ThresholdFilter',
    'GaussianBlurFilter',
    'Rotate90Filter',
    'FlipFilter',
    'ImageGenerator',
    'FillGenerator',
    'GradientGenerator',
    'CheckerboardGenerator',
    'KernelDescriptor',
]
