"""
Tests for generator kernels applied through GrayGpuImage.apply_generator.
"""
import numpy as np
import pytest

from graygpu.constants.constants import Axis, KernelKind
from graygpu.core.image import GrayGpuImage
from graygpu.processing.filters import ThresholdFilter
from graygpu.processing.generators import (CheckerboardGenerator,
                                           FillGenerator, GradientGenerator)


def test_generator_kinds():
    assert FillGenerator().kind is KernelKind.FILL
    assert GradientGenerator().kind is KernelKind.GRADIENT
    assert CheckerboardGenerator().kind is KernelKind.CHECKERBOARD


def test_checkerboard_rejects_empty_cells():
    with pytest.raises(ValueError):
        CheckerboardGenerator(cell_size=0)


def test_gradient_axis_must_be_enum():
    with pytest.raises(TypeError):
        GradientGenerator(axis="x")


class TestGeneratorKernels:

    def test_fill(self, backend):
        with GrayGpuImage.create(5, 3, backend=backend) as image:
            image.apply_generator(FillGenerator(1.0))
            assert image.get_bytes() == bytearray([255] * 15)
            image.apply_generator(FillGenerator(0.5))
            assert image.get_bytes() == bytearray([127] * 15)

    def test_fill_does_not_allocate_scratch(self, backend):
        with GrayGpuImage.create(4, 4, backend=backend) as image:
            live = backend.live_buffers
            image.apply_generator(FillGenerator(0.25))
            assert backend.live_buffers == live

    def test_horizontal_gradient(self, backend):
        with GrayGpuImage.create(5, 2, backend=backend) as image:
            image.apply_generator(GradientGenerator(Axis.X))
            samples = image.get_samples()
        expected = np.array([0.0, 0.25, 0.5, 0.75, 1.0], dtype=np.float32)
        np.testing.assert_allclose(samples, np.vstack([expected, expected]), atol=1e-7)

    def test_vertical_gradient(self, backend):
        with GrayGpuImage.create(2, 3, backend=backend) as image:
            image.apply_generator(GradientGenerator(Axis.Y))
            assert image.get_bytes() == bytearray([0, 0, 127, 127, 255, 255])

    def test_single_column_gradient_is_zero(self, backend):
        with GrayGpuImage.create(1, 4, backend=backend) as image:
            image.apply_generator(GradientGenerator(Axis.X))
            assert image.get_bytes() == bytearray(4)

    def test_checkerboard(self, backend):
        with GrayGpuImage.create(4, 4, backend=backend) as image:
            image.apply_generator(CheckerboardGenerator(cell_size=2, low=0.0, high=1.0))
            assert image.get_bytes() == bytearray([
                0, 0, 255, 255,
                0, 0, 255, 255,
                255, 255, 0, 0,
                255, 255, 0, 0,
            ])

    def test_generated_pattern_feeds_filters(self, backend):
        with GrayGpuImage.create(3, 3, backend=backend) as image:
            image.apply_generator(CheckerboardGenerator(cell_size=1))
            image.apply_filter(ThresholdFilter(0.5))
            assert image.get_bytes() == bytearray([0, 255, 0, 255, 0, 255, 0, 255, 0])
