"""
Tests for filter specifications and the per-pixel behaviour of every filter kernel.
"""
import math

import numpy as np
import pytest

from graygpu.constants.constants import Axis, KernelKind
from graygpu.core.image import GrayGpuImage
from graygpu.processing.filters import (FlipFilter, GammaFilter,
                                        GaussianBlurFilter, LevelFilter,
                                        Rotate90Filter, ThresholdFilter)


def _run(backend, data, width, height, *filters):
    with GrayGpuImage.from_gray8(data, width, height, backend=backend) as image:
        image.apply_filters(filters)
        return image.width, image.height, bytes(image.get_bytes()), image.get_samples()


class TestFilterSpecs:

    def test_filters_are_immutable_values(self):
        level = LevelFilter(0.1, 0.9)
        assert level == LevelFilter(0.1, 0.9)
        with pytest.raises(AttributeError):
            level.black_level = 0.2

    def test_kinds(self):
        assert LevelFilter().kind is KernelKind.LEVEL
        assert GammaFilter().kind is KernelKind.GAMMA
        assert ThresholdFilter().kind is KernelKind.THRESHOLD
        assert GaussianBlurFilter(Axis.X, 1.0).kind is KernelKind.GAUSSIAN_BLUR
        assert Rotate90Filter(1).kind is KernelKind.ROTATE90
        assert FlipFilter(Axis.Y).kind is KernelKind.FLIP

    @pytest.mark.parametrize("sigma", [-0.5, float("nan"), float("inf")])
    def test_blur_rejects_invalid_sigma(self, sigma):
        with pytest.raises(ValueError):
            GaussianBlurFilter(Axis.X, sigma)

    def test_axis_must_be_enum(self):
        with pytest.raises(TypeError):
            GaussianBlurFilter("x", 1.0)
        with pytest.raises(TypeError):
            FlipFilter("y")

    @pytest.mark.parametrize("sigma,radius", [(0.0, 0), (0.1, 1), (1.0, 3), (1.5, 5), (2.0, 6)])
    def test_blur_radius(self, sigma, radius):
        assert GaussianBlurFilter(Axis.Y, sigma).radius == radius

    @pytest.mark.parametrize("turns,normalized", [(0, 0), (1, 1), (4, 0), (5, 1), (-1, 3), (-6, 2)])
    def test_rotation_normalizes_turns(self, turns, normalized):
        assert Rotate90Filter(turns).normalized_turns == normalized
        assert Rotate90Filter(turns).kernel_params() == {"turns": normalized}

    def test_rotation_output_size(self):
        assert Rotate90Filter(1).output_size(5, 2) == (2, 5)
        assert Rotate90Filter(2).output_size(5, 2) == (5, 2)
        assert Rotate90Filter(-1).output_size(5, 2) == (2, 5)
        assert LevelFilter().output_size(5, 2) == (5, 2)


class TestPointFilters:

    def test_level_identity(self, backend, random_gray8):
        data = random_gray8(7, 5)
        _, _, result, _ = _run(backend, data, 7, 5, LevelFilter(0.0, 1.0))
        assert result == data

    def test_level_remaps_and_clamps(self, backend):
        data = bytes([0, 51, 102, 153, 204, 255])
        _, _, _, samples = _run(backend, data, 6, 1, LevelFilter(0.2, 0.6))
        expected = np.clip((np.frombuffer(data, np.uint8) / 255.0 - 0.2) / 0.4, 0, 1)
        np.testing.assert_allclose(samples.ravel(), expected, atol=1e-6)
        assert samples.min() >= 0.0 and samples.max() <= 1.0

    def test_level_with_equal_levels_stays_in_range(self, backend):
        _, _, result, samples = _run(backend, bytes([0, 128, 255]), 3, 1, LevelFilter(0.5, 0.5))
        assert np.all((samples >= 0.0) & (samples <= 1.0))
        assert result[2] == 255

    def test_gamma_identity(self, backend, random_gray8):
        data = random_gray8(5, 4)
        _, _, result, _ = _run(backend, data, 5, 4, GammaFilter(1.0))
        assert result == data

    def test_gamma_curve(self, backend):
        data = bytes([0, 64, 128, 255])
        _, _, _, samples = _run(backend, data, 4, 1, GammaFilter(2.2))
        expected = (np.frombuffer(data, np.uint8).astype(np.float32) / np.float32(255)) ** 2.2
        np.testing.assert_allclose(samples.ravel(), expected, rtol=1e-5, atol=1e-6)

    def test_threshold_is_binary(self, backend, random_gray8):
        data = random_gray8(8, 8)
        _, _, result, samples = _run(backend, data, 8, 8, ThresholdFilter(0.5))
        assert set(np.unique(samples)) <= {0.0, 1.0}
        assert set(result) <= {0, 255}
        expected = bytes(255 if b / 255.0 > 0.5 else 0 for b in data)
        assert result == expected

    def test_threshold_is_strict(self, backend):
        _, _, result, _ = _run(backend, bytes([0, 255]), 2, 1, ThresholdFilter(1.0))
        assert result == bytes([0, 0])


class TestGaussianBlur:

    @pytest.mark.parametrize("axis", [Axis.X, Axis.Y])
    def test_zero_radius_is_exact_copy(self, backend, random_gray8, axis):
        data = random_gray8(6, 5)
        _, _, result, _ = _run(backend, data, 6, 5, GaussianBlurFilter(axis, 0.0))
        assert result == data

    @pytest.mark.parametrize("axis", [Axis.X, Axis.Y])
    def test_output_is_bounded_by_its_taps(self, backend, random_gray8, axis):
        data = random_gray8(9, 7)
        source = (np.frombuffer(data, np.uint8).astype(np.float32) / np.float32(255)).reshape(7, 9)
        blur = GaussianBlurFilter(axis, 1.7)
        _, _, _, samples = _run(backend, data, 9, 7, blur)

        radius = blur.radius
        for y in range(7):
            for x in range(9):
                if axis is Axis.X:
                    taps = source[y, max(x - radius, 0):x + radius + 1]
                else:
                    taps = source[max(y - radius, 0):y + radius + 1, x]
                assert taps.min() <= samples[y, x] <= taps.max(), (x, y)

    @pytest.mark.parametrize("axis", [Axis.X, Axis.Y])
    def test_underflowing_sigma_copies_input(self, backend, axis):
        data = bytes(range(6))
        blur = GaussianBlurFilter(axis, 1e-170)
        assert blur.radius == 1
        assert blur.kernel_params()["radius"] == 0
        _, _, result, samples = _run(backend, data, 3, 2, blur)
        assert result == data
        assert not np.isnan(samples).any()

    def test_constant_image_is_unchanged(self, backend):
        data = bytes([77] * 30)
        _, _, result, _ = _run(backend, data, 6, 5, *(GaussianBlurFilter(a, 2.0) for a in (Axis.X, Axis.Y)))
        assert result == data

    def test_horizontal_pass_matches_truncated_kernel(self, backend):
        data = bytes([0, 0, 255, 0, 0, 0, 0])
        sigma = 1.0
        radius = 3
        _, _, _, samples = _run(backend, data, 7, 1, GaussianBlurFilter(Axis.X, sigma))

        source = np.frombuffer(data, np.uint8).astype(np.float64) / 255.0
        expected = []
        for x in range(7):
            total = weights = 0.0
            for i in range(-radius, radius + 1):
                if 0 <= x + i < 7:
                    w = math.exp(-(i * i) / (2 * sigma * sigma))
                    total += w * source[x + i]
                    weights += w
            expected.append(total / weights)
        np.testing.assert_allclose(samples.ravel(), expected, rtol=1e-5, atol=1e-6)

    def test_vertical_pass_only_mixes_rows(self, backend):
        # Column 0 is constant, so a vertical blur must leave it alone
        data = bytes([200, 0, 200, 255, 200, 0])
        _, _, _, samples = _run(backend, data, 2, 3, GaussianBlurFilter(Axis.Y, 1.0))
        np.testing.assert_allclose(samples[:, 0], 200 / 255.0, rtol=1e-6)
        assert samples[1, 1] < 1.0
        assert samples[0, 1] > 0.0


class TestGeometricFilters:

    @pytest.mark.parametrize("width,height", [(4, 4), (5, 3), (1, 6), (7, 1)])
    def test_four_quarter_turns_restore_image(self, backend, random_gray8, width, height):
        data = random_gray8(width, height)
        quarter = Rotate90Filter(1)
        w, h, result, _ = _run(backend, data, width, height, quarter, quarter, quarter, quarter)
        assert (w, h) == (width, height)
        assert result == data

    @pytest.mark.parametrize("width,height", [(4, 4), (5, 3)])
    def test_full_turn_is_identity(self, backend, random_gray8, width, height):
        data = random_gray8(width, height)
        w, h, result, _ = _run(backend, data, width, height, Rotate90Filter(4))
        assert (w, h) == (width, height)
        assert result == data

    def test_quarter_turn_layout(self, backend):
        # 3x2 input:  0 1 2
        #             3 4 5
        data = bytes([0, 1, 2, 3, 4, 5])
        w, h, result, _ = _run(backend, data, 3, 2, Rotate90Filter(1))
        assert (w, h) == (2, 3)
        assert result == bytes([3, 0, 4, 1, 5, 2])

        w, h, result, _ = _run(backend, data, 3, 2, Rotate90Filter(3))
        assert (w, h) == (2, 3)
        assert result == bytes([2, 5, 1, 4, 0, 3])

        w, h, result, _ = _run(backend, data, 3, 2, Rotate90Filter(2))
        assert (w, h) == (3, 2)
        assert result == bytes([5, 4, 3, 2, 1, 0])

    def test_opposite_turns_cancel(self, backend, random_gray8):
        data = random_gray8(5, 3)
        w, h, result, _ = _run(backend, data, 5, 3, Rotate90Filter(1), Rotate90Filter(-1))
        assert (w, h) == (5, 3)
        assert result == data

    @pytest.mark.parametrize("axis", [Axis.X, Axis.Y])
    def test_flip_is_involution(self, backend, random_gray8, axis):
        data = random_gray8(5, 4)
        _, _, result, _ = _run(backend, data, 5, 4, FlipFilter(axis), FlipFilter(axis))
        assert result == data

    def test_flip_layout(self, backend):
        data = bytes([0, 1, 2, 3, 4, 5])
        _, _, result, _ = _run(backend, data, 3, 2, FlipFilter(Axis.X))
        assert result == bytes([2, 1, 0, 5, 4, 3])
        _, _, result, _ = _run(backend, data, 3, 2, FlipFilter(Axis.Y))
        assert result == bytes([3, 4, 5, 0, 1, 2])
