"""
Tests for packed readback geometry and row reconciliation.
"""
import numpy as np
import pytest

from graygpu.core.exceptions import DimensionMismatchError, InvalidStrideError
from graygpu.core.packer import (copy_packed_rows, packed_row_bytes,
                                 packed_rows, validate_stride, words_per_row,
                                 writable_view)


@pytest.mark.parametrize("width,words", [(1, 1), (3, 1), (4, 1), (5, 2), (8, 2), (9, 3)])
def test_words_per_row(width, words):
    assert words_per_row(width) == words
    assert packed_row_bytes(width) == words * 4


class TestValidateStride:

    def test_default_is_width(self):
        assert validate_stride(5) == 5

    @pytest.mark.parametrize("stride", [5, 6, 7, 8])
    def test_accepts_width_to_packed_row(self, stride):
        assert validate_stride(5, stride) == stride

    @pytest.mark.parametrize("stride", [0, 4, 9, 12])
    def test_rejects_out_of_range(self, stride):
        with pytest.raises(InvalidStrideError):
            validate_stride(5, stride)

    def test_stride_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_stride(4, 3)


class TestPackedRows:

    def test_words_are_little_endian(self):
        words = np.array([0x04030201, 0x08070605], dtype=np.uint32)
        rows = packed_rows(words, 1)
        assert rows.shape == (1, 8)
        assert rows.tobytes() == bytes(range(1, 9))

    def test_big_endian_input_is_normalised(self):
        words = np.array([0x04030201], dtype=">u4")
        assert packed_rows(words, 1).tobytes() == bytes([1, 2, 3, 4])

    def test_bulk_copy(self):
        rows = np.arange(16, dtype=np.uint8).reshape(2, 8)
        destination = np.zeros(20, dtype=np.uint8)
        copy_packed_rows(rows, 8, destination)
        assert destination[:16].tolist() == list(range(16))
        assert destination[16:].tolist() == [0] * 4

    def test_row_copy_drops_padding(self):
        rows = np.arange(16, dtype=np.uint8).reshape(2, 8)
        destination = np.zeros(12, dtype=np.uint8)
        copy_packed_rows(rows, 6, destination)
        assert destination.tolist() == [0, 1, 2, 3, 4, 5, 8, 9, 10, 11, 12, 13]


class TestWritableView:

    def test_shares_memory_with_bytearray(self):
        destination = bytearray(4)
        view = writable_view(destination, 4)
        view[2] = 7
        assert destination == bytearray([0, 0, 7, 0])

    def test_flattens_2d_arrays(self):
        destination = np.zeros((2, 3), dtype=np.uint8)
        assert writable_view(destination, 6).shape == (6,)

    def test_rejects_read_only(self):
        with pytest.raises(TypeError):
            writable_view(b"abcd", 4)
        with pytest.raises(TypeError):
            writable_view(memoryview(bytearray(4)).toreadonly(), 4)

    def test_rejects_non_buffers(self):
        with pytest.raises(TypeError):
            writable_view([0, 0, 0, 0], 4)

    def test_rejects_short_buffers(self):
        with pytest.raises(DimensionMismatchError):
            writable_view(bytearray(3), 4)
