"""
Tests for ComputeConfig.
"""
import pytest

from graygpu.constants.constants import BackendType
from graygpu.core.config import ComputeConfig


def test_defaults():
    config = ComputeConfig()
    assert config.backend is None
    assert config.prefer_gpu is True
    assert config.fallback_to_cpu is True
    assert config.threads_per_block == (8, 8)
    assert config.device_id is None


def test_config_is_frozen():
    config = ComputeConfig()
    with pytest.raises(AttributeError):
        config.prefer_gpu = False


@pytest.mark.parametrize("kwargs", [
    {"threads_per_block": (8,)},
    {"threads_per_block": (0, 8)},
    {"device_id": -1},
])
def test_invalid_values_are_rejected(kwargs):
    with pytest.raises(ValueError):
        ComputeConfig(**kwargs)


class TestFromEnv:

    def test_empty_environment_gives_defaults(self):
        assert ComputeConfig.from_env({}) == ComputeConfig()

    def test_reads_all_variables(self):
        config = ComputeConfig.from_env({
            "GRAYGPU_BACKEND": " CuPy ",
            "GRAYGPU_PREFER_GPU": "off",
            "GRAYGPU_DEVICE_ID": "1",
        })
        assert config.backend is BackendType.CUPY
        assert config.prefer_gpu is False
        assert config.device_id == 1

    @pytest.mark.parametrize("value,expected", [("1", True), ("yes", True), ("false", False), ("0", False)])
    def test_boolean_spellings(self, value, expected):
        assert ComputeConfig.from_env({"GRAYGPU_PREFER_GPU": value}).prefer_gpu is expected

    @pytest.mark.parametrize("environ", [
        {"GRAYGPU_BACKEND": "opencl"},
        {"GRAYGPU_PREFER_GPU": "maybe"},
        {"GRAYGPU_DEVICE_ID": "first"},
    ])
    def test_bad_values_raise(self, environ):
        with pytest.raises(ValueError):
            ComputeConfig.from_env(environ)

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("GRAYGPU_BACKEND", "numpy")
        assert ComputeConfig.from_env().backend is BackendType.NUMPY
