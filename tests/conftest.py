"""Global pytest configuration for graygpu tests."""
import os

import numpy as np
import pytest

from graygpu.constants.constants import VALID_BACKEND_NAMES
from graygpu.core.exceptions import BackendNotAvailableError
from graygpu.processing.backends.factory import get_backend, reset_default_backend


def pytest_addoption(parser):
    """Add command-line options for backend selection."""

    # Helper function to get default from environment variable
    def env_default(env_var, default_value):
        return os.getenv(env_var, default_value)

    parser.addoption(
        "--backends",
        action="store",
        default=env_default("GRAYGPU_TEST_BACKENDS", "numpy"),
        help="Comma-separated list of compute backends to test (default: numpy). Use 'all' for full coverage."
    )


def pytest_configure(config):
    """Validate configuration options."""
    option_value = config.getoption("--backends")
    if option_value == "all":
        return

    for value in (v.strip() for v in option_value.split(",")):
        if value not in VALID_BACKEND_NAMES:
            raise pytest.UsageError(
                f"Invalid value '{value}' for --backends. "
                f"Valid choices: {', '.join(sorted(VALID_BACKEND_NAMES))} or 'all'"
            )


def _selected_backends(config):
    option_value = config.getoption("--backends")
    if option_value == "all":
        return sorted(VALID_BACKEND_NAMES)
    return [v.strip() for v in option_value.split(",")]


def pytest_generate_tests(metafunc):
    """Parametrize backend-dependent tests over the selected backends."""
    if "backend_name" in metafunc.fixturenames:
        selected = _selected_backends(metafunc.config)
        metafunc.parametrize("backend_name", selected, ids=selected, scope="module")


@pytest.fixture(scope="module")
def backend(backend_name):
    """A live compute backend for each selected backend name; unavailable GPUs are skipped."""
    try:
        compute_backend = get_backend(backend_name, fallback_to_cpu=False)
    except BackendNotAvailableError as e:
        pytest.skip(str(e))
    yield compute_backend
    compute_backend.close()


@pytest.fixture(autouse=True)
def _isolate_default_backend():
    yield
    reset_default_backend()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def random_gray8(rng):
    """Factory for random row-major 8-bit images."""
    def make(width, height):
        return bytes(rng.integers(0, 256, size=width * height, dtype=np.uint8))
    return make
