"""
Configuration dataclasses for graygpu.

Configuration is immutable and provided as Python objects. The backend factory
builds its process-wide default from ``ComputeConfig.from_env()``.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from graygpu.constants.constants import (DEFAULT_THREADS_PER_BLOCK,
                                         ENV_BACKEND, ENV_DEVICE_ID,
                                         ENV_PREFER_GPU, BackendType)

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ComputeConfig:
    """Selection and launch configuration for compute backends."""

    backend: Optional[BackendType] = None
    """Backend to use. None selects by preference among the available ones."""

    prefer_gpu: bool = True
    """Try GPU backends before CPU backends when ``backend`` is None."""

    fallback_to_cpu: bool = True
    """Fall back to a CPU backend when the requested backend is unavailable."""

    threads_per_block: Tuple[int, int] = DEFAULT_THREADS_PER_BLOCK
    """2D thread block used by GPU backends when launching kernels."""

    device_id: Optional[int] = None
    """GPU device ordinal. None uses the library's current device."""

    def __post_init__(self):
        if len(self.threads_per_block) != 2 or min(self.threads_per_block) <= 0:
            raise ValueError(
                f"threads_per_block must be two positive integers, got {self.threads_per_block}"
            )
        if self.device_id is not None and self.device_id < 0:
            raise ValueError(f"device_id must be non-negative, got {self.device_id}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ComputeConfig":
        """
        Build a configuration from ``GRAYGPU_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            ComputeConfig with unset variables left at their defaults

        Raises:
            ValueError: If a variable holds an unrecognised value
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        backend_name = env.get(ENV_BACKEND, "").strip().lower()
        if backend_name:
            try:
                kwargs["backend"] = BackendType(backend_name)
            except ValueError:
                valid = ", ".join(bt.value for bt in BackendType)
                raise ValueError(f"Invalid {ENV_BACKEND}={backend_name!r}. Valid values: {valid}") from None

        prefer_gpu = env.get(ENV_PREFER_GPU, "").strip().lower()
        if prefer_gpu:
            if prefer_gpu in _TRUE_VALUES:
                kwargs["prefer_gpu"] = True
            elif prefer_gpu in _FALSE_VALUES:
                kwargs["prefer_gpu"] = False
            else:
                raise ValueError(f"Invalid {ENV_PREFER_GPU}={prefer_gpu!r}. Expected a boolean")

        device_id = env.get(ENV_DEVICE_ID, "").strip()
        if device_id:
            try:
                kwargs["device_id"] = int(device_id)
            except ValueError:
                raise ValueError(f"Invalid {ENV_DEVICE_ID}={device_id!r}. Expected an integer") from None

        config = cls(**kwargs)
        logger.debug("Compute config from environment: %s", config)
        return config
