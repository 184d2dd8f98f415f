"""
Utility functions for the graygpu package.
"""

import importlib
import logging
import math
from typing import Any, Optional

logger = logging.getLogger(__name__)


class _ModulePlaceholder:
    """
    Placeholder for missing optional modules that allows attribute access
    for type annotations while still being falsy and failing on actual use.
    """
    def __init__(self, module_name: str):
        self._module_name = module_name

    def __bool__(self):
        return False

    def __getattr__(self, name):
        # Chained attribute access keeps working, e.g. cp.ndarray in annotations
        return _ModulePlaceholder(f"{self._module_name}.{name}")

    def __call__(self, *args, **kwargs):
        raise ImportError(f"Module '{self._module_name}' is not available. Please install the required dependency.")

    def __repr__(self):
        return f"<ModulePlaceholder for '{self._module_name}'>"


def optional_import(module_name: str) -> Optional[Any]:
    """
    Import a module if available, otherwise return a falsy placeholder.

    Used for the GPU libraries, which are optional extras:

        cp = optional_import("cupy")
        if cp:
            ...

    Args:
        module_name: Dotted name of the module to import

    Returns:
        The imported module if available, a placeholder otherwise
    """
    try:
        return importlib.import_module(module_name)
    except (ImportError, ModuleNotFoundError, AttributeError):
        logger.debug("Optional module %s not available", module_name)
        return _ModulePlaceholder(module_name)


def ceil_div(numerator: int, denominator: int) -> int:
    """Integer ceiling division for non-negative operands."""
    return (numerator + denominator - 1) // denominator


def gaussian_radius(sigma: float, sigmas: float) -> int:
    """Kernel radius covering ``sigmas`` standard deviations."""
    return int(math.ceil(sigma * sigmas))
