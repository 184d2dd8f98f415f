"""
Custom exceptions for the graygpu core.

Every error is raised immediately to the caller; nothing is retried internally.
"""


class GrayGpuError(Exception):
    """Base class for all graygpu custom exceptions."""
    pass


class InvalidDimensionError(GrayGpuError, ValueError):
    """Raised when an image width or height is not strictly positive."""
    pass


class DimensionMismatchError(GrayGpuError, ValueError):
    """Raised when a byte array does not match the declared image geometry."""
    pass


class InvalidStrideError(GrayGpuError, ValueError):
    """Raised when a readback stride is narrower than the image or wider than a packed row."""
    pass


class UseAfterDisposeError(GrayGpuError, RuntimeError):
    """Raised when an operation is attempted on a disposed image."""
    pass


class BackendFailureError(GrayGpuError, RuntimeError):
    """
    Raised by a compute backend when a device allocation, transfer or kernel
    dispatch fails. The native exception is chained as ``__cause__``.
    """

    def __init__(self, backend: str, operation: str, reason: str):
        self.backend = backend
        self.operation = operation
        self.reason = reason
        super().__init__(f"{backend} backend failed during {operation}: {reason}")


class BackendNotAvailableError(GrayGpuError, LookupError):
    """Raised when a requested compute backend cannot be resolved."""
    pass


class UnsupportedKernelError(GrayGpuError, KeyError):
    """Raised when a backend has no kernel registered for a descriptor's kind."""
    pass
