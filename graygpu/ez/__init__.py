"""
Simplified interface for graygpu.
"""

from graygpu.ez.functions import gaussian_blur_filters, process_gray8

__all__ = [
    'gaussian_blur_filters',
    'process_gray8',
]
