"""Kernel utilities."""

from metalgest_kernel.utils.cache import TTLCache

__all__ = ["TTLCache"]
