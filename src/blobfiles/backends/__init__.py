"""Concrete storage backends."""

from .memory import MemoryBackend, MemoryBackendError

__all__ = ["MemoryBackend", "MemoryBackendError"]
