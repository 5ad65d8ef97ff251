"""
Storage implementations.

None are registered by name; register one explicitly, e.g.
``measurement.register("storage", "memory", MemoryStorage)``.
"""

from .memory import MemoryStorage, MemoryStorageOptions

__all__ = [
    "MemoryStorage",
    "MemoryStorageOptions",
]
