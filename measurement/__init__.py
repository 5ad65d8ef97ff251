"""
measurement - pluggable event telemetry dispatch

This package connects a page's command queue (the data layer) to
interchangeable event processors and storages.

Modules:
    core: Data layer, plugin contracts, registry, factory and dispatcher
    processors: Built-in event processors (Google Analytics)
    storage: Storage implementations (in-memory)
    config: Settings loading and logging setup
"""

from .core import (
    DataLayer,
    Dispatcher,
    EventProcessor,
    StorageInterface,
    configure_processors,
    register,
    registry,
    setup_measure,
)
from .processors import GoogleAnalyticsEventProcessor
from .storage import MemoryStorage

__version__ = "0.1.0"


def _register_default_processors() -> None:
    """Register built-in processors with the process-wide registry."""
    registry.register("processor", "googleAnalytics", GoogleAnalyticsEventProcessor)


_register_default_processors()

__all__ = [
    "DataLayer",
    "Dispatcher",
    "EventProcessor",
    "GoogleAnalyticsEventProcessor",
    "MemoryStorage",
    "StorageInterface",
    "configure_processors",
    "register",
    "registry",
    "setup_measure",
]
