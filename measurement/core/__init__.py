"""
Core module for command dispatch.

This module provides the foundational components of the library:
- DataLayer: Command queue with buffering, replay and a page model
- EventProcessor / StorageInterface: Plugin contracts
- Registry / build: Named plugin lookup and fault-isolated construction
- Dispatcher: The ``config``, ``set`` and ``event`` command handlers
"""

from .data_layer import Command, DataLayer, ModelInterface
from .dispatcher import (
    Dispatcher,
    configure_processors,
    merge_options,
    register_handlers,
    setup_measure,
)
from .event_processor import EventProcessor
from .exceptions import ConstructionError, MeasurementError, ResolutionError
from .factory import BuildResult, build, build_processor, build_storage
from .registry import ComponentKind, Registry, register, registry
from .storage import FOREVER, NO_PERSIST, STORAGE_DEFAULT, StorageInterface, persist

__all__ = [
    "BuildResult",
    "Command",
    "ComponentKind",
    "ConstructionError",
    "DataLayer",
    "Dispatcher",
    "EventProcessor",
    "FOREVER",
    "MeasurementError",
    "ModelInterface",
    "NO_PERSIST",
    "Registry",
    "ResolutionError",
    "STORAGE_DEFAULT",
    "StorageInterface",
    "build",
    "build_processor",
    "build_storage",
    "configure_processors",
    "merge_options",
    "persist",
    "register",
    "register_handlers",
    "registry",
    "setup_measure",
]
