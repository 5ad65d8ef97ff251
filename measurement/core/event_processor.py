"""
Event Processor Interface for the measurement library

This module defines the contract every event processor fulfils:
- get_name: stable identifier used to look up processor state in the page model
- persist_time: decides how long a value set on the data layer is stored
- process_event: turns an event command into an outbound action

Processors are plugins. The dispatcher only relies on this capability set,
so duck-typed classes that do not inherit from EventProcessor also work.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .data_layer import ModelInterface


class EventProcessor(ABC):
    """
    Abstract base class for event processors.

    The dispatcher calls a processor in two situations:
    1. A ``set`` command arrives without an explicit time to live, so
       persist_time() decides whether and how long to store the value
    2. An ``event`` command arrives, so process_event() receives the storage,
       the page model and the merged event options

    Constructors receive a single options mapping (the parameters of the
    ``config`` command) and may raise if the options are unusable; the
    factory turns such failures into a logged, aborted configuration.

    Examples:
        >>> class ConsoleProcessor(EventProcessor):
        ...     def __init__(self, options=None):
        ...         self.options = options or {}
        ...
        ...     def persist_time(self, key, value):
        ...         return -1
        ...
        ...     def process_event(self, storage, model, event_name, options):
        ...         print(event_name, options)
    """

    def get_name(self) -> str:
        """
        Name the processor so its state can be shared across configurations.

        The name must depend on the processor kind, not the instance. The
        default is the class name.

        Returns:
            str: Stable processor identifier
        """
        return self.__class__.__name__

    @abstractmethod
    def persist_time(self, key: str, value: Any) -> float:
        """
        Decide how long a key/value pair should be stored.

        Must be a pure decision with no I/O.

        Args:
            key (str): Key passed to the ``set`` command
            value: Value passed to the ``set`` command

        Returns:
            float: 0 to skip storing, -1 for the storage default, a positive
            number of seconds, or math.inf to store forever
        """
        pass

    @abstractmethod
    def process_event(
        self,
        storage: Any,
        model: ModelInterface,
        event_name: str,
        options: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Handle an event pushed to the data layer.

        Args:
            storage: Storage for durable identifiers (load/save)
            model (ModelInterface): Short-lived page model (get/set)
            event_name (str): Name passed to the ``event`` command
            options (Dict[str, Any], optional): Merged event options
        """
        pass
