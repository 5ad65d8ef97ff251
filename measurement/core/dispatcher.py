"""
Dispatcher wiring the ``config``, ``set`` and ``event`` commands.

A Dispatcher owns the single active processor/storage pair of one data
layer. A successful ``config`` command builds a new pair and registers the
``set`` and ``event`` processors on the data layer, replacing whatever was
registered before. A failed ``config`` leaves the data layer untouched.
"""

from collections.abc import Mapping
from typing import Any, Dict, Optional

from loguru import logger

from .data_layer import DataLayer
from .factory import Reference, build
from .registry import ComponentKind
from .storage import persist


def merge_options(*sources: Optional[Mapping]) -> Dict[str, Any]:
    """
    Shallow-merge option mappings, later sources winning.

    Args:
        *sources: Mappings in increasing precedence; None entries are skipped

    Returns:
        Dict[str, Any]: New merged mapping

    Examples:
        >>> merge_options({"a": 1, "b": 2}, {"b": 3, "c": 4}, {"c": 5, "d": 6})
        {'a': 1, 'b': 3, 'c': 5, 'd': 6}
    """
    merged: Dict[str, Any] = {}
    for source in sources:
        if source:
            merged.update(source)
    return merged


class Dispatcher:
    """
    Holds the active processor/storage pair for a data layer.

    Attributes:
        data_layer (DataLayer): Data layer the handlers are registered on
        processor: Active event processor, None until configured
        storage: Active storage, None until configured
        event_options (Dict[str, Any]): Options captured at configuration time

    Examples:
        >>> data_layer = DataLayer()
        >>> dispatcher = Dispatcher(data_layer)
        >>> dispatcher.configure_processors("googleAnalytics", {}, MemoryStorage, {})
        True
        >>> data_layer.push("event", "page_view", {"page_title": "Home"})
    """

    def __init__(self, data_layer: DataLayer):
        self.data_layer = data_layer
        self.processor: Any = None
        self.storage: Any = None
        self.event_options: Dict[str, Any] = {}

    @property
    def is_configured(self) -> bool:
        """True once a processor/storage pair is active."""
        return self.processor is not None and self.storage is not None

    def configure_processors(
        self,
        event_processor: Reference,
        event_options: Optional[Dict[str, Any]] = None,
        storage_interface: Reference = None,
        storage_options: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Build a processor/storage pair and register the command handlers.

        Args:
            event_processor: Processor constructor or registered name
            event_options (Dict[str, Any], optional): Processor construction
                options, also merged into every event
            storage_interface: Storage constructor or registered name
            storage_options (Dict[str, Any], optional): Storage construction options

        Returns:
            bool: True if the handlers were registered, False if either
            build failed and the configuration was abandoned
        """
        event_options = dict(event_options or {})
        processor = build(ComponentKind.PROCESSOR, event_processor, event_options)
        storage = build(ComponentKind.STORAGE, storage_interface, storage_options)

        if not (processor.ok and storage.ok):
            # Keep whatever pair was active before
            return False

        self.register_handlers(processor.instance, storage.instance, event_options)
        return True

    def register_handlers(
        self,
        processor: Any,
        storage: Any,
        event_options: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Make processor/storage the active pair and register ``set``/``event``.

        Both handlers are registered in one batch so buffered commands are
        replayed in their original order.
        """
        self.processor = processor
        self.storage = storage
        self.event_options = dict(event_options or {})

        self.data_layer.register_processors({
            "set": self.on_set,
            "event": self.on_event,
        })
        logger.info(
            f"Configured {type(processor).__name__} with {type(storage).__name__}"
        )

    def on_config(
        self,
        event_processor: Reference,
        event_options: Optional[Dict[str, Any]] = None,
        storage_interface: Reference = None,
        storage_options: Optional[Dict[str, Any]] = None
    ) -> None:
        """Handle a ``config`` command."""
        self.configure_processors(
            event_processor, event_options, storage_interface, storage_options
        )

    def on_set(self, key: str, value: Any, seconds_to_live: Optional[float] = None) -> Any:
        """
        Handle a ``set`` command.

        Args:
            key (str): Key to store
            value: Value to store
            seconds_to_live (float, optional): Explicit time to live. When
                omitted the processor's persist_time() decides.

        Returns:
            The storage's save() result (an awaitable for async storages)
        """
        if seconds_to_live is None:
            seconds_to_live = self.processor.persist_time(key, value)
        return persist(self.storage, key, value, seconds_to_live)

    def on_event(self, name: str, options: Optional[Dict[str, Any]] = None) -> Any:
        """
        Handle an ``event`` command.

        Options are merged in increasing precedence: the processor's extra
        options from the page model, the options captured at configuration
        time, then the options of this command.

        Args:
            name (str): Event name
            options (Dict[str, Any], optional): Options for this event

        Returns:
            The processor's process_event() result
        """
        merged = merge_options(self.extra_options(), self.event_options, options)
        return self.processor.process_event(
            self.storage, self.data_layer.model, name, merged
        )

    def extra_options(self) -> Dict[str, Any]:
        """Processor state stored on the page model under its name, if any."""
        get_name = getattr(self.processor, "get_name", None)
        if not callable(get_name):
            return {}

        extra = self.data_layer.get(get_name())
        if not isinstance(extra, Mapping):
            return {}
        return dict(extra)


def configure_processors(
    data_layer: DataLayer,
    event_processor: Reference,
    event_options: Optional[Dict[str, Any]] = None,
    storage_interface: Reference = None,
    storage_options: Optional[Dict[str, Any]] = None
) -> Optional[Dispatcher]:
    """
    Configure a data layer with a processor/storage pair.

    Returns:
        Dispatcher: The dispatcher now handling ``set``/``event``, or None if
        the configuration was abandoned
    """
    dispatcher = Dispatcher(data_layer)
    if dispatcher.configure_processors(
        event_processor, event_options, storage_interface, storage_options
    ):
        return dispatcher
    return None


def register_handlers(
    data_layer: DataLayer,
    processor: Any,
    storage: Any,
    event_options: Optional[Dict[str, Any]] = None
) -> Dispatcher:
    """Register ``set``/``event`` for already-built instances."""
    dispatcher = Dispatcher(data_layer)
    dispatcher.register_handlers(processor, storage, event_options)
    return dispatcher


def setup_measure(data_layer: DataLayer) -> Dispatcher:
    """
    Attach the library to a data layer by handling its ``config`` command.

    Commands pushed before this call are replayed in order, so the result is
    the same whether the page snippet ran before or after setup.

    Args:
        data_layer (DataLayer): The page's data layer

    Returns:
        Dispatcher: Dispatcher that reconfigures on every ``config`` command

    Examples:
        >>> data_layer = DataLayer([("config", "googleAnalytics", {}, MemoryStorage, {})])
        >>> dispatcher = setup_measure(data_layer)
        >>> dispatcher.is_configured
        True
    """
    dispatcher = Dispatcher(data_layer)
    data_layer.register_processor("config", dispatcher.on_config)
    return dispatcher
