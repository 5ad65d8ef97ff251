"""
Registry of named event processors and storages.

Hosts refer to plugins either directly (a class or factory function) or by a
short name registered here. The process-wide ``registry`` is seeded with the
built-in processors when the ``measurement`` package is imported and is only
changed through explicit ``register``/``unregister`` calls.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Union

from loguru import logger

from .exceptions import ResolutionError


class ComponentKind(Enum):
    """
    Kinds of plugin the registry stores.

    Examples:
        >>> ComponentKind("processor")
        <ComponentKind.PROCESSOR: 'processor'>
    """

    PROCESSOR = "processor"
    STORAGE = "storage"

    def __str__(self) -> str:
        return self.value


KindLike = Union[ComponentKind, str]


def as_kind(kind: KindLike) -> ComponentKind:
    """Coerce a kind given as string or enum member, raising ValueError if unknown."""
    if isinstance(kind, ComponentKind):
        return kind
    try:
        return ComponentKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in ComponentKind)
        raise ValueError(f"Unknown component kind: {kind!r}. Valid kinds are: {valid}") from None


class Registry:
    """
    Mapping from short names to processor and storage constructors.

    No validation of the constructor is done here; the factory checks the
    constructed instance instead.

    Examples:
        >>> registry = Registry()
        >>> registry.register("storage", "memory", MemoryStorage)
        >>> registry.resolve("storage", "memory")
        <class 'measurement.storage.memory.MemoryStorage'>
    """

    def __init__(self):
        self._entries: Dict[ComponentKind, Dict[str, Callable[..., Any]]] = {
            kind: {} for kind in ComponentKind
        }

    def register(self, kind: KindLike, name: str, constructor: Callable[..., Any]) -> None:
        """
        Add or overwrite a named constructor.

        Args:
            kind: 'processor' or 'storage'
            name (str): Name hosts use in ``config`` commands
            constructor (Callable): Class or factory taking an options mapping

        Raises:
            ValueError: If kind is unknown
        """
        kind = as_kind(kind)
        entries = self._entries[kind]
        if name in entries:
            logger.info(f"Overwriting {kind} {name!r} in registry")
        entries[name] = constructor

    def unregister(self, kind: KindLike, name: str) -> None:
        """Remove a named constructor if present."""
        self._entries[as_kind(kind)].pop(name, None)

    def resolve(self, kind: KindLike, name: str) -> Callable[..., Any]:
        """
        Look up a named constructor.

        Args:
            kind: 'processor' or 'storage'
            name (str): Registered name

        Returns:
            Callable: The registered constructor

        Raises:
            ResolutionError: If no constructor is registered under the name
            ValueError: If kind is unknown
        """
        kind = as_kind(kind)
        try:
            return self._entries[kind][name]
        except KeyError:
            raise ResolutionError(kind.value, name) from None

    def names(self, kind: KindLike) -> List[str]:
        """Return registered names for a kind, in registration order."""
        return list(self._entries[as_kind(kind)])

    def __contains__(self, item) -> bool:
        kind, name = item
        return name in self._entries[as_kind(kind)]


registry = Registry()


def register(kind: KindLike, name: str, constructor: Callable[..., Any]) -> None:
    """
    Register a processor or storage constructor on the process-wide registry.

    Examples:
        >>> import measurement
        >>> measurement.register("storage", "memory", MemoryStorage)
    """
    registry.register(kind, name, constructor)
