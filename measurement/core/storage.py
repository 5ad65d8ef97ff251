"""
Storage interface for long-lived measurement data.

A storage keeps key/value pairs with an optional expiry. Every storage and
every event processor shares one interpretation of ``seconds_to_live``:

    None      ask the event processor (only meaningful on the ``set`` command)
    0         do not persist
    -1        let the storage apply its own default
    > 0       keep the value for that many seconds
    math.inf  keep the value indefinitely
"""

import math
from abc import ABC, abstractmethod
from typing import Any, Optional

from loguru import logger


NO_PERSIST = 0
"""Time to live meaning the value must not be saved."""

STORAGE_DEFAULT = -1
"""Time to live meaning the storage decides how long the value lives."""

FOREVER = math.inf
"""Time to live meaning the value never expires."""


class StorageInterface(ABC):
    """
    Abstract base class for storages.

    Implementations may be in-memory, cookie-backed, file-backed or remote.
    Storages that do not subclass this are accepted by the factory as long as
    they expose ``load`` and ``save``.

    Examples:
        >>> class DictStorage(StorageInterface):
        ...     def __init__(self, options=None):
        ...         self._data = {}
        ...     def load(self, key):
        ...         return self._data.get(key)
        ...     def save(self, key, value, seconds_to_live=None):
        ...         self._data[key] = value
    """

    @abstractmethod
    def load(self, key: str) -> Any:
        """
        Load a previously saved value.

        Args:
            key (str): Key the value was saved under

        Returns:
            The saved value, or None if absent or expired
        """
        pass

    @abstractmethod
    def save(self, key: str, value: Any, seconds_to_live: Optional[float] = None) -> None:
        """
        Save a value until it expires.

        Args:
            key (str): Key to save the value under
            value: Value to save
            seconds_to_live (float, optional): Lifetime in seconds. None means
                the storage's default policy; math.inf means forever.
        """
        pass


def persist(storage: Any, key: str, value: Any, seconds_to_live: Optional[float]) -> Any:
    """
    Save a value according to the shared time to live rules.

    Args:
        storage: Storage to save into
        key (str): Key to save under
        value: Value to save
        seconds_to_live (float, optional): Resolved time to live. 0 (or None)
            skips the save, -1 saves without an explicit lifetime.

    Returns:
        Whatever ``storage.save`` returned (an awaitable for asynchronous
        storages), or None when nothing was saved.
    """
    if not seconds_to_live:
        logger.debug(f"Not persisting {key!r}: time to live is {seconds_to_live!r}")
        return None

    if seconds_to_live == STORAGE_DEFAULT:
        return storage.save(key, value)

    return storage.save(key, value, seconds_to_live)
