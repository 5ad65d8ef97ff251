"""
In-memory storage with time to live support.

MemoryStorage keeps values in process memory. It is useful for tests, for
server-side hosts that keep one data layer per session, and as a reference
for how a storage applies the shared time to live rules:
- None or -1: the storage default (``default_seconds_to_live``)
- 0: nothing is stored
- positive: expires after that many seconds
- math.inf: never expires
"""

import math
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from loguru import logger
from pydantic import BaseModel, Field

from ..core.models import StoredValue
from ..core.storage import NO_PERSIST, STORAGE_DEFAULT, StorageInterface


class MemoryStorageOptions(BaseModel):
    """
    Options accepted by MemoryStorage.

    Attributes:
        default_seconds_to_live: Lifetime applied when no explicit time to
            live is given. None keeps values forever.
        max_entries: Maximum number of keys kept. When full, the oldest
            saved key is dropped.
    """

    default_seconds_to_live: Optional[float] = Field(
        default=None,
        gt=0,
        description="Default lifetime in seconds, None for forever"
    )
    max_entries: int = Field(
        default=1000,
        gt=0,
        description="Maximum number of stored keys"
    )


class MemoryStorage(StorageInterface):
    """
    Storage keeping values in a bounded in-process mapping.

    Expired values are dropped lazily on load() and by purge_expired().

    Attributes:
        options (MemoryStorageOptions): Validated options

    Examples:
        >>> storage = MemoryStorage({"default_seconds_to_live": 60})
        >>> storage.save("client_id", "abc", math.inf)
        >>> storage.load("client_id")
        'abc'
        >>> storage.save("session", "xyz", 0)
        >>> storage.load("session") is None
        True
    """

    def __init__(
        self,
        options: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize an empty storage.

        Args:
            options (Dict[str, Any], optional): See MemoryStorageOptions
            clock (Callable[[], float]): Source of the current time in seconds

        Raises:
            pydantic.ValidationError: If the options are invalid
        """
        self.options = MemoryStorageOptions(**(options or {}))
        self._clock = clock
        self._values: "OrderedDict[str, StoredValue]" = OrderedDict()

    def load(self, key: str) -> Any:
        """
        Load a value, or None if it is missing or expired.

        Args:
            key (str): Key the value was saved under
        """
        record = self._values.get(key)
        if record is None:
            return None

        if record.is_expired(self._clock()):
            logger.debug(f"Stored value for {key!r} expired")
            del self._values[key]
            return None

        return record.value

    def save(self, key: str, value: Any, seconds_to_live: Optional[float] = None) -> None:
        """
        Save a value with the given lifetime.

        Args:
            key (str): Key to save under
            value: Value to save
            seconds_to_live (float, optional): None or -1 for the default
                lifetime, 0 to skip, math.inf for forever

        Raises:
            ValueError: If seconds_to_live is negative and not -1, or NaN
        """
        if seconds_to_live is None or seconds_to_live == STORAGE_DEFAULT:
            seconds_to_live = self.options.default_seconds_to_live

        if seconds_to_live == NO_PERSIST:
            logger.debug(f"Not saving {key!r}: time to live is 0")
            return

        if seconds_to_live is not None and (math.isnan(seconds_to_live) or seconds_to_live < 0):
            raise ValueError(
                f"seconds_to_live must be -1, 0 or positive, got {seconds_to_live}"
            )

        now = self._clock()
        expires_at = None
        if seconds_to_live is not None and not math.isinf(seconds_to_live):
            expires_at = now + seconds_to_live

        self._values.pop(key, None)
        self._values[key] = StoredValue(value=value, saved_at=now, expires_at=expires_at)

        while len(self._values) > self.options.max_entries:
            evicted, _ = self._values.popitem(last=False)
            logger.debug(f"MemoryStorage full, evicted {evicted!r}")

    def purge_expired(self) -> int:
        """
        Remove every expired value.

        Returns:
            int: Number of values removed
        """
        now = self._clock()
        expired = [key for key, record in self._values.items() if record.is_expired(now)]
        for key in expired:
            del self._values[key]

        if expired:
            logger.debug(f"Purged {len(expired)} expired value(s)")
        return len(expired)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: str) -> bool:
        return self.load(key) is not None
