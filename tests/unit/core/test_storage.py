"""
Unit tests for the shared time to live rules in persist().
"""

import math
from unittest.mock import Mock

import pytest

from measurement.core.storage import FOREVER, NO_PERSIST, STORAGE_DEFAULT, StorageInterface, persist


class TestPersist:
    """Test persist() against each time to live value."""

    def test_zero_skips_save(self):
        storage = Mock()
        assert persist(storage, "k", "v", NO_PERSIST) is None
        storage.save.assert_not_called()

    def test_none_skips_save(self):
        storage = Mock()
        persist(storage, "k", "v", None)
        storage.save.assert_not_called()

    def test_minus_one_saves_without_ttl(self):
        storage = Mock()
        persist(storage, "k", "v", STORAGE_DEFAULT)
        storage.save.assert_called_once_with("k", "v")

    @pytest.mark.parametrize("ttl", [5, 0.5, FOREVER])
    def test_other_values_pass_through(self, ttl):
        storage = Mock()
        persist(storage, "k", "v", ttl)
        storage.save.assert_called_once_with("k", "v", ttl)

    def test_returns_save_result(self):
        """Test the save() result is handed back (async storages)."""
        storage = Mock()
        storage.save.return_value = "awaitable"
        assert persist(storage, "k", "v", 10) == "awaitable"


class TestStorageInterface:
    """Test the abstract storage contract."""

    def test_cannot_instantiate_abstract(self):
        with pytest.raises(TypeError):
            StorageInterface()

    def test_subclass_with_methods_instantiates(self):
        class DictStorage(StorageInterface):
            def __init__(self, options=None):
                self.data = {}

            def load(self, key):
                return self.data.get(key)

            def save(self, key, value, seconds_to_live=None):
                self.data[key] = value

        storage = DictStorage()
        storage.save("a", 1, math.inf)
        assert storage.load("a") == 1
