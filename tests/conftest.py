"""
Pytest configuration and shared fixtures for measurement library tests.

This module provides:
- Log capture for loguru (which bypasses the standard logging module)
- Spy-backed mock processor and storage classes
- A fresh DataLayer per test
"""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from loguru import logger

from measurement.core.data_layer import DataLayer


@pytest.fixture
def error_logs():
    """Collect messages logged at ERROR or above during the test."""
    messages = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]),
        level="ERROR",
        format="{message}",
    )
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def spies():
    """Spies shared by every instance of the mock processor and storage."""
    return SimpleNamespace(
        load=Mock(name="load", return_value=None),
        save=Mock(name="save", return_value=None),
        persist_time=Mock(name="persist_time", return_value=-1),
        process_event=Mock(name="process_event", return_value=None),
    )


@pytest.fixture
def mock_storage_cls(spies):
    """
    Storage class whose methods are the shared spies.

    A class is needed (not just a Mock) because the library constructs the
    instance itself from the class and options.
    """
    class MockStorage:
        def __init__(self, options=None):
            self.options = options
            self.load = spies.load
            self.save = spies.save

    return MockStorage


@pytest.fixture
def mock_processor_cls(spies):
    """Duck-typed processor class whose methods are the shared spies."""
    class MockProcessor:
        def __init__(self, options=None):
            self.options = options
            self.persist_time = spies.persist_time
            self.process_event = spies.process_event

    return MockProcessor


@pytest.fixture
def data_layer():
    """Provide an empty data layer."""
    return DataLayer()
