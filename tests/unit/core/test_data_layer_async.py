"""
Unit tests for DataLayer handling of asynchronous processors.

Tests async processor scheduling on a running loop, synchronous
completion without a loop, flush(), and error logging for failed tasks.
"""

import asyncio

import pytest

from measurement.core.data_layer import DataLayer


def test_awaitable_runs_to_completion_without_loop(error_logs):
    """Test an async processor finishes before push() returns when no loop runs."""
    data_layer = DataLayer()
    calls = []

    async def handler(x):
        await asyncio.sleep(0)
        calls.append(x)

    data_layer.register_processor("n", handler)
    data_layer.push("n", 1)

    assert calls == [1]
    assert data_layer.task_count == 0
    assert error_logs == []


def test_failed_awaitable_without_loop_is_logged(error_logs):
    """Test an async processor failure without a loop is logged."""
    data_layer = DataLayer()

    async def handler():
        raise RuntimeError("async boom")

    data_layer.register_processor("n", handler)
    data_layer.push("n")

    assert len(error_logs) == 1
    assert "async boom" in error_logs[0]


@pytest.mark.asyncio
class TestDataLayerAsync:
    """Test suite for async processors inside a running event loop."""

    async def test_awaitable_is_scheduled_as_task(self):
        """Test push() does not wait for an async processor."""
        data_layer = DataLayer()
        started = asyncio.Event()
        release = asyncio.Event()

        async def handler():
            started.set()
            await release.wait()

        data_layer.register_processor("n", handler)
        data_layer.push("n")

        assert data_layer.task_count == 1

        release.set()
        await data_layer.flush()

        assert started.is_set()
        assert data_layer.task_count == 0

    async def test_flush_waits_for_all_tasks(self):
        """Test flush() waits for every scheduled processor."""
        data_layer = DataLayer()
        calls = []

        async def handler(x):
            await asyncio.sleep(0.01)
            calls.append(x)

        data_layer.register_processor("n", handler)
        for i in range(3):
            data_layer.push("n", i)

        await data_layer.flush()

        assert sorted(calls) == [0, 1, 2]

    async def test_failed_task_is_logged(self, error_logs):
        """Test an exception in a scheduled task is logged, not raised."""
        data_layer = DataLayer()

        async def handler():
            raise ValueError("deferred failure")

        data_layer.register_processor("n", handler)
        data_layer.push("n")
        await data_layer.flush()

        assert len(error_logs) == 1
        assert "deferred failure" in error_logs[0]

    async def test_flush_without_tasks_returns(self):
        """Test flush() is a no-op when nothing is pending."""
        data_layer = DataLayer()
        await data_layer.flush()
        assert data_layer.task_count == 0
