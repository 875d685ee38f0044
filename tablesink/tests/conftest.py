"""Pytest fixtures for tablesink tests."""

import logging
import os
from unittest.mock import AsyncMock, Mock

import pytest

from tablesink.client.memory import InMemoryTableClient


def make_record(msg="hello", name="app", level=logging.INFO, args=None, exc_info=None, **extra):
    """Build a LogRecord the way Logger.makeRecord would."""
    record = logging.LogRecord(name, level, __file__, 42, msg, args, exc_info)
    record.__dict__.update(extra)
    return record


@pytest.fixture
def record_factory():
    """Factory for LogRecords with optional `extra` fields."""
    return make_record


@pytest.fixture
def memory_client():
    """Create an empty InMemoryTableClient."""
    return InMemoryTableClient()


@pytest.fixture
def mock_client():
    """Create a storage client whose remote calls are AsyncMocks."""
    client = Mock()
    client.table.side_effect = lambda name: f"handle:{name}"
    client.create_if_missing = AsyncMock()
    client.insert_one = AsyncMock()
    client.insert_batch = AsyncMock()
    return client


@pytest.fixture(autouse=True)
def reset_env():
    """Reset environment variables after each test."""
    original_env = os.environ.copy()
    yield
    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)
