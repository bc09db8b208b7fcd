"""
Shared fixtures for unit tests.

- store: a fresh MemoryStore per test, injected into engine calls
- emitted: autouse, replaces the singleton bus's emit with a MagicMock so no
  notification handlers ever run; tests can assert on it directly
"""

import pytest
from unittest.mock import patch

from boothcrm.bus import events
from boothcrm.db.store import MemoryStore


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture(autouse=True)
def emitted():
    with patch.object(events.bus, 'emit') as mock_emit:
        yield mock_emit
