"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.factories import BOT_EMAIL, BOT_ID, RecordingPipeline


@pytest.fixture
def pipeline():
    return RecordingPipeline()


@pytest.fixture
def mock_client():
    """A ZulipClient double with every remote operation mocked."""
    client = MagicMock()
    client.get_profile = AsyncMock(return_value={
        "result": "success", "user_id": BOT_ID, "email": BOT_EMAIL, "full_name": "Bot",
    })
    client.register_queue = AsyncMock(return_value={
        "result": "success", "queue_id": "q1", "last_event_id": 0,
    })
    client.get_events = AsyncMock(return_value=[])
    client.get_messages = AsyncMock(return_value=[])
    client.get_message = AsyncMock(return_value={})
    client.send_message = AsyncMock(return_value={"result": "success", "id": 999})
    client.delete_queue = AsyncMock()
    client.aclose = AsyncMock()
    return client
