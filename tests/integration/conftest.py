"""Integration test fixtures for VoiceNotes.

Provides an async HTTP client and a sync TestClient (for WebSocket) bound
to an application whose device uses a temporary recordings directory and
the mock STT provider.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from voicenotes.api.app import create_app


@pytest.fixture
def app(device):
    """Create a fresh FastAPI application around the test device."""
    return create_app(device=device)


@pytest.fixture
async def async_client(app):
    """AsyncClient running requests on the test's own event loop.

    The lifespan is not run; background pipeline runs are awaited through
    ``device.pipeline.drain()``.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def test_client(app):
    """Synchronous TestClient for WebSocket tests (runs the lifespan)."""
    with TestClient(app) as c:
        yield c
