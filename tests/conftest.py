"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - app_config: Configuration pointing at fake hosts
    - ndjson: Encoder for NDJSON bodies
    - make_gateway_client: HTTPX client for the gateway app over a fake backend
    - make_session: ChatSession over a fake backend

The backend is faked with httpx.MockTransport; nothing touches the network.
"""

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from prince_chat.api.app import create_app
from prince_chat.chat.session import ChatSession
from prince_chat.config import AppConfig
from prince_chat.models.schemas import Notification

BACKEND_URL = "http://ollama.test"
GATEWAY_URL = "http://test/api/ollama"

Handler = Callable[[httpx.Request], Any]


@pytest.fixture
def app_config() -> AppConfig:
    """Return configuration bound to fake hosts.

    Returns:
        AppConfig whose backend and gateway URLs never resolve.
    """
    return AppConfig(
        backend_url=BACKEND_URL,
        gateway_prefix="/api/ollama",
        gateway_url=GATEWAY_URL,
        connect_timeout=1.0,
        read_timeout=5.0,
    )


@pytest.fixture
def ndjson() -> Callable[..., bytes]:
    """Return a helper encoding records as NDJSON bytes."""

    def encode(*records: Any) -> bytes:
        return "".join(json.dumps(r, ensure_ascii=False) + "\n" for r in records).encode("utf-8")

    return encode


@pytest.fixture
async def make_gateway_client(
    app_config: AppConfig,
) -> AsyncGenerator[Callable[[Handler], AsyncClient]]:
    """Create async HTTP clients for the gateway app over a fake backend.

    Yields:
        Factory taking a MockTransport handler and returning a client.
    """
    clients: list[AsyncClient] = []
    apps = []

    def factory(handler: Handler) -> AsyncClient:
        app = create_app(app_config, upstream_transport=httpx.MockTransport(handler))
        apps.append(app)
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
    for app in apps:
        await app.state.upstream.aclose()


@pytest.fixture
def notifications() -> list[Notification]:
    """Collect notifications emitted by sessions under test."""
    return []


@pytest.fixture
async def make_session(
    notifications: list[Notification],
) -> AsyncGenerator[Callable[[Handler], ChatSession]]:
    """Create ChatSessions whose backend is a MockTransport handler.

    Yields:
        Factory taking a handler and returning a session.
    """
    sessions: list[ChatSession] = []

    def factory(handler: Handler) -> ChatSession:
        client = httpx.AsyncClient(base_url=GATEWAY_URL, transport=httpx.MockTransport(handler))
        session = ChatSession(client, notify=notifications.append)
        sessions.append(session)
        return session

    yield factory

    for session in sessions:
        await session.aclose()
