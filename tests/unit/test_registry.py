"""Unit tests for ModelRegistry."""

import httpx
import pytest

from prince_chat.chat.registry import ModelRegistry
from prince_chat.errors import ConnectivityError

GATEWAY_URL = "http://test/api/ollama"


def _registry(handler) -> ModelRegistry:
    client = httpx.AsyncClient(base_url=GATEWAY_URL, transport=httpx.MockTransport(handler))
    return ModelRegistry(client)


class TestListModels:
    """Tests for ModelRegistry.list_models."""

    async def test_returns_models_in_backend_order(self) -> None:
        """Models come back in the order the backend lists them."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "models": [
                        {"name": "mistral", "modified_at": "2024-04-01T00:00:00Z", "size": 10},
                        {"name": "llama3", "modified_at": "2024-05-01T00:00:00Z", "size": 20},
                    ]
                },
            )

        models = await _registry(handler).list_models()

        assert [m.name for m in models] == ["mistral", "llama3"]
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/api/ollama/api/tags"

    async def test_empty_listing(self) -> None:
        """No installed models is a valid, empty result."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"models": []})

        assert await _registry(handler).list_models() == []

    async def test_failure_status_raises(self) -> None:
        """A non-success status is a connectivity failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, json={"error": "Could not reach the model server"})

        with pytest.raises(ConnectivityError, match="HTTP 502") as exc_info:
            await _registry(handler).list_models()

        assert exc_info.value.status_code == 502

    async def test_unreachable_backend_raises(self) -> None:
        """A transport error is a connectivity failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused")

        with pytest.raises(ConnectivityError, match="Could not reach"):
            await _registry(handler).list_models()

    async def test_unexpected_body_raises(self) -> None:
        """A body that is not a model listing is a connectivity failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>not ollama</html>")

        with pytest.raises(ConnectivityError, match="Unexpected model list"):
            await _registry(handler).list_models()
