"""FastAPI endpoints for Prince Chat.

HTTP routes with async request handling and streamed pass-through bodies.

Endpoints:
    - GET /health: Service health status
    - {prefix}/{path}: Gateway forwarder to the Ollama server
"""

from prince_chat.api.app import app, create_app

__all__ = ["app", "create_app"]
