"""Prince Chat - browser chat client for a local Ollama server.

Combines FastAPI for the streaming gateway, httpx for backend I/O,
NiceGUI for the chat interface, and Pydantic for data validation.

Components:
    - api: Gateway forwarder and health endpoint
    - chat: Streaming chat session and model registry
    - streaming: Incremental NDJSON decoding
    - ui: Web interface for chat interactions
    - models: Protocol and session schemas
"""

__version__ = "0.1.0"
