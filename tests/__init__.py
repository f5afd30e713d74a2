"""Test package for Prince Chat.

Structure:
    - unit/: Decoder, schemas, config, registry and session in isolation
    - integration/: Gateway app over ASGI, session through the gateway

The Ollama server is always faked with httpx.MockTransport.
Leverages pytest with pytest-check for soft assertions.
"""
