"""Integration tests for components working together as a system.

Coverage:
    - Gateway forwarding with real FastAPI routing and streaming responses
    - Full chat turn from session through gateway to a fake backend

Only the Ollama server is faked; everything in between is real.
"""
