"""Unit tests for individual components in isolation.

Coverage:
    - streaming/: NDJSON decoding across chunk boundaries
    - models/: Pydantic validation and wire format
    - chat/: Session state machine and model registry
    - config: Environment loading and validation
"""
