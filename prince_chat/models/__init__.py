"""Pydantic models for the chat protocol and session state.

Provides type safety and validation at the backend boundary.

Models:
    - Message: Individual message in the transcript
    - ChatRequest: Body of the backend chat request
    - StreamDelta: One decoded streaming record
    - ModelDescriptor: An installed model
    - SessionSnapshot: Read-only session view for the UI
"""

from prince_chat.models.schemas import (
    ChatRequest,
    Message,
    ModelDescriptor,
    ModelList,
    Notification,
    Role,
    SessionSnapshot,
    SessionState,
    StreamDelta,
    TurnOutcome,
)

__all__ = [
    "ChatRequest",
    "Message",
    "ModelDescriptor",
    "ModelList",
    "Notification",
    "Role",
    "SessionSnapshot",
    "SessionState",
    "StreamDelta",
    "TurnOutcome",
]
