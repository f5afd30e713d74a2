"""Chat client logic for the local model server.

Handles the streaming chat session and model discovery.

Responsibilities:
    - Transcript ownership and per-turn state transitions
    - Folding streamed NDJSON deltas into the open assistant message
    - Failure recovery and cancellation of in-flight turns
    - Listing installed models

Maintains clean separation from the UI layer, which only reads snapshots.
"""

from prince_chat.chat.registry import ModelRegistry
from prince_chat.chat.session import CancellationToken, ChatSession, create_chat_session

__all__ = ["CancellationToken", "ChatSession", "ModelRegistry", "create_chat_session"]
