import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_FRACTION_TOO_LONG = re.compile(r"(\.\d{6})\d+")


class Role(str, Enum):
    """Speaker of a transcript message."""

    USER = "user"
    ASSISTANT = "assistant"


class SessionState(str, Enum):
    """States of a chat session."""

    IDLE = "idle"
    AWAITING_FIRST_BYTE = "awaiting_first_byte"
    STREAMING = "streaming"
    FAILED = "failed"


class TurnOutcome(str, Enum):
    """How a submitted turn ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Message(BaseModel):
    """A single chat message in the conversation.

    Attributes:
        role: The speaker (user or assistant).
        content: The message text.
    """

    model_config = ConfigDict(use_enum_values=True)

    role: Role
    content: str = ""


class ChatRequest(BaseModel):
    """Request body for the backend's POST /api/chat.

    Attributes:
        model: Model identifier, as listed by /api/tags.
        messages: Full transcript so far, oldest first.
        stream: Always true, the response is NDJSON.
    """

    model: str = Field(..., min_length=1)
    messages: list[Message]
    stream: bool = True


class StreamDelta(BaseModel):
    """One decoded chat record, reduced to what the session folds.

    Attributes:
        content: Content fragment to append (may be empty).
        done: Whether the backend marked this record as the last one.
        error: Error reported by the backend inside the stream, if any.
        metadata: Remaining fields of a final record (token counts, stop reason).
    """

    content: str = ""
    done: bool = False
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Any) -> "StreamDelta":
        """Build a delta from a decoded NDJSON record.

        Records that are not objects, or whose message carries no string
        content, give an empty fragment.
        """
        if not isinstance(record, dict):
            return cls()

        content = ""
        message = record.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            content = message["content"]

        error = record.get("error")
        done = bool(record.get("done", False))
        metadata: dict[str, Any] = {}
        if done:
            metadata = {k: v for k, v in record.items() if k not in ("message", "done")}

        return cls(
            content=content,
            done=done,
            error=str(error) if error is not None else None,
            metadata=metadata,
        )


class ModelDescriptor(BaseModel):
    """A model installed on the backend.

    Attributes:
        name: Model identifier used in chat requests.
        modified_at: When the model was last modified.
        size: Size on disk in bytes.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    modified_at: datetime
    size: int = Field(ge=0)

    @field_validator("modified_at", mode="before")
    @classmethod
    def truncate_nanoseconds(cls, v: Any) -> Any:
        """Trim sub-microsecond digits, which Ollama emits and pydantic rejects."""
        if isinstance(v, str):
            return _FRACTION_TOO_LONG.sub(r"\1", v)
        return v


class ModelList(BaseModel):
    """Response body of GET /api/tags."""

    model_config = ConfigDict(extra="ignore")

    models: list[ModelDescriptor] = Field(default_factory=list)


class Notification(BaseModel):
    """A user-facing notification emitted by the session.

    Attributes:
        severity: One of info, positive, warning, negative.
        title: Short headline.
        description: Longer explanation.
    """

    severity: str = "negative"
    title: str
    description: str = ""


class SessionSnapshot(BaseModel):
    """Read-only view of a chat session handed to the UI.

    Attributes:
        state: Current session state.
        messages: Copy of the transcript.
        models: Models available for selection.
        selected_model: Name of the selected model, if any.
        last_error: Message of the most recent turn failure, if any.
        completion_metadata: Extra fields of the last completed turn's final record.
    """

    model_config = ConfigDict(frozen=True)

    state: SessionState
    messages: tuple[Message, ...] = ()
    models: tuple[ModelDescriptor, ...] = ()
    selected_model: str | None = None
    last_error: str | None = None
    completion_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_busy(self) -> bool:
        """Whether a turn is in flight."""
        return self.state in (SessionState.AWAITING_FIRST_BYTE, SessionState.STREAMING)

    @property
    def can_submit(self) -> bool:
        """Whether the UI should accept a new submission."""
        return not self.is_busy and self.selected_model is not None
