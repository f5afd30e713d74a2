"""Exceptions raised by the chat client.

All failures are turn-scoped; none of them should end the process.
"""


class ChatError(Exception):
    """Base class for chat client errors."""

    pass


class ChatValidationError(ChatError):
    """Raised when a submission is rejected before anything is sent.

    Empty input, no model selected, or a turn already in flight.
    """

    pass


class ConnectivityError(ChatError):
    """Raised when the backend is unreachable or answers with a failure status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StreamTransportError(ChatError):
    """Raised when a response stream fails after it started."""

    pass
