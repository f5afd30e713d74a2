"""Chat session state machine.

Owns the conversation transcript and drives one request/stream/append cycle
per user turn:

    idle -> awaiting_first_byte -> streaming -> idle      (success)
    awaiting_first_byte | streaming -> failed -> idle     (failure)

Only one turn is in flight at a time. The UI never touches the transcript
directly; it reads snapshots, either on demand or through subscribe().

Failure policy for a turn that already opened its assistant message: content
the user has seen stays, an assistant message that is still empty is removed.
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing

import httpx

from prince_chat.chat.registry import ModelRegistry
from prince_chat.config import AppConfig, get_config
from prince_chat.errors import (
    ChatValidationError,
    ConnectivityError,
    StreamTransportError,
)
from prince_chat.models.schemas import (
    ChatRequest,
    Message,
    ModelDescriptor,
    Notification,
    Role,
    SessionSnapshot,
    SessionState,
    StreamDelta,
    TurnOutcome,
)
from prince_chat.streaming.ndjson import decode

logger = logging.getLogger(__name__)

CHAT_PATH = "/api/chat"

Subscriber = Callable[[SessionSnapshot], None]
Notifier = Callable[[Notification], None]


class CancellationToken:
    """Flag shared between a running turn and whoever may abandon it."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class _TurnCancelled(Exception):
    pass


class ChatSession:
    """Single-user, in-memory chat session against an Ollama-style backend.

    Args:
        client: HTTP client whose base URL points at the gateway.
        notify: Sink for user-facing notifications (errors, model loading).
        registry: Model registry; built on the same client if omitted.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        notify: Notifier | None = None,
        registry: ModelRegistry | None = None,
    ) -> None:
        self._client = client
        self._notify = notify
        self._registry = registry or ModelRegistry(client)
        self._messages: list[Message] = []
        self._models: list[ModelDescriptor] = []
        self._selected_model: str | None = None
        self._state = SessionState.IDLE
        self._last_error: str | None = None
        self._completion_metadata: dict = {}
        self._token: CancellationToken | None = None
        self._open: Message | None = None
        self._subscribers: list[Subscriber] = []

    # === Read side ===

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state in (SessionState.AWAITING_FIRST_BYTE, SessionState.STREAMING)

    @property
    def selected_model(self) -> str | None:
        return self._selected_model

    def snapshot(self) -> SessionSnapshot:
        """Return a read-only copy of the session."""
        return SessionSnapshot(
            state=self._state,
            messages=tuple(m.model_copy() for m in self._messages),
            models=tuple(self._models),
            selected_model=self._selected_model,
            last_error=self._last_error,
            completion_metadata=dict(self._completion_metadata),
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback invoked with a snapshot after every change.

        Returns:
            A callable that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            callback(snapshot)

    def _set_state(self, state: SessionState) -> None:
        logger.debug(f"Session state {self._state.value} -> {state.value}")
        self._state = state
        self._publish()

    def _report(self, title: str, description: str) -> None:
        if self._notify is not None:
            self._notify(Notification(severity="negative", title=title, description=description))

    # === Models ===

    async def load_models(self) -> list[ModelDescriptor]:
        """Fetch installed models and select the first one.

        On a connectivity failure the list stays empty, no model is selected,
        and a notification is emitted.

        Returns:
            The loaded models.
        """
        try:
            models = await self._registry.list_models()
        except ConnectivityError as e:
            logger.warning(f"Failed to fetch models: {e}")
            self._models = []
            self._selected_model = None
            self._report(
                "Failed to fetch models.",
                "Could not fetch models. Please ensure Ollama is running.",
            )
            self._publish()
            return []

        self._models = list(models)
        self._selected_model = self._models[0].name if self._models else None
        self._publish()
        return self._models

    def select_model(self, name: str) -> None:
        """Select one of the loaded models.

        Raises:
            ChatValidationError: If the name is not a loaded model.
        """
        if name not in {m.name for m in self._models}:
            raise ChatValidationError(f"Unknown model: {name}")
        self._selected_model = name
        self._publish()

    # === Turns ===

    async def submit_turn(self, user_text: str) -> TurnOutcome:
        """Send a user message and stream the assistant's reply into the transcript.

        Args:
            user_text: Raw text from the input box.

        Returns:
            How the turn ended. Failures are reported through the notifier
            and recorded as the snapshot's last_error.

        Raises:
            ChatValidationError: If a turn is in flight, the text is blank,
                or no model is selected. Nothing is changed in that case.
        """
        if self.is_busy:
            raise ChatValidationError("A response is still streaming.")
        text = (user_text or "").strip()
        if not text:
            raise ChatValidationError("Message cannot be empty.")
        if not self._selected_model:
            raise ChatValidationError("Please select a model from the dropdown first.")

        token = CancellationToken()
        self._token = token
        self._last_error = None
        self._messages.append(Message(role=Role.USER, content=text))
        request = ChatRequest(model=self._selected_model, messages=list(self._messages))
        self._set_state(SessionState.AWAITING_FIRST_BYTE)

        try:
            metadata = await self._run_turn(request, token)
        except _TurnCancelled:
            logger.info("Turn cancelled")
            return TurnOutcome.CANCELLED
        except (ConnectivityError, StreamTransportError) as e:
            if token.cancelled:
                return TurnOutcome.CANCELLED
            self._fail_turn(e)
            return TurnOutcome.FAILED
        finally:
            if self._token is token:
                self._token = None
                self._open = None

        if token.cancelled:
            return TurnOutcome.CANCELLED
        self._completion_metadata = metadata
        self._set_state(SessionState.IDLE)
        return TurnOutcome.COMPLETED

    async def _run_turn(self, request: ChatRequest, token: CancellationToken) -> dict:
        try:
            async with self._client.stream(
                "POST", CHAT_PATH, json=request.model_dump(mode="json")
            ) as response:
                await self._check_response(response)
                self._raise_if_cancelled(token)

                self._open = Message(role=Role.ASSISTANT, content="")
                self._messages.append(self._open)
                self._set_state(SessionState.STREAMING)

                try:
                    return await self._fold_stream(response, self._open, token)
                except httpx.RequestError as e:
                    raise StreamTransportError(f"Stream interrupted: {e}") from e
        except httpx.RequestError as e:
            raise ConnectivityError(f"Could not reach the model server: {e}") from e

    async def _check_response(self, response: httpx.Response) -> None:
        if not response.is_success:
            detail = ""
            try:
                detail = (await response.aread()).decode("utf-8", errors="replace").strip()
            except httpx.RequestError:
                pass
            logger.warning(f"Chat request failed with HTTP {response.status_code}: {detail}")
            raise ConnectivityError(
                f"Model server returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if response.headers.get("content-length") == "0":
            raise ConnectivityError("The response body is empty.")

    async def _fold_stream(
        self,
        response: httpx.Response,
        message: Message,
        token: CancellationToken,
    ) -> dict:
        """Append decoded fragments to the open message until the stream ends.

        Returns:
            Metadata of the final record, or an empty dict if the stream ended
            without an explicit completion marker.
        """
        async with aclosing(decode(self._chunks(response, token))) as records:
            async for record in records:
                self._raise_if_cancelled(token)
                delta = StreamDelta.from_record(record)
                if delta.error:
                    raise StreamTransportError(f"Model server error: {delta.error}")
                if delta.content:
                    message.content += delta.content
                    self._publish()
                if delta.done:
                    return delta.metadata
        self._raise_if_cancelled(token)
        return {}

    async def _chunks(
        self, response: httpx.Response, token: CancellationToken
    ) -> AsyncIterator[bytes]:
        # Cancellation is checked before every read, not only per complete record
        self._raise_if_cancelled(token)
        async for data in response.aiter_bytes():
            yield data
            self._raise_if_cancelled(token)

    def _raise_if_cancelled(self, token: CancellationToken) -> None:
        if token.cancelled:
            raise _TurnCancelled()

    def _fail_turn(self, error: Exception) -> None:
        logger.warning(f"Turn failed: {error}")
        self._discard_open_if_empty()
        self._last_error = str(error)
        self._set_state(SessionState.FAILED)
        if isinstance(error, StreamTransportError):
            title = "The response was interrupted."
        else:
            title = "An error occurred."
        self._report(title, "Failed to get a response from Ollama. Please ensure it's running.")
        self._set_state(SessionState.IDLE)

    def _discard_open_if_empty(self) -> None:
        message = self._open
        if message is None or message.content:
            return
        if self._messages and self._messages[-1] is message:
            self._messages.pop()

    def cancel_turn(self) -> None:
        """Abandon the in-flight turn, keeping any content already shown."""
        token = self._token
        if token is None:
            return
        token.cancel()
        self._discard_open_if_empty()
        self._token = None
        self._open = None
        self._last_error = "Response cancelled."
        self._set_state(SessionState.FAILED)
        self._set_state(SessionState.IDLE)

    def start_new_chat(self) -> None:
        """Clear the transcript and return to idle, abandoning any in-flight turn."""
        if self._token is not None:
            self._token.cancel()
        self._token = None
        self._open = None
        self._messages = []
        self._last_error = None
        self._completion_metadata = {}
        self._state = SessionState.IDLE
        logger.info("Started new chat")
        self._publish()

    async def aclose(self) -> None:
        """Abandon any in-flight turn and close the HTTP client."""
        if self._token is not None:
            self._token.cancel()
        await self._client.aclose()


def create_chat_session(
    config: AppConfig | None = None,
    notify: Notifier | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChatSession:
    """Create a chat session talking to the configured gateway.

    Args:
        config: Optional application configuration.
                Loads from environment if not provided.
        notify: Sink for user-facing notifications.
        transport: Optional httpx transport (tests, in-process ASGI).

    Returns:
        A new ChatSession owning its HTTP client.
    """
    config = config or get_config()
    client = httpx.AsyncClient(
        base_url=config.gateway_url,
        timeout=httpx.Timeout(config.read_timeout, connect=config.connect_timeout),
        transport=transport,
    )
    return ChatSession(client, notify=notify)
