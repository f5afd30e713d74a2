"""NiceGUI chat interface driven by ChatSession snapshots."""

from nicegui import ui

from prince_chat.chat.session import ChatSession, create_chat_session
from prince_chat.config import get_server_config
from prince_chat.errors import ChatValidationError
from prince_chat.models.schemas import (
    Message,
    Notification,
    Role,
    SessionSnapshot,
    SessionState,
)

CUSTOM_CSS = """
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&display=swap"
      rel="stylesheet">
<style>
    * { font-family: 'Inter', sans-serif; }

    body { background: #f5f5f5; min-height: 100vh; }

    .app-container {
        background: white;
        border-radius: 12px;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.1);
        overflow: hidden;
    }

    .header { border-bottom: 1px solid #e5e7eb; }

    .message-user {
        background: #1f2937;
        color: white;
        border-radius: 18px 18px 4px 18px;
    }

    .message-assistant {
        background: #f3f4f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }

    .avatar-user { background: #1f2937; }
    .avatar-assistant { background: #6b7280; }

    .typing-dot {
        width: 8px; height: 8px;
        background: #6b7280;
        border-radius: 50%;
        animation: bounce 1.4s infinite ease-in-out;
    }
    .typing-dot:nth-child(2) { animation-delay: 0.2s; }
    .typing-dot:nth-child(3) { animation-delay: 0.4s; }

    @keyframes bounce {
        0%, 60%, 100% { transform: translateY(0); }
        30% { transform: translateY(-6px); }
    }

    .message-assistant pre {
        background: #e5e7eb; border-radius: 6px; padding: 0.5rem; overflow-x: auto;
    }
    .message-assistant p { margin-bottom: 0.5rem; }
    .message-assistant p:last-child { margin-bottom: 0; }
</style>
"""


def show_notification(notification: Notification) -> None:
    """Display a session notification as a toast."""
    message = notification.title
    if notification.description:
        message = f"{notification.title} {notification.description}"
    ui.notify(message, type=notification.severity)


def render_avatar(is_user: bool) -> None:
    css = "avatar-user" if is_user else "avatar-assistant"
    icon = "person" if is_user else "smart_toy"
    avatar_classes = f"w-9 h-9 rounded-full flex items-center justify-center {css}"
    with ui.element("div").classes(avatar_classes):
        ui.icon(icon).classes("text-white text-lg")


def render_typing_dots() -> None:
    with ui.row().classes("gap-1 py-1"):
        for _ in range(3):
            ui.element("div").classes("typing-dot")


def copy_to_clipboard(text: str) -> None:
    ui.clipboard.write(text)
    ui.notify(
        "Copied to clipboard. The message has been copied to your clipboard.",
        type="positive",
        timeout=2000,
    )


def render_message(msg: Message, is_open: bool) -> ui.markdown | None:
    """Render one bubble. Returns the markdown element of an open assistant reply."""
    is_user = msg.role == Role.USER
    align = "justify-end" if is_user else "justify-start"
    bubble = "message-user" if is_user else "message-assistant"
    view = None

    with ui.row().classes(f"w-full {align} gap-3 items-end"):
        if not is_user:
            render_avatar(False)
        with ui.column().classes("max-w-[70%] gap-1"):
            with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                if is_user:
                    ui.label(msg.content).classes("text-sm whitespace-pre-wrap")
                elif is_open and not msg.content:
                    render_typing_dots()
                else:
                    view = ui.markdown(msg.content).classes("text-sm leading-relaxed")
            if not is_user and not is_open:
                ui.button(
                    icon="content_copy",
                    on_click=lambda text=msg.content: copy_to_clipboard(text),
                ).props("flat round dense size=xs color=grey")
        if is_user:
            render_avatar(True)
    return view


class MessageList:
    """Transcript view that follows the newest message.

    A fragment appended to the bubble already on screen is patched in place;
    any other change re-renders the list. Both end scrolled to the bottom.
    """

    def __init__(self, scroll_area: ui.scroll_area, container: ui.column) -> None:
        self.scroll_area = scroll_area
        self.container = container
        self.streaming_view: ui.markdown | None = None
        self.rendered_count = 0

    def show(self, snapshot: SessionSnapshot) -> None:
        if (
            snapshot.state == SessionState.STREAMING
            and self.streaming_view is not None
            and self.rendered_count == len(snapshot.messages)
        ):
            self.streaming_view.set_content(snapshot.messages[-1].content)
        else:
            self.render(snapshot)
        self.scroll_area.scroll_to(percent=1)

    def render(self, snapshot: SessionSnapshot) -> None:
        self.streaming_view = None
        self.container.clear()
        with self.container:
            if not snapshot.messages:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    ui.icon("smart_toy").classes("text-5xl text-gray-300")
                    ui.label("Welcome to Prince Chat").classes("text-lg text-gray-500")
                    ui.label("Start a conversation by typing a message below.").classes(
                        "text-sm text-gray-400"
                    )
            else:
                last = len(snapshot.messages) - 1
                for i, msg in enumerate(snapshot.messages):
                    is_open = i == last and snapshot.state == SessionState.STREAMING
                    view = render_message(msg, is_open)
                    if is_open:
                        self.streaming_view = view
            if snapshot.state == SessionState.AWAITING_FIRST_BYTE:
                with ui.row().classes("w-full justify-start gap-3 items-end"):
                    render_avatar(False)
                    with ui.element("div").classes("message-assistant px-4 py-3"):
                        render_typing_dots()
        self.rendered_count = len(snapshot.messages)


@ui.page("/")
def chat_page() -> None:
    """Main chat page. Each browser client gets its own session."""
    ui.add_head_html(CUSTOM_CSS)
    session: ChatSession = create_chat_session(notify=show_notification)
    ui.context.client.on_disconnect(session.aclose)

    message_list: MessageList
    input_field: ui.input
    send_btn: ui.button
    model_select: ui.select

    def update_controls(snapshot: SessionSnapshot) -> None:
        names = [m.name for m in snapshot.models]
        model_select.set_options(names, value=snapshot.selected_model)
        model_select.set_visibility(bool(names))
        model_select.set_enabled(not snapshot.is_busy)
        input_field.set_enabled(snapshot.can_submit)
        send_btn.set_enabled(snapshot.can_submit)
        send_btn.props(f"icon={'hourglass_empty' if snapshot.is_busy else 'arrow_upward'}")

    def on_session_change(snapshot: SessionSnapshot) -> None:
        message_list.show(snapshot)
        update_controls(snapshot)

    async def send_message() -> None:
        text = input_field.value or ""
        input_field.value = ""
        try:
            await session.submit_turn(text)
        except ChatValidationError as e:
            input_field.value = text
            ui.notify(str(e), type="warning")

    def on_model_change(e) -> None:
        if e.value and e.value != session.selected_model:
            try:
                session.select_model(e.value)
            except ChatValidationError as err:
                ui.notify(str(err), type="warning")

    # === UI Layout ===
    with (
        ui.element("div").classes("w-full min-h-screen p-4 md:p-8"),
        ui.column().classes("w-full max-w-3xl mx-auto app-container").style(
            "height: calc(100vh - 4rem)"
        ),
    ):
        # Header
        with ui.row().classes("w-full header px-5 py-4 items-center justify-between"):
            with ui.row().classes("items-center gap-3"):
                ui.icon("smart_toy").classes("text-3xl")
                ui.label("Prince Chat").classes("text-lg font-semibold")
            with ui.row().classes("items-center gap-3"):
                model_select = (
                    ui.select([], label="Select a model", on_change=on_model_change)
                    .props("dense outlined")
                    .classes("w-52")
                )
                ui.button(icon="add", on_click=session.start_new_chat).props(
                    "flat round"
                ).tooltip("New Chat")

        # Messages
        scroll_area = ui.scroll_area().classes("flex-grow w-full bg-gray-50")
        with scroll_area, ui.column().classes("w-full p-5"):
            message_list = MessageList(scroll_area, ui.column().classes("w-full gap-4"))

        # Input
        with ui.row().classes("w-full p-4 gap-3 items-center bg-white border-t"):
            input_field = (
                ui.input(placeholder="Type a message...")
                .props("outlined dense autocomplete=off")
                .classes("flex-grow")
                .on("keydown.enter", send_message)
            )
            send_btn = ui.button(icon="arrow_upward", on_click=send_message).props(
                "round unelevated"
            )

    session.subscribe(on_session_change)
    on_session_change(session.snapshot())
    ui.timer(0.1, session.load_models, once=True)


def main() -> None:
    """Serve the chat page on its own; the gateway must be running elsewhere."""
    server = get_server_config()
    ui.run(
        title="Prince Chat",
        host=server.host,
        port=server.ui_port,
        storage_secret=server.storage_secret,
        reload=False,
    )


if __name__ == "__main__":
    main()
