"""Launcher for Prince Chat.

Integrated mode serves the chat page and the gateway from one uvicorn
process. Separate mode runs the gateway and the NiceGUI server as two child
processes. Either way the chat client is pointed at the port the gateway
actually binds, unless API_BASE_URL says otherwise.
"""

import logging
import os
import subprocess
import sys
import time
from collections.abc import Mapping

from dotenv import load_dotenv

from prince_chat.config import ServerConfig, get_config, get_server_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    """Send log records to stdout at the given level."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def child_env(server: ServerConfig, base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Build the environment for a child process.

    PORT is pinned to the gateway's port, and API_BASE_URL defaults to it, so
    a UI process started with this environment talks to the right gateway.

    Args:
        server: Launcher settings.
        base: Environment to start from; the current one if omitted.

    Returns:
        A new environment mapping.
    """
    env = dict(os.environ if base is None else base)
    env["PORT"] = str(server.port)
    env["UI_PORT"] = str(server.ui_port)
    env.setdefault("API_BASE_URL", server.local_url)
    return env


def gateway_command(server: ServerConfig) -> list[str]:
    """Command line serving the gateway app alone."""
    return [
        sys.executable,
        "-m",
        "uvicorn",
        "prince_chat.api.app:app",
        "--host",
        server.host,
        "--port",
        str(server.port),
        "--log-level",
        server.log_level.lower(),
    ]


def ui_command() -> list[str]:
    """Command line serving the NiceGUI page alone."""
    return [sys.executable, "-m", "prince_chat.ui.chat_page"]


def run_integrated(server: ServerConfig) -> None:
    """Serve the gateway with the NiceGUI page mounted on the same app."""
    import uvicorn
    from nicegui import ui

    from prince_chat.api.app import create_app
    from prince_chat.ui.chat_page import chat_page  # noqa: F401 - Registers the page

    # Per-page sessions read their config from the environment
    os.environ.setdefault("API_BASE_URL", server.local_url)
    config = get_config()
    app = create_app(config)

    ui.run_with(
        app,
        title="Prince Chat",
        favicon="🤖",
        storage_secret=server.storage_secret,
    )

    logger.info(f"Chat UI on {server.local_url}/, gateway at {config.gateway_url}")
    uvicorn.run(app, host=server.host, port=server.port, log_level=server.log_level.lower())


def run_separate(server: ServerConfig) -> None:
    """Run the gateway and the UI as two processes until either exits."""
    env = child_env(server)
    logger.info(f"Gateway on {server.local_url}, UI on http://localhost:{server.ui_port}")

    procs = [
        subprocess.Popen(gateway_command(server), env=env),
        subprocess.Popen(ui_command(), env=env),
    ]
    try:
        while all(p.poll() is None for p in procs):
            time.sleep(1)
        logger.warning("A server process exited, stopping the other")
    except KeyboardInterrupt:
        logger.info("Shutting down servers...")
    finally:
        for p in procs:
            p.terminate()
        for p in procs:
            p.wait()


def main() -> None:
    """Application entry point. RUN_MODE selects integrated or separate."""
    load_dotenv()
    server = get_server_config()
    configure_logging(server.log_level)
    logger.info(f"Starting Prince Chat in {server.run_mode} mode")

    if server.run_mode == "separate":
        run_separate(server)
    else:
        run_integrated(server)


if __name__ == "__main__":
    main()
