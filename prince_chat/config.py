"""Application configuration with environment variable loading.

Pydantic-based configuration for the gateway and the chat client.
The gateway talks to the Ollama server; the chat client talks to the gateway.
"""

import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_BACKEND_URL = "http://127.0.0.1:11434"
DEFAULT_GATEWAY_PREFIX = "/api/ollama"
DEFAULT_PORT = 8000
DEFAULT_UI_PORT = 8080


def _default_api_base_url() -> str:
    # Clients reach the gateway on the port the server binds unless told otherwise
    return os.getenv("API_BASE_URL") or f"http://localhost:{os.getenv('PORT', DEFAULT_PORT)}"


def _default_gateway_url() -> str:
    base = _default_api_base_url().rstrip("/")
    prefix = os.getenv("GATEWAY_PREFIX", DEFAULT_GATEWAY_PREFIX)
    return f"{base}{prefix}"


class AppConfig(BaseModel):
    """Configuration for the gateway forwarder and chat client.

    Attributes:
        backend_url: Origin of the Ollama server the gateway forwards to.
        gateway_prefix: Path prefix the gateway serves and strips.
        gateway_url: Full URL of the gateway as seen by the chat client.
        connect_timeout: Seconds allowed to establish a backend connection.
        read_timeout: Seconds allowed between two chunks of a response.
    """

    backend_url: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_HOST", DEFAULT_BACKEND_URL),
        description="Ollama server origin",
    )
    gateway_prefix: str = Field(
        default_factory=lambda: os.getenv("GATEWAY_PREFIX", DEFAULT_GATEWAY_PREFIX),
        description="Path prefix stripped by the gateway",
    )
    gateway_url: str = Field(
        default_factory=_default_gateway_url,
        description="Gateway URL used by the chat client",
    )
    connect_timeout: float = Field(
        default_factory=lambda: float(os.getenv("CONNECT_TIMEOUT", "10.0")),
        gt=0.0,
        description="Connect timeout in seconds",
    )
    read_timeout: float = Field(
        default_factory=lambda: float(os.getenv("READ_TIMEOUT", "300.0")),
        gt=0.0,
        description="Read timeout in seconds (model loading can be slow)",
    )

    @field_validator("backend_url", "gateway_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got {v!r}")
        return v.rstrip("/")

    @field_validator("gateway_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Require a rooted prefix without a trailing slash."""
        v = v.strip().rstrip("/")
        if not v.startswith("/"):
            raise ValueError("Gateway prefix must start with '/'")
        return v


def get_config() -> AppConfig:
    """Create application configuration from environment.

    Returns:
        Configured AppConfig instance.

    Raises:
        ValueError: If an environment value is invalid.
    """
    return AppConfig()


class ServerConfig(BaseModel):
    """Process settings for the launcher.

    Attributes:
        host: Interface the servers bind to.
        port: Port of the gateway (and of the UI in integrated mode).
        ui_port: Port of the NiceGUI server in separate mode.
        run_mode: "integrated" serves UI and gateway from one process,
            "separate" runs them as two.
        log_level: Root logging level.
        storage_secret: Secret for NiceGUI's per-user storage.
    """

    host: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = Field(
        default_factory=lambda: int(os.getenv("PORT", DEFAULT_PORT)),
        gt=0,
        le=65535,
    )
    ui_port: int = Field(
        default_factory=lambda: int(os.getenv("UI_PORT", DEFAULT_UI_PORT)),
        gt=0,
        le=65535,
    )
    run_mode: Literal["integrated", "separate"] = Field(
        default_factory=lambda: os.getenv("RUN_MODE", "integrated")
    )
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    storage_secret: str = Field(
        default_factory=lambda: os.getenv("NICEGUI_STORAGE_SECRET", "prince-chat-secret")
    )

    @field_validator("run_mode", mode="before")
    @classmethod
    def normalize_run_mode(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def local_url(self) -> str:
        """Origin of the gateway as seen from this machine."""
        return f"http://localhost:{self.port}"


def get_server_config() -> ServerConfig:
    """Create launcher settings from environment.

    Raises:
        ValueError: If an environment value is invalid.
    """
    return ServerConfig()
