"""Configuration constants and runtime settings for the static site server."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

HOST: str = "0.0.0.0"
PORT: int = 1977
SERVER_NAME: str = "static-site-server"
READ_CHUNK_SIZE: int = 8192
SOCKET_TIMEOUT_SECS: int = 5
LINGER_TIMEOUT_SECS: float = 0.5
REQUEST_TIMEOUT_SECS: int = 10
MAX_ACTIVE_CONNECTIONS: int = 512
MAX_KEEPALIVE_REQUESTS: int = 100
MAX_REQUEST_BYTES: int = 1_048_576
MAX_HEADER_BYTES: int = 16_384
MAX_BODY_BYTES: int = 524_288
MAX_TARGET_LENGTH: int = 8192
# Method, spaces and version around the target.
MAX_REQUEST_LINE_BYTES: int = MAX_TARGET_LENGTH + 32
INDEX_FILE: str = "index.html"
LOG_FORMAT: str = "plain"
LOG_FORMATS: tuple[str, ...] = ("plain", "json")


class ConfigError(ValueError):
    """Raised when an environment or CLI setting cannot be used."""


@dataclass(frozen=True, slots=True)
class ServerConfig:
    port: int = PORT
    document_root: Path = Path(".")
    host: str = HOST
    max_active_connections: int = MAX_ACTIVE_CONNECTIONS
    socket_timeout_secs: float = SOCKET_TIMEOUT_SECS
    request_timeout_secs: float = REQUEST_TIMEOUT_SECS
    max_keepalive_requests: int = MAX_KEEPALIVE_REQUESTS
    log_format: str = LOG_FORMAT

    def __post_init__(self) -> None:
        # Frozen, so normalise through object.__setattr__.
        object.__setattr__(self, "document_root", Path(self.document_root).resolve())
        if not 0 <= self.port <= 65_535:
            raise ConfigError(f"port out of range: {self.port}")
        if self.max_active_connections <= 0:
            raise ConfigError("max_active_connections must be positive")
        if self.socket_timeout_secs <= 0 or self.request_timeout_secs <= 0:
            raise ConfigError("timeouts must be positive")
        if self.max_keepalive_requests <= 0:
            raise ConfigError("max_keepalive_requests must be positive")
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"unsupported log format: {self.log_format}")


def _parse_port(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as exc:
        raise ConfigError(f"PORT must be an integer, got {value!r}") from exc


def load_config(environ: Mapping[str, str] | None = None, **overrides: object) -> ServerConfig:
    """Build a ServerConfig from environment variables plus explicit overrides.

    ``PORT``, ``HOST``, ``DOCUMENT_ROOT`` and ``LOG_FORMAT`` are read once;
    the document root falls back to the current working directory.
    Overrides set to ``None`` are ignored so argparse namespaces can be
    passed straight through.
    """
    env = os.environ if environ is None else environ
    settings: dict[str, object] = {
        "port": _parse_port(env["PORT"]) if env.get("PORT") else PORT,
        "host": env.get("HOST") or HOST,
        "document_root": Path(env.get("DOCUMENT_ROOT") or os.getcwd()),
        "log_format": env.get("LOG_FORMAT") or LOG_FORMAT,
    }
    settings.update({key: value for key, value in overrides.items() if value is not None})
    return ServerConfig(**settings)  # type: ignore[arg-type]
