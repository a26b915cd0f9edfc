"""Configuration constants for the static file server."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

HOST: str = "127.0.0.1"
PORT: int = 3000
READ_CHUNK_SIZE: int = 4096
WRITE_CHUNK_SIZE: int = 65_536
STATIC_DIR: Path = Path(__file__).resolve().parent / "public"
DEFAULT_DOCUMENT: str = "index.html"
SOCKET_TIMEOUT_SECS: float = 5.0
ACCEPT_TIMEOUT_SECS: float = 0.2
LISTEN_BACKLOG: int = 128
WORKER_COUNT: int = 8
REQUEST_QUEUE_SIZE: int = 64
MAX_REQUEST_BYTES: int = 1_048_576
MAX_HEADER_BYTES: int = 16_384
MAX_BODY_BYTES: int = 524_288
MAX_TARGET_LENGTH: int = 2048
SERVER_NAME: str = "static-http-server/1.0"
LOG_FORMAT: str = "plain"


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Immutable settings shared by every connection handler."""

    host: str = HOST
    port: int = PORT
    root: Path = STATIC_DIR
    default_document: str = DEFAULT_DOCUMENT
    worker_count: int = WORKER_COUNT
    request_queue_size: int = REQUEST_QUEUE_SIZE
    socket_timeout_secs: float = SOCKET_TIMEOUT_SECS
    log_format: str = LOG_FORMAT

    def __post_init__(self) -> None:
        # Pin the root once so containment checks compare against a canonical path.
        object.__setattr__(self, "root", Path(self.root).resolve())
        if self.log_format not in {"plain", "json"}:
            raise ValueError(f"Unsupported log format: {self.log_format}")
        if "/" in self.default_document or self.default_document in {"", ".", ".."}:
            raise ValueError("default_document must be a plain file name")
