"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All runtime settings, built once at startup and then only read.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── minihttp --directory /tmp/files --port 4221                │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_DIRECTORY=/tmp/files minihttp                         │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
IMMUTABILITY
=============================================================================

Both dataclasses are frozen. Every worker thread reads the same
ServerConfig and StoreConfig concurrently, and nothing may change them
after startup. To derive a variant, use dataclasses.replace():

    config = replace(ServerConfig.from_env(), port=0)

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass(frozen=True)
class StoreConfig:
    """
    Where /files/* lives on disk.

    root is a plain string, joined with the file name by the store.
    "" means "relative to the current working directory".
    """

    root: str = ""


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog, buffer_size, timeout

    HTTP
    - max_request_size

    THREADING
    - min_workers, max_workers, queue_size

    FILES
    - directory

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Interface to bind. "0.0.0.0" for all interfaces."""

    port: int = 4221
    """TCP port. 0 picks a free ephemeral port (see HTTPServer.address)."""

    backlog: int = 128
    """Pending connections the kernel queues before refusing new ones."""

    buffer_size: int = 4096
    """Bytes requested per recv() call."""

    timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout in seconds.
    None = block forever on a silent client.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest request (headers + body) read before dropping the connection."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads started up front."""

    max_workers: int = 16
    """Hard cap on worker threads."""

    queue_size: int = 100
    """Connections that may wait for a worker before new ones get 503."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """Root directory for /files/*. None = current working directory."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    @property
    def store(self) -> StoreConfig:
        """The file store configuration derived from `directory`."""
        return StoreConfig(root=self.directory or "")

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST       Server host (default: 127.0.0.1)
        HTTP_PORT       Server port (default: 4221)
        HTTP_WORKERS    Max worker threads (default: 16)
        HTTP_TIMEOUT    Socket timeout in seconds (default: 30)
        HTTP_DIRECTORY  Root for /files/* (default: unset)
        HTTP_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "4221")),
            max_workers=int(os.getenv("HTTP_WORKERS", "16")),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            directory=os.getenv("HTTP_DIRECTORY") or None,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        """
        Validate configuration values, failing fast at startup.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_size < 1:
            raise ValueError("max_request_size must be >= 1")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log format: {self.log_format}")
