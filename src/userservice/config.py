"""
=============================================================================
SERVICE CONFIGURATION
=============================================================================

Centralized configuration for the user service.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m userservice --port 3000                          │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── USERS_PORT=3000 python -m userservice                      │
    │                                                                     │
    │   3. A .env file in the working directory (loaded by the CLI)       │
    │      └── echo DATABASE_URL=sqlite:///users.db > .env                │
    │                                                                     │
    │   4. Dataclass defaults                                             │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

DATABASE_URL has no default. The service refuses to start without it,
the same way it always has.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .db import resolve_database_path


LOG_FORMATS = ("text", "json")


@dataclass
class ServiceConfig:
    """
    Configuration for the user service.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout, max_request_size

    STORAGE
    - database_url

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All interfaces (containers, the historical default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """The port number to listen on."""

    backlog: int = 128
    """Maximum number of queued connections before new ones are refused."""

    buffer_size: int = 8192
    """Bytes read from the socket per recv() call."""

    timeout: Optional[float] = 30.0
    """
    Socket read timeout in seconds for one request.
    Connections are served one at a time, so a stalled client blocks
    everyone else until this expires.
    """

    max_request_size: int = 1024 * 1024  # 1 MB
    """Requests larger than this are dropped without a response."""

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE
    # ─────────────────────────────────────────────────────────────────────

    database_url: Optional[str] = None
    """
    SQLite connection string: "sqlite:///users.db" or a plain file path.
    Required.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    log_format: str = "text"
    """Access log format: 'text' (one readable line) or 'json'."""

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        DATABASE_URL      SQLite connection string (required)
        USERS_HOST        Bind address (default: 0.0.0.0)
        USERS_PORT        Port (default: 8080)
        USERS_TIMEOUT     Read timeout in seconds (default: 30)
        USERS_LOG_LEVEL   Logging level (default: INFO)
        USERS_LOG_FORMAT  Access log format (default: text)

        =====================================================================
        """
        return cls(
            host=os.getenv("USERS_HOST", "0.0.0.0"),
            port=int(os.getenv("USERS_PORT", "8080")),
            timeout=float(os.getenv("USERS_TIMEOUT", "30")),
            database_url=os.getenv("DATABASE_URL") or None,
            log_level=os.getenv("USERS_LOG_LEVEL", "INFO"),
            log_format=os.getenv("USERS_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values at startup (fail fast).

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")

        if not self.database_url:
            raise ValueError("DATABASE_URL must be set in environment")

        resolve_database_path(self.database_url)
