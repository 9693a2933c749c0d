"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server needs to start, in one validated dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m staticmount ./public --port 3000                 │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 STATIC_DIR=./public python -m staticmount   │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The static engine's own options (hidden, max_age) live here too so a
single object describes a deployment; static_config() hands them to the
engine as an immutable StaticConfig.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .exceptions import ConfigurationError
from .static.config import ONE_YEAR_MS, Duration, StaticConfig, env_flag, parse_duration


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for StaticServer.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size

    STATIC FILES
    - mounts, hidden, max_age

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" for all interfaces."""

    port: int = 8080
    """Port to listen on. 0 picks a free port (used by the tests)."""

    backlog: int = 128
    """Maximum number of queued connections."""

    timeout: Optional[float] = 30.0
    """Seconds to wait for the first request on a new connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Allow several requests per TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024
    """Upper bound for request head plus body, in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    mounts: List[Tuple[str, str]] = field(default_factory=list)
    """(prefix, directory) pairs, mounted in order."""

    hidden: bool = False
    """Serve paths with dot-prefixed segments."""

    max_age: Duration = ONE_YEAR_MS
    """Cache-Control max-age, milliseconds or a string like "1d"."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "staticmount/1.0"
    """Value of the Server header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST        Server host (default: 127.0.0.1)
        HTTP_PORT        Server port (default: 8080)
        HTTP_TIMEOUT     First-request timeout in seconds (default: 30)
        HTTP_LOG_LEVEL   Logging level (default: INFO)
        HTTP_LOG_FORMAT  text or json (default: text)
        STATIC_DIR       Directories to mount at "/", separated by
                         os.pathsep (default: none)
        STATIC_HIDDEN    "1"/"true" to serve dotfiles (default: off)
        STATIC_MAX_AGE   Duration such as "1d" (default: one year)

        =====================================================================
        """
        try:
            port = int(os.getenv("HTTP_PORT", "8080"))
            timeout = float(os.getenv("HTTP_TIMEOUT", "30"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric environment value: {e}") from e

        static_dirs = os.getenv("STATIC_DIR", "")
        mounts = [("/", directory) for directory in static_dirs.split(os.pathsep) if directory]

        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=port,
            timeout=timeout,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text").lower(),
            mounts=mounts,
            hidden=env_flag("STATIC_HIDDEN"),
            max_age=os.getenv("STATIC_MAX_AGE", ONE_YEAR_MS),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Runs at startup so a bad value stops the server before it binds.

        Raises:
            ConfigurationError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ConfigurationError("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ConfigurationError("keep_alive_timeout must be > 0")

        if self.max_request_size < 1024:
            raise ConfigurationError("max_request_size must be >= 1024")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(f"log_format must be one of {LOG_FORMATS}")

        for prefix, directory in self.mounts:
            if not prefix.startswith("/"):
                raise ConfigurationError(f"Mounted paths must begin with a '/': {prefix!r}")
            if not os.path.isdir(directory):
                raise ConfigurationError(f"Mount directory does not exist: {directory}")

        parse_duration(self.max_age)

    @property
    def numeric_log_level(self) -> int:
        return getattr(logging, self.log_level.upper())

    def static_config(self) -> StaticConfig:
        """The engine configuration derived from this server config."""
        return StaticConfig(hidden=self.hidden, max_age=self.max_age)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. ServerConfig: network, HTTP, static and logging settings in one place
# 2. from_env(): 12-factor style environment overrides
# 3. validate(): fail fast with ConfigurationError before binding
# 4. static_config(): immutable StaticConfig for the engine
# =============================================================================
