"""
Valkey cache configuration.

This module provides the connection configuration for the cache service,
loaded from environment variables (and a .env file when present).
"""

import os
import logging
from typing import Optional, Dict, Any
from dataclasses import dataclass
from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes", "on")


@dataclass
class ValkeyConfig:
    """
    Configuration for the Valkey connection used by the cache store.

    ``enabled`` is False when no host is configured; the store then runs
    permanently in fallback mode and never probes for reconnection.
    """

    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    database: int = 0
    max_connections: int = 10
    socket_timeout: float = 2.0
    socket_connect_timeout: float = 5.0
    operation_timeout: float = 2.0
    reconnect_interval: float = 5.0
    reconnect_retry_interval: float = 10.0
    enabled: bool = True

    def __post_init__(self) -> None:
        if self.operation_timeout <= 0:
            raise ConfigurationError(
                "operation_timeout must be positive", config_key="operation_timeout"
            )
        if self.reconnect_interval <= 0 or self.reconnect_retry_interval <= 0:
            raise ConfigurationError(
                "reconnect intervals must be positive", config_key="reconnect_interval"
            )

    @classmethod
    def from_env(cls) -> "ValkeyConfig":
        """
        Create ValkeyConfig from environment variables.

        Returns:
            ValkeyConfig: Configuration instance with values from environment
        """
        host = os.getenv("VALKEY_HOST", "")
        return cls(
            host=host or "localhost",
            port=int(os.getenv("VALKEY_PORT", "6379")),
            password=os.getenv("VALKEY_PASSWORD") or None,
            database=int(os.getenv("VALKEY_DATABASE", "0")),
            max_connections=int(os.getenv("VALKEY_MAX_CONNECTIONS", "10")),
            socket_timeout=float(os.getenv("VALKEY_SOCKET_TIMEOUT", "2.0")),
            socket_connect_timeout=float(os.getenv("VALKEY_SOCKET_CONNECT_TIMEOUT", "5.0")),
            operation_timeout=float(os.getenv("VALKEY_OPERATION_TIMEOUT", "2.0")),
            reconnect_interval=float(os.getenv("VALKEY_RECONNECT_INTERVAL", "5.0")),
            reconnect_retry_interval=float(
                os.getenv("VALKEY_RECONNECT_RETRY_INTERVAL", "10.0")
            ),
            enabled=bool(host) and _env_bool("VALKEY_ENABLED", "true"),
        )

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """
        Convert configuration to Valkey connection parameters.

        Returns:
            Dict[str, Any]: Connection parameters for Valkey client
        """
        kwargs = {
            "host": self.host,
            "port": self.port,
            "db": self.database,
            "socket_timeout": self.socket_timeout,
            "socket_connect_timeout": self.socket_connect_timeout,
            "decode_responses": False,
        }

        if self.password:
            kwargs["password"] = self.password

        return kwargs

    def to_connection_pool_kwargs(self) -> Dict[str, Any]:
        """
        Convert configuration to Valkey connection pool parameters.

        Returns:
            Dict[str, Any]: Connection pool parameters for Valkey client
        """
        kwargs = self.to_connection_kwargs()
        kwargs["max_connections"] = self.max_connections
        return kwargs

    def __str__(self) -> str:
        """String representation hiding sensitive information."""
        password_display = "***" if self.password else "None"
        return (
            f"ValkeyConfig(host={self.host}, port={self.port}, "
            f"db={self.database}, password={password_display}, "
            f"max_connections={self.max_connections}, enabled={self.enabled})"
        )
