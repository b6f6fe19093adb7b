"""
Valkey client wrapper with bounded operations.

This module owns the raw connection to the cache service. Every command is
wrapped in an explicit timeout and transport failures are translated into
the cache layer's own exception types, so the store above never has to know
which client library raised.
"""

import asyncio
import logging
import time
from typing import Optional, Any, Dict, Awaitable, TypeVar

from valkey import exceptions as valkey_errors
from valkey.asyncio import Valkey, ConnectionPool

from .config import ValkeyConfig
from .exceptions import CacheConnectionError, CacheTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ValkeyClient:
    """
    Thin async client over the Valkey command surface.

    The underlying connection is created lazily: constructing the client
    never touches the network, and the pool only dials out on the first
    command. A pre-built connection may be injected (used by tests and by
    callers that share a pool).
    """

    def __init__(self, config: Optional[ValkeyConfig] = None, connection: Optional[Any] = None):
        """
        Initialize Valkey client with configuration.

        Args:
            config: ValkeyConfig instance, defaults to environment-based config
            connection: Optional pre-built async connection object
        """
        self.config = config or ValkeyConfig.from_env()
        self._connection = connection
        self._connection_pool: Optional[ConnectionPool] = None
        self._is_connected = False
        self._last_ping_ms = 0.0

        logger.info(f"Initializing Valkey client: {self.config}")

    @property
    def connection(self) -> Any:
        """Return the async connection, building the pool on first use."""
        if self._connection is None:
            self._connection_pool = ConnectionPool(**self.config.to_connection_pool_kwargs())
            self._connection = Valkey(connection_pool=self._connection_pool)
        return self._connection

    @property
    def is_connected(self) -> bool:
        """Whether the last round trip to the server succeeded."""
        return self._is_connected

    @property
    def last_ping_ms(self) -> float:
        return self._last_ping_ms

    async def run(self, operation: str, awaitable: Awaitable[T], key: Optional[str] = None) -> T:
        """
        Await a single command under the configured operation timeout.

        Raises:
            CacheTimeoutError: If the command exceeds ``operation_timeout``
            CacheConnectionError: If the transport fails
        """
        try:
            result = await asyncio.wait_for(awaitable, timeout=self.config.operation_timeout)
        except asyncio.TimeoutError as e:
            self._is_connected = False
            raise CacheTimeoutError(operation, self.config.operation_timeout, key=key) from e
        except valkey_errors.TimeoutError as e:
            self._is_connected = False
            raise CacheTimeoutError(operation, self.config.socket_timeout, key=key) from e
        except (valkey_errors.ValkeyError, OSError) as e:
            self._is_connected = False
            raise CacheConnectionError(
                message=f"Cache operation '{operation}' failed: {e}",
                host=self.config.host,
                port=self.config.port,
                original_error=e,
            )
        self._is_connected = True
        return result

    async def ping(self) -> bool:
        """
        Round-trip a PING to the server.

        Raises:
            CacheConnectionError: If ping fails or returns a falsy reply
        """
        start = time.perf_counter()
        result = await self.run("ping", self.connection.ping())
        self._last_ping_ms = (time.perf_counter() - start) * 1000
        if not result:
            self._is_connected = False
            raise CacheConnectionError("Ping returned False", host=self.config.host, port=self.config.port)
        return True

    async def server_stats(self) -> Dict[str, int]:
        """
        Collect memory, key count and eviction figures from the server.

        Returns:
            Dict with ``used_memory``, ``key_count`` and ``evicted_keys``
        """
        memory_info = await self.run("info", self.connection.info("memory"))
        stats_info = await self.run("info", self.connection.info("stats"))
        key_count = await self.run("dbsize", self.connection.dbsize())
        return {
            "used_memory": int(memory_info.get("used_memory", 0)),
            "key_count": int(key_count or 0),
            "evicted_keys": int(stats_info.get("evicted_keys", 0)),
        }

    async def disconnect(self) -> None:
        """Gracefully disconnect from Valkey server."""
        if self._connection is None:
            return
        try:
            await self._connection.aclose()
            if self._connection_pool is not None:
                await self._connection_pool.disconnect()
            logger.info("Disconnected from Valkey server")
        except (valkey_errors.ValkeyError, OSError) as e:
            logger.warning(f"Error during Valkey disconnect: {e}")
        finally:
            self._connection_pool = None
            self._connection = None
            self._is_connected = False

    def get_connection_info(self) -> Dict[str, Any]:
        """
        Get connection information.

        Returns:
            Dict[str, Any]: Connection information
        """
        return {
            "is_connected": self._is_connected,
            "config": str(self.config),
            "last_ping_ms": round(self._last_ping_ms, 2),
        }
