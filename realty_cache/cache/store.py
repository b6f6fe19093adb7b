"""
Cache store with fallback mode and graceful degradation.

This module provides the CacheStore, the only component that talks to the
cache service. It never fails a caller's request because the cache is
unavailable: every public method degrades to "act as if the cache is empty",
and only errors raised by a caller's own compute function propagate.

Internally each command produces a ``CacheResult``; the public methods
convert those results into fallback behaviour, which keeps the underlying
errors inspectable (``last_error``) without leaking them as exceptions.
"""

import asyncio
import contextlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar, Union

from .client import ValkeyClient
from .config import ValkeyConfig
from .exceptions import (
    CacheError,
    CacheConnectionError,
    CacheTimeoutError,
    CacheSerializationError,
)
from .metrics import CacheMetrics
from .patterns import PatternDeletion, ScanPatternDeletion
from .ttl import TTLResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_COMPUTE_TIMEOUT_MS = 5000

_MISS = object()


@dataclass
class CacheEntry:
    """A serialized value as it is written to the cache service."""

    key: str
    value: bytes
    ttl_seconds: int = 0

    @classmethod
    def encode(cls, key: str, value: Any, ttl_seconds: int) -> "CacheEntry":
        """
        Serialize ``value`` to JSON bytes.

        Raises:
            CacheSerializationError: If the value is not JSON serializable
        """
        try:
            payload = json.dumps(value, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(key, "encode", original_error=e)
        return cls(key=key, value=payload, ttl_seconds=max(0, int(ttl_seconds)))

    @staticmethod
    def decode(key: str, raw: Union[bytes, str]) -> Any:
        """
        Deserialize a raw cache payload.

        Raises:
            CacheSerializationError: If the payload is not valid JSON
        """
        try:
            return json.loads(raw)
        except (TypeError, ValueError, UnicodeDecodeError) as e:
            raise CacheSerializationError(key, "decode", original_error=e)


@dataclass
class CacheResult:
    """Outcome of a single cache command: a value or the error that prevented it."""

    value: Any = None
    error: Optional[CacheError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CacheStore:
    """
    Best-effort key-value cache in front of slower data sources.

    Features:
    - Per-operation timeouts on every network call
    - Fallback mode on any transport error, with a cancellable
      reconnection probe at a flat interval
    - TTL resolution from ordered key-pattern rules
    - Hit/miss/error metrics for health reporting
    - Optional single-flight de-duplication of concurrent misses
    """

    def __init__(
        self,
        client: Optional[ValkeyClient] = None,
        config: Optional[ValkeyConfig] = None,
        ttl_resolver: Optional[TTLResolver] = None,
        pattern_deletion: Optional[PatternDeletion] = None,
        single_flight: bool = False,
    ):
        """
        Initialize cache store.

        Args:
            client: ValkeyClient instance; built from ``config`` when omitted
            config: ValkeyConfig, defaults to the client's or the environment's
            ttl_resolver: Resolver used when ``set`` is called without a TTL
            pattern_deletion: Strategy used by ``delete_by_pattern``
            single_flight: Share one computation between concurrent misses on a key
        """
        self.config = config or (client.config if client else ValkeyConfig.from_env())
        self.client = client or ValkeyClient(self.config)
        self.ttl_resolver = ttl_resolver or TTLResolver()
        self.pattern_deletion = pattern_deletion or ScanPatternDeletion()
        self.single_flight = single_flight
        self.metrics = CacheMetrics()
        self.last_error: Optional[CacheError] = None

        self._fallback_mode = not self.config.enabled
        self._closed = False
        self._reconnect_task: Optional[asyncio.Task] = None
        self._inflight: Dict[str, asyncio.Task] = {}

        if self._fallback_mode:
            logger.warning("Cache host not configured, running in fallback mode")
        else:
            logger.info("CacheStore initialized for %s", self.config)

    # -- lifecycle -----------------------------------------------------------

    async def initialize(self) -> None:
        """Ping the cache service once; enter fallback mode if it is unreachable."""
        if not self.config.enabled or self._closed:
            return

        result = await self._guard(self.client.ping())
        if result.ok:
            self._fallback_mode = False
            logger.info("CacheStore connected to cache service")

    async def close(self) -> None:
        """Cancel the reconnection probe and release the connection."""
        self._closed = True
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        await self.client.disconnect()
        logger.info("CacheStore closed")

    async def __aenter__(self) -> "CacheStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def fallback_mode(self) -> bool:
        return self._fallback_mode

    @property
    def is_connected(self) -> bool:
        return not self._fallback_mode and self.client.is_connected

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    def _enter_fallback(self, error: CacheError) -> None:
        if not self._fallback_mode:
            self._fallback_mode = True
            logger.warning(f"Cache unavailable, switching to fallback mode: {error.message}")
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._closed or not self.config.enabled or self.reconnect_pending:
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        """Probe the service at a flat interval until a ping succeeds."""
        delay = self.config.reconnect_interval
        while self._fallback_mode and not self._closed:
            await asyncio.sleep(delay)
            try:
                await self.client.ping()
            except CacheError as e:
                delay = self.config.reconnect_retry_interval
                logger.warning(f"Cache reconnection failed: {e.message}; retrying in {delay:.1f}s")
                continue
            self._fallback_mode = False
            logger.info("Cache connection restored, leaving fallback mode")

    # -- command execution ---------------------------------------------------

    async def _guard(self, awaitable: Awaitable[Any]) -> CacheResult:
        """Await a client call, recording any cache error instead of raising it."""
        try:
            return CacheResult(value=await awaitable)
        except CacheTimeoutError as e:
            self.metrics.increment("timeout_errors")
            return self._failed(e)
        except CacheConnectionError as e:
            self.metrics.increment("connection_errors")
            return self._failed(e)

    def _failed(self, error: CacheError) -> CacheResult:
        self.last_error = error
        logger.debug(f"Cache operation failed: {error.message}", extra={"details": error.details})
        self._enter_fallback(error)
        return CacheResult(error=error)

    async def _execute(self, operation: str, awaitable: Awaitable[Any], key: Optional[str] = None) -> CacheResult:
        return await self._guard(self.client.run(operation, awaitable, key=key))

    def _decode(self, key: str, raw: Any) -> Any:
        try:
            return CacheEntry.decode(key, raw)
        except CacheSerializationError as e:
            # Corrupt entries read as misses
            self.last_error = e
            logger.warning(f"Discarding unreadable cache entry: {e.message}")
            return _MISS

    async def _read(self, key: str) -> CacheResult:
        """Fetch and decode ``key``; ``_MISS`` as value means miss."""
        start = time.perf_counter()
        result = await self._execute("get", self.client.connection.get(key), key)
        latency_ms = (time.perf_counter() - start) * 1000

        value = _MISS
        if result.ok and result.value is not None:
            value = self._decode(key, result.value)

        if value is _MISS:
            self.metrics.record_miss(latency_ms)
        else:
            self.metrics.record_hit(latency_ms)
        return CacheResult(value=value, error=result.error)

    # -- public API ----------------------------------------------------------

    async def get(self, key: str, default: Any = None) -> Any:
        """
        Get a decoded value from the cache.

        Args:
            key: Cache key
            default: Returned on miss, error or fallback mode

        Returns:
            Cached value or ``default``
        """
        if self._fallback_mode:
            return default

        result = await self._read(key)
        return default if result.value is _MISS else result.value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store a value; failures are logged, never raised.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Seconds to live; resolved from the key when None, 0 for no expiry

        Returns:
            True if the value was written
        """
        if self._fallback_mode:
            return False

        ttl_seconds = self.ttl_resolver.resolve(key) if ttl is None else ttl
        try:
            entry = CacheEntry.encode(key, value, ttl_seconds)
        except CacheSerializationError as e:
            self.last_error = e
            logger.warning(f"Dropping cache write: {e.message}")
            return False

        connection = self.client.connection
        if entry.ttl_seconds > 0:
            command = connection.set(entry.key, entry.value, ex=entry.ttl_seconds)
        else:
            command = connection.set(entry.key, entry.value)

        result = await self._execute("set", command, key)
        return result.ok and bool(result.value)

    async def delete(self, keys: Union[str, Sequence[str]]) -> int:
        """
        Delete one or more keys.

        Returns:
            Number of keys removed (0 in fallback mode or on error)
        """
        key_list: List[str] = [keys] if isinstance(keys, str) else list(keys)
        if self._fallback_mode or not key_list:
            return 0

        result = await self._execute("delete", self.client.connection.delete(*key_list))
        return int(result.value or 0)

    async def delete_by_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a wildcard pattern.

        The keyspace is walked one SCAN page at a time; each page and its
        DEL run under their own operation timeout, so a large keyspace never
        turns into a single long command.

        Returns:
            Number of keys removed (pages deleted before a failure still count)
        """
        if self._fallback_mode:
            return 0

        deleted = 0
        cursor = 0
        while True:
            page = await self._execute(
                "scan", self.pattern_deletion.scan_page(self.client.connection, cursor, pattern)
            )
            if not page.ok:
                break

            cursor, keys = page.value
            if keys:
                result = await self._execute("delete", self.client.connection.delete(*keys))
                if not result.ok:
                    break
                deleted += int(result.value or 0)

            if cursor == 0:
                break

        logger.debug(f"Deleted {deleted} keys matching {pattern}")
        return deleted

    async def exists(self, key: str) -> bool:
        """Check if key exists in cache; False when the cache is unavailable."""
        if self._fallback_mode:
            return False

        result = await self._execute("exists", self.client.connection.exists(key), key)
        return bool(result.value)

    async def ttl(self, key: str) -> Optional[int]:
        """Remaining TTL in seconds, or None if the key is missing or never expires."""
        if self._fallback_mode:
            return None

        result = await self._execute("ttl", self.client.connection.ttl(key), key)
        remaining = result.value
        return remaining if remaining is not None and remaining > 0 else None

    async def clear(self) -> bool:
        """Flush the current cache database."""
        if self._fallback_mode:
            return False

        result = await self._execute("flushdb", self.client.connection.flushdb())
        return result.ok

    async def refresh_stats(self) -> Dict[str, Any]:
        """
        Pull memory, key count and eviction gauges from the server.

        Returns:
            Metrics snapshot (gauges unchanged if the server is unavailable)
        """
        if not self._fallback_mode:
            result = await self._guard(self.client.server_stats())
            if result.ok:
                self.metrics.update_gauges(
                    memory_usage_bytes=result.value["used_memory"],
                    key_count=result.value["key_count"],
                    evicted_keys=result.value["evicted_keys"],
                )
        return self.metrics.to_dict()

    async def get_or_compute(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[T]],
        timeout_ms: int = DEFAULT_COMPUTE_TIMEOUT_MS,
        ttl: Optional[int] = None,
    ) -> T:
        """
        Read-through: return the cached value or compute, cache and return it.

        Args:
            key: Cache key
            compute_fn: Async callable producing the value on a miss
            timeout_ms: Upper bound for ``compute_fn``
            ttl: TTL override; resolved from the key when None

        Returns:
            Cached or freshly computed value

        Raises:
            Any exception raised by ``compute_fn``, unchanged
            asyncio.TimeoutError: If ``compute_fn`` exceeds ``timeout_ms``
        """
        if self._fallback_mode:
            self.metrics.increment("fallback_activations")
            return await self._compute(key, compute_fn, timeout_ms)

        if not self.single_flight:
            return await self._read_through(key, compute_fn, timeout_ms, ttl)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._read_through(key, compute_fn, timeout_ms, ttl))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget_inflight(key, done))
        return await asyncio.shield(task)

    def _forget_inflight(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _read_through(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[T]],
        timeout_ms: int,
        ttl: Optional[int],
    ) -> T:
        cached = await self._read(key)
        if cached.value is not _MISS:
            return cached.value

        if not cached.ok:
            self.metrics.increment("fallback_activations")

        value = await self._compute(key, compute_fn, timeout_ms)

        # Absent results are not cached so later data is never masked
        if value is not None and not self._fallback_mode:
            await self.set(key, value, ttl)
        return value

    async def _compute(
        self, key: str, compute_fn: Callable[[], Awaitable[T]], timeout_ms: int
    ) -> T:
        try:
            return await asyncio.wait_for(compute_fn(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            self.metrics.increment("timeout_errors")
            logger.warning(f"Compute for {key} exceeded {timeout_ms}ms")
            raise

    def get_stats(self) -> Dict[str, Any]:
        """Metrics snapshot plus connection state."""
        stats = self.metrics.to_dict()
        stats.update({
            "fallback_mode": self._fallback_mode,
            "reconnect_pending": self.reconnect_pending,
            "single_flight": self.single_flight,
            "connection_info": self.client.get_connection_info(),
        })
        return stats
