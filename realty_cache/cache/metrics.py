"""
Cache operation metrics.

Counters only ever grow; gauges are overwritten from server stats. All
mutation goes through a lock so concurrent request handlers (tasks or
threads) never lose an increment.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass
class CacheMetrics:
    """Cache counters and gauges, mutated only by the cache store."""

    hits: int = 0
    misses: int = 0
    connection_errors: int = 0
    timeout_errors: int = 0
    fallback_activations: int = 0
    evictions: int = 0

    memory_usage_bytes: int = 0
    key_count: int = 0
    average_latency_ms: float = 0.0

    start_time: datetime = field(default_factory=datetime.now)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def increment(self, counter: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, counter, getattr(self, counter) + amount)

    def record_hit(self, latency_ms: float) -> None:
        with self._lock:
            self.hits += 1
            self._update_average_latency(latency_ms)

    def record_miss(self, latency_ms: float) -> None:
        with self._lock:
            self.misses += 1
            self._update_average_latency(latency_ms)

    def _update_average_latency(self, latency_ms: float) -> None:
        # Running mean over all reads
        total = self.hits + self.misses
        self.average_latency_ms += (latency_ms - self.average_latency_ms) / total

    def update_gauges(self, memory_usage_bytes: int, key_count: int, evicted_keys: int) -> None:
        with self._lock:
            self.memory_usage_bytes = memory_usage_bytes
            self.key_count = key_count
            # The server reports a lifetime total; never move the counter backwards
            self.evictions = max(self.evictions, evicted_keys)

    @property
    def hit_rate(self) -> float:
        """Cache hit ratio over all reads."""
        total_reads = self.hits + self.misses
        return self.hits / total_reads if total_reads > 0 else 0.0

    @property
    def uptime_seconds(self) -> float:
        return (datetime.now() - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Consistent snapshot of every counter and gauge."""
        with self._lock:
            return {
                "hits": self.hits,
                "misses": self.misses,
                "connection_errors": self.connection_errors,
                "timeout_errors": self.timeout_errors,
                "fallback_activations": self.fallback_activations,
                "evictions": self.evictions,
                "memory_usage_bytes": self.memory_usage_bytes,
                "key_count": self.key_count,
                "average_latency_ms": round(self.average_latency_ms, 3),
                "hit_rate": self.hit_rate,
                "uptime_seconds": self.uptime_seconds,
            }
