"""
Cache health reporting.

Health is computed on demand from the store's metrics; the reporter keeps
no state of its own.
"""

import logging

from ..cache.store import CacheStore
from ..models.cache import (
    CacheHealthMetricsModel,
    HealthPayloadModel,
    HealthReport,
    HealthStatus,
    RedisHealthModel,
)

logger = logging.getLogger(__name__)

UNHEALTHY_CONNECTION_ERRORS = 10


class HealthReporter:
    """Derives cache health from CacheStore metrics and connection state."""

    def __init__(self, store: CacheStore, unhealthy_threshold: int = UNHEALTHY_CONNECTION_ERRORS):
        self.store = store
        self.unhealthy_threshold = unhealthy_threshold

    def status(self) -> HealthStatus:
        if self.store.metrics.connection_errors > self.unhealthy_threshold:
            return HealthStatus.UNHEALTHY
        if self.store.fallback_mode:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    def report(self) -> HealthReport:
        metrics = self.store.metrics
        return HealthReport(
            status=self.status(),
            hit_rate=metrics.hit_rate,
            key_count=metrics.key_count,
            memory_usage_bytes=metrics.memory_usage_bytes,
            fallback_mode=self.store.fallback_mode,
        )

    async def check(self) -> HealthPayloadModel:
        """
        Refresh server gauges and build the health endpoint payload.

        Never raises; an unreachable server shows up as ``connected: False``.
        """
        await self.store.refresh_stats()
        report = self.report()

        payload = HealthPayloadModel(
            status=report.status,
            redis=RedisHealthModel(
                connected=self.store.is_connected,
                response_time_ms=round(self.store.client.last_ping_ms, 2),
                memory_usage_mb=round(report.memory_usage_bytes / 1024 / 1024),
            ),
            metrics=CacheHealthMetricsModel(
                hit_rate=round(report.hit_rate * 100),
                cache_size=report.key_count,
                fallback_mode=report.fallback_mode,
            ),
        )
        if report.status is not HealthStatus.HEALTHY:
            logger.warning(f"Cache health is {report.status.value}")
        return payload
