"""
Service wiring for the location cache.

``CacheServices`` is constructed once at process start and passed to
whatever serves requests; ``close()`` is called explicitly on shutdown.

Example:
    services = CacheServices.from_env()
    await services.start()
    page = await services.locations.get_location_page("gauteng/sandton")
    await services.invalidator.invalidate("property_sold", {"location_id": 42})
    await services.close()
"""

import asyncio
import logging
from typing import Optional

from .cache.config import ValkeyConfig
from .cache.store import CacheStore
from .database.config import DatabaseConfig
from .services.health import HealthReporter
from .services.invalidator import Invalidator
from .services.location_cache import LocationCacheOrchestrator
from .services.location_repository import LocationRepository, SqlLocationRepository
from .services.price_analytics import PriceAnalyticsCache
from .utils.config import Settings, load_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the process."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class CacheServices:
    """Container for the cache store and every service built on it."""

    def __init__(
        self,
        store: CacheStore,
        repository: LocationRepository,
        settings: Optional[Settings] = None,
        db_config: Optional[DatabaseConfig] = None,
    ):
        self.settings = settings or Settings()
        self.store = store
        self.repository = repository
        self.db_config = db_config

        self.locations = LocationCacheOrchestrator(
            store,
            repository,
            static_ttl=self.settings.static_content_ttl,
            dynamic_ttl=self.settings.dynamic_stats_ttl,
            compute_timeout_ms=self.settings.compute_timeout_ms,
        )
        self.price_analytics = PriceAnalyticsCache(
            store, repository, compute_timeout_ms=self.settings.compute_timeout_ms
        )
        self.invalidator = Invalidator(store, location_cascade=self.locations.invalidate_location)
        self.health = HealthReporter(store, unhealthy_threshold=self.settings.unhealthy_connection_errors)

    @classmethod
    def from_env(cls, settings: Optional[Settings] = None) -> "CacheServices":
        """Build services from environment configuration and the SQL listing store."""
        settings = settings or load_config()
        db_config = DatabaseConfig(settings.database_url)
        store = CacheStore(config=ValkeyConfig.from_env(), single_flight=settings.cache_single_flight)
        return cls(store, SqlLocationRepository(db_config), settings=settings, db_config=db_config)

    async def start(self) -> None:
        if self.db_config is not None:
            self.db_config.initialize()
        await self.store.initialize()
        logger.info(f"Cache services started (fallback_mode={self.store.fallback_mode})")

    async def close(self) -> None:
        await self.store.close()
        if self.db_config is not None:
            self.db_config.close()
        logger.info("Cache services stopped")

    async def __aenter__(self) -> "CacheServices":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def _report_health() -> int:
    settings = load_config()
    configure_logging(settings.log_level)

    async with CacheServices.from_env(settings) as services:
        payload = await services.health.check()
        print(payload.model_dump_json(indent=2))
    return 0


def main() -> int:
    """Start the services once and print the cache health payload."""
    return asyncio.run(_report_health())


if __name__ == "__main__":
    raise SystemExit(main())
