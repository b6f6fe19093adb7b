"""
Cached price analytics per location.
"""

import logging
from typing import Optional, Union

from ..cache.store import CacheStore
from ..cache.utils import CacheKeyBuilder, CacheKeyPrefix, price_analytics_key
from ..models.location import LocationType, PriceAnalytics
from .location_repository import LocationRepository

logger = logging.getLogger(__name__)


class PriceAnalyticsCache:
    """Read-through cache for location price analytics (``pa:`` keys)."""

    def __init__(self, store: CacheStore, repository: LocationRepository, compute_timeout_ms: int = 5000):
        self.store = store
        self.repository = repository
        self.compute_timeout_ms = compute_timeout_ms

    async def get_location_analytics(
        self, location_type: Union[LocationType, str], location_id: int
    ) -> Optional[PriceAnalytics]:
        """Analytics for a location, or None if it does not exist. TTL comes from the key."""
        location_type = LocationType(location_type)

        async def compute():
            analytics = await self.repository.get_price_analytics(location_type, location_id)
            return analytics.model_dump(mode="json") if analytics is not None else None

        raw = await self.store.get_or_compute(
            price_analytics_key(location_type.value, location_id),
            compute,
            timeout_ms=self.compute_timeout_ms,
        )
        return PriceAnalytics.model_validate(raw) if raw is not None else None

    async def invalidate_location_analytics(self, location_type: Union[LocationType, str], location_id: int) -> int:
        pattern = CacheKeyBuilder.build_pattern(
            CacheKeyPrefix.PRICE_ANALYTICS, LocationType(location_type).value, str(location_id), "*"
        )
        deleted = await self.store.delete_by_pattern(pattern)
        logger.info(f"Invalidated {deleted} price analytics keys for {pattern}")
        return deleted

    async def invalidate_all(self) -> int:
        deleted = await self.store.delete_by_pattern(CacheKeyBuilder.build_pattern(CacheKeyPrefix.PRICE_ANALYTICS, "*"))
        logger.info(f"Invalidated {deleted} price analytics keys")
        return deleted
