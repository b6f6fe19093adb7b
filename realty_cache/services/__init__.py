"""
Services for the location cache.

This module contains the cache orchestration and invalidation services
built on top of the CacheStore.
"""

from .location_repository import LocationRepository, SqlLocationRepository, LocationNotFoundError
from .location_cache import LocationCacheOrchestrator, parse_slug_path, STATIC_CONTENT_TTL, DYNAMIC_STATS_TTL
from .invalidator import Invalidator, DEFAULT_INVALIDATION_RULES
from .health import HealthReporter
from .price_analytics import PriceAnalyticsCache
from .seo import generate_slug, generate_seo_content

__all__ = [
    "LocationRepository",
    "SqlLocationRepository",
    "LocationNotFoundError",
    "LocationCacheOrchestrator",
    "parse_slug_path",
    "STATIC_CONTENT_TTL",
    "DYNAMIC_STATS_TTL",
    "Invalidator",
    "DEFAULT_INVALIDATION_RULES",
    "HealthReporter",
    "PriceAnalyticsCache",
    "generate_slug",
    "generate_seo_content",
]
