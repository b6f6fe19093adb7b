"""
Data models for the location cache.

Pydantic models for the location hierarchy, its two cache tiers, the merged
page response, invalidation records and health reports.
"""

from .location import (
    LocationType,
    LocationNode,
    MapViewport,
    StaticContent,
    TrendingChild,
    DynamicStats,
    LocationPage,
    PriceAnalytics,
)
from .invalidation import (
    InvalidationStrategy,
    InvalidationType,
    InvalidationRule,
    InvalidationEventModel,
)
from .cache import (
    HealthStatus,
    HealthReport,
    RedisHealthModel,
    CacheHealthMetricsModel,
    HealthPayloadModel,
)

__all__ = [
    # Location hierarchy
    "LocationType",
    "LocationNode",
    "MapViewport",
    "StaticContent",
    "TrendingChild",
    "DynamicStats",
    "LocationPage",
    "PriceAnalytics",

    # Invalidation
    "InvalidationStrategy",
    "InvalidationType",
    "InvalidationRule",
    "InvalidationEventModel",

    # Health
    "HealthStatus",
    "HealthReport",
    "RedisHealthModel",
    "CacheHealthMetricsModel",
    "HealthPayloadModel",
]
