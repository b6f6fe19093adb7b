"""
Caching layer for the listing platform.

This module contains the Valkey client configuration, the fallback-aware
cache store, TTL resolution and key naming utilities.
"""

from .config import ValkeyConfig
from .exceptions import (
    CacheError,
    CacheConnectionError,
    CacheTimeoutError,
    CacheSerializationError,
    ConfigurationError,
    NotFoundError,
)
from .client import ValkeyClient
from .metrics import CacheMetrics
from .patterns import (
    wildcard_to_regex,
    matches_key_pattern,
    PatternDeletion,
    ScanPatternDeletion,
    EnumeratingPatternDeletion,
)
from .ttl import CacheConfig, TTLResolver, DEFAULT_CACHE_CONFIGS, DEFAULT_TTL_SECONDS
from .utils import (
    CacheKeyPrefix,
    CacheKeyBuilder,
    LocationTier,
    location_key,
    price_analytics_key,
    property_key,
    user_pattern,
)
from .store import CacheStore, CacheEntry, CacheResult

__all__ = [
    # Configuration
    "ValkeyConfig",

    # Errors
    "CacheError",
    "CacheConnectionError",
    "CacheTimeoutError",
    "CacheSerializationError",
    "ConfigurationError",
    "NotFoundError",

    # Client and store
    "ValkeyClient",
    "CacheStore",
    "CacheEntry",
    "CacheResult",
    "CacheMetrics",

    # TTL and patterns
    "CacheConfig",
    "TTLResolver",
    "DEFAULT_CACHE_CONFIGS",
    "DEFAULT_TTL_SECONDS",
    "wildcard_to_regex",
    "matches_key_pattern",
    "PatternDeletion",
    "ScanPatternDeletion",
    "EnumeratingPatternDeletion",

    # Key naming
    "CacheKeyPrefix",
    "CacheKeyBuilder",
    "LocationTier",
    "location_key",
    "price_analytics_key",
    "property_key",
    "user_pattern",
]
