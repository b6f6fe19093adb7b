"""
Cache key naming conventions.

Prefixes double as tenancy and category separators in the shared key
space, so every key the platform writes starts with one of them.
"""

from enum import Enum
from typing import Any, Sequence, Union


class CacheKeyPrefix(str, Enum):
    """Standard cache key prefixes for different data types."""

    # Price and market analytics
    PRICE_ANALYTICS = "pa"

    # Property / listing data
    PROPERTY_DATA = "prop"

    # Per-user preferences and recommendations
    USER_PREFERENCES = "up"

    # Query result sets
    SEARCH_RESULTS = "search"

    # Location hierarchy
    STATIC_CONTENT = "static"
    DYNAMIC_STATS = "dynamic"

    SESSION = "session"
    TEMPORARY = "temp"


class LocationTier(str, Enum):
    """The two independently aged projections of a location."""

    STATIC = CacheKeyPrefix.STATIC_CONTENT.value
    DYNAMIC = CacheKeyPrefix.DYNAMIC_STATS.value


class CacheKeyBuilder:
    """
    Builder for consistent, colon-separated cache keys.
    """

    @staticmethod
    def build_key(prefix: Union[CacheKeyPrefix, str], *parts: Any, **params: Any) -> str:
        """
        Build a cache key with prefix, parts, and parameters.

        Example:
            build_key(CacheKeyPrefix.PRICE_ANALYTICS, "suburb", 12, "analytics")
            # Returns: "pa:suburb:12:analytics"
        """
        prefix_str = prefix.value if isinstance(prefix, Enum) else str(prefix)
        key_parts = [prefix_str]

        for part in parts:
            if part is not None:
                key_parts.append(str(part))

        # Keyword parameters are sorted so equal queries share a key
        for key, value in sorted(params.items()):
            if value is not None:
                key_parts.append(f"{key}={value}")

        return ":".join(key_parts)

    @staticmethod
    def build_pattern(prefix: Union[CacheKeyPrefix, str], *parts: str) -> str:
        """
        Build a wildcard pattern for matching multiple keys.

        Example:
            build_pattern(CacheKeyPrefix.PRICE_ANALYTICS, "*")
            # Returns: "pa:*"
        """
        prefix_str = prefix.value if isinstance(prefix, Enum) else str(prefix)
        return ":".join([prefix_str, *parts])


def location_key(tier: Union[LocationTier, str], location_type: str, slug_path: Union[str, Sequence[str]]) -> str:
    """Key for one tier of a location, e.g. ``dynamic:city:gauteng/sandton``."""
    if not isinstance(slug_path, str):
        slug_path = "/".join(slug_path)
    return CacheKeyBuilder.build_key(tier, location_type, slug_path)


def price_analytics_key(location_type: str, location_id: Union[int, str]) -> str:
    return CacheKeyBuilder.build_key(CacheKeyPrefix.PRICE_ANALYTICS, location_type, location_id, "analytics")


def user_pattern(user_id: Union[int, str]) -> str:
    return CacheKeyBuilder.build_pattern(CacheKeyPrefix.USER_PREFERENCES, "user", str(user_id), "*")


def property_key(property_id: Union[int, str]) -> str:
    return CacheKeyBuilder.build_key(CacheKeyPrefix.PROPERTY_DATA, property_id, "full_data")
