"""
TTL resolution from ordered key-pattern rules.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from .patterns import matches_key_pattern

HOUR = 3600
DAY = 24 * HOUR

DEFAULT_TTL_SECONDS = HOUR


@dataclass(frozen=True)
class CacheConfig:
    """TTL rule for keys matching ``key_pattern``."""

    key_pattern: str
    ttl_seconds: int
    description: str = ""

    def __post_init__(self) -> None:
        if self.ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {self.ttl_seconds}")


DEFAULT_CACHE_CONFIGS: Tuple[CacheConfig, ...] = (
    # Price analytics (low frequency updates)
    CacheConfig("pa:*:avg_price", 24 * HOUR, "Average prices - 24 hours"),
    CacheConfig("pa:*:price_trend", 12 * HOUR, "Price trends - 12 hours"),
    CacheConfig("pa:*:market_stats", 6 * HOUR, "Market statistics - 6 hours"),
    CacheConfig("pa:*:growth_metrics", 6 * HOUR, "Growth metrics - 6 hours"),
    CacheConfig("pa:*:analytics", 6 * HOUR, "Location price analytics - 6 hours"),
    # Property data (medium frequency updates)
    CacheConfig("prop:featured_listings", 2 * HOUR, "Featured properties - 2 hours"),
    CacheConfig("prop:search:*", 30 * 60, "Search results - 30 minutes"),
    CacheConfig("prop:*:full_data", 1 * HOUR, "Property details - 1 hour"),
    CacheConfig("search:*", 30 * 60, "Query result sets - 30 minutes"),
    # User preferences
    CacheConfig("up:user:*:preferences", 7 * DAY, "User preferences - 7 days"),
    CacheConfig("up:user:*:recommendations", 1 * HOUR, "Recommendations - 1 hour"),
    # Location hierarchy
    CacheConfig("static:*", 24 * HOUR, "Location static content - 24 hours"),
    CacheConfig("dynamic:*", 5 * 60, "Location dynamic statistics - 5 minutes"),
    CacheConfig("loc:*:suburbs", 7 * DAY, "Suburb data - 1 week"),
    CacheConfig("loc:*:cities", 7 * DAY, "City data - 1 week"),
    # Short-lived data
    CacheConfig("session:*", 30 * 60, "User sessions - 30 minutes"),
    CacheConfig("temp:*", 15 * 60, "Temporary data - 15 minutes"),
)


class TTLResolver:
    """
    Maps a cache key to its TTL; the first matching rule wins.

    The rule list is frozen at construction, so ``resolve`` is a pure
    function of the key.
    """

    def __init__(
        self,
        configs: Optional[Iterable[CacheConfig]] = None,
        default_ttl: int = DEFAULT_TTL_SECONDS,
    ):
        self.configs: Tuple[CacheConfig, ...] = tuple(
            DEFAULT_CACHE_CONFIGS if configs is None else configs
        )
        self.default_ttl = default_ttl

    def match(self, key: str) -> Optional[CacheConfig]:
        for config in self.configs:
            if matches_key_pattern(key, config.key_pattern):
                return config
        return None

    def resolve(self, key: str) -> int:
        config = self.match(key)
        return config.ttl_seconds if config else self.default_ttl
