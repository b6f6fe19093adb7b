"""
Two-tier caching for location pages.

Each location is cached as two independently aged projections:

- ``static:{type}:{slug_path}``: descriptive content, 24 hour TTL
- ``dynamic:{type}:{slug_path}``: listing statistics, 5 minute TTL

Reads fetch both tiers concurrently and merge them. Listing changes cascade
invalidation of the dynamic tier up the province -> city -> suburb chain;
the static tier describes only the node itself and is never cascaded.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..cache.store import CacheStore, DEFAULT_COMPUTE_TIMEOUT_MS
from ..cache.utils import LocationTier, location_key
from ..models.location import DynamicStats, LocationNode, LocationPage, LocationType, StaticContent
from .location_repository import LocationNotFoundError, LocationRepository

logger = logging.getLogger(__name__)

STATIC_CONTENT_TTL = 24 * 3600
DYNAMIC_STATS_TTL = 5 * 60


def parse_slug_path(slug_path: Union[str, Sequence[str]]) -> Tuple[LocationType, List[str]]:
    """
    Split a slug path into its segments and hierarchy level.

    Raises:
        ValueError: If the path does not have 1 to 3 non-empty segments
    """
    if isinstance(slug_path, str):
        slugs = slug_path.strip("/").split("/")
    else:
        slugs = list(slug_path)

    if any(not segment for segment in slugs):
        raise ValueError(f"Invalid slug path: {slug_path!r}")

    return LocationType.for_depth(len(slugs)), slugs


class LocationCacheOrchestrator:
    """Assembles location pages from the static and dynamic cache tiers."""

    def __init__(
        self,
        store: CacheStore,
        repository: LocationRepository,
        static_ttl: int = STATIC_CONTENT_TTL,
        dynamic_ttl: int = DYNAMIC_STATS_TTL,
        compute_timeout_ms: int = DEFAULT_COMPUTE_TIMEOUT_MS,
    ):
        self.store = store
        self.repository = repository
        self.static_ttl = static_ttl
        self.dynamic_ttl = dynamic_ttl
        self.compute_timeout_ms = compute_timeout_ms

    async def get_location_page(self, slug_path: Union[str, Sequence[str]]) -> LocationPage:
        """
        Merged page for a location, e.g. ``"gauteng/sandton"``.

        Raises:
            ValueError: If the slug path is malformed
            LocationNotFoundError: If no statistics exist for the location
        """
        location_type, slugs = parse_slug_path(slug_path)
        path = "/".join(slugs)

        static_raw, dynamic_raw = await asyncio.gather(
            self.store.get_or_compute(
                location_key(LocationTier.STATIC, location_type.value, path),
                lambda: self._load_static(slugs),
                timeout_ms=self.compute_timeout_ms,
                ttl=self.static_ttl,
            ),
            self.store.get_or_compute(
                location_key(LocationTier.DYNAMIC, location_type.value, path),
                lambda: self._load_dynamic(slugs),
                timeout_ms=self.compute_timeout_ms,
                ttl=self.dynamic_ttl,
            ),
        )

        if dynamic_raw is None:
            raise LocationNotFoundError(path)

        static = StaticContent.model_validate(static_raw) if static_raw is not None else None
        return LocationPage.merge(
            location_type, path, DynamicStats.model_validate(dynamic_raw), static
        )

    async def _load_static(self, slugs: List[str]) -> Optional[Dict[str, Any]]:
        node = await self.repository.resolve_path(slugs)
        if node is None:
            return None
        content = await self.repository.get_static_content(node)
        return content.model_dump(mode="json") if content is not None else None

    async def _load_dynamic(self, slugs: List[str]) -> Optional[Dict[str, Any]]:
        node = await self.repository.resolve_path(slugs)
        if node is None:
            return None
        stats = await self.repository.get_dynamic_stats(node)
        return stats.model_dump(mode="json") if stats is not None else None

    async def _ancestry(self, location_id: int) -> List[LocationNode]:
        """The node followed by its ancestors up to the root."""
        chain: List[LocationNode] = []
        seen = set()
        current: Optional[int] = location_id

        while current is not None:
            if current in seen:
                logger.warning(f"Location hierarchy cycle at {current}, stopping cascade")
                break
            seen.add(current)

            node = await self.repository.get_location(current)
            if node is None:
                break
            chain.append(node)
            current = node.parent_id

        return chain

    @staticmethod
    def _slug_path(chain: List[LocationNode]) -> str:
        """Slug path of ``chain[0]``, given the chain bottom-up."""
        return "/".join(node.slug for node in reversed(chain))

    async def invalidate_location(self, location_id: int) -> List[str]:
        """
        Drop the dynamic tier of a location and all of its ancestors.

        Returns:
            The dynamic keys that were deleted, node first
        """
        chain = await self._ancestry(location_id)
        if not chain:
            logger.warning(f"Cannot invalidate unknown location {location_id}")
            return []

        keys = [
            location_key(LocationTier.DYNAMIC, node.type.value, self._slug_path(chain[index:]))
            for index, node in enumerate(chain)
        ]
        await self.store.delete(keys)
        logger.info(f"Invalidated dynamic location cache for {len(keys)} levels: {keys}")
        return keys

    async def invalidate_location_static(self, location_id: int) -> List[str]:
        """Drop the static tier of a single location after its content was edited."""
        chain = await self._ancestry(location_id)
        if not chain:
            logger.warning(f"Cannot invalidate unknown location {location_id}")
            return []

        key = location_key(LocationTier.STATIC, chain[0].type.value, self._slug_path(chain))
        await self.store.delete(key)
        logger.info(f"Invalidated static location cache: {key}")
        return [key]
