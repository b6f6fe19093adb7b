"""
Location data access for the cache orchestrator.

``LocationRepository`` is the narrow interface the cache layer depends on;
``SqlLocationRepository`` implements it over the SQLAlchemy listing store.
"""

import asyncio
import contextlib
import statistics
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, TypeVar, Union

from sqlalchemy import case, func

from ..cache.exceptions import NotFoundError
from ..database.config import DatabaseConfig
from ..database.models import Location, Property
from ..models.location import (
    DynamicStats,
    LocationNode,
    LocationType,
    MapViewport,
    PriceAnalytics,
    StaticContent,
    TrendingChild,
)
from .seo import generate_seo_content

T = TypeVar("T")

PUBLISHED = "published"
TRENDING_LIMIT = 5
GROWTH_WINDOW_DAYS = 30

_SCOPE_COLUMNS = {
    LocationType.PROVINCE: Property.province_id,
    LocationType.CITY: Property.city_id,
    LocationType.SUBURB: Property.suburb_id,
}


class LocationNotFoundError(NotFoundError):
    """No location exists for the requested slug path or id."""

    def __init__(self, identifier: Union[int, str]):
        super().__init__(f"Location not found: {identifier}", identifier=identifier)


class LocationRepository(Protocol):
    """Read access to the location hierarchy and its listing aggregates."""

    async def get_location(self, location_id: int) -> Optional[LocationNode]:
        ...

    async def resolve_path(self, slugs: Sequence[str]) -> Optional[LocationNode]:
        ...

    async def get_static_content(self, node: LocationNode) -> Optional[StaticContent]:
        ...

    async def get_dynamic_stats(self, node: LocationNode) -> Optional[DynamicStats]:
        ...

    async def get_price_analytics(
        self, location_type: LocationType, location_id: int
    ) -> Optional[PriceAnalytics]:
        ...


def _to_node(row: Location) -> LocationNode:
    return LocationNode(
        id=row.location_id,
        type=LocationType(row.type),
        slug=row.slug,
        name=row.name,
        parent_id=row.parent_id,
    )


class SqlLocationRepository:
    """
    LocationRepository backed by the SQLAlchemy ``location`` and ``property`` tables.

    Statistics only count published listings. Aggregation is scoped by the
    denormalised province/city/suburb columns on ``property``, so a single
    query covers every descendant of the node.

    Sessions are synchronous, so each query runs in a worker thread and the
    event loop stays free; a caller's ``asyncio.wait_for`` bounds the wait.
    """

    def __init__(self, db_config: DatabaseConfig):
        self.db_config = db_config
        # StaticPool shares one SQLite connection between threads
        self._lock = threading.Lock() if db_config.db_type == "sqlite" else None

    async def _run(self, query: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._locked, query, *args)

    def _locked(self, query: Callable[..., T], *args: Any) -> T:
        with self._lock if self._lock is not None else contextlib.nullcontext():
            return query(*args)

    async def get_location(self, location_id: int) -> Optional[LocationNode]:
        return await self._run(self._query_location, location_id)

    def _query_location(self, location_id: int) -> Optional[LocationNode]:
        with self.db_config.get_session_context() as session:
            row = session.get(Location, location_id)
            return _to_node(row) if row is not None else None

    async def resolve_path(self, slugs: Sequence[str]) -> Optional[LocationNode]:
        """Walk the hierarchy from the province down, one slug per level."""
        return await self._run(self._query_path, list(slugs))

    def _query_path(self, slugs: List[str]) -> Optional[LocationNode]:
        parent_id: Optional[int] = None
        row: Optional[Location] = None

        with self.db_config.get_session_context() as session:
            for depth, slug in enumerate(slugs, start=1):
                row = session.query(Location).filter(
                    Location.slug == slug,
                    Location.type == LocationType.for_depth(depth).value,
                    Location.parent_id.is_(None) if parent_id is None else Location.parent_id == parent_id,
                ).first()
                if row is None:
                    return None
                parent_id = row.location_id

            return _to_node(row) if row is not None else None

    async def get_static_content(self, node: LocationNode) -> Optional[StaticContent]:
        return await self._run(self._query_static_content, node)

    def _query_static_content(self, node: LocationNode) -> Optional[StaticContent]:
        with self.db_config.get_session_context() as session:
            row = session.get(Location, node.id)
            if row is None:
                return None

            province, city = self._ancestor_names(session, row)
            defaults = generate_seo_content(
                row.name, row.type, province=province, city=city, hero_image=row.hero_image
            )

            viewport = None
            corners = (row.viewport_ne_lat, row.viewport_ne_lng, row.viewport_sw_lat, row.viewport_sw_lng)
            if all(value is not None for value in corners):
                viewport = MapViewport(
                    ne_lat=row.viewport_ne_lat,
                    ne_lng=row.viewport_ne_lng,
                    sw_lat=row.viewport_sw_lat,
                    sw_lng=row.viewport_sw_lng,
                )

            return StaticContent(
                title=row.seo_title or defaults.title,
                description=row.seo_description or defaults.description,
                hero_image=row.hero_image,
                latitude=row.latitude,
                longitude=row.longitude,
                viewport=viewport,
            )

    @staticmethod
    def _ancestor_names(session, row: Location) -> tuple:
        names: Dict[str, str] = {}
        parent_id = row.parent_id
        seen = {row.location_id}
        while parent_id is not None and parent_id not in seen:
            seen.add(parent_id)
            parent = session.get(Location, parent_id)
            if parent is None:
                break
            names[parent.type] = parent.name
            parent_id = parent.parent_id
        return names.get(LocationType.PROVINCE.value), names.get(LocationType.CITY.value)

    async def get_dynamic_stats(self, node: LocationNode) -> Optional[DynamicStats]:
        return await self._run(self._query_dynamic_stats, node)

    def _query_dynamic_stats(self, node: LocationNode) -> Optional[DynamicStats]:
        scope = _SCOPE_COLUMNS[node.type]

        with self.db_config.get_session_context() as session:
            if session.get(Location, node.id) is None:
                return None

            is_sale = Property.listing_type == "sale"
            is_rent = Property.listing_type == "rent"
            result = session.query(
                func.count(Property.property_id).label("total"),
                func.sum(case((is_sale, 1), else_=0)).label("sale_count"),
                func.sum(case((is_rent, 1), else_=0)).label("rental_count"),
                func.avg(Property.price).label("avg_price"),
                func.avg(case((is_sale, Property.price), else_=None)).label("avg_sale_price"),
                func.avg(case((is_rent, Property.price), else_=None)).label("avg_rent_price"),
                func.min(Property.price).label("min_price"),
                func.max(Property.price).label("max_price"),
            ).filter(scope == node.id, Property.status == PUBLISHED).one()

            return DynamicStats(
                location_id=node.id,
                name=node.name,
                total_listings=result.total or 0,
                sale_count=int(result.sale_count or 0),
                rental_count=int(result.rental_count or 0),
                avg_price=round(float(result.avg_price or 0)),
                avg_sale_price=round(float(result.avg_sale_price or 0)),
                avg_rent_price=round(float(result.avg_rent_price or 0)),
                min_price=float(result.min_price or 0),
                max_price=float(result.max_price or 0),
                trending_children=self._trending_children(session, node),
            )

    @staticmethod
    def _trending_children(session, node: LocationNode) -> List[TrendingChild]:
        """Direct children ranked by published listing count; suburbs have none."""
        if node.type is LocationType.SUBURB:
            return []

        child_type = LocationType.for_depth(list(LocationType).index(node.type) + 2)
        child_scope = _SCOPE_COLUMNS[child_type]
        listing_count = func.count(Property.property_id)

        rows = session.query(Location.name, Location.slug, listing_count.label("listing_count"))\
            .outerjoin(Property, (child_scope == Location.location_id) & (Property.status == PUBLISHED))\
            .filter(Location.parent_id == node.id)\
            .group_by(Location.location_id, Location.name, Location.slug)\
            .order_by(listing_count.desc(), Location.name)\
            .limit(TRENDING_LIMIT)\
            .all()

        return [
            TrendingChild(name=row.name, slug=row.slug, listing_count=row.listing_count)
            for row in rows
        ]

    async def get_price_analytics(
        self, location_type: LocationType, location_id: int
    ) -> Optional[PriceAnalytics]:
        return await self._run(self._query_price_analytics, LocationType(location_type), location_id)

    def _query_price_analytics(
        self, location_type: LocationType, location_id: int
    ) -> Optional[PriceAnalytics]:
        scope = _SCOPE_COLUMNS[location_type]

        with self.db_config.get_session_context() as session:
            if session.get(Location, location_id) is None:
                return None

            listings = session.query(Property.price, Property.created_at)\
                .filter(scope == location_id, Property.status == PUBLISHED)\
                .all()

        prices = [float(row.price) for row in listings]
        cutoff = datetime.now() - timedelta(days=GROWTH_WINDOW_DAYS)
        recent = [float(row.price) for row in listings if row.created_at and row.created_at >= cutoff]
        older = [float(row.price) for row in listings if row.created_at and row.created_at < cutoff]

        growth = 0.0
        if recent and older:
            baseline = statistics.mean(older)
            growth = round((statistics.mean(recent) - baseline) / baseline * 100, 2) if baseline else 0.0

        return PriceAnalytics(
            location_type=location_type,
            location_id=location_id,
            current_avg_price=round(statistics.mean(prices)) if prices else 0,
            current_median_price=statistics.median(prices) if prices else 0,
            price_growth_percent=growth,
            total_properties=len(prices),
            last_updated=datetime.now().isoformat(),
        )
