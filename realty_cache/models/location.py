"""
Location hierarchy models.

A location page is assembled from two independently cached projections of
a LocationNode: slow-changing descriptive content (static tier) and
fast-changing market statistics (dynamic tier).
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LocationType(str, Enum):
    """Levels of the location hierarchy, top-down."""
    PROVINCE = "province"
    CITY = "city"
    SUBURB = "suburb"

    @classmethod
    def for_depth(cls, depth: int) -> "LocationType":
        """Hierarchy level for a slug path with ``depth`` segments."""
        levels = list(cls)
        if not 1 <= depth <= len(levels):
            raise ValueError(f"Slug path must have 1-{len(levels)} segments, got {depth}")
        return levels[depth - 1]


class LocationNode(BaseModel):
    """A node of the province -> city -> suburb hierarchy."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int = Field(..., description="Location identifier")
    type: LocationType = Field(..., description="Hierarchy level")
    slug: str = Field(..., min_length=1, description="URL slug, unique among siblings")
    name: str = Field(..., description="Display name")
    parent_id: Optional[int] = Field(None, description="Parent location, None for provinces")


class MapViewport(BaseModel):
    """Bounding box used to frame a location on a map."""
    model_config = ConfigDict(from_attributes=True)

    ne_lat: float
    ne_lng: float
    sw_lat: float
    sw_lng: float


class StaticContent(BaseModel):
    """
    Descriptive content for a location.

    Changes only when an editor touches the location itself, so it is cached
    for hours and never invalidated by listing activity.
    """
    model_config = ConfigDict(from_attributes=True)

    title: str = Field(..., description="SEO page title")
    description: str = Field(..., description="SEO description / intro copy")
    hero_image: Optional[str] = Field(None, description="Hero image reference")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    viewport: Optional[MapViewport] = None


class TrendingChild(BaseModel):
    """A child location ranked by active listing count."""
    model_config = ConfigDict(from_attributes=True)

    name: str
    slug: str
    listing_count: int = Field(0, ge=0)


class DynamicStats(BaseModel):
    """
    Live market statistics for a location.

    These are aggregates over child listings, which is why a change at a
    suburb must invalidate the dynamic tier of every ancestor.
    """
    model_config = ConfigDict(from_attributes=True)

    location_id: int
    name: str
    total_listings: int = Field(0, ge=0)
    sale_count: int = Field(0, ge=0)
    rental_count: int = Field(0, ge=0)
    avg_price: float = Field(0, ge=0)
    avg_sale_price: float = Field(0, ge=0)
    avg_rent_price: float = Field(0, ge=0)
    min_price: float = Field(0, ge=0)
    max_price: float = Field(0, ge=0)
    trending_children: List[TrendingChild] = Field(default_factory=list)


class LocationPage(DynamicStats):
    """Merged response: dynamic statistics overlaid with static descriptive fields."""

    location_type: LocationType
    slug_path: str
    title: Optional[str] = None
    description: Optional[str] = None
    hero_image: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    viewport: Optional[MapViewport] = None

    @classmethod
    def merge(
        cls,
        location_type: LocationType,
        slug_path: str,
        dynamic: DynamicStats,
        static: Optional[StaticContent] = None,
    ) -> "LocationPage":
        """Build a page from the dynamic base, overlaying static descriptive fields."""
        fields: Dict[str, object] = dynamic.model_dump()
        if static is not None:
            # Only descriptive fields; statistics always come from the dynamic tier
            fields.update(static.model_dump())
        return cls(location_type=location_type, slug_path=slug_path, **fields)


class PriceAnalytics(BaseModel):
    """Price analytics summary for a location."""
    model_config = ConfigDict(from_attributes=True)

    location_type: LocationType
    location_id: int
    current_avg_price: float = Field(0, ge=0)
    current_median_price: float = Field(0, ge=0)
    price_growth_percent: float = 0.0
    total_properties: int = Field(0, ge=0)
    last_updated: str
