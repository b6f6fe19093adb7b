"""
Slug and SEO copy generation for location pages.

Used when a location row carries no editor-supplied title or description,
so the static tier always has something to render.
"""

import re
from typing import Optional, Union

from ..models.location import LocationType, StaticContent

SITE_NAME = "Property Listify"

_SEPARATORS = re.compile(r"[\s_]+")
_DISALLOWED = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-+")


def generate_slug(name: str) -> str:
    """
    Kebab-case slug for a location name.

    Example:
        generate_slug("  Cape Town_Central ")  # "cape-town-central"
    """
    slug = _SEPARATORS.sub("-", name.lower().strip())
    slug = _DISALLOWED.sub("", slug)
    slug = _HYPHEN_RUNS.sub("-", slug)
    return slug.strip("-")


def generate_seo_content(
    name: str,
    location_type: Union[LocationType, str],
    province: Optional[str] = None,
    city: Optional[str] = None,
    hero_image: Optional[str] = None,
) -> StaticContent:
    """Default title and description for a location at the given level."""
    try:
        level = LocationType(location_type)
    except ValueError:
        level = None

    if level is LocationType.PROVINCE:
        title = f"Properties for Sale & Rent in {name} | {SITE_NAME}"
        description = (
            f"Discover properties for sale and rent in {name}. Browse houses, apartments, "
            f"and new developments across {name}'s cities and suburbs. "
            f"Find your dream property today."
        )
    elif level is LocationType.CITY:
        province_name = province or name
        title = f"{name} Properties for Sale & Rent | {province_name}"
        description = (
            f"Explore properties in {name}, {province_name}. Find houses, apartments, "
            f"and new developments in {name}'s best suburbs. "
            f"View listings, prices, and market insights."
        )
    elif level is LocationType.SUBURB:
        city_name = city or "the area"
        province_context = f", {province}" if province else ""
        title = f"{name} Properties for Sale & Rent | {city_name}{province_context}"
        description = (
            f"Find properties in {name}, {city_name}. Browse houses, apartments, "
            f"and new developments in {name}. View current listings, average prices, "
            f"and neighborhood insights."
        )
    else:
        title = f"{name} Properties | {SITE_NAME}"
        description = f"Discover properties in {name}. Browse listings, view prices, and explore the area."

    return StaticContent(title=title, description=description, hero_image=hero_image)
