"""
Test suite for two-tier location caching and cascading invalidation.

Runs the orchestrator against the in-memory cache and a seeded SQLite
listing store.
"""

import asyncio
import threading
import time

import pytest
from sqlalchemy import event

from realty_cache.database import Property
from realty_cache.models import LocationNode, LocationType
from realty_cache.services import (
    Invalidator,
    LocationCacheOrchestrator,
    LocationNotFoundError,
    parse_slug_path,
)


@pytest.fixture
def orchestrator(store, repository):
    return LocationCacheOrchestrator(store, repository)


def _mark_sold(db_config, property_id):
    with db_config.get_session_context() as session:
        session.get(Property, property_id).status = "sold"


class TestParseSlugPath:

    def test_levels(self):
        assert parse_slug_path("gauteng") == (LocationType.PROVINCE, ["gauteng"])
        assert parse_slug_path("gauteng/sandton")[0] is LocationType.CITY
        assert parse_slug_path("/gauteng/sandton/sandown/")[0] is LocationType.SUBURB
        assert parse_slug_path(["gauteng", "sandton"])[1] == ["gauteng", "sandton"]

    @pytest.mark.parametrize("path", ["", "a/b/c/d", "gauteng//sandown"])
    def test_malformed_paths(self, path):
        with pytest.raises(ValueError):
            parse_slug_path(path)


class TestGetLocationPage:

    @pytest.mark.asyncio
    async def test_city_page_populates_both_tiers(self, orchestrator, fake_valkey):
        page = await orchestrator.get_location_page("gauteng/sandton")

        assert page.total_listings == 42
        assert page.sale_count == 30
        assert page.rental_count == 12
        assert page.title == "Sandton Property Guide"
        assert page.description == "Homes and apartments in Sandton."
        assert page.hero_image == "sandton.jpg"
        assert page.viewport is not None
        assert page.location_type is LocationType.CITY
        assert page.slug_path == "gauteng/sandton"

        assert "static:city:gauteng/sandton" in fake_valkey.data
        assert "dynamic:city:gauteng/sandton" in fake_valkey.data

    @pytest.mark.asyncio
    async def test_tier_ttls(self, orchestrator, store):
        await orchestrator.get_location_page("gauteng/sandton")

        assert await store.ttl("static:city:gauteng/sandton") == 24 * 3600
        assert await store.ttl("dynamic:city:gauteng/sandton") == 5 * 60

    @pytest.mark.asyncio
    async def test_province_page_aggregates_children(self, orchestrator):
        page = await orchestrator.get_location_page("gauteng")

        assert page.total_listings == 45
        assert page.title == "Properties for Sale & Rent in Gauteng | Property Listify"
        assert [child.slug for child in page.trending_children] == ["sandton", "pretoria"]
        assert page.trending_children[0].listing_count == 42

    @pytest.mark.asyncio
    async def test_suburb_page_uses_generated_content(self, orchestrator):
        page = await orchestrator.get_location_page("gauteng/sandton/sandown")

        assert page.title == "Sandown Properties for Sale & Rent | Sandton, Gauteng"
        assert page.trending_children == []
        assert page.total_listings == 42

    @pytest.mark.asyncio
    async def test_sold_listings_are_excluded(self, orchestrator):
        page = await orchestrator.get_location_page("gauteng/pretoria/hatfield")
        assert page.total_listings == 3
        assert page.max_price == 1_000_000

    @pytest.mark.asyncio
    async def test_second_read_is_served_from_cache(self, orchestrator, store, db_config, seeded_locations):
        await orchestrator.get_location_page("gauteng/sandton")
        _mark_sold(db_config, seeded_locations["sandown_listing"])

        page = await orchestrator.get_location_page("gauteng/sandton")

        assert page.total_listings == 42
        assert store.metrics.hits == 2

    @pytest.mark.asyncio
    async def test_unknown_location(self, orchestrator, fake_valkey):
        with pytest.raises(LocationNotFoundError):
            await orchestrator.get_location_page("gauteng/atlantis")

        assert "dynamic:city:gauteng/atlantis" not in fake_valkey.data
        assert "static:city:gauteng/atlantis" not in fake_valkey.data

    @pytest.mark.asyncio
    async def test_malformed_path_raises(self, orchestrator):
        with pytest.raises(ValueError):
            await orchestrator.get_location_page("a/b/c/d")

    @pytest.mark.asyncio
    async def test_page_served_during_cache_outage(self, orchestrator, store, fake_valkey):
        fake_valkey.down = True

        page = await orchestrator.get_location_page("gauteng/sandton")

        assert page.total_listings == 42
        assert page.title == "Sandton Property Guide"
        assert store.fallback_mode is True


class TestCascadingInvalidation:

    @pytest.mark.asyncio
    async def test_cascade_clears_dynamic_and_keeps_static(self, orchestrator, store, seeded_locations):
        for path in ("gauteng", "gauteng/sandton", "gauteng/sandton/sandown"):
            await orchestrator.get_location_page(path)

        keys = await orchestrator.invalidate_location(seeded_locations["sandown"])

        assert keys == [
            "dynamic:suburb:gauteng/sandton/sandown",
            "dynamic:city:gauteng/sandton",
            "dynamic:province:gauteng",
        ]
        for key in keys:
            assert await store.exists(key) is False
        for key in (
            "static:suburb:gauteng/sandton/sandown",
            "static:city:gauteng/sandton",
            "static:province:gauteng",
        ):
            assert await store.exists(key) is True

    @pytest.mark.asyncio
    async def test_cascade_leaves_sibling_branches(self, orchestrator, store, seeded_locations):
        await orchestrator.get_location_page("gauteng/pretoria")

        await orchestrator.invalidate_location(seeded_locations["sandown"])

        assert await store.exists("dynamic:city:gauteng/pretoria") is True

    @pytest.mark.asyncio
    async def test_province_cascade_stops_at_root(self, orchestrator, seeded_locations):
        keys = await orchestrator.invalidate_location(seeded_locations["gauteng"])
        assert keys == ["dynamic:province:gauteng"]

    @pytest.mark.asyncio
    async def test_unknown_location_id(self, orchestrator):
        assert await orchestrator.invalidate_location(999_999) == []

    @pytest.mark.asyncio
    async def test_invalidate_static(self, orchestrator, store, seeded_locations):
        await orchestrator.get_location_page("gauteng/sandton")

        keys = await orchestrator.invalidate_location_static(seeded_locations["sandton"])

        assert keys == ["static:city:gauteng/sandton"]
        assert await store.exists("static:city:gauteng/sandton") is False
        assert await store.exists("dynamic:city:gauteng/sandton") is True

    @pytest.mark.asyncio
    async def test_property_sold_scenario(self, orchestrator, store, db_config, seeded_locations):
        sandton_before = await orchestrator.get_location_page("gauteng/sandton")
        gauteng_before = await orchestrator.get_location_page("gauteng")

        _mark_sold(db_config, seeded_locations["sandown_listing"])
        invalidator = Invalidator(store, location_cascade=orchestrator.invalidate_location)
        event = await invalidator.invalidate(
            "property_sold",
            {"location_id": seeded_locations["sandown"], "property_id": seeded_locations["sandown_listing"]},
        )

        sandton_after = await orchestrator.get_location_page("gauteng/sandton")
        gauteng_after = await orchestrator.get_location_page("gauteng")

        assert "dynamic:city:gauteng/sandton" in event.cascade_keys
        assert sandton_after.total_listings == sandton_before.total_listings - 1 == 41
        assert gauteng_after.total_listings == gauteng_before.total_listings - 1 == 44
        assert sandton_after.title == sandton_before.title
        assert sandton_after.hero_image == sandton_before.hero_image == "sandton.jpg"

    @pytest.mark.asyncio
    async def test_cycle_in_hierarchy_terminates(self, store):
        class CyclicRepository:
            nodes = {
                1: LocationNode(id=1, type=LocationType.SUBURB, slug="a", name="A", parent_id=2),
                2: LocationNode(id=2, type=LocationType.CITY, slug="b", name="B", parent_id=1),
            }

            async def get_location(self, location_id):
                return self.nodes.get(location_id)

        orchestrator = LocationCacheOrchestrator(store, CyclicRepository())

        keys = await orchestrator.invalidate_location(1)

        assert len(keys) == 2


class TestSlowListingStore:

    @pytest.mark.asyncio
    async def test_slow_query_times_out_without_blocking_the_loop(self, store, repository, db_config):
        release = threading.Event()

        def stall(conn, cursor, statement, parameters, context, executemany):
            release.wait(2)

        event.listen(db_config.engine, "before_cursor_execute", stall)
        orchestrator = LocationCacheOrchestrator(store, repository, compute_timeout_ms=50)
        ticks = []

        async def ticker():
            while True:
                ticks.append(time.perf_counter())
                await asyncio.sleep(0.005)

        ticking = asyncio.ensure_future(ticker())
        start = time.perf_counter()
        try:
            with pytest.raises(asyncio.TimeoutError):
                await orchestrator.get_location_page("gauteng/sandton")
            elapsed = time.perf_counter() - start
        finally:
            ticking.cancel()
            release.set()
            event.remove(db_config.engine, "before_cursor_execute", stall)

        assert elapsed < 1
        assert len(ticks) >= 3
        assert store.metrics.timeout_errors >= 1
        assert store.fallback_mode is False
