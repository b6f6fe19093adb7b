"""
Test suite for event-driven cache invalidation.
"""

import pytest
from unittest.mock import AsyncMock

from realty_cache.models import InvalidationRule, InvalidationStrategy, InvalidationType
from realty_cache.services import DEFAULT_INVALIDATION_RULES, Invalidator


async def _populate(store, *keys):
    for key in keys:
        await store.set(key, key)


class TestInvalidationRules:

    def test_every_listing_trigger_has_rules(self):
        triggers = {rule.trigger for rule in DEFAULT_INVALIDATION_RULES}
        assert {"property_price_update", "property_created", "property_sold", "property_updated"} <= triggers

    def test_rules_are_immutable(self):
        rule = DEFAULT_INVALIDATION_RULES[0]
        with pytest.raises(AttributeError):
            rule.pattern = "x"


class TestInvalidator:

    @pytest.mark.asyncio
    async def test_unknown_trigger_is_noop(self, store):
        await _populate(store, "pa:suburb:1:avg_price")

        event = await Invalidator(store).invalidate("listing_viewed", {"location_id": 1})

        assert event.matched is False
        assert event.keys_removed == 0
        assert await store.exists("pa:suburb:1:avg_price") is True

    @pytest.mark.asyncio
    async def test_price_update_pattern(self, store):
        await _populate(store, "pa:suburb:1:avg_price", "pa:city:2:avg_price", "pa:city:2:market_stats")

        event = await Invalidator(store).invalidate("property_price_update")

        assert event.keys_removed == 2
        assert "pa:*:avg_price" in event.patterns
        assert await store.exists("pa:city:2:market_stats") is True

    @pytest.mark.asyncio
    async def test_created_applies_every_rule_for_trigger(self, store):
        await _populate(store, "pa:city:2:market_stats", "prop:featured_listings", "prop:1:full_data")

        event = await Invalidator(store).invalidate("property_created")

        assert event.rules_applied == 3
        assert event.deleted_keys == ["prop:featured_listings"]
        assert await store.exists("pa:city:2:market_stats") is False
        assert await store.exists("prop:featured_listings") is False
        assert await store.exists("prop:1:full_data") is True

    @pytest.mark.asyncio
    async def test_updated_clears_details_and_searches(self, store):
        await _populate(store, "prop:1:full_data", "prop:search:beds=2", "prop:featured_listings")

        await Invalidator(store).invalidate("property_updated")

        assert await store.exists("prop:1:full_data") is False
        assert await store.exists("prop:search:beds=2") is False
        assert await store.exists("prop:featured_listings") is True

    @pytest.mark.asyncio
    async def test_sold_clears_active_listing_analytics(self, store):
        await _populate(store, "pa:suburb:1:active_listings", "pa:suburb:1:avg_price")

        await Invalidator(store).invalidate("property_sold")

        assert await store.exists("pa:suburb:1:active_listings") is False
        assert await store.exists("pa:suburb:1:avg_price") is True

    @pytest.mark.asyncio
    async def test_tag_user_preferences(self, store):
        await _populate(store, "up:user:7:preferences", "up:user:7:recommendations", "up:user:8:preferences")

        event = await Invalidator(store).invalidate("user_preferences_updated", {"user_id": 7})

        assert event.patterns == ["up:user:7:*"]
        assert event.keys_removed == 2
        assert await store.exists("up:user:8:preferences") is True

    @pytest.mark.asyncio
    async def test_tag_property_id(self, store):
        await _populate(store, "prop:5:full_data", "prop:6:full_data")

        await Invalidator(store).invalidate("property_sold", {"property_id": 5})

        assert await store.exists("prop:5:full_data") is False
        assert await store.exists("prop:6:full_data") is True

    @pytest.mark.asyncio
    async def test_tag_location_cascade(self, store):
        cascade = AsyncMock(return_value=["dynamic:suburb:a/b/c", "dynamic:city:a/b", "dynamic:province:a"])

        event = await Invalidator(store, location_cascade=cascade).invalidate(
            "property_sold", {"location_id": "12"}
        )

        cascade.assert_awaited_once_with(12)
        assert event.invalidation_type is InvalidationType.CASCADE
        assert event.cascade_keys == ["dynamic:suburb:a/b/c", "dynamic:city:a/b", "dynamic:province:a"]

    @pytest.mark.asyncio
    async def test_cascade_runs_once_per_event(self, store):
        cascade = AsyncMock(return_value=["dynamic:province:a"])
        rules = [
            InvalidationRule("moved", "*", InvalidationStrategy.TAG),
            InvalidationRule("moved", "*", InvalidationStrategy.TAG),
        ]

        await Invalidator(store, rules=rules, location_cascade=cascade).invalidate("moved", {"location_id": 1})

        cascade.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_location_id_without_cascade_is_ignored(self, store):
        event = await Invalidator(store).invalidate("property_sold", {"location_id": 1})
        assert event.cascade_keys == []
        assert event.invalidation_type is InvalidationType.RULE

    @pytest.mark.asyncio
    async def test_invalidation_during_outage_does_not_raise(self, store, fake_valkey):
        fake_valkey.down = True

        event = await Invalidator(store).invalidate("property_created")

        assert event.keys_removed == 0
        assert event.error is not None
