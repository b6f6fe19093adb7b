"""
Event-driven cache invalidation.

Maps domain events raised by the listing platform (price updates, new
listings, sales) to the cache keys they make stale.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..cache.store import CacheStore
from ..cache.utils import CacheKeyPrefix, property_key, user_pattern
from ..models.invalidation import (
    InvalidationEventModel,
    InvalidationRule,
    InvalidationStrategy,
    InvalidationType,
)

logger = logging.getLogger(__name__)

LocationCascade = Callable[[int], Awaitable[List[str]]]

_PA = CacheKeyPrefix.PRICE_ANALYTICS.value
_PROP = CacheKeyPrefix.PROPERTY_DATA.value

DEFAULT_INVALIDATION_RULES: Tuple[InvalidationRule, ...] = (
    # Price analytics
    InvalidationRule("property_price_update", f"{_PA}:*:avg_price", InvalidationStrategy.PATTERN),
    InvalidationRule("property_created", f"{_PA}:*:market_stats", InvalidationStrategy.PATTERN),
    InvalidationRule("property_sold", f"{_PA}:*:active_listings", InvalidationStrategy.PATTERN),
    # Property data
    InvalidationRule("property_updated", f"{_PROP}:*:full_data", InvalidationStrategy.PATTERN),
    InvalidationRule("property_created", f"{_PROP}:featured_listings", InvalidationStrategy.EXACT),
    # Search results
    InvalidationRule("property_updated", f"{_PROP}:search:*", InvalidationStrategy.PATTERN),
    # Listing changes feed location statistics; context carries location_id / property_id
    InvalidationRule("property_price_update", "*", InvalidationStrategy.TAG),
    InvalidationRule("property_created", "*", InvalidationStrategy.TAG),
    InvalidationRule("property_sold", "*", InvalidationStrategy.TAG),
    InvalidationRule("property_updated", "*", InvalidationStrategy.TAG),
    # Per-user data
    InvalidationRule("user_preferences_updated", "*", InvalidationStrategy.TAG),
)


class Invalidator:
    """
    Applies every rule registered for a trigger.

    Tag rules derive their keys from the event context:
    ``user_id`` clears that user's preference keys, ``property_id`` the
    listing's detail entry, and ``location_id`` cascades up the location
    hierarchy through ``location_cascade`` when one is provided.
    """

    def __init__(
        self,
        store: CacheStore,
        rules: Iterable[InvalidationRule] = DEFAULT_INVALIDATION_RULES,
        location_cascade: Optional[LocationCascade] = None,
    ):
        self.store = store
        self.rules: Tuple[InvalidationRule, ...] = tuple(rules)
        self.location_cascade = location_cascade

    def rules_for(self, trigger: str) -> List[InvalidationRule]:
        return [rule for rule in self.rules if rule.trigger == trigger]

    async def invalidate(
        self, trigger: str, context: Optional[Mapping[str, Any]] = None
    ) -> InvalidationEventModel:
        """
        Invalidate the keys mapped to ``trigger``.

        Unknown triggers are not errors; they return an event with no
        rules applied.

        Args:
            trigger: Domain event name, e.g. ``property_sold``
            context: Event fields used by tag rules

        Returns:
            Record of what was removed
        """
        context = dict(context or {})
        rules = self.rules_for(trigger)
        event = InvalidationEventModel(trigger=trigger, context=context, rules_applied=len(rules))

        if not rules:
            logger.debug(f"No invalidation rules for trigger: {trigger}")
            return event

        for rule in rules:
            if rule.strategy is InvalidationStrategy.EXACT:
                event.keys_removed += await self.store.delete(rule.pattern)
                event.deleted_keys.append(rule.pattern)
            elif rule.strategy is InvalidationStrategy.PATTERN:
                event.keys_removed += await self.store.delete_by_pattern(rule.pattern)
                event.patterns.append(rule.pattern)
            else:
                await self._invalidate_by_tag(context, event)

        if self.store.last_error is not None and self.store.fallback_mode:
            event.error = self.store.last_error.message

        logger.info(
            f"Cache invalidated for trigger: {trigger} "
            f"(rules={event.rules_applied}, removed={event.keys_removed})"
        )
        return event

    async def _invalidate_by_tag(self, context: Dict[str, Any], event: InvalidationEventModel) -> None:
        user_id = context.get("user_id")
        if user_id is not None:
            pattern = user_pattern(user_id)
            if pattern not in event.patterns:
                event.keys_removed += await self.store.delete_by_pattern(pattern)
                event.patterns.append(pattern)

        property_id = context.get("property_id")
        if property_id is not None:
            key = property_key(property_id)
            if key not in event.deleted_keys:
                event.keys_removed += await self.store.delete(key)
                event.deleted_keys.append(key)

        location_id = context.get("location_id")
        if location_id is not None and self.location_cascade is not None and not event.cascade_keys:
            event.cascade_keys.extend(await self.location_cascade(int(location_id)))
            event.invalidation_type = InvalidationType.CASCADE
