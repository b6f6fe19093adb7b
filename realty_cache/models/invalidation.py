"""
Cache invalidation rule and event models.

Rules are static configuration mapping a domain event to the cache keys it
makes stale; events record what a single invalidation actually removed.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class InvalidationStrategy(str, Enum):
    """How an invalidation rule's pattern is applied."""
    EXACT = "exact"
    PATTERN = "pattern"
    TAG = "tag"


class InvalidationType(str, Enum):
    """Where an invalidation originated."""
    RULE = "rule"
    CASCADE = "cascade"
    MANUAL = "manual"


@dataclass(frozen=True)
class InvalidationRule:
    """Maps a domain event (``trigger``) to the keys it invalidates."""

    trigger: str
    pattern: str
    strategy: InvalidationStrategy


class InvalidationEventModel(BaseModel):
    """
    Record of one invalidation.

    ``deleted_keys`` lists exact keys removed, ``patterns`` the wildcard
    patterns that were cleared, and ``cascade_keys`` the location keys
    removed while walking up the hierarchy.
    """
    model_config = ConfigDict(from_attributes=True)

    trigger: str = Field(..., description="Domain event that caused the invalidation")
    invalidation_type: InvalidationType = Field(default=InvalidationType.RULE)
    deleted_keys: List[str] = Field(default_factory=list)
    patterns: List[str] = Field(default_factory=list)
    cascade_keys: List[str] = Field(default_factory=list)
    keys_removed: int = Field(default=0, ge=0, description="Keys the store reported deleted")
    rules_applied: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=datetime.now)
    context: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.rules_applied > 0
