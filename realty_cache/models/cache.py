"""
Cache health models.

These mirror the shape consumed by operational tooling for the cache
health endpoint.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(str, Enum):
    """Overall cache health."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthReport(BaseModel):
    """Health summary computed from cache metrics."""
    model_config = ConfigDict(from_attributes=True)

    status: HealthStatus
    hit_rate: float = Field(..., ge=0.0, le=1.0, description="Cache hit ratio")
    key_count: int = Field(0, ge=0, description="Number of keys in cache")
    memory_usage_bytes: int = Field(0, ge=0, description="Server memory usage in bytes")
    fallback_mode: bool = Field(False, description="Whether the cache is being bypassed")


class RedisHealthModel(BaseModel):
    connected: bool
    response_time_ms: float = Field(0.0, ge=0.0)
    memory_usage_mb: int = Field(0, ge=0)


class CacheHealthMetricsModel(BaseModel):
    hit_rate: int = Field(0, ge=0, le=100, description="Hit rate as a rounded percentage")
    cache_size: int = Field(0, ge=0)
    fallback_mode: bool = False


class HealthPayloadModel(BaseModel):
    """Health endpoint payload."""

    status: HealthStatus
    redis: RedisHealthModel
    metrics: CacheHealthMetricsModel
