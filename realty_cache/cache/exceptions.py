"""
Cache layer exceptions.

Connection, timeout and serialization errors are raised inside the store
client and absorbed at the CacheStore boundary, where they are recorded in
metrics and converted into cache-miss behaviour. NotFoundError is a domain
answer and is always propagated to callers.
"""

from typing import Optional, Any, Dict


class CacheError(Exception):
    """Base exception for cache-related errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class CacheConnectionError(CacheError):
    """Raised when the cache service cannot be reached."""

    def __init__(
        self,
        message: str = "Cache connection failed",
        host: Optional[str] = None,
        port: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if host:
            details["host"] = host
        if port:
            details["port"] = port
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="CACHE_CONNECTION_ERROR", details=details
        )
        if original_error:
            self.__cause__ = original_error


class CacheTimeoutError(CacheError):
    """Raised when a cache operation exceeds its time bound."""

    def __init__(
        self, operation: str, timeout_seconds: float, key: Optional[str] = None
    ):
        details = {"operation": operation, "timeout_seconds": timeout_seconds}
        if key:
            details["key"] = key

        super().__init__(
            message=f"Cache operation '{operation}' timed out after {timeout_seconds}s",
            error_code="CACHE_TIMEOUT_ERROR",
            details=details,
        )


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded for, or decoded from, the cache."""

    def __init__(
        self,
        key: str,
        direction: str,
        original_error: Optional[Exception] = None,
    ):
        details = {"key": key, "direction": direction}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message=f"Could not {direction} cache value for key '{key}'",
            error_code="CACHE_SERIALIZATION_ERROR",
            details=details,
        )
        if original_error:
            self.__cause__ = original_error


class ConfigurationError(CacheError):
    """Raised when cache or application configuration is invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else {}
        super().__init__(
            message=message, error_code="CONFIGURATION_ERROR", details=details
        )


class NotFoundError(Exception):
    """
    Domain-level absence of a record.

    Distinct from a cache miss: a miss means "ask the source", while
    NotFoundError means the source itself has nothing.
    """

    def __init__(self, message: str, identifier: Optional[Any] = None):
        self.message = message
        self.identifier = identifier
        super().__init__(message)
