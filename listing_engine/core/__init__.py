"""Core infrastructure components."""
from .cache import CacheInterface, InMemoryCache
from .circuit_breaker import CircuitBreaker, CircuitState
from .exceptions import (
    AppException,
    CacheError,
    CircuitBreakerOpenError,
    NotFoundError,
    StoreError,
    ValidationError,
)

__all__ = [
    "AppException",
    "CacheError",
    "CacheInterface",
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    "InMemoryCache",
    "NotFoundError",
    "StoreError",
    "ValidationError",
]
