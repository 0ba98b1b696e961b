"""Utility functions for the NATS Tower Operator."""

from .cache import ObjectStore, make_cache_key, object_key
from .errors import sanitize_error_message, sanitize_exception
from .events import EventRecorder
from .rate_limit import (
    BucketRateLimiter,
    ItemExponentialFailureRateLimiter,
    MaxOfRateLimiter,
    default_controller_rate_limiter,
)
from .secrets import (
    create_credentials_secret,
    has_credentials,
    read_secret,
    update_credentials_secret,
)

__all__ = [
    "EventRecorder",
    "ObjectStore",
    "make_cache_key",
    "object_key",
    "sanitize_error_message",
    "sanitize_exception",
    "BucketRateLimiter",
    "ItemExponentialFailureRateLimiter",
    "MaxOfRateLimiter",
    "default_controller_rate_limiter",
    "create_credentials_secret",
    "has_credentials",
    "read_secret",
    "update_credentials_secret",
]
