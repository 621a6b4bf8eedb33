"""OpenDota API access: rate limiting, response caching and typed parsing."""

from .error_handler import APIError, TransportError, HTTPStatusError, DecodeError
from .rate_limiter import RateLimiter
from .cache import ResponseCache, build_cache_key
from .account import parse_account_id, AccountIdError
from .client import OpenDotaClient

__all__ = [
    "APIError",
    "TransportError",
    "HTTPStatusError",
    "DecodeError",
    "RateLimiter",
    "ResponseCache",
    "build_cache_key",
    "parse_account_id",
    "AccountIdError",
    "OpenDotaClient",
]
