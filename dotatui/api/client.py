"""OpenDota API client implementation."""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from dotatui.api.cache import ResponseCache, build_cache_key
from dotatui.api.error_handler import (
    APIError,
    HTTPStatusError,
    TransportError,
    backoff_delay,
    is_retryable_error,
)
from dotatui.api.models import MatchDetail, PlayerMatch, PlayerResponse
from dotatui.api.rate_limiter import RateLimiter
from dotatui.api.response_parser import (
    build_asset_map,
    decode_json,
    parse_constants,
    parse_hero_stats,
    parse_match_detail,
    parse_matches,
    parse_player,
)

logger = logging.getLogger(__name__)

# One line per request attempt; routed to tui.log by the CLI
REQUEST_LOGGER_NAME = "dotatui.requests"
request_log = logging.getLogger(REQUEST_LOGGER_NAME)

DEFAULT_BASE_URL = "https://api.opendota.com/api"
USER_AGENT = "dotatui"

QueryParams = Optional[Sequence[Tuple[str, str]]]


def create_http_client(config: Dict[str, Any]) -> httpx.AsyncClient:
    """
    Create the shared httpx async client.

    Configuration:
    - Socket timeout and connect timeout from the api section
    - Keep-alive pool sized to the in-flight bound
    - No transport-level retries (handled by OpenDotaClient)

    Args:
        config: Configuration dictionary

    Returns:
        Configured httpx.AsyncClient
    """
    api_config = config.get('api', {})
    max_connections = max(1, int(api_config.get('max_inflight', 6))) + 4

    limits = httpx.Limits(
        max_connections=max_connections,
        max_keepalive_connections=max_connections,
        keepalive_expiry=90.0,
    )
    timeout_config = httpx.Timeout(
        api_config.get('request_timeout', 20),
        connect=api_config.get('connect_timeout', 8),
    )
    transport = httpx.AsyncHTTPTransport(limits=limits, retries=0)

    client = httpx.AsyncClient(
        timeout=timeout_config,
        transport=transport,
        headers={'User-Agent': USER_AGENT},
        follow_redirects=True,
    )

    logger.debug(f"HTTP client created: max_connections={max_connections}")
    return client


class OpenDotaClient:
    """
    Client for the OpenDota REST API.

    Owns the rate limiter, the response cache and the global in-flight bound.
    Every JSON request goes through get_json(), which serves fresh cache hits
    without touching the network, makes at most two attempts, and falls back
    to a stale cache entry when both attempts fail.
    """

    MAX_ATTEMPTS = 2

    def __init__(
        self,
        config: Dict[str, Any],
        client: httpx.AsyncClient,
        rate_limiter: Optional[RateLimiter] = None,
        cache: Optional[ResponseCache] = None
    ):
        """
        Initialize API client.

        Args:
            config: Configuration dictionary with an 'api' section
            client: httpx.AsyncClient used for all requests
            rate_limiter: Optional RateLimiter (created from config if omitted)
            cache: Optional ResponseCache (created from config if omitted)
        """
        api_config = config.get('api', {})

        self.base_url = str(api_config.get('base_url', DEFAULT_BASE_URL)).rstrip('/')
        self.log_requests = bool(api_config.get('log_requests', True))
        self.max_inflight = max(1, int(api_config.get('max_inflight', 6)))
        self.cdn_base = config.get('images', {}).get(
            'cdn_base', "https://cdn.cloudflare.steamstatic.com"
        )

        self.client = client

        self.rate_limiter = rate_limiter or RateLimiter(
            api_config.get('rate_limit_per_minute', 60)
        )
        self.cache = cache or ResponseCache(
            max_entries=api_config.get('cache_max_entries', 256),
            ttl_seconds=api_config.get('cache_ttl_secs', 300),
        )

        # Global bound on simultaneous requests across all tasks
        self.inflight = asyncio.Semaphore(self.max_inflight)

        # Awaited with the request key whenever stale data is served
        self.stale_callback: Optional[Callable[[str], Awaitable[None]]] = None

    def _log_request(self, line: str) -> None:
        if self.log_requests:
            request_log.info(line)

    async def get_json(self, url: str, params: QueryParams = None) -> Any:
        """
        GET a JSON endpoint with caching, retry and stale fallback.

        Args:
            url: Absolute endpoint URL
            params: Optional query parameters as (key, value) pairs

        Returns:
            Decoded JSON value

        Raises:
            TransportError: Both attempts failed at transport level, no cache entry
            HTTPStatusError: Both attempts returned non-2xx, no cache entry
            DecodeError: Body is not valid JSON (never retried)
        """
        key = build_cache_key(url, params)

        cached = self.cache.get(key)
        if cached is not None and cached[1]:
            logger.debug(f"Cache hit: {key}")
            return decode_json(cached[0])

        last_error: Optional[APIError] = None
        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            try:
                body = await self._attempt(url, params, key, attempt)
            except APIError as e:
                if not is_retryable_error(e):
                    raise
                last_error = e
                if attempt < self.MAX_ATTEMPTS:
                    await asyncio.sleep(backoff_delay(attempt))
                continue

            value = decode_json(body)
            self.cache.set(key, body)
            return value

        stale = self.cache.get(key)
        if stale is not None:
            self._log_request(f"using_stale_cache {key}")
            logger.warning(f"Serving stale data for {key}: {last_error}")
            if self.stale_callback:
                await self.stale_callback(key)
            return decode_json(stale[0])

        raise last_error

    async def _attempt(self, url: str, params: QueryParams, key: str, attempt: int) -> bytes:
        """
        Make one rate-limited request attempt.

        Returns:
            Raw body of a 2xx response

        Raises:
            TransportError: Timeout, connect failure or malformed request
            HTTPStatusError: Non-2xx status
        """
        async with self.inflight:
            waited = await self.rate_limiter.acquire()
            if waited:
                self._log_request(f"rate_limit_wait_ms={int(waited * 1000)}")

            start_time = time.monotonic()
            try:
                response = await self.client.get(url, params=list(params) if params else None)
            except httpx.RequestError as e:
                detail = str(e) or type(e).__name__
                self._log_request(f'GET {key} error="{detail}" attempt={attempt}')
                raise TransportError(f"Network error: {detail}") from e

            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            self._log_request(
                f"GET {key} status={response.status_code} elapsed_ms={elapsed_ms}"
            )

            if not response.is_success:
                raise HTTPStatusError(response.status_code)

            return response.content

    async def fetch_heroes(self) -> Dict[int, str]:
        """Fetch hero id -> localized name from /heroStats."""
        data = await self.get_json(f"{self.base_url}/heroStats")
        return parse_hero_stats(data)

    async def fetch_profile(self, account_id: int) -> PlayerResponse:
        """Fetch /players/{account_id}."""
        data = await self.get_json(f"{self.base_url}/players/{account_id}")
        return parse_player(data)

    async def fetch_matches(self, account_id: int) -> List[PlayerMatch]:
        """
        Fetch a player's recent matches.

        Uses /recentMatches first; if that fails outright, queries the
        paginated /matches endpoint instead.

        Args:
            account_id: 32-bit account id

        Returns:
            List of PlayerMatch
        """
        primary = f"{self.base_url}/players/{account_id}/recentMatches"
        try:
            data = await self.get_json(primary)
            return parse_matches(data)
        except APIError as e:
            logger.info(f"recentMatches failed for {account_id} ({e}), using matches endpoint")

        self._log_request(f"fallback matches for account_id={account_id}")
        fallback = f"{self.base_url}/players/{account_id}/matches"
        data = await self.get_json(fallback, [('limit', '20'), ('significant', '0')])
        return parse_matches(data)

    async def fetch_match_detail(self, match_id: int) -> MatchDetail:
        """Fetch /matches/{match_id}."""
        data = await self.get_json(f"{self.base_url}/matches/{match_id}")
        return parse_match_detail(data)

    async def fetch_hero_images(self) -> Dict[int, str]:
        """Fetch /constants/heroes as hero id -> absolute image URL."""
        data = await self.get_json(f"{self.base_url}/constants/heroes")
        return build_asset_map(parse_constants(data), self.cdn_base)

    async def fetch_item_images(self) -> Dict[int, str]:
        """Fetch /constants/items as item id -> absolute image URL (id 0 dropped)."""
        data = await self.get_json(f"{self.base_url}/constants/items")
        return build_asset_map(parse_constants(data, skip_zero=True), self.cdn_base)

    async def fetch_bytes(self, url: str) -> bytes:
        """
        Fetch raw bytes from an absolute URL (avatars, hero/item art).

        Raises:
            TransportError: Network failure
            HTTPStatusError: Non-2xx status
        """
        try:
            response = await self.client.get(url)
        except httpx.RequestError as e:
            raise TransportError(f"Network error: {str(e) or type(e).__name__}") from e
        if not response.is_success:
            raise HTTPStatusError(response.status_code, url)
        return response.content
