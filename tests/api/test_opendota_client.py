import json
import logging

import httpx
import pytest
import respx

from conftest import TEST_BASE_URL, TEST_CDN, hero_stats_payload, matches_payload, player_payload
from dotatui.api.cache import ResponseCache
from dotatui.api.client import REQUEST_LOGGER_NAME, OpenDotaClient, create_http_client
from dotatui.api.error_handler import DecodeError, HTTPStatusError, TransportError
from dotatui.api.rate_limiter import RateLimiter

HEROES_URL = f"{TEST_BASE_URL}/heroStats"


@pytest.fixture
def no_backoff(monkeypatch):
    delays = []

    def _record(attempt):
        delays.append(attempt)
        return 0

    monkeypatch.setattr("dotatui.api.client.backoff_delay", _record)
    return delays


def _client(config, http_client, cache=None, clock=None):
    rate_limiter = RateLimiter(1000, clock=clock) if clock else RateLimiter(1000)
    return OpenDotaClient(config, http_client, rate_limiter=rate_limiter, cache=cache)


@pytest.mark.unit
def test_create_http_client_uses_configured_timeouts(base_config):
    base_config["api"]["request_timeout"] = 12
    base_config["api"]["connect_timeout"] = 3
    client = create_http_client(base_config)

    assert client.timeout.read == 12
    assert client.timeout.connect == 3
    assert client.headers["User-Agent"] == "dotatui"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_fetch_heroes_caches_response(base_config):
    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client)

        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(HEROES_URL).respond(200, json=hero_stats_payload())

            first = await client.fetch_heroes()
            second = await client.fetch_heroes()

    assert first == second == {1: "Anti-Mage", 2: "Axe", 74: "Invoker"}
    # Second call is a fresh cache hit and never reaches the network
    assert route.call_count == 1
    assert HEROES_URL in client.cache


@pytest.mark.integration
@pytest.mark.asyncio
async def test_retries_once_then_succeeds(base_config, no_backoff):
    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client)

        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(HEROES_URL)
            route.side_effect = [
                httpx.Response(502),
                httpx.Response(200, json=hero_stats_payload()),
            ]
            heroes = await client.fetch_heroes()

    assert heroes[74] == "Invoker"
    assert route.call_count == 2
    assert no_backoff == [1]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_two_failures_without_cache_raise_last_error(base_config, no_backoff):
    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client)

        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(HEROES_URL).respond(500)
            with pytest.raises(HTTPStatusError) as exc_info:
                await client.fetch_heroes()

    assert exc_info.value.status_code == 500
    assert route.call_count == 2


@pytest.mark.integration
@pytest.mark.asyncio
async def test_transport_failures_become_transport_error(base_config, no_backoff):
    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client)

        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(HEROES_URL).mock(side_effect=httpx.ConnectError("refused"))
            with pytest.raises(TransportError, match="refused"):
                await client.fetch_heroes()

    assert route.call_count == 2


@pytest.mark.integration
@pytest.mark.asyncio
async def test_stale_entry_served_after_two_failures(base_config, fake_clock, no_backoff):
    cache = ResponseCache(max_entries=8, ttl_seconds=300, clock=fake_clock)
    cache.set(HEROES_URL, json.dumps(hero_stats_payload()).encode())
    fake_clock.advance(301)

    stale_keys = []

    async def on_stale(key):
        stale_keys.append(key)

    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client, cache=cache, clock=fake_clock)
        client.stale_callback = on_stale

        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(HEROES_URL).respond(503)
            heroes = await client.fetch_heroes()

    assert heroes[1] == "Anti-Mage"
    assert route.call_count == 2
    assert stale_keys == [HEROES_URL]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_decode_error_is_not_retried_and_not_cached(base_config, no_backoff):
    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client)

        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(HEROES_URL).respond(200, content=b"<html>maintenance</html>")
            with pytest.raises(DecodeError):
                await client.fetch_heroes()

    assert route.call_count == 1
    assert HEROES_URL not in client.cache
    assert no_backoff == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_fetch_matches_falls_back_to_paginated_endpoint(base_config, no_backoff):
    account_id = 135664392
    recent_url = f"{TEST_BASE_URL}/players/{account_id}/recentMatches"
    fallback_url = f"{TEST_BASE_URL}/players/{account_id}/matches"

    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client)

        with respx.mock(assert_all_called=True) as mock:
            recent = mock.get(recent_url).respond(500)
            fallback = mock.get(fallback_url).respond(200, json=matches_payload())

            matches = await client.fetch_matches(account_id)

    assert [m.match_id for m in matches] == [7000000003, 7000000002]
    assert recent.call_count == 2
    params = fallback.calls.last.request.url.params
    assert params["limit"] == "20"
    assert params["significant"] == "0"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_request_log_lines(base_config, caplog, no_backoff):
    account_id = 135664392
    url = f"{TEST_BASE_URL}/players/{account_id}"

    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client)

        with caplog.at_level(logging.INFO, logger=REQUEST_LOGGER_NAME):
            with respx.mock(assert_all_called=True) as mock:
                route = mock.get(url)
                route.side_effect = [
                    httpx.ReadTimeout("timed out"),
                    httpx.Response(200, json=player_payload()),
                ]
                await client.fetch_profile(account_id)

    lines = [r.getMessage() for r in caplog.records if r.name == REQUEST_LOGGER_NAME]
    assert lines[0] == f'GET {url} error="timed out" attempt=1'
    assert lines[1].startswith(f"GET {url} status=200 elapsed_ms=")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_request_log_disabled(base_config, caplog):
    base_config["api"]["log_requests"] = False

    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client)

        with caplog.at_level(logging.INFO, logger=REQUEST_LOGGER_NAME):
            with respx.mock(assert_all_called=True) as mock:
                mock.get(HEROES_URL).respond(200, json=hero_stats_payload())
                await client.fetch_heroes()

    assert not [r for r in caplog.records if r.name == REQUEST_LOGGER_NAME]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_asset_maps_use_cdn_base(base_config):
    heroes = {"npc_dota_hero_axe": {"id": 2, "img": "/apps/dota2/images/heroes/axe.png?"}}
    items = {
        "empty": {"id": 0, "img": "/apps/dota2/images/items/empty.png"},
        "blink": {"id": 1, "img": "/apps/dota2/images/items/blink.png"},
    }

    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client)

        with respx.mock(assert_all_called=True) as mock:
            mock.get(f"{TEST_BASE_URL}/constants/heroes").respond(200, json=heroes)
            mock.get(f"{TEST_BASE_URL}/constants/items").respond(200, json=items)

            hero_images = await client.fetch_hero_images()
            item_images = await client.fetch_item_images()

    assert hero_images == {2: f"{TEST_CDN}/apps/dota2/images/heroes/axe.png?"}
    assert item_images == {1: f"{TEST_CDN}/apps/dota2/images/items/blink.png"}


@pytest.mark.integration
@pytest.mark.asyncio
async def test_fetch_bytes_surfaces_status(base_config):
    url = f"{TEST_CDN}/missing.png"

    async with httpx.AsyncClient() as http_client:
        client = _client(base_config, http_client)

        with respx.mock(assert_all_called=True) as mock:
            mock.get(url).respond(404)
            with pytest.raises(HTTPStatusError) as exc_info:
                await client.fetch_bytes(url)

    assert exc_info.value.status_code == 404
    assert url in str(exc_info.value)
