"""
Task orchestration for dashboard fetches.

Every user action becomes one or more detached asyncio tasks. Each task calls
the API client and publishes exactly one result event on the event bus;
counted operations follow it with a NetworkTimingEvent. Nothing is
cancelled: results for superseded actions are filtered by the reducer.
"""

import asyncio
import logging
import time
from typing import Awaitable, Iterable, List, Optional, Set, Tuple

from dotatui.api.client import OpenDotaClient
from dotatui.api.error_handler import APIError, describe_error
from dotatui.media.image_cache import ImageDecodeError
from dotatui.media.pipeline import ImagePipeline
from dotatui.media.terminal_image import ImageArea
from dotatui.ui.event_bus import EventBus
from dotatui.ui.events import (
    HeroImagesLoadedEvent,
    HeroesLoadedEvent,
    ImageLoadedEvent,
    ItemImagesLoadedEvent,
    MatchDetailLoadedEvent,
    NetworkTimingEvent,
    PlayerAvatarLoadedEvent,
    SearchLoadedEvent,
    StaleDataEvent,
)
from dotatui.workflow.reducer import Reducer
from dotatui.workflow.state import Followup

logger = logging.getLogger(__name__)

ImageTarget = Tuple[str, ImageArea]


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class TaskOrchestrator:
    """
    Spawns fetch tasks and routes reducer follow-ups back into new tasks.

    Example:
        orchestrator = TaskOrchestrator(client, bus, reducer, pipeline)
        orchestrator.start_search(135664392)
        orchestrator.start_heroes()
        await bus.process_events(orchestrator.handle_event)
    """

    def __init__(
        self,
        client: OpenDotaClient,
        event_bus: EventBus,
        reducer: Reducer,
        pipeline: Optional[ImagePipeline] = None
    ):
        self.client = client
        self.event_bus = event_bus
        self.reducer = reducer
        self.pipeline = pipeline
        self._tasks: Set[asyncio.Task] = set()

        self.client.stale_callback = self._on_stale

    @property
    def state(self):
        return self.reducer.state

    # ------------------------------------------------------------------
    # task bookkeeping
    # ------------------------------------------------------------------

    def _spawn(self, coro: Awaitable, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Task {task.get_name()} failed: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__)
            )

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait for every spawned task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding tasks (used on exit)."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()

    async def _on_stale(self, key: str) -> None:
        await self.event_bus.publish(StaleDataEvent(key))

    async def _publish_timed(self, event, started: float) -> None:
        await self.event_bus.publish(event)
        await self.event_bus.publish(NetworkTimingEvent(_elapsed_ms(started)))

    # ------------------------------------------------------------------
    # user actions
    # ------------------------------------------------------------------

    def start_heroes(self) -> None:
        self.reducer.begin_requests()
        self._spawn(self._load_heroes(), "heroes")

    def start_search(self, account_id: int) -> None:
        self.reducer.begin_search(account_id)
        self._spawn(self._search(account_id), f"search-{account_id}")

    def start_match_detail(self, match_id: int) -> None:
        self.reducer.begin_match_detail(match_id)
        self._spawn(self._load_match_detail(match_id), f"match-{match_id}")

    def ensure_asset_maps(self) -> None:
        """Request hero/item image maps once a profile is on screen."""
        heroes, items = self.reducer.begin_asset_maps()
        if heroes:
            self._spawn(self._load_hero_images(), "hero-images")
        if items:
            self._spawn(self._load_item_images(), "item-images")

    def request_image(self, url: str) -> None:
        if self.pipeline is None or not self.pipeline.active:
            return
        if self.reducer.begin_image_fetch(url):
            self._spawn(self._fetch_image(url), f"image-{url}")

    def request_player_avatars(self, account_ids: List[int]) -> None:
        if account_ids:
            self._spawn(self._load_player_avatars(list(account_ids)), "player-avatars")

    def dispatch(self, followup: Followup) -> None:
        for url in followup.image_urls:
            self._materialize(url)
        self.request_player_avatars(followup.avatar_account_ids)

    def handle_event(self, event) -> Followup:
        """Reduce one event and start whatever it asks for."""
        followup = self.reducer.apply(event)
        self.dispatch(followup)
        return followup

    def render_images(self, targets: Iterable[ImageTarget]) -> str:
        """
        Escape sequences for visible images.

        Memory hits are drawn; misses are read from disk, else fetched once
        and drawn on a later frame.
        """
        if self.pipeline is None or not self.pipeline.active:
            return ""

        output = []
        if self.reducer.take_image_reset():
            output.append(self.pipeline.reset())

        for url, area in targets:
            data = self._materialize(url)
            if data is not None:
                output.append(self.pipeline.draw(area, data))
        return "".join(output)

    def _materialize(self, url: str) -> Optional[bytes]:
        """Memory, then disk, else start a background fetch and return None."""
        if self.pipeline is None or not self.pipeline.active:
            return None
        data = self.pipeline.lookup(url, self.state.image_cache)
        if data is not None or url in self.state.image_requests:
            return data
        data = self.pipeline.load_from_disk(url)
        if data is not None:
            self.reducer.cache_image(url, data)
            return data
        self.request_image(url)
        return None

    # ------------------------------------------------------------------
    # tasks
    # ------------------------------------------------------------------

    async def _load_heroes(self) -> None:
        started = time.monotonic()
        try:
            heroes = await self.client.fetch_heroes()
            event = HeroesLoadedEvent(heroes=heroes)
        except APIError as e:
            event = HeroesLoadedEvent(error=describe_error(e))
        await self._publish_timed(event, started)

    async def _load_hero_images(self) -> None:
        started = time.monotonic()
        try:
            images = await self.client.fetch_hero_images()
            event = HeroImagesLoadedEvent(images=images)
        except APIError as e:
            event = HeroImagesLoadedEvent(error=describe_error(e))
        await self._publish_timed(event, started)

    async def _load_item_images(self) -> None:
        started = time.monotonic()
        try:
            images = await self.client.fetch_item_images()
            event = ItemImagesLoadedEvent(images=images)
        except APIError as e:
            event = ItemImagesLoadedEvent(error=describe_error(e))
        await self._publish_timed(event, started)

    async def _search(self, account_id: int) -> None:
        started = time.monotonic()
        profile_result, matches_result = await asyncio.gather(
            self.client.fetch_profile(account_id),
            self.client.fetch_matches(account_id),
            return_exceptions=True,
        )

        for result in (profile_result, matches_result):
            if isinstance(result, APIError) or not isinstance(result, BaseException):
                continue
            if not isinstance(result, Exception):
                raise result
            # Anything but an API failure aborts the whole search
            logger.error(
                f"Search for {account_id} failed: {result}",
                exc_info=(type(result), result, result.__traceback__)
            )
            event = SearchLoadedEvent(account_id=account_id, error=describe_error(result))
            await self._publish_timed(event, started)
            return

        profile, profile_error = None, None
        if isinstance(profile_result, APIError):
            profile_error = describe_error(profile_result)
        else:
            profile = profile_result

        matches, match_error = [], None
        if isinstance(matches_result, APIError):
            match_error = describe_error(matches_result)
        else:
            matches = matches_result

        event = SearchLoadedEvent(
            account_id=account_id,
            profile=profile,
            matches=matches,
            profile_error=profile_error,
            match_error=match_error,
        )
        await self._publish_timed(event, started)

    async def _load_match_detail(self, match_id: int) -> None:
        started = time.monotonic()
        try:
            detail = await self.client.fetch_match_detail(match_id)
            event = MatchDetailLoadedEvent(detail=detail)
        except APIError as e:
            event = MatchDetailLoadedEvent(error=describe_error(e))
        await self._publish_timed(event, started)

    async def _fetch_image(self, url: str) -> None:
        try:
            data = await self.pipeline.fetch(self.client, url)
            event = ImageLoadedEvent(url=url, data=data)
        except (APIError, ImageDecodeError) as e:
            event = ImageLoadedEvent(url=url, error=describe_error(e))
        except Exception as e:
            # The reducer still has to release the in-flight marker
            logger.error(f"Image fetch for {url} failed: {e}", exc_info=True)
            event = ImageLoadedEvent(url=url, error=describe_error(e))
        await self.event_bus.publish(event)

    async def _load_player_avatars(self, account_ids: List[int]) -> None:
        # Sequential: these share the rate limit with user-visible requests
        for account_id in account_ids:
            try:
                profile = await self.client.fetch_profile(account_id)
                event = PlayerAvatarLoadedEvent(account_id, url=profile.avatar_url)
            except APIError as e:
                event = PlayerAvatarLoadedEvent(account_id, error=describe_error(e))
            await self.event_bus.publish(event)
