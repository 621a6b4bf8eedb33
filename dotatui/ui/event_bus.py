"""Event bus delivering fetch results to the UI loop.

Producers are any number of fetch tasks; there is exactly one consumer. The
queue is bounded, so a producer waits when the consumer falls behind.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 16


class EventBus:
    """Bounded, ordered, single-consumer event channel.

    Example:
        >>> bus = EventBus()
        >>> await bus.publish(NetworkTimingEvent(120))
        >>> event = await bus.get(timeout=0.2)
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """Initialize the event bus.

        Args:
            capacity: Maximum number of undelivered events
        """
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._processing: bool = False
        self._published_count: int = 0
        self._event_count: int = 0
        self._error_count: int = 0

    async def publish(self, event: Any) -> None:
        """Queue an event, waiting while the channel is full."""
        await self._queue.put(event)
        self._published_count += 1

    async def get(self, timeout: Optional[float] = None) -> Optional[Any]:
        """Receive the next event.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Returns:
            The next event, or None if the timeout expired first
        """
        try:
            if timeout is None:
                event = await self._queue.get()
            else:
                event = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        self._queue.task_done()
        self._event_count += 1
        return event

    async def process_events(self, consumer: Callable[[Any], Any]) -> None:
        """Feed events to consumer in receipt order until stopped.

        Consumer errors are logged and do not stop processing.

        Example:
            >>> app.run_worker(event_bus.process_events(app.handle_event))
        """
        self._processing = True
        logger.debug("Event consumer attached")

        try:
            while self._processing:
                event = await self._queue.get()
                self._event_count += 1
                try:
                    result = consumer(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    self._error_count += 1
                    logger.error(
                        f"Error handling {type(event).__name__}: {e}",
                        exc_info=True
                    )
                finally:
                    self._queue.task_done()
        except asyncio.CancelledError:
            logger.debug(f"Event consumer cancelled with {self._queue.qsize()} queued")
            raise
        finally:
            self._processing = False

    async def stop(self, grace: float = 1.0) -> None:
        """Detach the consumer; events still queued after grace seconds are discarded."""
        self._processing = False
        try:
            await asyncio.wait_for(self._queue.join(), timeout=grace)
        except asyncio.TimeoutError:
            dropped = 0
            while not self._queue.empty():
                self._queue.get_nowait()
                self._queue.task_done()
                dropped += 1
            logger.warning(f"Discarded {dropped} undelivered events on shutdown")

        logger.info(
            f"Event channel closed: {self._published_count} published, "
            f"{self._event_count} delivered, {self._error_count} consumer errors"
        )

    async def drain(self) -> None:
        """Wait until every queued event has been consumed."""
        await self._queue.join()

    def pending(self) -> int:
        return self._queue.qsize()

    def get_stats(self) -> dict:
        """Delivery counters: published, delivered, consumer_errors, queued."""
        return {
            'published': self._published_count,
            'delivered': self._event_count,
            'consumer_errors': self._error_count,
            'queued': self._queue.qsize(),
        }

    @property
    def is_processing(self) -> bool:
        return self._processing
