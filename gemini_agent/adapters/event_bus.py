"""Async outbound queue between the transport bridge and UI consumers.

The bridge posts wire notifications in order; a single consumer (the
HTTP server's fan-out loop, a test) drains them in the same order.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from gemini_agent.adapters.events import Notification, dict_to_notification

logger = logging.getLogger(__name__)


class EventBus:
    """Bounded FIFO of outbound notifications."""

    def __init__(self, maxsize: int = 5000, put_timeout: float = 30.0) -> None:
        self._queue: asyncio.Queue[Notification] = asyncio.Queue(maxsize=maxsize)
        self._put_timeout = put_timeout
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    async def publish(self, data: dict[str, Any]) -> None:
        """Queue one outbound wire dict. Usable as the bridge's post_message."""
        await self.emit(dict_to_notification(data))

    async def emit(self, notification: Notification) -> None:
        if self._closed:
            return
        try:
            # Backpressure instead of dropping, up to put_timeout.
            await asyncio.wait_for(
                self._queue.put(notification), timeout=self._put_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "EventBus queue blocked for %.0fs, dropping: %s (queue size: %d)",
                self._put_timeout, notification.type, self._queue.qsize(),
            )

    async def consume(self, poll_interval: float = 0.5) -> AsyncIterator[Notification]:
        """Yield notifications as they arrive. Stops after close()."""
        while not self._closed:
            try:
                notification = await asyncio.wait_for(
                    self._queue.get(), timeout=poll_interval,
                )
            except asyncio.TimeoutError:
                continue
            yield notification

    def drain(self) -> list[Notification]:
        """Remove and return everything currently queued."""
        items: list[Notification] = []
        while not self._queue.empty():
            items.append(self._queue.get_nowait())
        return items

    def close(self) -> None:
        """Stop the consumer loop permanently."""
        self._closed = True
