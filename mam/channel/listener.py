"""Subscription polling.

``Listener.listen`` starts a background task that, every
``subscription.timeout`` seconds, reads any messages published since the
last poll and hands them to a callback. At most one poll per
subscription is in flight: if a poll outlives the interval, the next
tick is skipped rather than overlapped.

``subscription.active`` is checked before each tick; clearing it (or
calling ``ListenHandle.cancel``) stops future polls but never interrupts
one already running.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from mam.channel.state import Subscription
from mam.channel.traversal import FetchOne, TraversalResult, traverse
from mam.errors import TraversalAbort

log = logging.getLogger("mam.listener")

MessagesCallback = Callable[[list[str]], Union[None, Awaitable[Any]]]


class ListenHandle:
    """Cancellation handle for one subscription's poll loop."""

    def __init__(self, subscription: Subscription):
        self.subscription = subscription
        self._stop = asyncio.Event()
        self.task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def cancel(self) -> None:
        """Stop scheduling polls. An in-flight poll runs to completion."""
        self._stop.set()

    async def wait(self) -> None:
        if self.task is not None:
            await self.task

    async def _sleep(self, seconds: float) -> bool:
        """Sleep until the next tick. Returns False if cancelled meanwhile."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False


class Listener:
    """Drives recurring polls for any number of subscriptions."""

    def __init__(self, fetch_one: FetchOne, limit: int | None = None):
        self._fetch_one = fetch_one
        self._limit = limit
        self._in_flight: set[int] = set()

    def is_polling(self, subscription: Subscription) -> bool:
        return id(subscription) in self._in_flight

    async def poll(self, subscription: Subscription, callback: MessagesCallback) -> TraversalResult | None:
        """Run one read from the subscription's resume point.

        Returns None without fetching if a poll for the same subscription
        is already running. New messages go to ``callback``; the resume
        point is written back to ``subscription.root`` and
        ``subscription.next_root``. A fetch failure delivers whatever was
        read before it and is logged.
        """
        key = id(subscription)
        if key in self._in_flight:
            log.debug("Poll for %s still running, skipping tick", subscription.root[:12])
            return None

        self._in_flight.add(key)
        try:
            start = subscription.next_root or subscription.root
            try:
                result = await traverse(
                    self._fetch_one,
                    start,
                    subscription.mode,
                    subscription.channel_key,
                    limit=self._limit,
                )
            except TraversalAbort as e:
                log.warning("Poll for %s aborted: %s", subscription.root[:12], e)
                result = e.partial

            subscription.root = result.next_root
            subscription.next_root = result.next_root
            if result.messages:
                outcome = callback(result.messages)
                if inspect.isawaitable(outcome):
                    await outcome
            return result
        finally:
            self._in_flight.discard(key)

    def listen(self, subscription: Subscription, callback: MessagesCallback) -> ListenHandle:
        """Start polling in the background. Must be called from a running loop."""
        handle = ListenHandle(subscription)

        async def run() -> None:
            while subscription.active and not handle.cancelled:
                if not await handle._sleep(subscription.timeout):
                    break
                if not subscription.active:
                    break
                try:
                    await self.poll(subscription, callback)
                except Exception as e:
                    log.warning("Poll for %s failed: %s", subscription.root[:12], e)

        handle.task = asyncio.get_running_loop().create_task(run())
        return handle
