"""Live, bounded-window subscriptions over store queries.

A :class:`ChangeFeed` is the in-process notification bus: writers publish a
key after their commit, and every :class:`WindowSubscription` open on that key
re-runs its query and yields the full window again when it changed.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def channel_key(channel_id: str) -> str:
    """Feed key for a message log."""
    return f"channel:{channel_id}"


def chat_list_key(uid: str) -> str:
    """Feed key for a user's conversation list."""
    return f"chats:{uid}"


class _Waiter:
    """Wake-up flag bound to the event loop of the subscription that owns it."""

    def __init__(self) -> None:
        self.loop = asyncio.get_running_loop()
        self.event = asyncio.Event()

    def notify(self) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self.loop:
            self.event.set()
        elif not self.loop.is_closed():
            self.loop.call_soon_threadsafe(self.event.set)


class ChangeFeed:
    """Fan-out of change notifications keyed by channel."""

    def __init__(self) -> None:
        self._waiters: dict[str, set[_Waiter]] = defaultdict(set)

    def attach(self, key: str) -> _Waiter:
        waiter = _Waiter()
        self._waiters[key].add(waiter)
        return waiter

    def detach(self, key: str, waiter: _Waiter) -> None:
        waiters = self._waiters.get(key)
        if waiters is None:
            return
        waiters.discard(waiter)
        if not waiters:
            del self._waiters[key]

    def publish(self, *keys: str) -> None:
        """Wake every subscription listening on any of ``keys``."""
        for key in keys:
            for waiter in list(self._waiters.get(key, ())):
                waiter.notify()

    def subscriber_count(self, key: str) -> int:
        return len(self._waiters.get(key, ()))


class WindowSubscription(Generic[T]):
    """Cancellable stream of full window snapshots.

    The first iteration yields the current window; later iterations block
    until the feed reports a change and the re-queried window differs from
    the one last delivered. Use as an async context manager, or call
    :meth:`close` explicitly, so the feed registration is always released.

    Args:
        feed: Notification bus the subscription attaches to.
        key: Feed key (see :func:`channel_key`, :func:`chat_list_key`).
        fetch: Returns the current window, already ordered and bounded.
        fingerprint: Maps a window to a comparable value used to suppress
            notifications that did not change the window.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        key: str,
        fetch: Callable[[], list[T]],
        fingerprint: Callable[[list[T]], Any] | None = None,
    ) -> None:
        self._feed = feed
        self.key = key
        self._fetch = fetch
        self._fingerprint = fingerprint or (lambda items: items)
        self._waiter: _Waiter | None = None
        self._last: Any = None
        self._delivered = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_attached(self) -> _Waiter:
        if self._waiter is None:
            self._waiter = self._feed.attach(self.key)
        return self._waiter

    async def __aenter__(self) -> WindowSubscription[T]:
        self._ensure_attached()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def __aiter__(self) -> WindowSubscription[T]:
        return self

    async def __anext__(self) -> list[T]:
        if self._closed:
            raise StopAsyncIteration
        waiter = self._ensure_attached()

        if not self._delivered:
            return self._deliver(self._fetch())

        while True:
            await waiter.event.wait()
            waiter.event.clear()
            if self._closed:
                raise StopAsyncIteration
            snapshot = self._fetch()
            if self._fingerprint(snapshot) != self._last:
                return self._deliver(snapshot)

    def _deliver(self, snapshot: list[T]) -> list[T]:
        self._last = self._fingerprint(snapshot)
        self._delivered = True
        return snapshot

    def close(self) -> None:
        """Detach from the feed; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._waiter is not None:
            self._feed.detach(self.key, self._waiter)
            # Release anyone blocked in __anext__.
            self._waiter.notify()
            self._waiter = None
        logger.debug("Closed subscription on %s", self.key)


_change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Return the process-wide change feed."""
    return _change_feed
