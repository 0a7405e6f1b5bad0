"""
Per-key change watchers.

Callbacks receive ``(new_value, old_value, key)``. They may be plain
functions or coroutine functions and are invoked in registration order.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

WatchCallback = Callable[[Any, Any, str], Union[None, Awaitable[None]]]


class Subscription:
    """
    Handle for one watcher registration.

    ``unsubscribe()`` (or calling the handle) removes exactly this
    registration, even if the same callback was registered more than once.
    """

    def __init__(self, watchers: 'WatcherRegistry', key: str, callback: WatchCallback) -> None:
        self._watchers: Optional[WatcherRegistry] = watchers
        self.key = key
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._watchers is not None

    def unsubscribe(self) -> bool:
        """
        Remove this registration.

        Returns:
            True if it was removed, False if it was already inactive
        """
        watchers, self._watchers = self._watchers, None
        if watchers is None:
            return False
        return watchers.remove(self)

    def __call__(self) -> bool:
        return self.unsubscribe()

    def __repr__(self) -> str:
        state = "active" if self.active else "inactive"
        return f"Subscription(key={self.key!r}, {state})"


class WatcherRegistry:
    """Ordered callback lists keyed by configuration key."""

    def __init__(self) -> None:
        self._subscriptions: Dict[str, List[Subscription]] = {}

    def add(self, key: str, callback: WatchCallback) -> Subscription:
        """Register a callback for ``key``."""
        if not callable(callback):
            raise TypeError(f"Watcher for {key} must be callable")

        subscription = Subscription(self, key, callback)
        self._subscriptions.setdefault(key, []).append(subscription)
        logger.debug(f"Registered watcher for {key}: {getattr(callback, '__name__', callback)}")
        return subscription

    def remove(self, subscription: Subscription) -> bool:
        """Remove one registration; empty keys are dropped."""
        bucket = self._subscriptions.get(subscription.key)
        if not bucket:
            return False

        for index, existing in enumerate(bucket):
            if existing is subscription:
                del bucket[index]
                break
        else:
            return False

        if not bucket:
            del self._subscriptions[subscription.key]

        logger.debug(f"Removed watcher for {subscription.key}")
        return True

    def count(self) -> int:
        """Total number of registrations."""
        return sum(len(bucket) for bucket in self._subscriptions.values())

    def keys(self) -> List[str]:
        """Keys that currently have at least one watcher."""
        return list(self._subscriptions)

    def has_watchers(self, key: str) -> bool:
        return key in self._subscriptions

    async def notify(self, key: str, new_value: Any, old_value: Any) -> None:
        """
        Invoke every watcher of ``key``.

        A failing watcher is logged and does not prevent the others from
        running.
        """
        # Watchers may unsubscribe while being notified
        for subscription in list(self._subscriptions.get(key, ())):
            if not subscription.active:
                continue

            callback = subscription.callback
            try:
                result = callback(new_value, old_value, key)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception(
                    f"Error in config watcher {getattr(callback, '__name__', callback)} for {key}")
