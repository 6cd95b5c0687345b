"""Notification sink for login flow events.

Subscribers are plain callables receiving the event payload as keyword
arguments. Sync subscribers run inline, coroutine subscribers are scheduled on
the running loop and never awaited by the publisher. Each subscriber sees an
event at most once; a failing subscriber is logged and does not affect the
publisher or the other subscribers.
"""

import asyncio
import inspect
from enum import Enum
from typing import Any, Callable, Dict, List, Set

from loguru import logger

LOG_PREFIX = "[Events]"

Subscriber = Callable[..., Any]


class AuthEvent(str, Enum):
    USER_CREATED = "auth0.user_created"
    USER_UPDATED = "auth0.user_updated"
    USER_AUTHENTICATED = "auth0.user_authenticated"
    LOGIN = "auth0.login"
    WEBHOOK_RECEIVED = "auth0.webhook_received"


class EventDispatcher:
    """Fan-out of AuthEvent notifications to registered subscribers."""

    def __init__(self):
        self._subscribers: Dict[AuthEvent, List[Subscriber]] = {}
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, event: AuthEvent, subscriber: Subscriber) -> None:
        self._subscribers.setdefault(event, []).append(subscriber)

    def unsubscribe(self, event: AuthEvent, subscriber: Subscriber) -> bool:
        subscribers = self._subscribers.get(event, [])
        if subscriber not in subscribers:
            return False
        subscribers.remove(subscriber)
        return True

    def subscribers(self, event: AuthEvent) -> List[Subscriber]:
        return list(self._subscribers.get(event, []))

    def fire(self, event: AuthEvent, **payload: Any) -> int:
        """Notify every subscriber of `event`; returns how many were notified."""
        notified = 0
        for subscriber in self.subscribers(event):
            try:
                result = subscriber(**payload)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._pending.add(task)
                    task.add_done_callback(self._on_task_done)
                notified += 1
            except Exception as e:
                logger.opt(exception=True).error(f"{LOG_PREFIX} Subscriber for {event.value} failed: {e}")
        logger.debug(f"{LOG_PREFIX} Fired {event.value} to {notified} subscriber(s)")
        return notified

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error(f"{LOG_PREFIX} Async subscriber failed: {exc}")

    async def drain(self) -> None:
        """Wait for scheduled async subscribers (used on shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
