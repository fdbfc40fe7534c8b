"""Fan-out of observed items to registered listeners."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Iterable
from typing import Any

from sqs_subscriber.subscription.protocols import Listener

logger = logging.getLogger(__name__)


class ListenerBroadcast:
    """Notify every listener, in registration order, of an item.

    Notification is fire-and-forget. Coroutine listeners are scheduled as tasks and
    never awaited by the caller. A failing listener is logged and does not affect
    the remaining listeners or the caller.
    """

    def __init__(self, listeners: Iterable[Listener] = ()) -> None:
        self._listeners: tuple[Listener, ...] = tuple(listeners)
        self._pending: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._listeners)

    @property
    def pending(self) -> int:
        return len([task for task in self._pending if not task.done()])

    def notify(self, item: Any) -> None:
        for listener in self._listeners:
            try:
                result = listener(item)
            except Exception:
                logger.exception("Listener %r failed for %r", listener, item)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._on_done)

    async def drain(self) -> None:
        """Wait for scheduled coroutine listeners to finish."""
        current = asyncio.current_task()
        pending = [task for task in self._pending if task is not current]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Listener task failed: %s", error, exc_info=error)
