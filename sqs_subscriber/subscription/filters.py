"""Ordered, short-circuiting filter chain applied before processing."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable, Iterator

from sqs_subscriber.subscription.models import MessageEnvelope
from sqs_subscriber.subscription.protocols import FilterFunction

logger = logging.getLogger(__name__)


class FilterChain:
    """Left fold of filters over an envelope, stopping at the first drop.

    A filter may pass a message through untouched, return an altered copy, replace
    it entirely, or return ``None`` to drop it. Dropping is not an acknowledgement:
    the message stays on the queue until the service redelivers it.
    """

    def __init__(self, filters: Iterable[FilterFunction] = ()) -> None:
        self._filters: tuple[FilterFunction, ...] = tuple(filters)
        for item in self._filters:
            if not callable(item):
                raise TypeError(f"filter must be callable: {item!r}")

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self) -> Iterator[FilterFunction]:
        return iter(self._filters)

    async def apply(self, envelope: MessageEnvelope) -> MessageEnvelope | None:
        current: MessageEnvelope | None = envelope
        for position, message_filter in enumerate(self._filters):
            result = message_filter(current)  # type: ignore[arg-type]
            if inspect.isawaitable(result):
                result = await result
            if result is None:
                logger.debug("Filter %s dropped message %s", position, envelope.message_id)
                return None
            current = result
        return current
