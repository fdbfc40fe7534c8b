"""Capability interfaces consumed by the subscription engine."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from sqs_subscriber.subscription.models import MessageEnvelope, ProcessingOutcome, RawMessage


class QueueClient(Protocol):
    """Narrow view of the queue service used by provisioning, publishing and polling."""

    async def ensure_queue(self, name: str) -> None:
        """Create the queue if it does not already exist."""

    async def send_message(self, queue_name: str, body: str) -> str:
        """Send a message body and return its delivery id."""

    async def receive_messages(self, queue_name: str) -> Sequence[RawMessage]:
        """Receive a batch of messages; an empty sequence means nothing was waiting."""

    async def delete_message(self, queue_name: str, receipt_handle: str) -> None:
        """Delete a received message by receipt handle."""


class MessageProcessor(Protocol):
    """Application logic handed every message that survives the filter chain."""

    def process(self, envelope: MessageEnvelope) -> ProcessingOutcome | Awaitable[ProcessingOutcome]:
        """Process one message and report success or failure; may be a coroutine."""


FilterFunction = Callable[[MessageEnvelope], "MessageEnvelope | None | Awaitable[MessageEnvelope | None]"]
Listener = Callable[[Any], "None | Awaitable[None]"]
