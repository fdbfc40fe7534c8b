"""In-memory queue client for local testing and CI."""

from __future__ import annotations

import asyncio
import uuid
from collections import deque
from collections.abc import Sequence
from datetime import datetime, timezone

from sqs_subscriber.subscription.errors import DeletionError, DeliveryError, ReceiveError
from sqs_subscriber.subscription.models import RawMessage


class InMemoryQueueClient:
    """Queue service stand-in with receipt handles and in-flight tracking.

    Received messages stay in flight until deleted. :meth:`expire_in_flight` plays
    the part of an elapsed visibility timeout and makes them receivable again.
    """

    def __init__(self, *, max_messages: int = 10, receive_delay: float = 0.0) -> None:
        self.max_messages = max_messages
        self.receive_delay = receive_delay
        self._queues: dict[str, deque[tuple[str, str]]] = {}
        self._in_flight: dict[str, dict[str, tuple[str, str]]] = {}
        self._sent: list[tuple[str, str]] = []
        self._deleted: list[tuple[str, str]] = []
        self._ensure_calls: list[str] = []
        self._receive_calls = 0

    async def __aenter__(self) -> InMemoryQueueClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    async def ensure_queue(self, name: str) -> None:
        self._ensure_calls.append(name)
        self._queues.setdefault(name, deque())
        self._in_flight.setdefault(name, {})

    async def send_message(self, queue_name: str, body: str) -> str:
        queue = self._queues.get(queue_name)
        if queue is None:
            raise DeliveryError(f"Queue does not exist: {queue_name}")
        message_id = str(uuid.uuid4())
        queue.append((message_id, body))
        self._sent.append((queue_name, body))
        return message_id

    async def receive_messages(self, queue_name: str) -> Sequence[RawMessage]:
        self._receive_calls += 1
        if self.receive_delay:
            await asyncio.sleep(self.receive_delay)
        queue = self._queues.get(queue_name)
        if queue is None:
            raise ReceiveError(f"Queue does not exist: {queue_name}")
        batch: list[RawMessage] = []
        while queue and len(batch) < self.max_messages:
            message_id, body = queue.popleft()
            receipt_handle = f"{message_id}:{uuid.uuid4().hex}"
            self._in_flight[queue_name][receipt_handle] = (message_id, body)
            batch.append(
                RawMessage(
                    message_id=message_id,
                    body=body,
                    receipt_handle=receipt_handle,
                    received_at=datetime.now(timezone.utc),
                )
            )
        return batch

    async def delete_message(self, queue_name: str, receipt_handle: str) -> None:
        in_flight = self._in_flight.get(queue_name)
        if in_flight is None or receipt_handle not in in_flight:
            raise DeletionError(f"Receipt handle is not valid for {queue_name}")
        _, body = in_flight.pop(receipt_handle)
        self._deleted.append((queue_name, body))

    def expire_in_flight(self, queue_name: str) -> int:
        """Return undeleted messages to the queue, invalidating their receipt handles."""
        in_flight = self._in_flight.get(queue_name, {})
        expired = list(in_flight.values())
        in_flight.clear()
        self._queues[queue_name].extendleft(reversed(expired))
        return len(expired)

    def enqueue(self, queue_name: str, body: str) -> None:
        self._queues.setdefault(queue_name, deque()).append((str(uuid.uuid4()), body))
        self._in_flight.setdefault(queue_name, {})

    def queue_names(self) -> list[str]:
        return sorted(self._queues)

    def get_sent(self, queue_name: str | None = None) -> list[str]:
        return [body for name, body in self._sent if queue_name is None or name == queue_name]

    def get_deleted(self, queue_name: str | None = None) -> list[str]:
        return [body for name, body in self._deleted if queue_name is None or name == queue_name]

    def get_ensure_calls(self) -> list[str]:
        return list(self._ensure_calls)

    def pending_count(self, queue_name: str) -> int:
        return len(self._queues.get(queue_name, ()))

    def in_flight_count(self, queue_name: str) -> int:
        return len(self._in_flight.get(queue_name, {}))

    @property
    def receive_calls(self) -> int:
        return self._receive_calls
