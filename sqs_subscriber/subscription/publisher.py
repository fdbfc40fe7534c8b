"""Publication of message bodies to a queue or its error queue."""

from __future__ import annotations

import json
import logging
from typing import Any

from sqs_subscriber.subscription.errors import DeliveryError
from sqs_subscriber.subscription.models import QueueDescriptor
from sqs_subscriber.subscription.protocols import QueueClient

logger = logging.getLogger(__name__)

DeliveryId = str


def encode_body(body: Any) -> str:
    """Return the wire form of a message body; mappings and lists become JSON."""
    if isinstance(body, str):
        return body
    if isinstance(body, bytes):
        return body.decode("utf-8")
    if isinstance(body, dict | list):
        return json.dumps(body, separators=(",", ":"), default=str)
    raise TypeError(f"Unsupported message body type: {type(body).__name__}")


class Publisher:
    """Send messages to a descriptor's primary or error queue.

    A send is attempted exactly once; retry policy belongs to the caller.
    """

    def __init__(self, client: QueueClient) -> None:
        self.client = client

    async def publish(self, descriptor: QueueDescriptor, body: Any) -> DeliveryId:
        return await self._send(descriptor.name, body)

    async def publish_error(self, descriptor: QueueDescriptor, body: Any) -> DeliveryId:
        return await self._send(descriptor.error_name, body)

    async def _send(self, queue_name: str, body: Any) -> DeliveryId:
        try:
            encoded = encode_body(body)
        except (TypeError, ValueError) as exc:
            raise DeliveryError(f"Malformed message body for {queue_name}: {exc}") from exc
        try:
            delivery_id = await self.client.send_message(queue_name, encoded)
        except DeliveryError:
            raise
        except Exception as exc:
            raise DeliveryError(f"Failed to send message to {queue_name}: {exc}") from exc
        logger.debug("Published message %s to %s", delivery_id, queue_name)
        return delivery_id
