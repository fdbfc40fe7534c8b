"""Error reporting: publish a failure document, then delete the original message."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from sqs_subscriber.subscription.errors import DeliveryError
from sqs_subscriber.subscription.models import ErrorDocument, MessageEnvelope, QueueDescriptor
from sqs_subscriber.subscription.publisher import Publisher
from sqs_subscriber.subscription.security import redact_error_message

logger = logging.getLogger(__name__)

DeleteFunction = Callable[[MessageEnvelope], Awaitable[Any]]


class ErrorReporter:
    """Route a failed message to its queue's error queue.

    The original message is deleted only after the error document was published.
    When publication fails the message is left on the queue for redelivery, so a
    failure is never lost silently. Override :meth:`build_document` to change the
    published shape.
    """

    def __init__(self, publisher: Publisher, delete: DeleteFunction) -> None:
        self.publisher = publisher
        self._delete = delete

    def build_document(self, detail: Any, envelope: MessageEnvelope) -> str:
        return ErrorDocument.from_failure(detail, envelope).to_json()

    async def report(self, descriptor: QueueDescriptor, detail: Any, envelope: MessageEnvelope) -> bool:
        """Publish the failure and delete the message; return whether both happened."""
        logger.info("Publishing error for message %s: %s", envelope.message_id, redact_error_message(detail))
        document = self.build_document(detail, envelope)
        try:
            delivery_id = await self.publisher.publish_error(descriptor, document)
        except DeliveryError as exc:
            logger.error(
                "Failed to publish error for message %s to %s, leaving it for redelivery: %s",
                envelope.message_id,
                descriptor.error_name,
                redact_error_message(exc),
            )
            return False
        logger.debug("Error document %s published for message %s", delivery_id, envelope.message_id)
        await self._delete(envelope)
        return True
