"""Idempotent creation of a queue and its error queue."""

from __future__ import annotations

import logging

from sqs_subscriber.subscription.errors import ProvisioningError
from sqs_subscriber.subscription.models import QueueDescriptor
from sqs_subscriber.subscription.protocols import QueueClient

logger = logging.getLogger(__name__)


class QueueProvisioner:
    """Ensure both queues named by a descriptor exist before first use."""

    def __init__(self, client: QueueClient) -> None:
        self.client = client

    async def ensure(self, descriptor: QueueDescriptor) -> None:
        for name in (descriptor.name, descriptor.error_name):
            try:
                await self.client.ensure_queue(name)
            except ProvisioningError:
                raise
            except Exception as exc:
                raise ProvisioningError(f"Failed to ensure queue {name}: {exc}") from exc
        logger.info("Queues ready: %s, %s", descriptor.name, descriptor.error_name)
