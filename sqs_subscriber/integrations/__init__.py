"""Queue client implementations."""

from sqs_subscriber.integrations.memory import InMemoryQueueClient
from sqs_subscriber.integrations.sqs import SQSQueueClient

__all__ = ["InMemoryQueueClient", "SQSQueueClient"]
