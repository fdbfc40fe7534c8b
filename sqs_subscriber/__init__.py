"""sqs-subscriber: publish to and subscribe from Amazon SQS queues."""

from sqs_subscriber.integrations import InMemoryQueueClient, SQSQueueClient
from sqs_subscriber.subscription import (
    ErrorReporter,
    Failure,
    FilterChain,
    MessageEnvelope,
    Publisher,
    QueueDescriptor,
    QueueProvisioner,
    SubscriberConfig,
    SubscriptionEngine,
    Success,
)

__all__ = [
    "ErrorReporter",
    "Failure",
    "FilterChain",
    "InMemoryQueueClient",
    "MessageEnvelope",
    "Publisher",
    "QueueDescriptor",
    "QueueProvisioner",
    "SQSQueueClient",
    "SubscriberConfig",
    "SubscriptionEngine",
    "Success",
]
