"""Queue subscription core: models, filter chain, publisher and subscription engine."""

from sqs_subscriber.subscription.config import SubscriberConfig, load_subscriber_config, validate_config
from sqs_subscriber.subscription.engine import POLL, SubscriptionEngine
from sqs_subscriber.subscription.errors import (
    DeletionError,
    DeliveryError,
    ProvisioningError,
    QueueError,
    ReceiveError,
)
from sqs_subscriber.subscription.filters import FilterChain
from sqs_subscriber.subscription.listeners import ListenerBroadcast
from sqs_subscriber.subscription.models import (
    ErrorDocument,
    Failure,
    MessageEnvelope,
    ProcessingOutcome,
    QueueDescriptor,
    RawMessage,
    Success,
)
from sqs_subscriber.subscription.processors import FunctionProcessor, JsonProcessor
from sqs_subscriber.subscription.protocols import FilterFunction, Listener, MessageProcessor, QueueClient
from sqs_subscriber.subscription.provisioning import QueueProvisioner
from sqs_subscriber.subscription.publisher import Publisher
from sqs_subscriber.subscription.reporter import ErrorReporter
from sqs_subscriber.subscription.security import (
    SensitiveDataLogFilter,
    redact_body,
    redact_error_message,
    redact_sensitive_data,
)

__all__ = [
    "POLL",
    "DeletionError",
    "DeliveryError",
    "ErrorDocument",
    "ErrorReporter",
    "Failure",
    "FilterChain",
    "FilterFunction",
    "FunctionProcessor",
    "JsonProcessor",
    "Listener",
    "ListenerBroadcast",
    "MessageEnvelope",
    "MessageProcessor",
    "ProcessingOutcome",
    "ProvisioningError",
    "Publisher",
    "QueueClient",
    "QueueDescriptor",
    "QueueError",
    "QueueProvisioner",
    "RawMessage",
    "ReceiveError",
    "SensitiveDataLogFilter",
    "SubscriberConfig",
    "SubscriptionEngine",
    "Success",
    "load_subscriber_config",
    "redact_body",
    "redact_error_message",
    "redact_sensitive_data",
    "validate_config",
]
