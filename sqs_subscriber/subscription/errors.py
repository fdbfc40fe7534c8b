"""Error taxonomy for queue provisioning, polling, publication and deletion."""

from __future__ import annotations


class QueueError(Exception):
    """Base class for failures reported by the queue service collaborator."""


class ProvisioningError(QueueError):
    """Raised when a queue cannot be created for a reason other than pre-existence."""


class ReceiveError(QueueError):
    """Raised when a poll against the queue service fails."""


class DeliveryError(QueueError):
    """Raised when a message cannot be sent to a queue."""


class DeletionError(QueueError):
    """Raised when the queue service rejects a receipt handle on delete."""
