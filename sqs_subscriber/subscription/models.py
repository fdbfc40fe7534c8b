"""Subscription data models."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

ERROR_QUEUE_SUFFIX = "-error"


@dataclass(frozen=True, slots=True)
class QueueDescriptor:
    """Identity of a logical queue and its derived error queue."""

    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("queue name is required")

    @property
    def error_name(self) -> str:
        return f"{self.name}{ERROR_QUEUE_SUFFIX}"


@dataclass(slots=True)
class RawMessage:
    """Raw message returned by a queue client."""

    message_id: str
    body: str
    receipt_handle: str
    attributes: dict[str, str] = field(default_factory=dict)
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, slots=True)
class MessageEnvelope:
    """A received message plus the metadata needed to resolve it later.

    ``receipt_handle`` is opaque: it is handed back to the queue client on delete and
    never inspected. Filters that transform a message should use :meth:`with_body`
    so the handle travels with the new body.
    """

    body: Any
    receipt_handle: str
    message_id: str = ""
    source: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_raw_message(cls, raw: RawMessage, source: str) -> MessageEnvelope:
        """Wrap a raw queue message."""
        received_at = raw.received_at
        if received_at.tzinfo is None:
            received_at = received_at.replace(tzinfo=timezone.utc)
        return cls(
            body=raw.body,
            receipt_handle=raw.receipt_handle,
            message_id=raw.message_id,
            source=source,
            attributes=dict(raw.attributes),
            received_at=received_at,
        )

    def with_body(self, body: Any) -> MessageEnvelope:
        return replace(self, body=body)

    def __str__(self) -> str:
        if isinstance(self.body, str):
            return self.body
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8", errors="replace")
        return json.dumps(self.body, separators=(",", ":"), default=str)


@dataclass(frozen=True, slots=True)
class Success:
    """Processing succeeded; the message will be deleted."""

    value: Any = None


@dataclass(frozen=True, slots=True)
class Failure:
    """Processing failed; the message will be reported to the error queue."""

    detail: Any


ProcessingOutcome = Success | Failure


def _detail_to_json(detail: Any) -> Any:
    if isinstance(detail, BaseException):
        return {"type": type(detail).__name__, "message": str(detail)}
    return detail


@dataclass(frozen=True, slots=True)
class ErrorDocument:
    """Failure record published to a queue's error queue."""

    error_message: Any
    original_message: str

    @classmethod
    def from_failure(cls, detail: Any, envelope: MessageEnvelope) -> ErrorDocument:
        return cls(error_message=_detail_to_json(detail), original_message=str(envelope))

    def to_dict(self) -> dict[str, Any]:
        return {
            "error-message": self.error_message,
            "original-message": self.original_message,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), default=str)
