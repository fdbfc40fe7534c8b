"""Amazon SQS queue client implementation."""

from __future__ import annotations

import contextlib
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqs_subscriber.subscription.errors import (
    DeletionError,
    DeliveryError,
    ProvisioningError,
    QueueError,
    ReceiveError,
)
from sqs_subscriber.subscription.models import RawMessage

_QUEUE_EXISTS_CODES = {"QueueAlreadyExists", "QueueNameExists"}


def _import_aioboto3() -> Any:
    """Import aioboto3 lazily so the optional dependency is only needed at runtime."""
    try:
        import aioboto3  # type: ignore[import-not-found]
    except ImportError as exc:
        raise RuntimeError("SQS client requires aioboto3. Install with: pip install 'sqs-subscriber[sqs]'") from exc
    return aioboto3


def _error_code(exc: Exception) -> str:
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return ""
    return str(response.get("Error", {}).get("Code", ""))


class SQSQueueClient:
    """Queue client backed by Amazon SQS (aioboto3).

    Use as an async context manager, or call :meth:`connect` and :meth:`close`.
    A pre-built client can be injected with ``client=`` (tests, shared sessions).
    """

    def __init__(
        self,
        *,
        region_name: str | None = None,
        endpoint_url: str | None = None,
        max_messages: int = 10,
        wait_time_seconds: int = 20,
        visibility_timeout: int | None = None,
        session: Any | None = None,
        client: Any | None = None,
    ) -> None:
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self.max_messages = max_messages
        self.wait_time_seconds = wait_time_seconds
        self.visibility_timeout = visibility_timeout

        self._session = session
        self._client = client
        self._exit_stack: contextlib.AsyncExitStack | None = None
        self._queue_urls: dict[str, str] = {}

    async def __aenter__(self) -> SQSQueueClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open the underlying aioboto3 SQS client."""
        if self._client is not None:
            return
        if self._session is None:
            self._session = _import_aioboto3().Session()
        self._exit_stack = contextlib.AsyncExitStack()
        self._client = await self._exit_stack.enter_async_context(
            self._session.client("sqs", region_name=self.region_name, endpoint_url=self.endpoint_url)
        )

    async def close(self) -> None:
        """Close the underlying client if this instance opened it."""
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._exit_stack = None
            self._client = None
        self._queue_urls.clear()

    async def ensure_queue(self, name: str) -> None:
        client = self._require_client()
        try:
            response = await client.create_queue(QueueName=name)
        except Exception as exc:
            if _error_code(exc) not in _QUEUE_EXISTS_CODES:
                raise ProvisioningError(f"Failed to create queue {name}: {exc}") from exc
            try:
                response = await client.get_queue_url(QueueName=name)
            except Exception as lookup_exc:
                raise ProvisioningError(f"Failed to look up existing queue {name}: {lookup_exc}") from lookup_exc
        self._queue_urls[name] = response["QueueUrl"]

    async def send_message(self, queue_name: str, body: str) -> str:
        client = self._require_client()
        try:
            queue_url = await self._queue_url(queue_name)
            response = await client.send_message(QueueUrl=queue_url, MessageBody=body)
        except Exception as exc:
            raise DeliveryError(f"Failed to send message to {queue_name}: {exc}") from exc
        return str(response["MessageId"])

    async def receive_messages(self, queue_name: str) -> Sequence[RawMessage]:
        client = self._require_client()
        request: dict[str, Any] = {
            "MaxNumberOfMessages": self.max_messages,
            "WaitTimeSeconds": self.wait_time_seconds,
            "AttributeNames": ["All"],
            "MessageAttributeNames": ["All"],
        }
        if self.visibility_timeout is not None:
            request["VisibilityTimeout"] = self.visibility_timeout
        try:
            queue_url = await self._queue_url(queue_name)
            response = await client.receive_message(QueueUrl=queue_url, **request)
        except Exception as exc:
            raise ReceiveError(f"Failed to receive messages from {queue_name}: {exc}") from exc
        return [self._to_raw_message(message) for message in response.get("Messages", [])]

    async def delete_message(self, queue_name: str, receipt_handle: str) -> None:
        client = self._require_client()
        try:
            queue_url = await self._queue_url(queue_name)
            await client.delete_message(QueueUrl=queue_url, ReceiptHandle=receipt_handle)
        except Exception as exc:
            code = _error_code(exc)
            reason = f" ({code})" if code else ""
            raise DeletionError(f"Failed to delete message from {queue_name}{reason}: {exc}") from exc

    def _require_client(self) -> Any:
        if self._client is None:
            raise QueueError("SQS client is not connected")
        return self._client

    async def _queue_url(self, name: str) -> str:
        cached = self._queue_urls.get(name)
        if cached is not None:
            return cached
        response = await self._require_client().get_queue_url(QueueName=name)
        self._queue_urls[name] = response["QueueUrl"]
        return self._queue_urls[name]

    @staticmethod
    def _to_raw_message(message: dict[str, Any]) -> RawMessage:
        attributes = {str(key): str(value) for key, value in message.get("Attributes", {}).items()}
        for key, value in message.get("MessageAttributes", {}).items():
            if "StringValue" in value:
                attributes[str(key)] = str(value["StringValue"])
        sent_timestamp = attributes.get("SentTimestamp")
        if sent_timestamp and sent_timestamp.isdigit():
            received_at = datetime.fromtimestamp(int(sent_timestamp) / 1000, tz=timezone.utc)
        else:
            received_at = datetime.now(timezone.utc)
        return RawMessage(
            message_id=str(message.get("MessageId", "")),
            body=str(message.get("Body", "")),
            receipt_handle=str(message["ReceiptHandle"]),
            attributes=attributes,
            received_at=received_at,
        )
