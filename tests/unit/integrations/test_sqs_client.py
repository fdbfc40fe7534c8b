from __future__ import annotations

import sys
from typing import Any

import pytest

from sqs_subscriber.integrations.sqs import SQSQueueClient
from sqs_subscriber.subscription import (
    DeletionError,
    DeliveryError,
    ProvisioningError,
    QueueError,
    ReceiveError,
)


class _FakeClientError(Exception):
    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or code)
        self.response = {"Error": {"Code": code, "Message": message or code}}


class _FakeSQS:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.create_error: Exception | None = None
        self.send_error: Exception | None = None
        self.receive_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.messages: list[dict[str, Any]] = []

    async def create_queue(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("create_queue", kwargs))
        if self.create_error is not None:
            raise self.create_error
        return {"QueueUrl": f"http://sqs.local/queue/{kwargs['QueueName']}"}

    async def get_queue_url(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("get_queue_url", kwargs))
        return {"QueueUrl": f"http://sqs.local/queue/{kwargs['QueueName']}"}

    async def send_message(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("send_message", kwargs))
        if self.send_error is not None:
            raise self.send_error
        return {"MessageId": "mid-1"}

    async def receive_message(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("receive_message", kwargs))
        if self.receive_error is not None:
            raise self.receive_error
        messages, self.messages = self.messages, []
        return {"Messages": messages} if messages else {}

    async def delete_message(self, **kwargs: Any) -> None:
        self.calls.append(("delete_message", kwargs))
        if self.delete_error is not None:
            raise self.delete_error


class _FakeClientContext:
    def __init__(self, client: _FakeSQS) -> None:
        self.client = client
        self.exited = False

    async def __aenter__(self) -> _FakeSQS:
        return self.client

    async def __aexit__(self, *exc_info: object) -> None:
        self.exited = True


class _FakeSession:
    def __init__(self, client: _FakeSQS) -> None:
        self.context = _FakeClientContext(client)
        self.client_kwargs: dict[str, Any] = {}

    def client(self, service_name: str, **kwargs: Any) -> _FakeClientContext:
        self.client_kwargs = {"service_name": service_name, **kwargs}
        return self.context


@pytest.mark.asyncio
async def test_connect_opens_and_closes_session_client() -> None:
    fake = _FakeSQS()
    session = _FakeSession(fake)

    async with SQSQueueClient(region_name="eu-west-2", endpoint_url="http://localhost:9324", session=session) as client:
        await client.ensure_queue("orders")

    assert session.client_kwargs == {
        "service_name": "sqs",
        "region_name": "eu-west-2",
        "endpoint_url": "http://localhost:9324",
    }
    assert session.context.exited is True


@pytest.mark.asyncio
async def test_connect_without_aioboto3_reports_install_hint(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "aioboto3", None)

    with pytest.raises(RuntimeError, match=r"sqs-subscriber\[sqs\]"):
        await SQSQueueClient().connect()


@pytest.mark.asyncio
async def test_operations_require_connection() -> None:
    with pytest.raises(QueueError, match="not connected"):
        await SQSQueueClient(session=_FakeSession(_FakeSQS())).ensure_queue("orders")


@pytest.mark.asyncio
async def test_ensure_queue_tolerates_existing_queue() -> None:
    fake = _FakeSQS()
    fake.create_error = _FakeClientError("QueueAlreadyExists")
    client = SQSQueueClient(client=fake)

    await client.ensure_queue("orders")
    await client.send_message("orders", "x")

    assert [name for name, _ in fake.calls] == ["create_queue", "get_queue_url", "send_message"]


@pytest.mark.asyncio
async def test_ensure_queue_maps_other_failures() -> None:
    fake = _FakeSQS()
    fake.create_error = _FakeClientError("AccessDenied")

    with pytest.raises(ProvisioningError, match="AccessDenied"):
        await SQSQueueClient(client=fake).ensure_queue("orders")


@pytest.mark.asyncio
async def test_send_message_returns_message_id_and_caches_queue_url() -> None:
    fake = _FakeSQS()
    client = SQSQueueClient(client=fake)

    assert await client.send_message("orders", "a") == "mid-1"
    assert await client.send_message("orders", "b") == "mid-1"

    assert [name for name, _ in fake.calls] == ["get_queue_url", "send_message", "send_message"]
    assert fake.calls[-1][1] == {"QueueUrl": "http://sqs.local/queue/orders", "MessageBody": "b"}


@pytest.mark.asyncio
async def test_send_message_failure_is_delivery_error() -> None:
    fake = _FakeSQS()
    fake.send_error = _FakeClientError("ThrottlingException")

    with pytest.raises(DeliveryError, match="ThrottlingException"):
        await SQSQueueClient(client=fake).send_message("orders", "a")


@pytest.mark.asyncio
async def test_receive_messages_builds_raw_messages() -> None:
    fake = _FakeSQS()
    fake.messages = [
        {
            "MessageId": "m-1",
            "ReceiptHandle": "rh-1",
            "Body": '{"input":"blah"}',
            "Attributes": {"SentTimestamp": "1700000000000", "ApproximateReceiveCount": "2"},
            "MessageAttributes": {"tenant": {"DataType": "String", "StringValue": "t-1"}},
        }
    ]
    client = SQSQueueClient(client=fake, max_messages=5, wait_time_seconds=3, visibility_timeout=45)

    [message] = await client.receive_messages("orders")

    assert message.message_id == "m-1"
    assert message.receipt_handle == "rh-1"
    assert message.body == '{"input":"blah"}'
    assert message.attributes["ApproximateReceiveCount"] == "2"
    assert message.attributes["tenant"] == "t-1"
    assert message.received_at.timestamp() == pytest.approx(1_700_000_000)
    request = fake.calls[-1][1]
    assert request["MaxNumberOfMessages"] == 5
    assert request["WaitTimeSeconds"] == 3
    assert request["VisibilityTimeout"] == 45
    assert await client.receive_messages("orders") == []


@pytest.mark.asyncio
async def test_receive_omits_visibility_timeout_by_default() -> None:
    fake = _FakeSQS()
    await SQSQueueClient(client=fake).receive_messages("orders")
    assert "VisibilityTimeout" not in fake.calls[-1][1]


@pytest.mark.asyncio
async def test_receive_failure_is_receive_error() -> None:
    fake = _FakeSQS()
    fake.receive_error = _FakeClientError("ServiceUnavailable")

    with pytest.raises(ReceiveError):
        await SQSQueueClient(client=fake).receive_messages("orders")


@pytest.mark.asyncio
async def test_delete_message_passes_receipt_handle_and_maps_errors() -> None:
    fake = _FakeSQS()
    client = SQSQueueClient(client=fake)

    await client.delete_message("orders", "rh-1")
    assert fake.calls[-1] == ("delete_message", {"QueueUrl": "http://sqs.local/queue/orders", "ReceiptHandle": "rh-1"})

    fake.delete_error = _FakeClientError("ReceiptHandleIsInvalid")
    with pytest.raises(DeletionError, match="ReceiptHandleIsInvalid"):
        await client.delete_message("orders", "rh-1")
