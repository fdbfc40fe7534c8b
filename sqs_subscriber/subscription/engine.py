"""Subscription runtime: queue polling, message dispatch and outcome resolution."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Iterable
from typing import Any

from sqs_subscriber.subscription.config import DEFAULT_POLL_BACKOFF_SECONDS, SubscriberConfig, validate_config
from sqs_subscriber.subscription.errors import DeletionError
from sqs_subscriber.subscription.filters import FilterChain
from sqs_subscriber.subscription.listeners import ListenerBroadcast
from sqs_subscriber.subscription.models import (
    Failure,
    MessageEnvelope,
    ProcessingOutcome,
    QueueDescriptor,
    Success,
)
from sqs_subscriber.subscription.protocols import FilterFunction, Listener, MessageProcessor, QueueClient
from sqs_subscriber.subscription.provisioning import QueueProvisioner
from sqs_subscriber.subscription.publisher import Publisher
from sqs_subscriber.subscription.reporter import ErrorReporter
from sqs_subscriber.subscription.security import redact_body, redact_error_message

logger = logging.getLogger(__name__)


class _Signal:
    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


POLL = _Signal("POLL")
_STOP = _Signal("STOP")


class SubscriptionEngine:
    """Self-driving subscriber for one queue.

    The engine reads signals from its own mailbox one at a time. A ``POLL`` signal
    receives a batch from the queue; every received message is posted back to the
    mailbox as an envelope, followed by the next ``POLL``, so polling carries on
    while earlier messages are still being dispatched. An empty batch (or a failed
    receive) posts the next ``POLL`` only after ``poll_backoff_seconds``.

    Every envelope taken from the mailbox is broadcast to the listeners and then
    dispatched in its own task: filter chain, processor, then delete on success or
    error report on failure. ``POLL`` is never broadcast.

    Subclasses may override :meth:`delete` and :meth:`publish_error` to change how
    messages are resolved.
    """

    def __init__(
        self,
        *,
        descriptor: QueueDescriptor,
        client: QueueClient,
        processor: MessageProcessor,
        filters: Iterable[FilterFunction] | FilterChain = (),
        listeners: Iterable[Listener] = (),
        poll_backoff_seconds: float = DEFAULT_POLL_BACKOFF_SECONDS,
        publisher: Publisher | None = None,
        provisioner: QueueProvisioner | None = None,
        reporter: ErrorReporter | None = None,
    ) -> None:
        if poll_backoff_seconds < 0:
            raise ValueError("poll_backoff_seconds must be non-negative")

        self.descriptor = descriptor
        self.client = client
        self.processor = processor
        self.filters = filters if isinstance(filters, FilterChain) else FilterChain(filters)
        self.listeners = ListenerBroadcast(listeners)
        self.poll_backoff_seconds = poll_backoff_seconds
        self.publisher = publisher or Publisher(client)
        self.provisioner = provisioner or QueueProvisioner(client)
        self.reporter = reporter or ErrorReporter(self.publisher, self.delete)

        self._running = False
        self._inbox: asyncio.Queue[Any] | None = None
        self._mailbox_task: asyncio.Task[None] | None = None
        self._backoff_task: asyncio.Task[None] | None = None
        self._dispatches: set[asyncio.Task[None]] = set()
        self._poll_count = 0
        self._empty_polls = 0
        self._poll_errors = 0
        self._received_count = 0
        self._filtered_count = 0
        self._processed_count = 0
        self._failed_count = 0
        self._deleted_count = 0
        self._resolution_errors = 0

    @classmethod
    def from_config(
        cls,
        config: SubscriberConfig,
        *,
        client: QueueClient,
        processor: MessageProcessor,
        filters: Iterable[FilterFunction] = (),
        listeners: Iterable[Listener] = (),
    ) -> SubscriptionEngine:
        config_errors = validate_config(config)
        if config_errors:
            raise ValueError(f"Invalid SubscriberConfig: {'; '.join(config_errors)}")
        return cls(
            descriptor=QueueDescriptor(config.queue_name),
            client=client,
            processor=processor,
            filters=filters,
            listeners=listeners,
            poll_backoff_seconds=config.poll_backoff_seconds,
        )

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Provision the queues and begin polling.

        A :class:`ProvisioningError` propagates and leaves the engine stopped.
        """
        if self._running:
            raise RuntimeError("SubscriptionEngine already running")
        logger.info("Initialising subscription to %s", self.descriptor.name)
        await self.provisioner.ensure(self.descriptor)

        self._inbox = asyncio.Queue()
        self._running = True
        self._inbox.put_nowait(POLL)
        self._mailbox_task = asyncio.create_task(
            self._mailbox_loop(),
            name=f"subscription-{self.descriptor.name}",
        )

    async def stop(self) -> None:
        """Stop polling and wait for in-flight dispatches to finish."""
        if self._mailbox_task is None:
            return
        self._running = False
        if self._backoff_task is not None:
            self._backoff_task.cancel()
            await asyncio.gather(self._backoff_task, return_exceptions=True)
            self._backoff_task = None
        if self._inbox is not None:
            self._inbox.put_nowait(_STOP)
        await asyncio.gather(self._mailbox_task, return_exceptions=True)
        self._mailbox_task = None
        current = asyncio.current_task()
        dispatches = [task for task in self._dispatches if task is not current]
        if dispatches:
            await asyncio.gather(*dispatches, return_exceptions=True)
        await self.listeners.drain()
        self._inbox = None
        logger.info("Subscription to %s stopped", self.descriptor.name)

    def tell(self, item: Any) -> None:
        """Post an application item to the mailbox; it is broadcast to listeners."""
        if not self._running or self._inbox is None:
            raise RuntimeError("SubscriptionEngine is not running")
        if item is POLL or item is _STOP or isinstance(item, MessageEnvelope):
            raise ValueError("queue messages and internal signals cannot be posted directly")
        self._inbox.put_nowait(item)

    async def health_check(self) -> dict[str, Any]:
        """Return runtime state and counters."""
        if not self._running:
            status = "stopped"
        elif self._mailbox_task is None or self._mailbox_task.done():
            status = "unhealthy"
        else:
            status = "healthy"
        return {
            "status": status,
            "queue": self.descriptor.name,
            "running": self._running,
            "in_flight": len([task for task in self._dispatches if not task.done()]),
            "poll_count": self._poll_count,
            "empty_polls": self._empty_polls,
            "poll_errors": self._poll_errors,
            "received_count": self._received_count,
            "filtered_count": self._filtered_count,
            "processed_count": self._processed_count,
            "failed_count": self._failed_count,
            "deleted_count": self._deleted_count,
            "resolution_errors": self._resolution_errors,
        }

    async def delete(self, envelope: MessageEnvelope) -> MessageEnvelope:
        """Delete a message from the primary queue.

        Override for custom deletion, or to keep the message.
        """
        try:
            await self.client.delete_message(self.descriptor.name, envelope.receipt_handle)
        except DeletionError:
            raise
        except Exception as exc:
            raise DeletionError(f"Failed to delete message {envelope.message_id}: {exc}") from exc
        self._deleted_count += 1
        logger.debug("Deleted message %s from %s", envelope.message_id, self.descriptor.name)
        return envelope

    async def publish_error(self, detail: Any, envelope: MessageEnvelope) -> bool:
        """Publish a failure document for the message, then delete it.

        Override for custom error publication. An override that does not delete the
        message leaves it on the queue.
        """
        return await self.reporter.report(self.descriptor, detail, envelope)

    async def _mailbox_loop(self) -> None:
        inbox = self._inbox
        assert inbox is not None
        logger.debug("Mailbox for %s started", self.descriptor.name)
        try:
            while True:
                item = await inbox.get()
                if item is _STOP:
                    break
                await self._handle_safely(item)
                # Let dispatch tasks run between items.
                await asyncio.sleep(0)
            # Messages received by a poll that raced with stop are still dispatched.
            while not inbox.empty():
                item = inbox.get_nowait()
                if item is not _STOP:
                    await self._handle_safely(item)
        except Exception:
            logger.exception("Mailbox for %s crashed", self.descriptor.name)
        finally:
            logger.debug("Mailbox for %s stopped", self.descriptor.name)

    async def _handle_safely(self, item: Any) -> None:
        try:
            await self._handle(item)
        except Exception:
            logger.exception("Mailbox for %s failed to handle %r", self.descriptor.name, item)
            if item is POLL:
                self._poll_errors += 1
                self._schedule_poll(self.poll_backoff_seconds)

    async def _handle(self, item: Any) -> None:
        if item is POLL:
            if self._running:
                await self._poll()
            return

        self.listeners.notify(item)

        if isinstance(item, MessageEnvelope):
            self._received_count += 1
            task = asyncio.create_task(self._dispatch(item), name=f"dispatch-{item.message_id}")
            self._dispatches.add(task)
            task.add_done_callback(self._dispatches.discard)
            return

        logger.error(
            "Received item that is not a queue message (it must have been sent to this engine directly): %r",
            item,
        )

    async def _poll(self) -> None:
        assert self._inbox is not None
        self._poll_count += 1
        try:
            messages = await self.client.receive_messages(self.descriptor.name)
            envelopes = [MessageEnvelope.from_raw_message(raw, source=self.descriptor.name) for raw in messages]
        except Exception as exc:
            self._poll_errors += 1
            logger.error("Failed to receive messages from %s: %s", self.descriptor.name, redact_error_message(exc))
            self._schedule_poll(self.poll_backoff_seconds)
            return

        if not envelopes:
            self._empty_polls += 1
            self._schedule_poll(self.poll_backoff_seconds)
            return

        for envelope in envelopes:
            self._inbox.put_nowait(envelope)
        self._inbox.put_nowait(POLL)

    def _schedule_poll(self, delay: float) -> None:
        if not self._running or self._inbox is None:
            return
        self._backoff_task = asyncio.create_task(self._delayed_poll(delay))

    async def _delayed_poll(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._running and self._inbox is not None:
            self._inbox.put_nowait(POLL)

    async def _dispatch(self, envelope: MessageEnvelope) -> None:
        logger.info("Received subscribed message %s: %s", envelope.message_id, redact_body(envelope.body))
        try:
            filtered = await self.filters.apply(envelope)
        except Exception:
            self._failed_count += 1
            logger.exception("Filter chain failed for message %s, leaving it on the queue", envelope.message_id)
            return
        if filtered is None:
            self._filtered_count += 1
            logger.warning("Filtered out message %s", envelope.message_id)
            return

        outcome = await self._process(filtered)
        try:
            if isinstance(outcome, Success):
                await self.delete(filtered)
                self._processed_count += 1
                return
            self._failed_count += 1
            if not await self.publish_error(outcome.detail, filtered):
                self._resolution_errors += 1
        except DeletionError as exc:
            self._resolution_errors += 1
            logger.error(
                "Failed to delete message %s from %s: %s",
                envelope.message_id,
                self.descriptor.name,
                redact_error_message(exc),
            )
        except Exception:
            self._resolution_errors += 1
            logger.exception("Failed to resolve message %s", envelope.message_id)

    async def _process(self, envelope: MessageEnvelope) -> ProcessingOutcome:
        try:
            outcome = self.processor.process(envelope)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as exc:
            logger.warning("Processing message %s raised: %s", envelope.message_id, redact_error_message(exc))
            return Failure(exc)
        if not isinstance(outcome, Success | Failure):
            return Failure(f"processor returned {type(outcome).__name__}, expected Success or Failure")
        return outcome
