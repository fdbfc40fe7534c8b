"""Command line for sqs-subscriber: ensure, publish and subscribe."""

from __future__ import annotations

import asyncio
import logging
import sys

import typer

from sqs_subscriber.integrations import SQSQueueClient
from sqs_subscriber.subscription import (
    MessageEnvelope,
    Publisher,
    QueueDescriptor,
    QueueError,
    QueueProvisioner,
    SensitiveDataLogFilter,
    SubscriberConfig,
    SubscriptionEngine,
    Success,
    load_subscriber_config,
    redact_body,
)

logger = logging.getLogger("sqs_subscriber.cli")

app = typer.Typer(
    name="sqs-subscriber",
    help="Publish to and subscribe from Amazon SQS queues.",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(item, SensitiveDataLogFilter) for item in handler.filters):
            handler.addFilter(SensitiveDataLogFilter())


def _create_client(config: SubscriberConfig) -> SQSQueueClient:
    return SQSQueueClient(
        region_name=config.region_name,
        endpoint_url=config.endpoint_url,
        max_messages=config.max_messages,
        wait_time_seconds=config.wait_time_seconds,
        visibility_timeout=config.visibility_timeout,
    )


def _descriptor(queue: str) -> QueueDescriptor:
    try:
        return QueueDescriptor(queue.strip())
    except ValueError as exc:
        raise typer.BadParameter("queue must not be empty.") from exc


class _LoggingProcessor:
    """Log every message and acknowledge it."""

    async def process(self, envelope: MessageEnvelope) -> Success:
        logger.info("Subscriber got %s", redact_body(envelope.body))
        return Success()


async def _ensure_impl(config: SubscriberConfig) -> None:
    async with _create_client(config) as client:
        await QueueProvisioner(client).ensure(QueueDescriptor(config.queue_name))


async def _publish_impl(config: SubscriberConfig, body: str, error: bool) -> str:
    descriptor = QueueDescriptor(config.queue_name)
    async with _create_client(config) as client:
        await QueueProvisioner(client).ensure(descriptor)
        publisher = Publisher(client)
        if error:
            return await publisher.publish_error(descriptor, body)
        return await publisher.publish(descriptor, body)


async def _subscribe_impl(config: SubscriberConfig, seconds: float) -> dict[str, object]:
    async with _create_client(config) as client:
        engine = SubscriptionEngine.from_config(config, client=client, processor=_LoggingProcessor())
        await engine.start()
        try:
            if seconds > 0:
                await asyncio.sleep(seconds)
            else:
                await asyncio.Event().wait()
        finally:
            await engine.stop()
        return await engine.health_check()


@app.command("ensure")
def ensure_command(
    queue: str = typer.Argument(..., help="Queue name; its error queue is created too"),
    endpoint_url: str = typer.Option("", "--endpoint-url", help="SQS endpoint, e.g. http://localhost:9324"),
    region: str = typer.Option("", "--region", help="AWS region"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Create a queue and its error queue if they do not exist."""
    _configure_logging(verbose)
    descriptor = _descriptor(queue)
    config = SubscriberConfig(queue_name=descriptor.name, endpoint_url=endpoint_url or None, region_name=region or None)
    try:
        asyncio.run(_ensure_impl(config))
    except (QueueError, RuntimeError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc
    typer.echo(f"{descriptor.name}, {descriptor.error_name}")


@app.command("publish")
def publish_command(
    queue: str = typer.Argument(..., help="Queue name"),
    body: str = typer.Argument(..., help="Message body"),
    error: bool = typer.Option(False, "--error", help="Publish to the error queue instead"),
    endpoint_url: str = typer.Option("", "--endpoint-url", help="SQS endpoint, e.g. http://localhost:9324"),
    region: str = typer.Option("", "--region", help="AWS region"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Publish a message and print its delivery id."""
    _configure_logging(verbose)
    descriptor = _descriptor(queue)
    config = SubscriberConfig(queue_name=descriptor.name, endpoint_url=endpoint_url or None, region_name=region or None)
    try:
        delivery_id = asyncio.run(_publish_impl(config, body, error))
    except (QueueError, RuntimeError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc
    typer.echo(delivery_id)


@app.command("subscribe")
def subscribe_command(
    config_path: str = typer.Option(..., "--config", help="Subscriber YAML config"),
    seconds: float = typer.Option(0.0, "--seconds", help="Stop after this many seconds (0 runs until interrupted)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Subscribe to a queue, logging and deleting every message."""
    _configure_logging(verbose)
    if seconds < 0:
        raise typer.BadParameter("seconds must be non-negative.")
    try:
        config = load_subscriber_config(config_path)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(2) from exc
    try:
        health = asyncio.run(_subscribe_impl(config, seconds))
    except (QueueError, RuntimeError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc
    typer.echo(
        f"received={health['received_count']} processed={health['processed_count']} failed={health['failed_count']}"
    )


def main() -> None:
    """CLI entry point."""
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
