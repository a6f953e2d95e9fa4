"""Consumes order requests from a RabbitMQ queue."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Protocol

import pika
import pika.exceptions

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.5


@dataclass
class ConsumerOpts:
    rabbitmq_url: str = ""
    queue_name: str = ""
    prefetch: int = 1


@dataclass
class Delivery:
    """A received message together with what is needed to settle it."""

    body: bytes
    channel: Any
    delivery_tag: int

    def ack(self) -> None:
        self.channel.basic_ack(delivery_tag=self.delivery_tag, multiple=False)

    def nack(self) -> None:
        self.channel.basic_nack(delivery_tag=self.delivery_tag, multiple=False, requeue=False)


class MessageHandler(Protocol):
    def handle_message(self, message: Delivery) -> None:
        ...


class Consumer:
    """Hands every message of the configured queue to a request handler."""

    def __init__(self, opts: ConsumerOpts, request_handler: MessageHandler) -> None:
        self.opts = opts
        self._handler = request_handler

    def start(self, stop_event: threading.Event) -> None:
        """Consume until ``stop_event`` is set; raise RuntimeError on setup failure."""
        try:
            connection = pika.BlockingConnection(pika.URLParameters(self.opts.rabbitmq_url))
        except pika.exceptions.AMQPError as exc:
            raise RuntimeError(f"failed to connect to RabbitMQ: {exc}") from exc
        try:
            try:
                channel = connection.channel()
            except pika.exceptions.AMQPError as exc:
                raise RuntimeError(f"failed to open channel: {exc}") from exc
            try:
                self._consume(channel, stop_event)
            finally:
                channel.close()
        finally:
            connection.close()

    def _consume(self, channel: Any, stop_event: threading.Event) -> None:
        queue = self.opts.queue_name
        try:
            channel.queue_declare(queue=queue, durable=True, exclusive=False, auto_delete=False)
        except pika.exceptions.AMQPError as exc:
            raise RuntimeError(f"failed to declare queue: {exc}") from exc
        try:
            channel.basic_qos(prefetch_count=self.opts.prefetch)
        except pika.exceptions.AMQPError as exc:
            raise RuntimeError(f"failed to set QoS: {exc}") from exc

        try:
            messages = channel.consume(queue, auto_ack=False, inactivity_timeout=_POLL_INTERVAL)
        except pika.exceptions.AMQPError as exc:
            raise RuntimeError(f"failed to start consuming: {exc}") from exc

        logger.info("Consumer started for queue: %s", queue)
        for method, _properties, body in messages:
            if stop_event.is_set():
                break
            if method is None:
                continue
            self._handler.handle_message(
                Delivery(body=body, channel=channel, delivery_tag=method.delivery_tag)
            )
        channel.cancel()