"""Routes order requests to per-instrument books and order events to storage."""

from __future__ import annotations

import logging
import threading
import time
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Protocol

from matchengine.model import Order, OrderEvent
from matchengine.order import EventNotifier, EventType, Side
from matchengine.order_book import OrderBook
from matchengine.rmq_request import OrderRequest, RequestType

logger = logging.getLogger(__name__)

_SAVE_EVENTS = {EventType.NEW.value, EventType.PENDING_NEW.value}
_UPDATE_EVENTS = {
    EventType.FILL.value,
    EventType.PARTIAL_FILL.value,
    EventType.CANCELED.value,
    EventType.REJECTED.value,
}


class UnknownEventTypeError(ValueError):
    """An order event carried a type the handler does not know."""


class OrderService(Protocol):
    def save_order_async(self, order: Order) -> None:
        ...

    def update_order_async(
        self,
        order_id: str,
        order_status: str,
        exec_type: str,
        leaves_qty: Decimal,
        exec_qty: Decimal,
    ) -> None:
        ...


class Message(Protocol):
    body: bytes

    def ack(self) -> None:
        ...

    def nack(self) -> None:
        ...


def _decimal(text: str, name: str) -> Decimal:
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"invalid {name}: {text!r}") from None
    if not value.is_finite():
        raise ValueError(f"invalid {name}: {text!r}")
    return value


def _event_to_order(event: OrderEvent) -> Order:
    return Order(
        id=event.order_id,
        instrument=event.instrument,
        price=event.price,
        order_qty=event.quantity,
        leaves_qty=event.leaves_qty,
        exec_qty=event.exec_qty,
        is_bid=event.is_bid,
        order_status=event.order_status,
        exec_type=event.exec_type,
    )


class OrderRequestHandler:
    """Keeps one order book per instrument and dispatches incoming messages."""

    def __init__(self, order_service: OrderService, event_notifier: Optional[EventNotifier]) -> None:
        self.order_service = order_service
        self._event_notifier = event_notifier
        self._books: Dict[str, OrderBook] = {}
        self._books_lock = threading.Lock()
        self._order_locks: Dict[str, threading.Lock] = {}
        self._order_locks_guard = threading.Lock()

    def order_book(self, instrument: str) -> Optional[OrderBook]:
        """Return the book for an instrument, or None if none was created yet."""
        with self._books_lock:
            return self._books.get(instrument)

    def _book_for(self, instrument: str) -> OrderBook:
        with self._books_lock:
            book = self._books.get(instrument)
            if book is None:
                book = OrderBook(self._event_notifier)
                self._books[instrument] = book
            return book

    def handle_message(self, message: Message) -> None:
        """Process one queued order request, then acknowledge it."""
        try:
            request = OrderRequest.from_json(message.body)
        except ValueError as exc:
            self._handle_failure(message, f"invalid message format: {exc}")
            return

        order_id = request.order.id
        with self._order_locks_guard:
            lock = self._order_locks.setdefault(order_id, threading.Lock())
        with lock:
            try:
                book = self._book_for(request.order.instrument)
                if request.request_type == RequestType.NEW:
                    try:
                        self._handle_new_order(book, request)
                    except ValueError as exc:
                        self._handle_failure(message, str(exc))
                        return
                elif request.request_type == RequestType.CANCEL:
                    book.cancel_order(order_id, book.producer)
                else:
                    logger.warning("Unknown request type: %s", request.request_type)
            finally:
                with self._order_locks_guard:
                    self._order_locks.pop(order_id, None)

        try:
            message.ack()
        except Exception as exc:
            logger.error("Failed to acknowledge message: %s", exc)

    def _handle_new_order(self, book: OrderBook, request: OrderRequest) -> None:
        trader_order = request.order
        order = Order(
            id=trader_order.id,
            price=_decimal(trader_order.price, "price"),
            order_qty=_decimal(trader_order.qty, "qty"),
            instrument=trader_order.instrument,
            timestamp=time.time_ns(),
            order_status=EventType.PENDING_NEW.value,
            is_bid=trader_order.side == Side.BUY,
        )
        book.on_new_order(order, book.producer)

    def handle_event_messages(self, message: bytes) -> None:
        """Persist an order event; malformed events are logged and skipped."""
        try:
            event = OrderEvent.from_json(message)
        except ValueError as exc:
            logger.error("Error unmarshaling JSON: %s, message: %r", exc, message)
            return

        if event.event_type in _SAVE_EVENTS:
            self.order_service.save_order_async(_event_to_order(event))
        elif event.event_type in _UPDATE_EVENTS:
            self.order_service.update_order_async(
                event.order_id,
                event.order_status,
                event.exec_type,
                event.leaves_qty,
                event.exec_qty,
            )
        else:
            raise UnknownEventTypeError(f"unknown event type: {event.event_type}")

    @staticmethod
    def _handle_failure(message: Message, reason: str) -> None:
        logger.error("Message failed: %r, error: %s", message.body, reason)
        try:
            message.nack()
        except Exception as exc:
            logger.error("Failed to negatively acknowledge message: %s", exc)