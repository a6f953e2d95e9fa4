"""Order book entries, order requests and the events an order emits."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol, Union

from matchengine.model import OrderEvent

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)


class EventType(str, Enum):
    PENDING_NEW = "pending_new"
    NEW = "new"
    FILL = "fill"
    PARTIAL_FILL = "partial_fill"
    CANCELED = "canceled"
    REJECTED = "rejected"


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"

    def is_valid(self) -> bool:
        return self in (Side.BUY, Side.SELL)


class EventNotifier(Protocol):
    """Receives published order events and trades; raises on failure."""

    def notify_event_and_trade(self, order_id: str, value: bytes) -> None:
        ...


class OrderValidationError(ValueError):
    """An order request failed validation."""


def _text(value: Union[str, Enum]) -> str:
    return value.value if isinstance(value, Enum) else str(value)


@dataclass
class OrderRequest:
    """A trader's request to place an order."""

    id: str = ""
    side: Union[Side, str] = ""
    price: Decimal = _ZERO
    qty: Decimal = _ZERO
    timestamp: int = 0

    def validate(self) -> None:
        if not self.id:
            raise OrderValidationError("missing order id")
        try:
            side = Side(self.side)
        except ValueError:
            raise OrderValidationError("invalid order side") from None
        if not side.is_valid():
            raise OrderValidationError("invalid order side")
        if not self.qty > 0:
            raise OrderValidationError("invalid order qty")
        if self.price < 0:
            raise OrderValidationError("invalid price")


@dataclass
class BookOrder:
    """An order as held by the order book."""

    id: str = ""
    instrument: str = ""
    price: Decimal = _ZERO
    order_qty: Decimal = _ZERO
    leaves_qty: Decimal = _ZERO
    timestamp: int = 0
    is_bid: bool = False
    order_status: str = ""
    exec_type: str = ""
    exec_qty: Decimal = _ZERO
    producer: Optional[EventNotifier] = field(default=None, repr=False, compare=False)

    def side(self) -> Side:
        return Side.BUY if self.is_bid else Side.SELL

    def publish_event(self, event_type: Union[EventType, str]) -> None:
        """Send this order's state as an event of the given type to its producer."""
        if self.producer is None:
            logger.warning("No event producer for order %s", self.id)
            return
        event = OrderEvent(
            event_type=_text(event_type),
            order_id=self.id,
            instrument=self.instrument,
            price=self.price,
            quantity=self.order_qty,
            leaves_qty=self.leaves_qty,
            exec_qty=self.exec_qty,
            is_bid=self.is_bid,
            order_status=_text(self.order_status),
            exec_type=_text(self.exec_type),
        )
        try:
            self.producer.notify_event_and_trade(self.id, event.to_json())
        except Exception as exc:  # a failed publish must not stop matching
            logger.error("Error publishing event: %s", exc)
        else:
            logger.info("Event published for order %s: %s", self.id, _text(event_type))


def _new_base_order(
    exec_type: EventType,
    order_id: str,
    price: Decimal,
    is_bid: bool,
    producer: Optional[EventNotifier],
) -> BookOrder:
    return BookOrder(
        id=order_id,
        timestamp=time.time_ns(),
        exec_type=exec_type,
        price=price,
        is_bid=is_bid,
        producer=producer,
    )


def _new_base_order_event(
    exec_type: EventType, order: BookOrder, producer: Optional[EventNotifier]
) -> BookOrder:
    event = _new_base_order(exec_type, order.id, order.price, order.is_bid, producer)
    event.order_qty = order.order_qty
    event.leaves_qty = order.leaves_qty
    event.exec_qty = order.exec_qty
    event.instrument = order.instrument
    return event


def new_order_event(order: BookOrder, producer: Optional[EventNotifier]) -> BookOrder:
    """Create and publish the event for an order resting on the book."""
    event = _new_base_order_event(EventType.NEW, order, producer)
    event.exec_qty = _ZERO
    event.order_status = EventType.NEW
    event.publish_event(EventType.NEW)
    return event


def new_fill_order_event(
    order: BookOrder,
    qty: Decimal,
    trade_price: Decimal,
    producer: Optional[EventNotifier],
) -> BookOrder:
    """Create and publish a fill or partial-fill event for an order."""
    event = _new_base_order_event(EventType.FILL, order, producer)
    event.order_status = EventType.PARTIAL_FILL if order.leaves_qty > 0 else EventType.FILL
    event.exec_qty = qty
    if trade_price > event.price:
        event.price = trade_price
    event.publish_event(event.order_status)
    return event


def new_canceled_order_event(order: BookOrder, producer: Optional[EventNotifier]) -> BookOrder:
    """Create and publish the event for a canceled order."""
    logger.info("Creating canceled event for order: %s", order.id)
    event = _new_base_order_event(EventType.CANCELED, order, producer)
    event.leaves_qty = _ZERO
    event.order_status = EventType.CANCELED
    event.publish_event(EventType.CANCELED)
    return event


def new_rejected_order_event(
    request: OrderRequest, producer: Optional[EventNotifier]
) -> BookOrder:
    """Create and publish the event for a rejected order request."""
    event = _new_base_order(
        EventType.REJECTED, request.id, request.price, request.side == Side.BUY, producer
    )
    event.order_qty = request.qty
    event.leaves_qty = _ZERO
    event.order_status = EventType.REJECTED
    event.publish_event(EventType.REJECTED)
    return event