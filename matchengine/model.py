"""Plain data records exchanged between the order book, the queues and storage."""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

_ZERO = Decimal(0)


def _decimal_text(value: Decimal) -> str:
    """Render a decimal in plain notation without trailing fractional zeros."""
    if value == 0:
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _parse_decimal(value: Any, key: str) -> Decimal:
    if value is None:
        return _ZERO
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError(f"field {key!r} is not a decimal: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"field {key!r} is not a decimal: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"field {key!r} is not a finite decimal: {value!r}")
    return result


def _parse_str(value: Any, key: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} is not a string: {value!r}")
    return value


def _parse_bool(value: Any, key: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} is not a boolean: {value!r}")
    return value


def _parse_int(value: Any, key: str, *, unsigned: bool = False) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} is not an integer: {value!r}")
    if unsigned and value < 0:
        raise ValueError(f"field {key!r} must not be negative: {value!r}")
    return value


def _load_object(data: str | bytes | bytearray) -> dict[str, Any]:
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    obj = json.loads(data)
    if not isinstance(obj, dict):
        raise ValueError("expected a JSON object")
    return obj


def _dump(obj: dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":")).encode("utf-8")


@dataclass
class Order:
    """An order as stored and passed between services."""

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

    def to_json(self) -> bytes:
        return _dump(
            {
                "id": self.id,
                "instrument": self.instrument,
                "price": _decimal_text(self.price),
                "order_qty": _decimal_text(self.order_qty),
                "leaves_qty": _decimal_text(self.leaves_qty),
                "timestamp": self.timestamp,
                "is_bid": self.is_bid,
                "order_status": self.order_status,
                "exec_type": self.exec_type,
                "exec_qty": _decimal_text(self.exec_qty),
            }
        )

    @classmethod
    def from_json(cls, data: str | bytes | bytearray) -> "Order":
        obj = _load_object(data)
        return cls(
            id=_parse_str(obj.get("id"), "id"),
            instrument=_parse_str(obj.get("instrument"), "instrument"),
            price=_parse_decimal(obj.get("price"), "price"),
            order_qty=_parse_decimal(obj.get("order_qty"), "order_qty"),
            leaves_qty=_parse_decimal(obj.get("leaves_qty"), "leaves_qty"),
            timestamp=_parse_int(obj.get("timestamp"), "timestamp"),
            is_bid=_parse_bool(obj.get("is_bid"), "is_bid"),
            order_status=_parse_str(obj.get("order_status"), "order_status"),
            exec_type=_parse_str(obj.get("exec_type"), "exec_type"),
            exec_qty=_parse_decimal(obj.get("exec_qty"), "exec_qty"),
        )


@dataclass
class OrderEvent:
    """A lifecycle event of an order, as published to the event topics."""

    event_type: str = ""
    order_id: str = ""
    instrument: str = ""
    price: Decimal = _ZERO
    quantity: Decimal = _ZERO
    leaves_qty: Decimal = _ZERO
    exec_qty: Decimal = _ZERO
    is_bid: bool = False
    order_status: str = ""
    exec_type: str = ""

    def to_json(self) -> bytes:
        return _dump(
            {
                "event_type": self.event_type,
                "order_id": self.order_id,
                "instrument": self.instrument,
                "price": _decimal_text(self.price),
                "quantity": _decimal_text(self.quantity),
                "leaves_qty": _decimal_text(self.leaves_qty),
                "exec_qty": _decimal_text(self.exec_qty),
                "is_bid": self.is_bid,
                "order_status": self.order_status,
                "exec_type": self.exec_type,
            }
        )

    @classmethod
    def from_json(cls, data: str | bytes | bytearray) -> "OrderEvent":
        obj = _load_object(data)
        return cls(
            event_type=_parse_str(obj.get("event_type"), "event_type"),
            order_id=_parse_str(obj.get("order_id"), "order_id"),
            instrument=_parse_str(obj.get("instrument"), "instrument"),
            price=_parse_decimal(obj.get("price"), "price"),
            quantity=_parse_decimal(obj.get("quantity"), "quantity"),
            leaves_qty=_parse_decimal(obj.get("leaves_qty"), "leaves_qty"),
            exec_qty=_parse_decimal(obj.get("exec_qty"), "exec_qty"),
            is_bid=_parse_bool(obj.get("is_bid"), "is_bid"),
            order_status=_parse_str(obj.get("order_status"), "order_status"),
            exec_type=_parse_str(obj.get("exec_type"), "exec_type"),
        )


@dataclass
class Trade:
    """An execution between a buy order and a sell order."""

    buyer_order_id: str = ""
    seller_order_id: str = ""
    quantity: int = 0
    price: int = 0
    timestamp: int = 0

    def to_json(self) -> bytes:
        return _dump(
            {
                "buyer_order_id": self.buyer_order_id,
                "seller_order_id": self.seller_order_id,
                "quantity": self.quantity,
                "price": self.price,
                "timestamp": self.timestamp,
            }
        )

    @classmethod
    def from_json(cls, data: str | bytes | bytearray) -> "Trade":
        obj = _load_object(data)
        return cls(
            buyer_order_id=_parse_str(obj.get("buyer_order_id"), "buyer_order_id"),
            seller_order_id=_parse_str(obj.get("seller_order_id"), "seller_order_id"),
            quantity=_parse_int(obj.get("quantity"), "quantity", unsigned=True),
            price=_parse_int(obj.get("price"), "price", unsigned=True),
            timestamp=_parse_int(obj.get("timestamp"), "timestamp"),
        )