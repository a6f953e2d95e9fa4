"""Order requests as they arrive on the request queue."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Union


class RequestType(IntEnum):
    NEW = 0
    CANCEL = 1


def _lookup(obj: Dict[str, Any], name: str) -> Any:
    """Find a key exactly, or failing that case-insensitively."""
    if name in obj:
        return obj[name]
    folded = name.casefold()
    for key, value in obj.items():
        if key.casefold() == folded:
            return value
    return None


def _text(value: Any, key: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} is not a string: {value!r}")
    return value


def _plain(value: Union[str, Enum]) -> str:
    return value.value if isinstance(value, Enum) else value


@dataclass
class TraderOrder:
    """The order part of a request; prices and quantities stay as text."""

    id: str = ""
    side: str = ""
    qty: str = ""
    price: str = ""
    instrument: str = ""

    def _to_dict(self) -> Dict[str, str]:
        pairs = (
            ("id", self.id),
            ("side", _plain(self.side)),
            ("qty", self.qty),
            ("price", self.price),
            ("instrument", self.instrument),
        )
        return {key: value for key, value in pairs if value}

    @classmethod
    def _from_dict(cls, obj: Dict[str, Any]) -> "TraderOrder":
        return cls(
            id=_text(_lookup(obj, "id"), "id"),
            side=_text(_lookup(obj, "side"), "side"),
            qty=_text(_lookup(obj, "qty"), "qty"),
            price=_text(_lookup(obj, "price"), "price"),
            instrument=_text(_lookup(obj, "instrument"), "instrument"),
        )


@dataclass
class OrderRequest:
    """A request to place or cancel an order."""

    request_type: int = RequestType.NEW
    order: TraderOrder = field(default_factory=TraderOrder)

    def to_json(self) -> bytes:
        return json.dumps(
            {"RequestType": int(self.request_type), "Order": self.order._to_dict()},
            separators=(",", ":"),
        ).encode("utf-8")

    @classmethod
    def from_json(cls, data: Union[str, bytes, bytearray]) -> "OrderRequest":
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8")
        obj = json.loads(data)
        if not isinstance(obj, dict):
            raise ValueError("expected a JSON object")

        raw_type = _lookup(obj, "RequestType")
        if raw_type is None:
            raw_type = 0
        if isinstance(raw_type, bool) or not isinstance(raw_type, int):
            raise ValueError(f"field 'RequestType' is not an integer: {raw_type!r}")
        try:
            request_type: int = RequestType(raw_type)
        except ValueError:
            request_type = raw_type

        raw_order = _lookup(obj, "Order")
        if raw_order is None:
            order = TraderOrder()
        elif isinstance(raw_order, dict):
            order = TraderOrder._from_dict(raw_order)
        else:
            raise ValueError(f"field 'Order' is not an object: {raw_order!r}")
        return cls(request_type=request_type, order=order)