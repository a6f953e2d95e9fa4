"""Order persistence on top of the ``active_orders`` queries."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

from matchengine.db import ActiveOrder, CreateActiveOrderParams, UpdateActiveOrderParams
from matchengine.model import Order
from matchengine.order import Side


class OrderQueries(Protocol):
    def create_active_order(self, params: CreateActiveOrderParams) -> ActiveOrder:
        ...

    def update_active_order(self, params: UpdateActiveOrderParams) -> ActiveOrder:
        ...


class OrderRepository(Protocol):
    def save_order(self, order: Order) -> Order:
        ...

    def update_order(
        self,
        order_id: str,
        order_status: str,
        exec_type: str,
        leaves_qty: Decimal,
        exec_qty: Decimal,
    ) -> Order:
        ...


class DBTask(Protocol):
    def execute(self, repo: OrderRepository) -> object:
        ...


def _to_numeric(value: Decimal) -> Decimal:
    numeric = Decimal(value)
    if not numeric.is_finite():
        raise ValueError(f"cannot store {value!r} as a numeric")
    return numeric


def _from_numeric(value: Optional[Decimal], name: str) -> Decimal:
    if value is None:
        raise ValueError(f"converting {name}: numeric value is NULL")
    return Decimal(value)


def map_active_order_to_order(active_order: ActiveOrder) -> Order:
    """Convert a stored row to an order; NULL numerics are an error."""
    return Order(
        id=active_order.id,
        price=_from_numeric(active_order.price, "price"),
        order_qty=_from_numeric(active_order.order_qty, "qty"),
        instrument=active_order.instrument,
        leaves_qty=_from_numeric(active_order.leaves_qty, "leavesQty"),
        is_bid=active_order.side == Side.BUY.value,
        exec_type=active_order.type,
        exec_qty=_from_numeric(active_order.exec_qty, "execQty"),
        order_status=active_order.order_status,
    )


class PostgresOrderRepository:
    """Stores and updates orders through the given queries."""

    def __init__(self, queries: OrderQueries) -> None:
        self._queries = queries

    def save_order(self, order: Order) -> Order:
        params = CreateActiveOrderParams(
            id=order.id,
            order_qty=_to_numeric(order.order_qty),
            leaves_qty=_to_numeric(order.leaves_qty),
            price=_to_numeric(order.price),
            instrument=order.instrument,
            exec_qty=_to_numeric(order.exec_qty),
            order_status=order.order_status,
            type=order.exec_type,
        )
        return map_active_order_to_order(self._queries.create_active_order(params))

    def update_order(
        self,
        order_id: str,
        order_status: str,
        exec_type: str,
        leaves_qty: Decimal,
        exec_qty: Decimal,
    ) -> Order:
        leaves = _to_numeric(leaves_qty)
        try:
            executed: Optional[Decimal] = _to_numeric(exec_qty)
        except (ValueError, ArithmeticError, TypeError):
            executed = None  # an unusable exec qty leaves the stored value alone
        params = UpdateActiveOrderParams(
            id=order_id,
            leaves_qty=leaves,
            exec_qty=executed,
            order_status=order_status,
            type=exec_type,
        )
        return map_active_order_to_order(self._queries.update_active_order(params))


@dataclass(frozen=True)
class SaveOrderTask:
    order: Order

    def execute(self, repo: OrderRepository) -> Order:
        return repo.save_order(self.order)


@dataclass(frozen=True)
class UpdateOrderTask:
    order_id: str = ""
    order_status: str = ""
    exec_type: str = ""
    leaves_qty: Decimal = Decimal(0)
    exec_qty: Decimal = Decimal(0)

    def execute(self, repo: OrderRepository) -> Order:
        return repo.update_order(
            self.order_id, self.order_status, self.exec_type, self.leaves_qty, self.exec_qty
        )