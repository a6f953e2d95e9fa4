from decimal import Decimal

import pytest

from matchengine.db import ActiveOrder
from matchengine.model import Order
from matchengine.repository import (
    PostgresOrderRepository,
    SaveOrderTask,
    UpdateOrderTask,
    map_active_order_to_order,
)


class FakeQueries:
    def __init__(self, result):
        self.result = result
        self.created = []
        self.updated = []

    def create_active_order(self, params):
        self.created.append(params)
        return self.result

    def update_active_order(self, params):
        self.updated.append(params)
        return self.result


class RecordingRepo:
    def __init__(self):
        self.calls = []

    def save_order(self, order):
        self.calls.append(("save", order))
        return order

    def update_order(self, order_id, order_status, exec_type, leaves_qty, exec_qty):
        self.calls.append(("update", order_id, order_status, exec_type, leaves_qty, exec_qty))
        return Order(id=order_id)


def test_save_order():
    order = Order(
        id="1",
        instrument="BTC/USDT",
        price=Decimal(100),
        order_qty=Decimal(10),
        leaves_qty=Decimal(10),
        is_bid=True,
    )
    queries = FakeQueries(
        ActiveOrder(
            id=order.id,
            instrument=order.instrument,
            price=order.price,
            order_qty=order.order_qty,
            leaves_qty=order.leaves_qty,
            exec_qty=Decimal(0),
            side="buy",
        )
    )
    saved = PostgresOrderRepository(queries).save_order(order)
    assert saved.id == order.id
    assert saved.is_bid is True
    params = queries.created[0]
    assert params.id == "1"
    assert params.price == Decimal(100)
    assert params.order_qty == Decimal(10)
    assert params.instrument == "BTC/USDT"


def test_update_order():
    leaves_qty = Decimal(5)
    queries = FakeQueries(
        ActiveOrder(
            id="1",
            order_qty=Decimal(10),
            price=Decimal(100),
            leaves_qty=leaves_qty,
            exec_qty=Decimal(5),
        )
    )
    updated = PostgresOrderRepository(queries).update_order(
        "1", "partial_fill", "fill", leaves_qty, Decimal(5)
    )
    assert updated.id == "1"
    assert updated.leaves_qty == leaves_qty
    params = queries.updated[0]
    assert params.order_status == "partial_fill"
    assert params.type == "fill"
    assert params.exec_qty == Decimal(5)


def test_update_with_unusable_exec_qty_sends_null():
    queries = FakeQueries(
        ActiveOrder(id="1", order_qty=Decimal(10), price=Decimal(100),
                    leaves_qty=Decimal(5), exec_qty=Decimal(0))
    )
    PostgresOrderRepository(queries).update_order(
        "1", "fill", "fill", Decimal(5), Decimal("NaN")
    )
    assert queries.updated[0].exec_qty is None


def test_update_with_unusable_leaves_qty_raises():
    queries = FakeQueries(ActiveOrder())
    with pytest.raises(ValueError):
        PostgresOrderRepository(queries).update_order(
            "1", "fill", "fill", Decimal("NaN"), Decimal(1)
        )
    assert queries.updated == []


def test_map_rejects_null_price():
    row = ActiveOrder(id="1", order_qty=Decimal(1), leaves_qty=Decimal(1), exec_qty=Decimal(0))
    with pytest.raises(ValueError, match="converting price"):
        map_active_order_to_order(row)


def test_map_sell_side():
    row = ActiveOrder(
        id="2", side="sell", price=Decimal(100), order_qty=Decimal(5),
        leaves_qty=Decimal(5), exec_qty=Decimal(0), type="new", order_status="new",
    )
    order = map_active_order_to_order(row)
    assert order.is_bid is False
    assert order.exec_type == "new"
    assert order.order_status == "new"


def test_tasks_call_repository():
    repo = RecordingRepo()
    order = Order(id="1")
    SaveOrderTask(order=order).execute(repo)
    UpdateOrderTask("1", "fill", "fill", Decimal(0), Decimal(10)).execute(repo)
    assert repo.calls == [
        ("save", order),
        ("update", "1", "fill", "fill", Decimal(0), Decimal(10)),
    ]