"""Order persistence requests handed to the asynchronous writer."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from matchengine.model import Order
from matchengine.repository import DBTask, SaveOrderTask, UpdateOrderTask


class TaskQueue(Protocol):
    def enqueue_task(self, task: DBTask) -> object:
        ...


class OrderService:
    """Turns order saves and updates into queued database tasks."""

    def __init__(self, async_writer: TaskQueue) -> None:
        self._writer = async_writer

    def save_order_async(self, order: Order) -> None:
        self._writer.enqueue_task(SaveOrderTask(order=order))

    def update_order_async(
        self,
        order_id: str,
        order_status: str,
        exec_type: str,
        leaves_qty: Decimal,
        exec_qty: Decimal,
    ) -> None:
        self._writer.enqueue_task(
            UpdateOrderTask(
                order_id=order_id,
                order_status=order_status,
                exec_type=exec_type,
                leaves_qty=leaves_qty,
                exec_qty=exec_qty,
            )
        )