"""A single-instrument order book with price-priority matching."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, List, Optional

from matchengine.model import Order, Trade
from matchengine.order import (
    BookOrder,
    EventNotifier,
    OrderRequest,
    new_canceled_order_event,
    new_fill_order_event,
    new_order_event,
    new_rejected_order_event,
)

logger = logging.getLogger(__name__)


def map_model_order(order: Order) -> BookOrder:
    """Turn a stored order into an order-book entry (without a producer)."""
    return BookOrder(
        id=order.id,
        instrument=order.instrument,
        timestamp=order.timestamp,
        exec_type=order.exec_type,
        is_bid=order.is_bid,
        price=order.price,
        order_qty=order.order_qty,
        leaves_qty=order.leaves_qty,
        exec_qty=order.exec_qty,
        order_status=order.order_status,
    )


class OrderBook:
    """Resting bids and asks, plus the fill and rejection events of matching."""

    def __init__(self, producer: Optional[EventNotifier]) -> None:
        self.bids: List[BookOrder] = []
        self.asks: List[BookOrder] = []
        self.orders: List[BookOrder] = []
        self.producer = producer

    def on_new_order(self, model_order: Order, producer: Optional[EventNotifier]) -> None:
        """Match an incoming order and rest any remainder on the book."""
        order = map_model_order(model_order)
        if order.is_bid:
            trades = self.process_buy_order(order)
        else:
            trades = self.process_sell_order(order)

        for trade in trades:
            new_fill_order_event(order, Decimal(trade.quantity), Decimal(trade.price), producer)

        if order.leaves_qty > 0:
            if order.is_bid:
                self.add_buy_order(order)
            else:
                self.add_sell_order(order)
            new_order_event(order, producer)

    def cancel_order(self, order_id: str, producer: Optional[EventNotifier]) -> bool:
        """Remove an order from the book; return whether it was found."""
        for side, remove in ((self.bids, self.remove_buy_order), (self.asks, self.remove_sell_order)):
            for index, order in enumerate(side):
                if order.id == order_id:
                    remove(index)
                    logger.info("Publishing canceled event for order: %s", order_id)
                    new_canceled_order_event(order, producer)
                    return True
        logger.info("Order with ID %s not found in order book", order_id)
        return False

    @staticmethod
    def _insert(side: List[BookOrder], order: BookOrder) -> None:
        # A side with fewer than two orders takes the new one at the end;
        # otherwise the new order goes to the front.
        if len(side) <= 1:
            side.append(order)
        else:
            side.insert(0, order)

    def add_buy_order(self, order: BookOrder) -> None:
        self._insert(self.bids, order)

    def add_sell_order(self, order: BookOrder) -> None:
        self._insert(self.asks, order)

    def remove_buy_order(self, index: int) -> BookOrder:
        """Take the bid at ``index`` off the book and return it."""
        removed = self.bids.pop(index)
        logger.debug("Removed bid %s at index %d", removed.id, index)
        return removed

    def remove_sell_order(self, index: int) -> BookOrder:
        """Take the ask at ``index`` off the book and return it."""
        removed = self.asks.pop(index)
        logger.debug("Removed ask %s at index %d", removed.id, index)
        return removed

    def process_buy_order(self, order: BookOrder) -> List[Trade]:
        return self._process_order(order, is_buy=True)

    def process_sell_order(self, order: BookOrder) -> List[Trade]:
        return self._process_order(order, is_buy=False)

    def _process_order(self, order: BookOrder, is_buy: bool) -> List[Trade]:
        matching: List[BookOrder]
        remove: Callable[[int], BookOrder]
        if is_buy:
            matching = self.asks
            remove = self.remove_sell_order
            crosses = lambda resting, incoming: resting <= incoming  # noqa: E731
        else:
            matching = self.bids
            remove = self.remove_buy_order
            crosses = lambda resting, incoming: resting >= incoming  # noqa: E731

        if not order.order_qty > 0 or order.price < 0:
            request = OrderRequest(id=order.id, side=order.side(), qty=order.order_qty)
            self.orders.append(new_rejected_order_event(request, order.producer))
            return []

        trades: List[Trade] = []
        order.leaves_qty = order.order_qty

        while matching and order.leaves_qty > 0:
            resting = matching[0]
            if not crosses(resting.price, order.price):
                break

            match_qty = min(order.leaves_qty, resting.leaves_qty)
            trade = Trade(
                buyer_order_id=order.id if is_buy else resting.id,
                seller_order_id=resting.id if is_buy else order.id,
                quantity=int(match_qty),
                price=int(resting.price),
                timestamp=order.timestamp,
            )
            self._publish_execution_report(trade)
            trades.append(trade)

            order.leaves_qty -= match_qty
            resting.leaves_qty -= match_qty
            self.orders.append(
                new_fill_order_event(resting, match_qty, resting.price, self.producer)
            )

            if resting.leaves_qty == 0:
                remove(0)
            else:
                break

        return trades

    def _publish_execution_report(self, trade: Trade) -> None:
        if self.producer is None:
            return
        try:
            self.producer.notify_event_and_trade(trade.buyer_order_id, trade.to_json())
        except Exception as exc:  # a failed publish must not stop matching
            logger.error("Error publishing event: %s", exc)
        else:
            logger.info(
                "Trade published BuyerId %s: SellerId %s",
                trade.buyer_order_id,
                trade.seller_order_id,
            )