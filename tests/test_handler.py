from decimal import Decimal

import pytest

from matchengine.handler import OrderRequestHandler, UnknownEventTypeError
from matchengine.model import OrderEvent
from matchengine.order import EventType, Side
from matchengine.rmq_request import OrderRequest, RequestType, TraderOrder


class RecordingService:
    def __init__(self):
        self.saved = []
        self.updated = []

    def save_order_async(self, order):
        self.saved.append(order)

    def update_order_async(self, order_id, order_status, exec_type, leaves_qty, exec_qty):
        self.updated.append((order_id, order_status, exec_type, leaves_qty, exec_qty))


class RecordingNotifier:
    def __init__(self):
        self.published = []

    def notify_event_and_trade(self, order_id, value):
        self.published.append((order_id, value))


class FakeDelivery:
    def __init__(self, body):
        self.body = body
        self.acked = 0
        self.nacked = 0

    def ack(self):
        self.acked += 1

    def nack(self):
        self.nacked += 1


def make_handler():
    service = RecordingService()
    notifier = RecordingNotifier()
    return OrderRequestHandler(service, notifier), service, notifier


def new_request(order_id, side, qty="10", price="100", instrument="BTC/USDT"):
    request = OrderRequest(
        RequestType.NEW,
        TraderOrder(id=order_id, side=side, qty=qty, price=price, instrument=instrument),
    )
    return FakeDelivery(request.to_json())


@pytest.mark.parametrize(
    "event_type, expect_save, expect_update",
    [
        (EventType.NEW.value, True, False),
        (EventType.PENDING_NEW.value, True, False),
        (EventType.FILL.value, False, True),
        (EventType.PARTIAL_FILL.value, False, True),
        (EventType.CANCELED.value, False, True),
    ],
)
def test_handle_event_messages(event_type, expect_save, expect_update):
    handler, service, _ = make_handler()
    event = OrderEvent(
        event_type=event_type,
        order_id="test-order-id",
        price=Decimal(100),
        quantity=Decimal(10),
        leaves_qty=Decimal(5),
        exec_qty=Decimal(5),
        instrument="BTC/USDT",
        is_bid=True,
        order_status=event_type,
        exec_type=event_type,
    )

    assert handler.handle_event_messages(event.to_json()) is None

    assert len(service.saved) == (1 if expect_save else 0)
    assert len(service.updated) == (1 if expect_update else 0)
    if expect_save:
        order = service.saved[0]
        assert order.id == event.order_id
        assert order.price == event.price
        assert order.order_qty == event.quantity
    if expect_update:
        assert service.updated[0] == (
            event.order_id,
            event.order_status,
            event.exec_type,
            event.leaves_qty,
            event.exec_qty,
        )


def test_unknown_event_type_raises():
    handler, service, _ = make_handler()
    with pytest.raises(UnknownEventTypeError):
        handler.handle_event_messages(OrderEvent(event_type="bogus").to_json())
    assert service.saved == [] and service.updated == []


def test_malformed_event_is_skipped():
    handler, service, _ = make_handler()
    assert handler.handle_event_messages(b"invalid json") is None
    assert service.saved == [] and service.updated == []


def test_handle_message_creates_order_book():
    handler, _, notifier = make_handler()
    delivery = new_request("1", Side.BUY)

    handler.handle_message(delivery)

    book = handler.order_book("BTC/USDT")
    assert book is not None
    assert [order.id for order in book.bids] == ["1"]
    assert book.bids[0].leaves_qty == Decimal(10)
    assert delivery.acked == 1 and delivery.nacked == 0
    assert notifier.published and notifier.published[-1][0] == "1"


def test_handle_message_invalid_json_is_nacked():
    handler, _, _ = make_handler()
    delivery = FakeDelivery(b"invalid json")

    handler.handle_message(delivery)

    assert delivery.nacked == 1 and delivery.acked == 0
    assert handler.order_book("BTC/USDT") is None


def test_invalid_price_is_nacked():
    handler, _, _ = make_handler()
    delivery = new_request("1", Side.BUY, price="abc")

    handler.handle_message(delivery)

    assert delivery.nacked == 1 and delivery.acked == 0


def test_existing_book_is_reused_and_orders_match():
    handler, _, notifier = make_handler()
    handler.handle_message(new_request("1", Side.BUY))
    book = handler.order_book("BTC/USDT")

    handler.handle_message(new_request("2", Side.SELL))

    assert handler.order_book("BTC/USDT") is book
    assert book.bids == [] and book.asks == []
    trades = [value for _, value in notifier.published if b"buyer_order_id" in value]
    assert len(trades) == 1


def test_books_are_per_instrument():
    handler, _, _ = make_handler()
    handler.handle_message(new_request("1", Side.BUY, instrument="BTC/USDT"))
    handler.handle_message(new_request("2", Side.SELL, instrument="ETH/USDT"))

    assert [o.id for o in handler.order_book("BTC/USDT").bids] == ["1"]
    assert [o.id for o in handler.order_book("ETH/USDT").asks] == ["2"]


def test_cancel_request_removes_order():
    handler, _, _ = make_handler()
    handler.handle_message(new_request("5", Side.BUY))
    cancel = FakeDelivery(
        OrderRequest(RequestType.CANCEL, TraderOrder(id="5", instrument="BTC/USDT")).to_json()
    )

    handler.handle_message(cancel)

    assert handler.order_book("BTC/USDT").bids == []
    assert cancel.acked == 1


def test_unknown_request_type_is_acknowledged():
    handler, _, _ = make_handler()
    delivery = FakeDelivery(b'{"RequestType":7,"Order":{"id":"1","instrument":"BTC/USDT"}}')

    handler.handle_message(delivery)

    assert delivery.acked == 1
    book = handler.order_book("BTC/USDT")
    assert book.bids == [] and book.asks == []