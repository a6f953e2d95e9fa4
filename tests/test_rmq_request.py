import pytest

from matchengine.order import Side
from matchengine.rmq_request import OrderRequest, RequestType, TraderOrder

NEW_BUY = b'{"RequestType":0,"Order":{"id":"1","side":"buy","qty":"10","price":"100","instrument":"BTC/USDT"}}'
CANCEL = b'{"RequestType":1,"Order":{"id":"5","instrument":"BTC/USDT"}}'


def test_parse_new_order_request():
    request = OrderRequest.from_json(NEW_BUY)
    assert request.request_type == RequestType.NEW
    assert request.order == TraderOrder(
        id="1", side="buy", qty="10", price="100", instrument="BTC/USDT"
    )


def test_new_order_request_wire_bytes():
    request = OrderRequest(
        RequestType.NEW,
        TraderOrder(id="1", side=Side.BUY, qty="10", price="100", instrument="BTC/USDT"),
    )
    assert request.to_json() == NEW_BUY


def test_cancel_request_omits_empty_fields():
    request = OrderRequest(RequestType.CANCEL, TraderOrder(id="5", instrument="BTC/USDT"))
    assert request.to_json() == CANCEL


def test_round_trip():
    request = OrderRequest.from_json(CANCEL)
    assert request.request_type == RequestType.CANCEL
    assert OrderRequest.from_json(request.to_json()) == request


def test_keys_match_case_insensitively():
    request = OrderRequest.from_json('{"requesttype":1,"order":{"ID":"7"}}')
    assert request.request_type == RequestType.CANCEL
    assert request.order.id == "7"


def test_missing_fields_default():
    request = OrderRequest.from_json("{}")
    assert request.request_type == RequestType.NEW
    assert request.order == TraderOrder()


def test_unknown_request_type_is_kept():
    request = OrderRequest.from_json('{"RequestType":9,"Order":{}}')
    assert request.request_type == 9
    assert request.request_type not in (RequestType.NEW, RequestType.CANCEL)


@pytest.mark.parametrize(
    "payload",
    [
        "invalid json",
        "[]",
        '{"RequestType":"0"}',
        '{"RequestType":true}',
        '{"Order":[]}',
        '{"Order":{"qty":10}}',
    ],
)
def test_invalid_payloads_raise(payload):
    with pytest.raises(ValueError):
        OrderRequest.from_json(payload)