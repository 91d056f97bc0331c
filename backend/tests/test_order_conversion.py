"""
Order -> stock exit conversion.

The exit, its items, the stock decrements, the SAI number and the order's
back-reference are committed together or not at all.
"""

import pytest

from stockdesk.extensions import db
from stockdesk.models import StockExit
from stockdesk.services import order_service, stock_service
from stockdesk.services.document_service import peek_document_number
from stockdesk.services.order_service import OrderAlreadyConvertedError, OrderError
from stockdesk.services.recycle_bin_service import restore_record
from stockdesk.services.stock_service import StockAdjustmentError
from stockdesk.time_utils import today, utcnow

from conftest import stock_of


@pytest.fixture
def pending_order(make_product, customer):
    keyboard = make_product("KB-01", name="Keyboard", stock=10, sale_price_cents=2500)
    mouse = make_product("MS-01", name="Mouse", stock=4, sale_price_cents=1200)
    order = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        discount=10,
        items=[
            {"product_id": keyboard.id, "quantity": 3, "discount_percent": 5},
            {"product_id": mouse.id, "quantity": 6},
        ],
    )
    return order, keyboard, mouse


def test_conversion_creates_exit_and_decrements_stock(pending_order):
    order, keyboard, mouse = pending_order

    stock_exit = order_service.convert_order_to_stock_exit(order.id, invoice_number="FT 7/2025")

    assert stock_exit.number == f"SAI-{today().year}/001"
    assert stock_exit.from_order_id == order.id
    assert stock_exit.from_order_number == order.number
    assert stock_exit.client_id == order.client_id
    assert stock_exit.client_name == "Loja Central"
    assert stock_exit.invoice_number == "FT 7/2025"
    assert stock_exit.date == today()
    assert float(stock_exit.discount) == 10.0
    assert [(i.product_name, i.quantity, i.sale_price_cents) for i in stock_exit.items] == [
        ("Keyboard", 3, 2500),
        ("Mouse", 6, 1200),
    ]
    assert float(stock_exit.items[0].discount_percent) == 5.0

    assert stock_of(keyboard.id) == 7
    # 4 in stock, 6 ordered: floored at zero
    assert stock_of(mouse.id) == 0

    refreshed = order_service.get_order(order.id)
    assert refreshed.converted_to_stock_exit_id == stock_exit.id
    assert refreshed.converted_to_stock_exit_number == stock_exit.number
    assert refreshed.is_converted


def test_second_conversion_is_refused(pending_order):
    order, keyboard, _ = pending_order
    order_service.convert_order_to_stock_exit(order.id)

    with pytest.raises(OrderAlreadyConvertedError):
        order_service.convert_order_to_stock_exit(order.id)

    assert db.session.query(StockExit).count() == 1
    assert stock_of(keyboard.id) == 7


def test_cancelled_order_cannot_be_converted(pending_order):
    order, keyboard, _ = pending_order
    order_service.cancel_order(order.id)

    with pytest.raises(OrderError):
        order_service.convert_order_to_stock_exit(order.id)
    assert stock_of(keyboard.id) == 10


def test_converted_order_cannot_be_cancelled(pending_order):
    order, _, _ = pending_order
    order_service.convert_order_to_stock_exit(order.id)

    with pytest.raises(OrderError):
        order_service.cancel_order(order.id)


def test_converted_order_items_are_frozen(pending_order):
    order, keyboard, _ = pending_order
    order_service.convert_order_to_stock_exit(order.id)

    with pytest.raises(OrderError):
        order_service.update_order(
            order_id=order.id,
            patch={"items": [{"product_id": keyboard.id, "quantity": 1}]},
        )


def test_failed_conversion_writes_nothing(pending_order, monkeypatch):
    order, keyboard, mouse = pending_order
    adjust = stock_service.adjust_stock

    def failing_adjust(product_id, delta):
        if product_id == mouse.id:
            raise StockAdjustmentError(f"Product {product_id} not found")
        return adjust(product_id, delta)

    monkeypatch.setattr(stock_service, "adjust_stock", failing_adjust)

    with pytest.raises(StockAdjustmentError):
        order_service.convert_order_to_stock_exit(order.id)

    assert db.session.query(StockExit).count() == 0
    assert stock_of(keyboard.id) == 10
    assert peek_document_number("stock_exits") == f"SAI-{today().year}/001"
    assert not order_service.get_order(order.id).is_converted


def test_order_with_deleted_product_still_converts(pending_order):
    order, keyboard, mouse = pending_order

    # Product removed after the order was taken
    mouse.deleted_at = utcnow()
    db.session.commit()

    stock_exit = order_service.convert_order_to_stock_exit(order.id)

    assert [i.product_id for i in stock_exit.items] == [keyboard.id, mouse.id]
    assert stock_of(keyboard.id) == 7
    assert stock_of(mouse.id) == 0

    restore_record("products", mouse.id)
    assert stock_of(mouse.id) == 0


def test_existing_linked_exit_is_relinked(pending_order):
    order, keyboard, _ = pending_order
    stock_exit = order_service.convert_order_to_stock_exit(order.id)

    # Link lost without the exit being deleted
    refreshed = order_service.get_order(order.id)
    refreshed.converted_to_stock_exit_id = None
    refreshed.converted_to_stock_exit_number = None
    db.session.commit()

    again = order_service.convert_order_to_stock_exit(order.id)

    assert again.id == stock_exit.id
    assert db.session.query(StockExit).count() == 1
    assert stock_of(keyboard.id) == 7
    assert order_service.get_order(order.id).converted_to_stock_exit_id == stock_exit.id


def test_convert_endpoint(client, admin_headers, pending_order):
    order, _, _ = pending_order

    resp = client.post(f"/api/orders/{order.id}/convert", headers=admin_headers, json={})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["from_order_id"] == order.id
    assert len(body["items"]) == 2

    resp = client.post(f"/api/orders/{order.id}/convert", headers=admin_headers, json={})
    assert resp.status_code == 409
    assert "already converted" in resp.get_json()["error"]


def test_convert_endpoint_unknown_order(client, admin_headers, db_session):
    resp = client.post("/api/orders/does-not-exist/convert", headers=admin_headers)
    assert resp.status_code == 404
