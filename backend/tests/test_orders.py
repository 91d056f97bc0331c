from datetime import timedelta

import pytest

from stockdesk.services import order_service
from stockdesk.validation import NotFoundError, ValidationError
from stockdesk.time_utils import today

from conftest import stock_of


def test_create_order_numbers_by_order_year(make_product, customer):
    product = make_product(stock=5)

    first = order_service.create_order(
        client_id=customer.id,
        date="2024-12-30",
        items=[{"product_id": product.id, "quantity": 1}],
    )
    second = order_service.create_order(
        client_id=customer.id,
        date="2025-01-02",
        items=[{"product_id": product.id, "quantity": 1}],
    )
    third = order_service.create_order(
        client_id=customer.id,
        date="2025-01-03",
        items=[{"product_id": product.id, "quantity": 1}],
    )

    assert first.number == "ENC-2024/001"
    assert second.number == "ENC-2025/001"
    assert third.number == "ENC-2025/002"


def test_create_order_denormalizes_names_and_prices(make_product, customer):
    product = make_product(name="Desk Lamp", sale_price_cents=3999)

    order = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        discount="12.5",
        items=[{"product_id": product.id, "quantity": 2}],
    )

    assert order.status == "pending"
    assert order.client_name == "Loja Central"
    assert order.items[0].product_name == "Desk Lamp"
    assert order.items[0].sale_price_cents == 3999
    assert order.subtotal_cents == 7998
    # 7998 * 0.875 = 6998.25
    assert order.total_cents == 6998


def test_order_creation_does_not_touch_stock(make_product, customer):
    product = make_product(stock=5)
    order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 3}],
    )
    assert product.current_stock == 5


def test_order_requires_client(make_product, db_session):
    product = make_product()
    with pytest.raises(ValidationError):
        order_service.create_order(
            client_id=None,
            date=today().isoformat(),
            items=[{"product_id": product.id, "quantity": 1}],
        )


def test_order_with_unknown_client(make_product, db_session):
    product = make_product()
    with pytest.raises(NotFoundError):
        order_service.create_order(
            client_id="missing",
            date=today().isoformat(),
            items=[{"product_id": product.id, "quantity": 1}],
        )


def test_free_text_client_name_is_accepted(make_product, db_session):
    product = make_product()
    order = order_service.create_order(
        client_id=None,
        client_name="Walk-in customer",
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 1}],
    )
    assert order.client_name == "Walk-in customer"


@pytest.mark.parametrize("items", [
    [],
    [{"product_name": "Widget", "quantity": 0, "sale_price_cents": 100}],
    [{"product_name": "Widget", "quantity": 1.5, "sale_price_cents": 100}],
    [{"product_name": "Widget", "quantity": 1, "sale_price_cents": -1}],
    [{"product_name": "Widget", "quantity": 1, "sale_price_cents": 100, "discount_percent": 101}],
    [{"product_id": "missing", "quantity": 1}],
])
def test_invalid_items_are_rejected(customer, items):
    with pytest.raises(ValidationError):
        order_service.create_order(client_id=customer.id, date=today().isoformat(), items=items)


def test_update_replaces_items(make_product, customer):
    a = make_product("P-A")
    b = make_product("P-B")
    order = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": a.id, "quantity": 1}],
    )

    updated = order_service.update_order(
        order_id=order.id,
        patch={
            "notes": "Call before delivery",
            "items": [{"product_id": b.id, "quantity": 4, "sale_price_cents": 900}],
        },
    )

    assert updated.notes == "Call before delivery"
    assert [(i.product_id, i.quantity, i.sale_price_cents) for i in updated.items] == [(b.id, 4, 900)]


def test_status_is_not_directly_editable(make_product, customer):
    product = make_product()
    order = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 1}],
    )
    with pytest.raises(ValidationError):
        order_service.update_order(order_id=order.id, patch={"status": "cancelled"})


def test_cancel_is_idempotent(make_product, customer):
    product = make_product()
    order = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 1}],
    )

    assert order_service.cancel_order(order.id).status == "cancelled"
    assert order_service.cancel_order(order.id).status == "cancelled"


def test_list_filters_by_conversion_state(make_product, customer):
    product = make_product(stock=10)
    open_order = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 1}],
    )
    done_order = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 1}],
    )
    order_service.convert_order_to_stock_exit(done_order.id)

    pending, total = order_service.list_orders(converted=False)
    assert total == 1
    assert pending[0].id == open_order.id

    converted, _ = order_service.list_orders(converted=True)
    assert [o.id for o in converted] == [done_order.id]


def test_orders_api_round(client, user_headers, make_product, customer):
    product = make_product(stock=2)

    resp = client.post("/api/orders", headers=user_headers, json={
        "client_id": customer.id,
        "date": today().isoformat(),
        "items": [{"product_id": product.id, "quantity": 1}],
    })
    assert resp.status_code == 201
    order_id = resp.get_json()["id"]
    assert resp.get_json()["number"] == f"ENC-{today().year}/001"

    resp = client.post("/api/orders", headers=user_headers, json={"date": today().isoformat(), "items": []})
    assert resp.status_code == 400

    resp = client.get("/api/orders?status=pending", headers=user_headers)
    assert resp.status_code == 200
    assert resp.get_json()["count"] == 1

    resp = client.post(f"/api/orders/{order_id}/cancel", headers=user_headers)
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "cancelled"


def test_orders_api_requires_auth(client, db_session):
    resp = client.get("/api/orders")
    assert resp.status_code == 401


def test_duplicate_copies_a_converted_order_as_pending(make_product, customer):
    product = make_product(stock=10, sale_price_cents=1500)
    source = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        expected_delivery_date=(today() + timedelta(days=7)).isoformat(),
        discount=5,
        notes="Weekly restock",
        items=[
            {"product_id": product.id, "quantity": 3, "discount_percent": 10},
            {"product_name": "Pallet", "quantity": 1, "sale_price_cents": 800},
        ],
    )
    order_service.convert_order_to_stock_exit(source.id)

    copy = order_service.duplicate_order(source.id)

    assert copy.id != source.id
    assert copy.number == f"ENC-{today().year}/002"
    assert copy.date == today()
    assert copy.status == "pending"
    assert not copy.is_converted
    assert copy.expected_delivery_date is None
    assert copy.client_id == customer.id
    assert copy.notes == "Weekly restock"
    assert [(i.product_name, i.quantity, i.sale_price_cents) for i in copy.items] == [
        (product.name, 3, 1500),
        ("Pallet", 1, 800),
    ]
    assert stock_of(product.id) == 7


def test_duplicate_endpoint(client, user_headers, make_product, customer):
    product = make_product()
    source = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 2}],
    )

    resp = client.post(f"/api/orders/{source.id}/duplicate", headers=user_headers)
    assert resp.status_code == 201
    assert resp.get_json()["number"] == f"ENC-{today().year}/002"
    assert len(resp.get_json()["items"]) == 1

    resp = client.post("/api/orders/missing/duplicate", headers=user_headers)
    assert resp.status_code == 404
