import pytest

from stockdesk.extensions import db
from stockdesk.models import StockEntry
from stockdesk.services import stock_entry_service, stock_exit_service
from stockdesk.services.concurrency import atomic
from stockdesk.services.recycle_bin_service import restore_record, soft_delete_record
from stockdesk.services.stock_service import (
    StockAdjustmentError,
    adjust_stock,
    apply_stock_adjustments,
    reconcile_stock_adjustments,
)
from stockdesk.validation import ValidationError
from stockdesk.time_utils import today

from conftest import stock_of


def test_adjust_stock_adds_and_subtracts(make_product):
    product = make_product(stock=10)

    assert adjust_stock(product.id, 5) == 15
    assert adjust_stock(product.id, -3) == 12
    db.session.commit()
    assert stock_of(product.id) == 12


def test_adjust_stock_is_floored_at_zero(make_product):
    product = make_product(stock=2)

    assert adjust_stock(product.id, -5) == 0
    db.session.commit()
    assert stock_of(product.id) == 0


def test_adjust_stock_refreshes_loaded_instance(make_product):
    product = make_product(stock=4)
    adjust_stock(product.id, 6)
    assert product.current_stock == 10


def test_adjust_stock_applies_to_deleted_product(make_product):
    product = make_product(stock=4)
    soft_delete_record("products", product.id)

    assert adjust_stock(product.id, -1) == 3
    db.session.commit()

    restore_record("products", product.id)
    assert stock_of(product.id) == 3


def test_adjust_stock_rejects_missing_product(db_session):
    with pytest.raises(StockAdjustmentError):
        adjust_stock("no-such-product", 1)


def test_items_without_product_are_skipped(make_product):
    product = make_product(stock=1)
    result = apply_stock_adjustments([(None, 3), (product.id, 2)], "entry")
    assert result == {product.id: 3}


def test_failed_adjustment_rolls_back_earlier_ones(make_product):
    first = make_product("P-001", stock=5)

    with pytest.raises(StockAdjustmentError):
        with atomic():
            apply_stock_adjustments([(first.id, 2), ("no-such-product", 2)], "exit")

    assert stock_of(first.id) == 5


def test_stock_entry_increases_stock(make_product, supplier):
    product = make_product(stock=3)

    entry = stock_entry_service.create_stock_entry(
        date=today().isoformat(),
        supplier_id=supplier.id,
        invoice_number="FT 1/2025",
        items=[{"product_id": product.id, "quantity": 7, "purchase_price_cents": 450}],
    )

    assert entry.number == f"ENT-{today().year}/001"
    assert entry.supplier_name == "Fornecedor Norte"
    assert entry.items[0].product_name == product.name
    assert stock_of(product.id) == 10


def test_stock_exit_decreases_stock_floored(make_product, customer):
    product = make_product(stock=3)

    stock_exit = stock_exit_service.create_stock_exit(
        date=today().isoformat(),
        client_id=customer.id,
        items=[{"product_id": product.id, "quantity": 5}],
    )

    assert stock_exit.number == f"SAI-{today().year}/001"
    assert stock_exit.items[0].sale_price_cents == 1000
    assert stock_of(product.id) == 0


def test_invalid_item_writes_nothing(make_product, supplier):
    product = make_product(stock=3)

    with pytest.raises(ValidationError):
        stock_entry_service.create_stock_entry(
            date=today().isoformat(),
            supplier_id=supplier.id,
            items=[
                {"product_id": product.id, "quantity": 2},
                {"product_id": product.id, "quantity": 0},
            ],
        )

    assert db.session.query(StockEntry).count() == 0
    assert stock_of(product.id) == 3


def test_editing_entry_items_applies_net_change(make_product, supplier):
    a = make_product("P-A", stock=0)
    b = make_product("P-B", stock=0)
    entry = stock_entry_service.create_stock_entry(
        date=today().isoformat(),
        supplier_id=supplier.id,
        items=[{"product_id": a.id, "quantity": 10}],
    )
    assert stock_of(a.id) == 10

    stock_entry_service.update_stock_entry(
        entry_id=entry.id,
        patch={"items": [
            {"product_id": a.id, "quantity": 4},
            {"product_id": b.id, "quantity": 6},
        ]},
    )

    assert stock_of(a.id) == 4
    assert stock_of(b.id) == 6
    assert [i.quantity for i in stock_entry_service.get_stock_entry(entry.id).items] == [4, 6]


def test_editing_exit_items_returns_old_quantities(make_product, customer):
    product = make_product(stock=20)
    stock_exit = stock_exit_service.create_stock_exit(
        date=today().isoformat(),
        client_id=customer.id,
        items=[{"product_id": product.id, "quantity": 8}],
    )
    assert stock_of(product.id) == 12

    stock_exit_service.update_stock_exit(
        exit_id=stock_exit.id,
        patch={"items": [{"product_id": product.id, "quantity": 5}]},
    )
    assert stock_of(product.id) == 15


def test_resubmitting_entry_items_keeps_floored_stock(make_product, supplier, customer):
    product = make_product(stock=10)
    entry = stock_entry_service.create_stock_entry(
        date=today().isoformat(),
        supplier_id=supplier.id,
        items=[{"product_id": product.id, "quantity": 5}],
    )
    stock_exit_service.create_stock_exit(
        date=today().isoformat(),
        client_id=customer.id,
        items=[{"product_id": product.id, "quantity": 14}],
    )
    assert stock_of(product.id) == 1

    stock_entry_service.update_stock_entry(
        entry_id=entry.id,
        patch={"items": [{"product_id": product.id, "quantity": 5}]},
    )
    assert stock_of(product.id) == 1


def test_resubmitting_exit_items_after_floor_does_not_add_stock(make_product, customer):
    product = make_product(stock=3)
    stock_exit = stock_exit_service.create_stock_exit(
        date=today().isoformat(),
        client_id=customer.id,
        items=[{"product_id": product.id, "quantity": 5}],
    )
    assert stock_of(product.id) == 0

    stock_exit_service.update_stock_exit(
        exit_id=stock_exit.id,
        patch={"items": [{"product_id": product.id, "quantity": 5}]},
    )
    assert stock_of(product.id) == 0


def test_reconcile_merges_lines_per_product(make_product):
    a = make_product("P-A", stock=10)
    b = make_product("P-B", stock=10)

    result = reconcile_stock_adjustments(
        [(a.id, 3), (a.id, 2), (b.id, 1), (None, 9)],
        [(a.id, 5), (b.id, 4)],
        "exit",
    )

    assert result == {b.id: 7}
    assert stock_of(a.id) == 10


def test_header_only_edit_leaves_stock_alone(make_product, customer):
    product = make_product(stock=20)
    stock_exit = stock_exit_service.create_stock_exit(
        date=today().isoformat(),
        client_id=customer.id,
        items=[{"product_id": product.id, "quantity": 8}],
    )

    stock_exit_service.update_stock_exit(exit_id=stock_exit.id, patch={"notes": "Delivered by courier"})
    assert stock_of(product.id) == 12


def test_exit_order_link_is_not_editable(make_product, customer):
    product = make_product(stock=20)
    stock_exit = stock_exit_service.create_stock_exit(
        date=today().isoformat(),
        client_id=customer.id,
        items=[{"product_id": product.id, "quantity": 1}],
    )

    with pytest.raises(ValidationError):
        stock_exit_service.update_stock_exit(exit_id=stock_exit.id, patch={"from_order_id": "x"})


def test_soft_delete_does_not_restore_stock(make_product, customer):
    product = make_product(stock=10)
    stock_exit = stock_exit_service.create_stock_exit(
        date=today().isoformat(),
        client_id=customer.id,
        items=[{"product_id": product.id, "quantity": 4}],
    )

    soft_delete_record("stock_exits", stock_exit.id)
    assert stock_of(product.id) == 6


def test_stock_entry_api(client, admin_headers, make_product, supplier):
    product = make_product(stock=1)

    resp = client.post("/api/stock-entries", headers=admin_headers, json={
        "date": today().isoformat(),
        "supplier_id": supplier.id,
        "items": [{"product_id": product.id, "quantity": 4, "purchase_price_cents": 300}],
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["items"][0]["total_cents"] == 1200

    resp = client.get("/api/stock-entries", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["count"] == 1
    assert stock_of(product.id) == 5
