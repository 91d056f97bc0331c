from datetime import timedelta

import pytest

from stockdesk.extensions import db
from stockdesk.models import Order, Product, StockExit, StockExitItem
from stockdesk.services import (
    category_service,
    expense_service,
    order_service,
    product_service,
    stock_entry_service,
    stock_exit_service,
)
from stockdesk.services.recycle_bin_service import (
    DependencyError,
    RecycleBinError,
    check_dependencies,
    get_deleted_records,
    permanent_delete_record,
    purge_expired_records,
    restore_record,
    soft_delete_record,
)
from stockdesk.validation import NotFoundError
from stockdesk.time_utils import today, utcnow


def test_soft_deleted_product_leaves_listings(make_product):
    product = make_product("P-DEL", stock=3)

    soft_delete_record("products", product.id)

    products, total = product_service.list_products()
    assert total == 0
    with pytest.raises(NotFoundError):
        product_service.get_product(product.id)

    entries = get_deleted_records()
    assert len(entries) == 1
    entry = entries[0]
    assert entry["id"] == product.id
    assert entry["name"] == "Product P-DEL"
    assert entry["table_type"] == "products"
    assert entry["additional_info"]["code"] == "P-DEL"
    assert entry["days_in_bin"] <= 1
    assert entry["permanent_deletion_date"] is not None


def test_restore_brings_record_back_unchanged(make_product):
    product = make_product("P-RES", stock=3, min_stock=1)
    soft_delete_record("products", product.id)

    restored = restore_record("products", product.id)

    assert restored.deleted_at is None
    assert restored.current_stock == 3
    assert restored.min_stock == 1
    assert product_service.get_product(product.id).code == "P-RES"
    assert get_deleted_records() == []


def test_deleting_twice_is_not_found(make_product):
    product = make_product()
    soft_delete_record("products", product.id)
    with pytest.raises(NotFoundError):
        soft_delete_record("products", product.id)


def test_unknown_table_is_rejected(db_session):
    with pytest.raises(RecycleBinError):
        soft_delete_record("users", "1")
    with pytest.raises(RecycleBinError):
        get_deleted_records("users")


def test_category_counts_follow_product_delete_and_restore(make_product):
    category = category_service.create_category(patch={"name": "Hardware"})
    product = make_product("HW-1", category="Hardware")
    make_product("HW-2", category="Hardware")
    assert category_service.get_category(category.id).product_count == 2

    soft_delete_record("products", product.id)
    assert category_service.get_category(category.id).product_count == 1

    restore_record("products", product.id)
    assert category_service.get_category(category.id).product_count == 2


def test_permanent_delete_requires_recycle_bin(make_product):
    product = make_product()

    with pytest.raises(RecycleBinError):
        permanent_delete_record("products", product.id)

    soft_delete_record("products", product.id)
    permanent_delete_record("products", product.id)

    assert db.session.query(Product).filter_by(id=product.id).first() is None
    with pytest.raises(NotFoundError):
        permanent_delete_record("products", product.id)


def test_permanent_delete_of_document_removes_items(make_product, customer):
    product = make_product(stock=5)
    stock_exit = stock_exit_service.create_stock_exit(
        date=today().isoformat(),
        client_id=customer.id,
        items=[{"product_id": product.id, "quantity": 1}],
    )

    soft_delete_record("stock_exits", stock_exit.id)
    permanent_delete_record("stock_exits", stock_exit.id)

    assert db.session.query(StockExit).count() == 0
    assert db.session.query(StockExitItem).count() == 0


def test_permanent_delete_of_client_keeps_document_names(make_product, customer):
    product = make_product()
    order = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 1}],
    )

    soft_delete_record("orders", order.id)
    soft_delete_record("clients", customer.id)
    permanent_delete_record("clients", customer.id)

    kept = db.session.query(Order).filter_by(id=order.id).one()
    assert kept.client_id is None
    assert kept.client_name == "Loja Central"


def test_converted_order_and_its_exit_cannot_be_deleted(make_product, customer):
    product = make_product(stock=10)
    order = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 2}],
    )
    stock_exit = order_service.convert_order_to_stock_exit(order.id)

    with pytest.raises(DependencyError) as order_err:
        soft_delete_record("orders", order.id)
    assert order_err.value.dependencies == ["stock exit"]

    with pytest.raises(DependencyError) as exit_err:
        soft_delete_record("stock_exits", stock_exit.id)
    assert exit_err.value.dependencies == ["order"]

    assert order_service.get_order(order.id).converted_to_stock_exit_id == stock_exit.id
    assert get_deleted_records() == []


def test_product_with_documents_cannot_be_deleted(make_product, supplier, customer):
    product = make_product(stock=10)
    entry = stock_entry_service.create_stock_entry(
        date=today().isoformat(),
        supplier_id=supplier.id,
        items=[{"product_id": product.id, "quantity": 1}],
    )
    stock_exit_service.create_stock_exit(
        date=today().isoformat(),
        client_id=customer.id,
        items=[{"product_id": product.id, "quantity": 1}],
    )

    check = check_dependencies("products", product.id)
    assert check["can_delete"] is False
    assert check["dependencies"] == ["stock entries", "stock exits"]
    assert check["message"] == "This product cannot be deleted because it has associated stock entries, stock exits"

    with pytest.raises(DependencyError):
        soft_delete_record("products", product.id)

    # Documents in the recycle bin no longer hold the product
    soft_delete_record("stock_entries", entry.id)
    assert check_dependencies("products", product.id)["dependencies"] == ["stock exits"]


def test_contacts_and_categories_with_dependents(make_product, customer, supplier):
    make_product("CAT-1", category="Tools")
    tools = category_service.create_category(patch={"name": "Tools"})
    expense_service.create_expense(
        date=today().isoformat(),
        supplier_id=supplier.id,
        items=[{"product_name": "Freight", "quantity": 1, "unit_price_cents": 900}],
    )

    assert check_dependencies("categories", tools.id)["dependencies"] == ["products"]
    assert check_dependencies("suppliers", supplier.id)["dependencies"] == ["expenses"]
    assert check_dependencies("clients", customer.id) == {"can_delete": True, "message": None, "dependencies": []}

    with pytest.raises(DependencyError):
        soft_delete_record("categories", tools.id)
    with pytest.raises(DependencyError):
        soft_delete_record("suppliers", supplier.id)
    soft_delete_record("clients", customer.id)


def test_blocked_delete_answers_409(client, user_headers, make_product, customer):
    product = make_product(stock=10)
    order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 1}],
    )

    resp = client.delete(f"/api/products/{product.id}", headers=user_headers)
    assert resp.status_code == 409
    assert resp.get_json()["dependencies"] == ["orders"]

    resp = client.delete(f"/api/clients/{customer.id}", headers=user_headers)
    assert resp.status_code == 409

    resp = client.get(f"/api/recycle-bin/products/{product.id}/dependencies", headers=user_headers)
    assert resp.status_code == 200
    assert resp.get_json()["can_delete"] is False


def test_listing_is_newest_first_across_tables(make_product, customer):
    product = make_product()
    soft_delete_record("products", product.id)
    soft_delete_record("clients", customer.id)

    old = db.session.query(Product).filter_by(id=product.id).one()
    old.deleted_at = utcnow() - timedelta(days=3, hours=1)
    db.session.commit()

    entries = get_deleted_records()
    assert [e["table_type"] for e in entries] == ["clients", "products"]
    # Partial days count as a whole day
    assert entries[1]["days_in_bin"] == 4

    assert [e["id"] for e in get_deleted_records("clients")] == [customer.id]


def test_purge_removes_only_expired_rows(make_product):
    stale = make_product("OLD")
    fresh = make_product("NEW")
    soft_delete_record("products", stale.id)
    soft_delete_record("products", fresh.id)

    row = db.session.query(Product).filter_by(id=stale.id).one()
    row.deleted_at = utcnow() - timedelta(days=31)
    db.session.commit()

    assert purge_expired_records(retention_days=30) == {"products": 1}
    remaining = [e["id"] for e in get_deleted_records()]
    assert remaining == [fresh.id]


def test_restore_and_permanent_delete_require_admin(client, user_headers, admin_headers, make_product):
    product = make_product()

    resp = client.delete(f"/api/products/{product.id}", headers=user_headers)
    assert resp.status_code == 200

    resp = client.get("/api/recycle-bin", headers=user_headers)
    assert resp.status_code == 200
    assert resp.get_json()["count"] == 1

    resp = client.post(f"/api/recycle-bin/products/{product.id}/restore", headers=user_headers)
    assert resp.status_code == 403

    resp = client.post(f"/api/recycle-bin/products/{product.id}/restore", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["deleted_at"] is None

    resp = client.delete(f"/api/recycle-bin/products/{product.id}", headers=admin_headers)
    assert resp.status_code == 400

    resp = client.get("/api/recycle-bin?table_type=nope", headers=user_headers)
    assert resp.status_code == 400
