import pytest

from stockdesk.services import category_service, contact_service, product_service
from stockdesk.validation import ConflictError, NotFoundError, ValidationError


def test_create_product_api(client, user_headers, db_session):
    resp = client.post("/api/products", headers=user_headers, json={
        "code": "SKU-1",
        "name": "Stapler",
        "category": "Office",
        "purchase_price_cents": 350,
        "sale_price_cents": "799",
        "current_stock": 12,
        "min_stock": 3,
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["current_stock"] == 12
    assert body["sale_price_cents"] == 799
    assert body["deleted_at"] is None


@pytest.mark.parametrize("payload,status", [
    ({"name": "No code"}, 400),
    ({"code": "X", "name": "Bad price", "sale_price_cents": -1}, 400),
    ({"code": "X", "name": "Decimal price", "sale_price_cents": 9.99}, 400),
    ({"code": "X", "name": "Bad stock", "min_stock": -2}, 400),
    ({"code": "X", "name": "Bad field", "owner": "me"}, 400),
    ({"code": "X", "name": "Bad status", "status": "archived"}, 400),
])
def test_product_validation(client, user_headers, payload, status):
    resp = client.post("/api/products", headers=user_headers, json=payload)
    assert resp.status_code == status


def test_duplicate_code_conflicts_even_when_deleted(client, user_headers, make_product):
    product = make_product("DUP-1")
    client.delete(f"/api/products/{product.id}", headers=user_headers)

    resp = client.post("/api/products", headers=user_headers, json={"code": "DUP-1", "name": "Again"})
    assert resp.status_code == 409


def test_stock_is_not_editable(client, user_headers, make_product):
    product = make_product(stock=4)

    resp = client.put(f"/api/products/{product.id}", headers=user_headers, json={
        "name": "Renamed",
        "current_stock": 999,
    })
    assert resp.status_code == 200
    assert resp.get_json()["name"] == "Renamed"
    assert resp.get_json()["current_stock"] == 4


def test_update_to_taken_code_conflicts(make_product):
    make_product("TAKEN")
    other = make_product("FREE")
    with pytest.raises(ConflictError):
        product_service.update_product(product_id=other.id, patch={"code": "TAKEN"})


def test_product_search_and_paging(client, user_headers, make_product):
    for n in range(5):
        make_product(f"PG-{n}", name=f"Paper {n}")
    make_product("INK-1", name="Ink")

    resp = client.get("/api/products?search=paper&limit=2&offset=1", headers=user_headers)
    body = resp.get_json()
    assert body["count"] == 5
    assert [p["code"] for p in body["items"]] == ["PG-1", "PG-2"]
    assert body["limit"] == 2
    assert body["offset"] == 1


def test_recategorising_updates_both_counts(make_product):
    tools = category_service.create_category(patch={"name": "Tools"})
    garden = category_service.create_category(patch={"name": "Garden"})
    product = make_product("RAKE", category="Tools")

    product_service.update_product(product_id=product.id, patch={"category": "Garden"})

    assert category_service.get_category(tools.id).product_count == 0
    assert category_service.get_category(garden.id).product_count == 1


def test_new_category_counts_existing_products(make_product):
    make_product("LAMP", category="Lighting")
    category = category_service.create_category(patch={"name": "Lighting"})
    assert category.product_count == 1


def test_category_api(client, user_headers, db_session):
    resp = client.post("/api/categories", headers=user_headers, json={"name": "Cleaning"})
    assert resp.status_code == 201
    category_id = resp.get_json()["id"]

    resp = client.put(f"/api/categories/{category_id}", headers=user_headers, json={"name": ""})
    assert resp.status_code == 400

    resp = client.delete(f"/api/categories/{category_id}", headers=user_headers)
    assert resp.status_code == 200

    resp = client.get("/api/categories", headers=user_headers)
    assert resp.get_json()["count"] == 0


def test_contacts_share_operations(db_session):
    client_record = contact_service.create_contact("clients", patch={"name": " Maria Lda ", "tax_id": "501234567"})
    supplier = contact_service.create_contact("suppliers", patch={"name": "Parts Co", "payment_terms": "60 days"})

    assert client_record.name == "Maria Lda"
    assert supplier.payment_terms == "60 days"

    found, total = contact_service.list_contacts("clients", search="5012")
    assert total == 1
    assert found[0].id == client_record.id

    with pytest.raises(NotFoundError):
        contact_service.get_contact("suppliers", client_record.id)
    with pytest.raises(ValidationError):
        contact_service.create_contact("clients", patch={"name": "  "})
    with pytest.raises(ValidationError):
        contact_service.list_contacts("vendors")


def test_supplier_only_fields_are_rejected_for_clients(client, user_headers):
    resp = client.post("/api/clients", headers=user_headers, json={"name": "Shop", "payment_terms": "30 days"})
    assert resp.status_code == 400

    resp = client.post("/api/suppliers", headers=user_headers, json={"name": "Factory", "payment_terms": "30 days"})
    assert resp.status_code == 201
    assert resp.get_json()["payment_terms"] == "30 days"


def test_inactive_contacts_can_be_hidden(client, user_headers):
    client.post("/api/clients", headers=user_headers, json={"name": "Active shop"})
    client.post("/api/clients", headers=user_headers, json={"name": "Old shop", "status": "inactive"})

    resp = client.get("/api/clients?include_inactive=false", headers=user_headers)
    assert [c["name"] for c in resp.get_json()["items"]] == ["Active shop"]

    resp = client.get("/api/clients", headers=user_headers)
    assert resp.get_json()["count"] == 2


def test_category_lifecycle_through_recycle_bin(client, user_headers):
    resp = client.post("/api/categories", headers=user_headers, json={"name": "Bebidas", "status": "active"})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["id"]
    assert body["created_at"]
    assert body["product_count"] == 0

    client.delete(f"/api/categories/{body['id']}", headers=user_headers)

    names = [c["name"] for c in client.get("/api/categories", headers=user_headers).get_json()["items"]]
    assert "Bebidas" not in names

    binned = client.get("/api/recycle-bin", headers=user_headers).get_json()["items"]
    assert [(e["id"], e["table_type"]) for e in binned] == [(body["id"], "categories")]
