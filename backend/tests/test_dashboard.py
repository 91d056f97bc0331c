import pytest

from stockdesk.services import (
    dashboard_service,
    expense_service,
    order_service,
    stock_entry_service,
    stock_exit_service,
)
from stockdesk.services.recycle_bin_service import soft_delete_record
from stockdesk.time_utils import today


@pytest.fixture
def trading_year(make_product, customer, supplier):
    """
    2025 activity:
    - March: purchase 10 x 5.00 (header discount ignored), sale 5 x 20.00
    - April: expense 5 x 2.50 with 20% header discount = 10.00
    """
    product = make_product("DASH-1", purchase_price_cents=500, sale_price_cents=2000)
    stock_entry_service.create_stock_entry(
        date="2025-03-10",
        supplier_id=supplier.id,
        discount=20,
        items=[{"product_id": product.id, "quantity": 10}],
    )
    sale = stock_exit_service.create_stock_exit(
        date="2025-03-15",
        client_id=customer.id,
        discount=50,
        items=[{"product_id": product.id, "quantity": 5}],
    )
    expense = expense_service.create_expense(
        date="2025-04-02",
        supplier_id=supplier.id,
        discount=20,
        items=[{"product_name": "Courier", "quantity": 5, "unit_price_cents": 250}],
    )
    return product, sale, expense


def test_financial_totals(trading_year):
    totals = dashboard_service.get_financial_totals()

    assert totals["total_sales_cents"] == 10000
    assert totals["total_purchases_cents"] == 5000
    assert totals["total_expenses_cents"] == 1000
    assert totals["total_spent_cents"] == 6000
    assert totals["profit_cents"] == 4000
    assert totals["profit_margin_percent"] == 40.0
    assert totals["roi_percent"] == 66.67


def test_totals_without_activity_are_zero(db_session):
    totals = dashboard_service.get_financial_totals()
    assert totals["profit_cents"] == 0
    assert totals["profit_margin_percent"] == 0.0
    assert totals["roi_percent"] == 0.0


def test_deleted_documents_are_excluded(trading_year):
    _, sale, _ = trading_year
    soft_delete_record("stock_exits", sale.id)

    totals = dashboard_service.get_financial_totals()
    assert totals["total_sales_cents"] == 0
    assert totals["profit_cents"] == -6000


def test_monthly_totals(trading_year):
    months = dashboard_service.get_monthly_totals(2025)

    assert len(months) == 12
    assert months[0] == {"month": "2025-01", "sales_cents": 0, "purchases_cents": 0, "expenses_cents": 0}
    assert months[2]["sales_cents"] == 10000
    assert months[2]["purchases_cents"] == 5000
    assert months[3]["expenses_cents"] == 1000
    assert sum(m["sales_cents"] for m in dashboard_service.get_monthly_totals(2024)) == 0


def test_stock_value_and_counts(trading_year):
    summary = dashboard_service.get_dashboard_summary(year=2025)

    # 5 left at 5.00 purchase price
    assert summary["stock_value_cents"] == 2500
    assert summary["counts"] == {
        "products": 1,
        "categories": 0,
        "clients": 1,
        "suppliers": 1,
        "pending_orders": 0,
    }
    assert summary["year"] == 2025


def test_low_stock_products(make_product):
    low = make_product("LOW-1", stock=1, min_stock=5)
    make_product("OK-1", stock=5, min_stock=5)

    assert [p["id"] for p in dashboard_service.get_low_stock_products()] == [low.id]


def test_insufficient_stock_orders(make_product, customer):
    product = make_product("SHORT-1", stock=5)
    order = order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 8}],
    )
    order_service.create_order(
        client_id=customer.id,
        date=today().isoformat(),
        items=[{"product_id": product.id, "quantity": 2}],
    )

    rows = dashboard_service.get_insufficient_stock_orders()
    assert len(rows) == 1
    assert rows[0]["order_id"] == order.id
    assert rows[0]["missing_quantity"] == 3


def test_dashboard_api(client, user_headers, trading_year):
    resp = client.get("/api/dashboard?year=2025", headers=user_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["profit_cents"] == 4000
    assert len(body["monthly"]) == 12

    resp = client.get("/api/dashboard/low-stock", headers=user_headers)
    assert resp.status_code == 200
    assert resp.get_json()["count"] == 0
