# Overview: Service-layer aggregation for the dashboard; read-only totals over live records.

"""
Dashboard Service

All money values are integer cents.

- total_sales: line totals of live stock exits
- total_purchases: line totals of live stock entries
- total_expenses: expense line totals with the expense's header discount
- total_spent = total_purchases + total_expenses
- profit = total_sales - total_spent
- profit_margin_percent = profit / total_sales * 100 (0 without sales)
- roi_percent = profit / total_spent * 100 (0 without spending)
"""

from __future__ import annotations

from collections import defaultdict

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import (
    Category,
    Client,
    Expense,
    Order,
    Product,
    StockEntry,
    StockExit,
    Supplier,
)
from stockdesk.time_utils import to_iso_date, today


def _live_count(model) -> int:
    return db.session.query(func.count(model.id)).filter(model.deleted_at.is_(None)).scalar() or 0


def _percent(numerator: int, denominator: int) -> float:
    if not denominator:
        return 0.0
    return round(numerator / denominator * 100, 2)


def _documents(model, year: int | None = None):
    query = model.live().options(selectinload(model.items))
    if year is not None:
        query = query.filter(func.extract("year", model.date) == year)
    return query.all()


def _lines_total(document) -> int:
    return sum(item.total_cents for item in document.items)


def get_stock_value_cents() -> int:
    value = (
        db.session.query(func.sum(Product.current_stock * Product.purchase_price_cents))
        .filter(Product.deleted_at.is_(None))
        .scalar()
    )
    return int(value or 0)


def get_low_stock_products() -> list[dict]:
    products = (
        Product.live()
        .filter(Product.status == "active", Product.current_stock < Product.min_stock)
        .order_by(Product.current_stock.asc(), Product.name.asc())
        .all()
    )
    return [
        {
            "id": p.id,
            "code": p.code,
            "name": p.name,
            "current_stock": p.current_stock,
            "min_stock": p.min_stock,
        }
        for p in products
    ]


def get_insufficient_stock_orders() -> list[dict]:
    """
    Items of pending, unconverted orders whose quantity exceeds the product's
    current stock, newest order first.
    """
    orders = (
        Order.live()
        .options(selectinload(Order.items))
        .filter(Order.status == "pending", Order.converted_to_stock_exit_id.is_(None))
        .order_by(Order.date.desc(), Order.number.desc())
        .all()
    )

    product_ids = {item.product_id for order in orders for item in order.items if item.product_id}
    stock = {}
    if product_ids:
        stock = dict(
            db.session.query(Product.id, Product.current_stock)
            .filter(Product.id.in_(product_ids), Product.deleted_at.is_(None))
            .all()
        )

    result = []
    for order in orders:
        for item in order.items:
            if item.product_id not in stock:
                continue
            missing = item.quantity - stock[item.product_id]
            if missing > 0:
                result.append({
                    "order_id": order.id,
                    "order_number": order.number,
                    "order_date": to_iso_date(order.date),
                    "client_name": order.client_name,
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "current_stock": stock[item.product_id],
                    "missing_quantity": missing,
                })
    return result


def get_financial_totals() -> dict:
    total_sales = sum(_lines_total(e) for e in _documents(StockExit))
    total_purchases = sum(_lines_total(e) for e in _documents(StockEntry))
    total_expenses = sum(e.total_cents for e in _documents(Expense))
    total_spent = total_purchases + total_expenses
    profit = total_sales - total_spent
    return {
        "total_sales_cents": total_sales,
        "total_purchases_cents": total_purchases,
        "total_expenses_cents": total_expenses,
        "total_spent_cents": total_spent,
        "profit_cents": profit,
        "profit_margin_percent": _percent(profit, total_sales),
        "roi_percent": _percent(profit, total_spent),
    }


def get_monthly_totals(year: int) -> list[dict]:
    sales: dict[int, int] = defaultdict(int)
    purchases: dict[int, int] = defaultdict(int)
    expenses: dict[int, int] = defaultdict(int)

    for e in _documents(StockExit, year):
        sales[e.date.month] += _lines_total(e)
    for e in _documents(StockEntry, year):
        purchases[e.date.month] += _lines_total(e)
    for e in _documents(Expense, year):
        expenses[e.date.month] += e.total_cents

    return [
        {
            "month": f"{year}-{month:02d}",
            "sales_cents": sales[month],
            "purchases_cents": purchases[month],
            "expenses_cents": expenses[month],
        }
        for month in range(1, 13)
    ]


def get_dashboard_summary(*, year: int | None = None) -> dict:
    year = year or today().year
    pending_orders = (
        db.session.query(func.count(Order.id))
        .filter(
            Order.deleted_at.is_(None),
            Order.status == "pending",
            Order.converted_to_stock_exit_id.is_(None),
        )
        .scalar()
    ) or 0

    return {
        "counts": {
            "products": _live_count(Product),
            "categories": _live_count(Category),
            "clients": _live_count(Client),
            "suppliers": _live_count(Supplier),
            "pending_orders": pending_orders,
        },
        "stock_value_cents": get_stock_value_cents(),
        **get_financial_totals(),
        "low_stock_products": get_low_stock_products(),
        "insufficient_stock_orders": get_insufficient_stock_orders(),
        "monthly": get_monthly_totals(year),
        "year": year,
    }
