from .catalog import Product, Category
from .contacts import Client, Supplier
from .documents import (
    DocumentCounter,
    Order, OrderItem,
    StockEntry, StockEntryItem,
    StockExit, StockExitItem,
    Expense, ExpenseItem,
)
from .auth import User, SessionToken
from .notifications import Notification

__all__ = [
    'Product', 'Category',
    'Client', 'Supplier',
    'DocumentCounter',
    'Order', 'OrderItem',
    'StockEntry', 'StockEntryItem',
    'StockExit', 'StockExitItem',
    'Expense', 'ExpenseItem',
    'User', 'SessionToken',
    'Notification',
]
