from .catalog import Product, StockTransaction
from .customers import Customer
from .sales import SalesOrder, OrderItem, OrderEdit
from .documents import Return, ReturnItem, Invoice, InvoiceItem
from .expenses import Expense
from .auth import User, SessionToken
from .security import SecurityEvent

__all__ = [
    'Product', 'StockTransaction',
    'Customer',
    'SalesOrder', 'OrderItem', 'OrderEdit',
    'Return', 'ReturnItem', 'Invoice', 'InvoiceItem',
    'Expense',
    'User', 'SessionToken',
    'SecurityEvent',
]
