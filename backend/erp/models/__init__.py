from .tenancy import Organization, Warehouse, DocumentSequence
from .auth import User, Role, SessionToken
from .security import SecurityEvent, AuditLog
from .inventory import Product, StockLevel, InventoryTransaction
from .customers import Customer
from .sales import SalesOrder, SalesOrderLine, Invoice
from .purchasing import PurchaseOrder, PurchaseOrderLine
from .hr import Employee

__all__ = [
    'Organization', 'Warehouse', 'DocumentSequence',
    'User', 'Role', 'SessionToken',
    'SecurityEvent', 'AuditLog',
    'Product', 'StockLevel', 'InventoryTransaction',
    'Customer',
    'SalesOrder', 'SalesOrderLine', 'Invoice',
    'PurchaseOrder', 'PurchaseOrderLine',
    'Employee',
]
