from .stores import Store
from .catalog import Category, Brand, Supplier, Product
from .inventory import InventoryRecord
from .customers import CustomerProfile
from .sales import SalesTransaction, SalesTransactionItem, SalesTransactionAction, InvoiceCounter
from .auth import User, Role, UserRole, RolePermission, SessionToken

__all__ = [
    'Store',
    'Category', 'Brand', 'Supplier', 'Product',
    'InventoryRecord',
    'CustomerProfile',
    'SalesTransaction', 'SalesTransactionItem', 'SalesTransactionAction', 'InvoiceCounter',
    'User', 'Role', 'UserRole', 'RolePermission', 'SessionToken',
]
