from .auth import Profile, SessionToken, ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF
from .security import SecurityEvent
from .catalog import Category, Product
from .parties import Supplier, Customer
from .orders import (
    PurchaseOrder, PurchaseOrderItem, SalesOrder, SalesOrderItem, OrderSequence, ORDER_STATUSES,
)
from .cash import Payment, CashTransaction, PAYMENT_TYPES, PAYMENT_METHODS, TRANSACTION_TYPES

__all__ = [
    'Profile', 'SessionToken', 'ROLES', 'ROLE_ADMIN', 'ROLE_MANAGER', 'ROLE_STAFF',
    'SecurityEvent',
    'Category', 'Product',
    'Supplier', 'Customer',
    'PurchaseOrder', 'PurchaseOrderItem', 'SalesOrder', 'SalesOrderItem', 'OrderSequence', 'ORDER_STATUSES',
    'Payment', 'CashTransaction', 'PAYMENT_TYPES', 'PAYMENT_METHODS', 'TRANSACTION_TYPES',
]
