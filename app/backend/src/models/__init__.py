"""ORM models exposed for easy imports."""

from .change_history import ChangeHistory
from .customer import Customer
from .enums import ChangeType, CustomerStatus, ItemType, OrderStage, OrderStatus, VendorStatus
from .invoice import Invoice
from .order import Order
from .order_item import OrderItem
from .vendor import Vendor

__all__ = [
    "ChangeHistory",
    "ChangeType",
    "Customer",
    "CustomerStatus",
    "Invoice",
    "ItemType",
    "Order",
    "OrderItem",
    "OrderStage",
    "OrderStatus",
    "Vendor",
    "VendorStatus",
]
