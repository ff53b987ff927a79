"""Enumerations shared by models, schemas and services."""

from __future__ import annotations

from enum import Enum


class ItemType(str, Enum):
    """Kind of row in an order's work breakdown."""

    MAIN_CATEGORY = "maincategory"
    SUB_CATEGORY = "subcategory"
    ITEM = "item"

    @classmethod
    def _missing_(cls, value: object) -> "ItemType | None":
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "").replace("-", "")
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def is_category(self) -> bool:
        return self is not ItemType.ITEM


class OrderStatus(str, Enum):
    PENDING_UPDATES = "pending_updates"
    COMPLETED = "completed"


class CustomerStatus(str, Enum):
    PENDING_UPDATES = "pending_updates"
    COMPLETED = "completed"


class OrderStage(str, Enum):
    WAITING_FOR_PERMIT = "waiting_for_permit"
    ACTIVE = "active"
    COMPLETED = "completed"


class VendorStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ChangeType(str, Enum):
    """Kinds of audited changes."""

    CELL_EDIT = "cell_edit"
    ROW_ADD = "row_add"
    ROW_DELETE = "row_delete"
    ROW_UPDATE = "row_update"
    CUSTOMER_EDIT = "customer_edit"
    ORDER_EDIT = "order_edit"
    CONTRACT_ADD = "contract_add"
    STAGE_UPDATE = "stage_update"
    CUSTOMER_DELETE = "customer_delete"
    CUSTOMER_RESTORE = "customer_restore"


__all__ = [
    "ChangeType",
    "CustomerStatus",
    "ItemType",
    "OrderStage",
    "OrderStatus",
    "VendorStatus",
]
