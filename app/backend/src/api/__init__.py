"""Public API routers exposed by the FastAPI application."""

from . import contracts, customers, dashboard, health, orders, vendors

__all__ = [
    "contracts",
    "customers",
    "dashboard",
    "health",
    "orders",
    "vendors",
]
