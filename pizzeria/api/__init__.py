"""HTTP and WebSocket routers."""

from pizzeria.api import auth, orders, products, reports, ws

__all__ = ["auth", "orders", "products", "reports", "ws"]
