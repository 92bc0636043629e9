"""
API Routes Module
"""
from .health import router as health_router
from .sync import router as sync_router
from .products import router as products_router
from .articles import router as articles_router
from .orders import router as orders_router
from .buying_orders import router as buying_orders_router
from .analytics import router as analytics_router

__all__ = [
    "health_router",
    "sync_router",
    "products_router",
    "articles_router",
    "orders_router",
    "buying_orders_router",
    "analytics_router",
]
