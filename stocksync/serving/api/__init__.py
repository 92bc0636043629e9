"""
API Module
"""
from .main import create_app, lifespan
from .middleware import RequestLoggingMiddleware, RateLimitMiddleware

__all__ = [
    "create_app",
    "lifespan",
    "RequestLoggingMiddleware",
    "RateLimitMiddleware",
]
