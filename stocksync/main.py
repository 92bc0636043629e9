"""
Inventory Sync API

ASGI entry point: `uvicorn stocksync.main:app`
"""

from stocksync.serving.api.main import create_app

app = create_app()
