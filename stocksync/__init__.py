"""
stocksync - supplier inventory feed sync service
"""

__version__ = "1.0.0"
