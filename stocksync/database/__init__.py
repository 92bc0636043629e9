"""
Database Module
"""
from .connection import init_database, close_database, get_db, get_session_factory, get_document_store
from .models import Base, Document
from .store import DocumentStore, WriteBatch, DocumentNotFoundError

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "get_session_factory",
    "get_document_store",
    "Base",
    "Document",
    "DocumentStore",
    "WriteBatch",
    "DocumentNotFoundError",
]
