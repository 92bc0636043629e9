"""
Database Models - Document Collections

Articles, products, orders and the other collections the dashboards use are
schemaless JSON documents. They all live in one `documents` table keyed by
(collection, doc_id), which mirrors the layout of a hosted document database
while running on PostgreSQL (JSONB) or SQLite (JSON) through SQLAlchemy.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# Collections read or written by the service
ARTICLES = "articles"
PRODUCTS = "products"
LOGS = "logs"
SETTINGS = "settings"
DAILY_PRODUCT_SALES = "dailyProductSales"
BUYING_ORDERS = "buyingOrders"
ORDERS = "orders"
SNAPSHOTS = "snapshots"


class Document(Base):
    """
    One JSON document in a named collection.

    `data` is replaced wholesale on every write so SQLAlchemy always sees
    the change; never mutate it in place.
    """
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    doc_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[Dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_documents_collection_updated", "collection", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<Document {self.collection}/{self.doc_id}>"
