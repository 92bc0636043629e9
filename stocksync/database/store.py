"""
Document Store

Collection/document access on top of the `documents` table:
- Point reads and full-collection snapshots
- Whole-document set, merge set, field update, delete
- Write batches committed atomically in a single transaction
"""

import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stocksync.database.models import Document

logger = structlog.get_logger(__name__)


class DocumentNotFoundError(KeyError):
    """Field update addressed a document that does not exist"""


def new_document_id() -> str:
    """Random 20-character document id"""
    return uuid.uuid4().hex[:20]


@dataclass(frozen=True)
class WriteOperation:
    """A single pending write inside a batch"""
    kind: str  # "set", "update" or "delete"
    collection: str
    doc_id: str
    data: Optional[Dict[str, Any]] = None
    merge: bool = False


class WriteBatch:
    """
    Group of writes applied all-or-nothing.

    Example:
        batch = store.batch()
        batch.set("articles", "abc", {"sku": "1"})
        batch.update("products", "def", {"totalStock": 8})
        await batch.commit()
    """

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._operations: List[WriteOperation] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._operations)

    @property
    def operations(self) -> List[WriteOperation]:
        return list(self._operations)

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> "WriteBatch":
        self._operations.append(WriteOperation("set", collection, doc_id, dict(data), merge))
        return self

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> "WriteBatch":
        self._operations.append(WriteOperation("update", collection, doc_id, dict(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._operations.append(WriteOperation("delete", collection, doc_id))
        return self

    async def commit(self) -> int:
        """Apply every queued write in one transaction; returns the operation count"""
        if self._committed:
            raise RuntimeError("Batch already committed")
        await self._store.apply(self._operations)
        self._committed = True
        return len(self._operations)


class DocumentStore:
    """
    Async document store over SQLAlchemy sessions.

    Documents are plain JSON dicts; datetimes must already be serialized
    (ISO strings) before they are written.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        async with self._session_factory() as session:
            doc = await session.get(Document, (collection, doc_id))
            return dict(doc.data) if doc else None

    async def fetch_all(self, collection: str) -> Dict[str, Dict[str, Any]]:
        """Snapshot of a whole collection, keyed by document id"""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Document.doc_id, Document.data)
                .where(Document.collection == collection)
                .order_by(Document.doc_id)
            )
            return {row.doc_id: dict(row.data) for row in result.all()}

    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Equality-filtered, optionally ordered read of a collection.

        Each returned dict carries its document id under "id".
        """
        documents = await self.fetch_all(collection)
        rows = [{"id": doc_id, **data} for doc_id, data in documents.items()]

        if filters:
            rows = [
                row for row in rows
                if all(row.get(field) == value for field, value in filters.items())
            ]

        if order_by:
            # Missing values sort first ascending, last descending
            rows.sort(
                key=lambda row: (row.get(order_by) is not None, row.get(order_by)),
                reverse=descending,
            )

        if limit is not None:
            rows = rows[:limit]

        return rows

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document under a fresh id and return the id"""
        doc_id = new_document_id()
        await self.apply([WriteOperation("set", collection, doc_id, dict(data))])
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        await self.apply([WriteOperation("set", collection, doc_id, dict(data), merge)])

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        await self.apply([WriteOperation("update", collection, doc_id, dict(fields))])

    async def delete(self, collection: str, doc_id: str) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(Document).where(
                        Document.collection == collection,
                        Document.doc_id == doc_id,
                    )
                )
        return result.rowcount > 0

    async def delete_collections(self, *collections: str) -> int:
        """Remove every document of the given collections in one transaction"""
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(Document).where(Document.collection.in_(collections))
                )
        logger.info("Collections cleared", collections=list(collections), deleted=result.rowcount)
        return result.rowcount

    async def apply(self, operations: List[WriteOperation]) -> None:
        """Apply writes inside a single transaction; any failure rolls all of them back"""
        if not operations:
            return

        async with self._session_factory() as session:
            async with session.begin():
                for op in operations:
                    await self._apply_one(session, op)

    async def _apply_one(self, session: AsyncSession, op: WriteOperation) -> None:
        doc = await session.get(Document, (op.collection, op.doc_id))

        if op.kind == "delete":
            if doc is not None:
                await session.delete(doc)
                await session.flush()
            return

        if op.kind == "update":
            if doc is None:
                raise DocumentNotFoundError(f"{op.collection}/{op.doc_id}")
            doc.data = {**doc.data, **op.data}
            return

        if op.kind != "set":
            raise ValueError(f"Unknown write operation: {op.kind}")

        if doc is None:
            session.add(Document(collection=op.collection, doc_id=op.doc_id, data=dict(op.data)))
            await session.flush()
        elif op.merge:
            doc.data = {**doc.data, **op.data}
        else:
            doc.data = dict(op.data)
