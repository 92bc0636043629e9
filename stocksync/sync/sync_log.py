"""
Sync Log and Watermark

- `logs`: one append-only entry per successful sync run
- `settings/lastSync`: modification time of the last synced feed file
"""

from datetime import datetime, timezone
from typing import List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from stocksync.database.models import LOGS, SETTINGS

WATERMARK_DOC_ID = "lastSync"

logger = structlog.get_logger(__name__)


class SyncLogEntry(BaseModel):
    """Audit record of one sync run"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_products: List[str] = Field(default_factory=list)
    updated_products: List[str] = Field(default_factory=list)
    source: Optional[str] = None

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


async def append_sync_log(store, entry: SyncLogEntry, log=None) -> Optional[str]:
    """
    Append a sync log entry.

    Best effort: a failure is logged and None returned, the sync it describes
    is already committed.
    """
    log = log or logger
    try:
        doc_id = await store.add(LOGS, entry.to_document())
    except Exception as e:
        log.error("Sync log append failed", error=str(e), error_type=type(e).__name__)
        return None

    log.info(
        "Sync log appended",
        log_id=doc_id,
        created=len(entry.created_products),
        updated=len(entry.updated_products),
    )
    return doc_id


async def get_watermark(store) -> Optional[datetime]:
    """Modification time of the last synced feed, if any"""
    document = await store.get(SETTINGS, WATERMARK_DOC_ID)
    if not document or not document.get("lastModified"):
        return None
    watermark = datetime.fromisoformat(document["lastModified"])
    if watermark.tzinfo is None:
        watermark = watermark.replace(tzinfo=timezone.utc)
    return watermark


async def set_watermark(store, modified: datetime) -> None:
    await store.set(
        SETTINGS,
        WATERMARK_DOC_ID,
        {
            "lastModified": modified.isoformat(),
            "syncedAt": datetime.now(timezone.utc).isoformat(),
        },
    )
