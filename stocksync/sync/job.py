"""
Inventory Sync Job

One linear run per trigger:
1. Compare the feed's modification time with the stored watermark
2. Download and parse the feed
3. Group rows into products
4. Diff against a snapshot of stored articles and products
5. Write creates/patches in bounded batches
6. Advance the watermark and append the sync log
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import structlog
from prometheus_client import Counter, Gauge, Histogram
from pydantic import BaseModel, Field

from stocksync.config.settings import SyncSettings
from stocksync.database.models import ARTICLES, PRODUCTS
from stocksync.exceptions import EmptyDatasetError, SyncError
from stocksync.ingestion.csv_reader import read_inventory_csv
from stocksync.ingestion.ftp_client import FTPSource
from stocksync.sync.batch_writer import BatchWriter
from stocksync.sync.sync_log import SyncLogEntry, append_sync_log, get_watermark, set_watermark
from stocksync.transformation.grouping import group_rows
from stocksync.transformation.reconciliation import (
    ARTICLE_KEY_FIELDS,
    PRODUCT_KEY_FIELDS,
    find_mixed_type_fields,
    index_by_key,
    plan_change,
)
from stocksync.transformation.records import ColumnMap

NO_CHANGES_MESSAGE = "No changes detected since last sync."


# =============================================================================
# METRICS
# =============================================================================

SYNC_RUNS = Counter(
    "stocksync_sync_runs_total",
    "Sync runs by trigger and outcome",
    ["trigger", "status"],
)

SYNC_WRITES = Counter(
    "stocksync_sync_writes_total",
    "Documents created or patched by sync runs",
    ["collection", "kind"],
)

SYNC_DURATION = Histogram(
    "stocksync_sync_duration_seconds",
    "Time spent reconciling a feed",
    ["trigger"],
)

FEED_MODIFIED = Gauge(
    "stocksync_feed_modified_timestamp_seconds",
    "Modification time of the last synced FTP feed",
)


class SyncStatus(str, Enum):
    """Outcome of a sync run"""
    SKIPPED = "skipped"
    COMPLETED = "completed"


class SyncResult(BaseModel):
    """Result of a sync run"""
    status: SyncStatus
    message: str
    source: str
    rows: int = 0
    products_created: List[str] = Field(default_factory=list)
    products_updated: List[str] = Field(default_factory=list)
    articles_created: int = 0
    articles_updated: int = 0
    batches: int = 0
    operations: int = 0
    source_modified: Optional[datetime] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0


class InventorySyncJob:
    """
    Feed-to-store reconciliation.

    Example:
        job = InventorySyncJob(store, source=FTPSource.from_settings(settings.ftp))
        result = await job.run()
    """

    def __init__(
        self,
        store,
        source: Optional[FTPSource] = None,
        sync_settings: Optional[SyncSettings] = None,
        remote_path: str = "Inventory.csv",
        logger=None,
    ):
        self.store = store
        self.source = source
        self.settings = sync_settings or SyncSettings()
        self.remote_path = remote_path
        self.log = logger or structlog.get_logger(__name__)

    @property
    def staging_path(self) -> Path:
        return Path(self.settings.staging_dir) / Path(self.remote_path).name

    async def run(self) -> SyncResult:
        """
        Sync from the FTP feed, unless it has not changed since the last run.

        Raises:
            TransferError: FTP failure
            CSVParseError: Feed unreadable
            EmptyDatasetError: Feed has no rows
            BatchCommitError: A write batch failed
        """
        if self.source is None:
            raise RuntimeError("InventorySyncJob.run() needs an FTP source")

        started_at = datetime.now(timezone.utc)
        log = self.log.bind(run_id=uuid.uuid4().hex[:12], source=self.remote_path)
        log.info("Sync run started")

        try:
            modified = await self.source.get_modified_time(self.remote_path)
        except SyncError:
            SYNC_RUNS.labels(trigger="ftp", status="failed").inc()
            raise
        watermark = await get_watermark(self.store)

        if watermark is not None and modified <= watermark:
            log.info("Feed unchanged since last sync", modified=modified.isoformat(), watermark=watermark.isoformat())
            SYNC_RUNS.labels(trigger="ftp", status=SyncStatus.SKIPPED.value).inc()
            return SyncResult(
                status=SyncStatus.SKIPPED,
                message=NO_CHANGES_MESSAGE,
                source=self.remote_path,
                source_modified=modified,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
            )

        try:
            local_path = await self.source.download(self.remote_path, self.staging_path)
            rows = read_inventory_csv(
                local_path,
                delimiter=self.settings.csv_delimiter,
                encoding=self.settings.csv_encoding,
                logger=log,
            )
            with SYNC_DURATION.labels(trigger="ftp").time():
                result = await self.reconcile(rows, source=self.remote_path, started_at=started_at, log=log)
        except SyncError:
            SYNC_RUNS.labels(trigger="ftp", status="failed").inc()
            raise
        result.source_modified = modified

        await set_watermark(self.store, modified)
        FEED_MODIFIED.set(modified.timestamp())
        SYNC_RUNS.labels(trigger="ftp", status=result.status.value).inc()
        await append_sync_log(self.store, self._log_entry(result), log=log)
        return result

    async def run_upload(
        self,
        content: bytes,
        delimiter: Optional[str] = None,
        filename: str = "upload.csv",
    ) -> SyncResult:
        """
        Sync from a manually uploaded feed. The watermark is neither checked
        nor advanced.
        """
        started_at = datetime.now(timezone.utc)
        log = self.log.bind(run_id=uuid.uuid4().hex[:12], source=filename)
        log.info("Upload sync started", bytes=len(content))

        try:
            rows = read_inventory_csv(
                content,
                delimiter=delimiter or self.settings.csv_delimiter,
                encoding=self.settings.csv_encoding,
                logger=log,
            )
            with SYNC_DURATION.labels(trigger="upload").time():
                result = await self.reconcile(rows, source=filename, started_at=started_at, log=log)
        except SyncError:
            SYNC_RUNS.labels(trigger="upload", status="failed").inc()
            raise

        SYNC_RUNS.labels(trigger="upload", status=result.status.value).inc()
        await append_sync_log(self.store, self._log_entry(result), log=log)
        return result

    async def reconcile(
        self,
        rows: List[Mapping[str, Any]],
        source: str = "feed",
        started_at: Optional[datetime] = None,
        log=None,
    ) -> SyncResult:
        """
        Group rows, diff against stored state and write the changes.

        Raises:
            EmptyDatasetError: If there are no rows
            BatchCommitError: If a write batch fails
        """
        log = log or self.log
        started_at = started_at or datetime.now(timezone.utc)

        if not rows:
            log.error("CSV data is empty, aborting sync")
            raise EmptyDatasetError()

        column_map = ColumnMap.from_headers(
            rows[0].keys(),
            supplier_aliases=self.settings.supplier_columns,
            unknown_supplier=self.settings.unknown_supplier,
        )
        if column_map.missing_fields:
            log.warning("Feed is missing columns", fields=column_map.missing_fields)
        if not column_map.supplier_columns:
            log.warning("No supplier column found", accepted=self.settings.supplier_columns)

        products = group_rows(rows, column_map, logger=log)

        existing_articles = await self.store.fetch_all(ARTICLES)
        existing_products = await self.store.fetch_all(PRODUCTS)
        self._warn_mixed_types(existing_articles, ARTICLES, log)
        self._warn_mixed_types(existing_products, PRODUCTS, log)

        article_index = index_by_key(existing_articles, ARTICLE_KEY_FIELDS, logger=log)
        product_index = index_by_key(existing_products, PRODUCT_KEY_FIELDS, logger=log)

        writer = BatchWriter(self.store, max_operations=self.settings.batch_size, logger=log)
        result = SyncResult(
            status=SyncStatus.COMPLETED,
            message="",
            source=source,
            rows=len(rows),
            started_at=started_at,
        )

        for key, product in products.items():
            for article in product.items:
                change = plan_change(article_index, article.key, article.to_document())
                if change is None:
                    continue
                if change.is_new:
                    await writer.set(ARTICLES, change.doc_id, change.fields)
                    result.articles_created += 1
                else:
                    await writer.update(ARTICLES, change.doc_id, change.fields)
                    result.articles_updated += 1

            change = plan_change(product_index, key, product.to_document())
            if change is None:
                continue
            if change.is_new:
                await writer.set(PRODUCTS, change.doc_id, change.fields)
                result.products_created.append(product.product_name)
            else:
                await writer.update(PRODUCTS, change.doc_id, change.fields)
                result.products_updated.append(product.product_name)
                log.debug("Product changed", product=product.product_name, fields=sorted(change.fields))

        await writer.flush()

        SYNC_WRITES.labels(collection=ARTICLES, kind="create").inc(result.articles_created)
        SYNC_WRITES.labels(collection=ARTICLES, kind="update").inc(result.articles_updated)
        SYNC_WRITES.labels(collection=PRODUCTS, kind="create").inc(len(result.products_created))
        SYNC_WRITES.labels(collection=PRODUCTS, kind="update").inc(len(result.products_updated))

        result.batches = writer.committed_batches
        result.operations = writer.committed_operations
        result.completed_at = datetime.now(timezone.utc)
        result.duration_seconds = (result.completed_at - started_at).total_seconds()
        result.message = (
            f"Sync completed: {len(result.products_created)} products created, "
            f"{len(result.products_updated)} products updated."
        )

        log.info(
            "Sync run completed",
            rows=result.rows,
            products=len(products),
            products_created=len(result.products_created),
            products_updated=len(result.products_updated),
            articles_created=result.articles_created,
            articles_updated=result.articles_updated,
            batches=result.batches,
            operations=result.operations,
            duration_seconds=result.duration_seconds,
        )
        return result

    @staticmethod
    def _warn_mixed_types(documents: Dict[str, Dict[str, Any]], collection: str, log) -> None:
        mixed = find_mixed_type_fields(documents.values())
        if mixed:
            log.warning(
                "Stored fields have inconsistent types; numeric comparison depends on each document",
                collection=collection,
                fields={field: sorted(types) for field, types in mixed.items()},
            )

    @staticmethod
    def _log_entry(result: SyncResult) -> SyncLogEntry:
        return SyncLogEntry(
            timestamp=result.completed_at or datetime.now(timezone.utc),
            created_products=result.products_created,
            updated_products=result.products_updated,
            source=result.source,
        )


def create_sync_job(store, settings=None, logger=None) -> InventorySyncJob:
    """Create a job wired to the configured FTP feed"""
    from stocksync.config import get_settings
    from stocksync.ingestion.ftp_client import create_ftp_source

    settings = settings or get_settings()
    return InventorySyncJob(
        store,
        source=create_ftp_source(settings.ftp, logger=logger),
        sync_settings=settings.sync,
        remote_path=settings.ftp.remote_path,
        logger=logger,
    )
