"""
Prefect Workflow Orchestration - Inventory Sync

Scheduled flows for:
- Checking the FTP feed and syncing it when it changed
- Taking the daily sales snapshot
"""

from datetime import datetime, timezone
from typing import Optional

from prefect import flow, get_run_logger, task

from stocksync.analytics.sales import take_daily_sales_snapshot
from stocksync.config import get_settings
from stocksync.config.logging import configure_logging
from stocksync.database.connection import close_database, get_session_factory, init_database
from stocksync.database.store import DocumentStore
from stocksync.sync.job import create_sync_job

settings = get_settings()


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="sync_inventory_feed",
    description="Sync the FTP inventory feed into the document store",
    retries=2,
    retry_delay_seconds=120,
)
async def sync_inventory_feed() -> dict:
    """Run one sync; a skipped run writes nothing"""
    logger = get_run_logger()

    job = create_sync_job(DocumentStore(get_session_factory()))
    result = await job.run()

    logger.info(f"{result.message} ({result.batches} batches, {result.operations} writes)")
    return result.model_dump(mode="json")


@task(
    name="daily_sales_snapshot",
    description="Store a sales snapshot of all products",
    retries=1,
    retry_delay_seconds=60,
)
async def daily_sales_snapshot(now: Optional[datetime] = None) -> dict:
    logger = get_run_logger()

    doc_id, document = await take_daily_sales_snapshot(
        DocumentStore(get_session_factory()),
        tz=settings.sync.timezone,
        now=now,
    )

    logger.info(f"Daily sales snapshot {doc_id} stored for {len(document['products'])} products")
    return {"id": doc_id, "date": document["date"], "runAt": document["runAt"]}


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="inventory_sync",
    description="Sync the supplier inventory feed when it changed",
)
async def inventory_sync() -> dict:
    """
    Inventory sync pipeline.

    Steps:
    1. Compare the feed's modification time with the last synced one
    2. Download, group and reconcile the feed
    3. Write changes in batches and record the sync
    """
    logger = get_run_logger()
    configure_logging()

    missing = settings.missing_required()
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    await init_database()
    try:
        result = await sync_inventory_feed()
    except Exception as e:
        logger.error(f"Inventory sync failed: {e}")
        raise
    finally:
        await close_database()

    return result


@flow(
    name="daily_sales",
    description="Daily sales snapshot for the sales dashboards",
)
async def daily_sales(run_at: Optional[datetime] = None) -> dict:
    configure_logging()

    await init_database()
    try:
        return await daily_sales_snapshot(run_at or datetime.now(timezone.utc))
    finally:
        await close_database()


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    import asyncio

    asyncio.run(inventory_sync())
