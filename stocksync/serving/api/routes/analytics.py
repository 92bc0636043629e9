"""
Analytics API Endpoints

Sales snapshots, sales trends, top sellers and the sync log.
"""

from datetime import date
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from stocksync.analytics.sales import (
    DIFFERENCE_WINDOW,
    paginate,
    rank_top_sellers,
    sales_by_date,
    sales_difference,
    take_daily_sales_snapshot,
    take_top_sellers_snapshot,
)
from stocksync.config import get_settings
from stocksync.database.connection import get_document_store
from stocksync.database.models import DAILY_PRODUCT_SALES, LOGS, PRODUCTS
from stocksync.database.store import DocumentStore
from stocksync.serving.cache import analytics_cache

router = APIRouter()
logger = structlog.get_logger(__name__)


class SnapshotResponse(BaseModel):
    message: str
    id: str
    date: Optional[str] = None
    runAt: Optional[str] = None


class DailySalesPoint(BaseModel):
    date: str
    totalSold: int


@router.post("/daily-sales/snapshot", response_model=SnapshotResponse)
async def create_daily_sales_snapshot(store: DocumentStore = Depends(get_document_store)) -> SnapshotResponse:
    """Store today's sales counters of every product"""
    doc_id, document = await take_daily_sales_snapshot(store, tz=get_settings().sync.timezone, log=logger)
    await analytics_cache.invalidate_all()
    return SnapshotResponse(
        message="Daily sales snapshot created successfully.",
        id=doc_id,
        date=document["date"],
        runAt=document["runAt"],
    )


@router.get("/daily-sales", response_model=List[DailySalesPoint])
async def get_daily_sales(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    products: Optional[List[str]] = Query(None, description="Product ids to include"),
    store: DocumentStore = Depends(get_document_store),
) -> List[DailySalesPoint]:
    """Total sold per snapshot date"""
    snapshots = await store.fetch_all(DAILY_PRODUCT_SALES)
    points = sales_by_date(snapshots.values(), start_date, end_date, products)
    logger.debug("Daily sales computed", snapshots=len(snapshots), points=len(points))
    return [DailySalesPoint(**point) for point in points]


@router.get("/sales-difference")
async def get_sales_difference(
    season: str,
    limit: int = Query(10, ge=1, le=100),
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    """Top products of a season by sold difference across the latest snapshots"""
    cache_key = f"difference:{season}:{limit}"
    cached = await analytics_cache.get(cache_key)
    if cached:
        return cached

    snapshots = await store.query(
        DAILY_PRODUCT_SALES,
        order_by="timestamp",
        descending=True,
        limit=DIFFERENCE_WINDOW,
    )
    if len(snapshots) < 2:
        logger.warning("Not enough sales snapshots for a difference", snapshots=len(snapshots))

    result = sales_difference(snapshots, season, limit=limit)
    await analytics_cache.set(cache_key, result)
    return result


@router.get("/top-sellers")
async def get_top_sellers(
    ascending: bool = False,
    page: int = Query(1, ge=1),
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    """Variants ranked by units sold, 10 per page"""
    cache_key = f"top-sellers:{ascending}"
    ranking = await analytics_cache.get(cache_key)
    if ranking is None:
        products = await store.fetch_all(PRODUCTS)
        ranking = [seller.model_dump(by_alias=True) for seller in rank_top_sellers(products.values(), ascending)]
        await analytics_cache.set(cache_key, ranking)

    return paginate(ranking, page)


@router.post("/top-sellers/snapshot")
async def create_top_sellers_snapshot(store: DocumentStore = Depends(get_document_store)) -> Dict[str, str]:
    doc_id = await take_top_sellers_snapshot(store, log=logger)
    return {"message": "Top sellers snapshot saved.", "id": doc_id}


@router.get("/logs")
async def get_sync_logs(
    limit: int = Query(50, ge=1, le=500),
    store: DocumentStore = Depends(get_document_store),
) -> List[Dict[str, Any]]:
    """Sync log entries, newest first"""
    return await store.query(LOGS, order_by="timestamp", descending=True, limit=limit)
