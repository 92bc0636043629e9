"""
Articles API Endpoints
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException

from stocksync.database.connection import get_document_store
from stocksync.database.models import ARTICLES, PRODUCTS
from stocksync.database.store import DocumentStore
from stocksync.serving.cache import invalidate_inventory_caches

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("")
async def list_articles(
    item_number: Optional[str] = None,
    store: DocumentStore = Depends(get_document_store),
) -> List[Dict[str, Any]]:
    filters = {"itemNumber": item_number} if item_number else None
    return await store.query(ARTICLES, filters=filters, order_by="itemNumber")


@router.delete("/{article_id}")
async def delete_article(
    article_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, str]:
    if not await store.delete(ARTICLES, article_id):
        raise HTTPException(status_code=404, detail="Article not found")

    logger.info("Article deleted", article_id=article_id)
    return {"deleted": article_id}


@router.delete("")
async def delete_all_articles(store: DocumentStore = Depends(get_document_store)) -> Dict[str, int]:
    """Remove all articles and products; the next sync rebuilds both"""
    deleted = await store.delete_collections(ARTICLES, PRODUCTS)
    await invalidate_inventory_caches()

    logger.warning("All articles and products deleted", deleted=deleted)
    return {"deleted": deleted}
