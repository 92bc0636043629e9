"""
Products API Endpoints

Product catalog and per-color stock lists.
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from stocksync.database.connection import get_document_store
from stocksync.database.models import ORDERS, PRODUCTS
from stocksync.database.store import DocumentStore
from stocksync.serving.cache import products_cache
from stocksync.transformation.consolidation import Metric, consolidate_product, product_sizes

router = APIRouter()
logger = structlog.get_logger(__name__)


class ProductListResponse(BaseModel):
    items: List[Dict[str, Any]]
    total: int


class StockListResponse(BaseModel):
    """Per-color stock tables of a product"""
    product_id: str
    product_name: Optional[str]
    sizes: List[str]
    colors: Dict[str, Dict[str, Any]]
    totals: Dict[str, int]


class OutToggleResponse(BaseModel):
    id: str
    isUde: bool


def filter_products(
    products: List[Dict[str, Any]],
    status: Optional[str] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
) -> List[Dict[str, Any]]:
    """Filter by varestatus and name substring, sorted by product name"""
    needle = search.strip().lower() if search else None
    selected = [
        product for product in products
        if (include_inactive or product.get("isActive", True))
        and (not status or product.get("varestatus") == status)
        and (not needle or needle in (product.get("productName") or "").lower())
    ]
    return sorted(selected, key=lambda p: (p.get("productName") or "").lower())


async def _get_or_404(store: DocumentStore, product_id: str) -> Dict[str, Any]:
    product = await store.get(PRODUCTS, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("", response_model=ProductListResponse)
async def list_products(
    status: Optional[str] = Query(None, description="Varestatus to match"),
    search: Optional[str] = Query(None, description="Case-insensitive product name search"),
    include_inactive: bool = False,
    store: DocumentStore = Depends(get_document_store),
) -> ProductListResponse:
    cache_key = f"list:{status}:{search}:{include_inactive}"
    cached = await products_cache.get(cache_key)
    if cached:
        logger.debug("Returning cached product list", key=cache_key)
        return ProductListResponse(**cached)

    products = await store.query(PRODUCTS)
    items = filter_products(products, status=status, search=search, include_inactive=include_inactive)
    response = ProductListResponse(items=items, total=len(items))

    await products_cache.set(cache_key, response.model_dump())
    return response


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    product = await _get_or_404(store, product_id)
    return {"id": product_id, **product}


@router.get("/{product_id}/stock", response_model=StockListResponse)
async def get_product_stock(
    product_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> StockListResponse:
    """
    Stock list of a product: stock, sold, in purchase and available per
    color and size, with delivery weeks from matching orders.
    """
    product = await _get_or_404(store, product_id)
    orders = await store.query(ORDERS)
    consolidated = consolidate_product(product, orders)

    totals = {metric.value: sum(item.total(metric) for item in consolidated.values()) for metric in Metric}
    return StockListResponse(
        product_id=product_id,
        product_name=product.get("productName"),
        sizes=product_sizes(product),
        colors={color: item.model_dump(mode="json", by_alias=True) for color, item in consolidated.items()},
        totals=totals,
    )


@router.patch("/{product_id}/out", response_model=OutToggleResponse)
async def toggle_out(
    product_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> OutToggleResponse:
    """Toggle the product's sold-out marker"""
    product = await _get_or_404(store, product_id)
    is_ude = not product.get("isUde", False)
    await store.update(PRODUCTS, product_id, {"isUde": is_ude})
    await products_cache.invalidate_all()

    logger.info("Product out marker toggled", product_id=product_id, is_ude=is_ude)
    return OutToggleResponse(id=product_id, isUde=is_ude)


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, str]:
    if not await store.delete(PRODUCTS, product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    await products_cache.invalidate_all()

    logger.info("Product deleted", product_id=product_id)
    return {"deleted": product_id}
