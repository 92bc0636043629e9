"""
Orders API Endpoints

Purchase orders allocated to a product's color/size variants. Creating an
order raises `inPurchase` of every allocated variant, both in the product's
embedded items and in the matching article documents.
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from stocksync.database.connection import get_document_store
from stocksync.database.models import ARTICLES, ORDERS, PRODUCTS
from stocksync.database.store import DocumentStore, new_document_id
from stocksync.serving.cache import invalidate_inventory_caches
from stocksync.transformation.consolidation import allocate_order
from stocksync.transformation.reconciliation import ARTICLE_KEY_FIELDS, index_by_key

router = APIRouter()
logger = structlog.get_logger(__name__)


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class OrderCreate(BaseModel):
    """New order with a "color-size" -> pieces allocation"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str
    allocation: Dict[str, int] = Field(default_factory=dict)
    order_placed_date: Optional[str] = None
    order_number: str = ""
    style_name: str = ""
    style_color: str = ""
    delivery_week: str = ""
    confirmed: bool = False
    supplier: str = ""


class OrderCreated(BaseModel):
    id: str
    pcs: int
    product_id: str
    updated_articles: int


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("")
async def list_orders(store: DocumentStore = Depends(get_document_store)) -> List[Dict[str, Any]]:
    return await store.query(ORDERS, order_by="orderPlacedDate", descending=True)


@router.post("", response_model=OrderCreated, status_code=201)
async def create_order(
    order: OrderCreate,
    store: DocumentStore = Depends(get_document_store),
) -> OrderCreated:
    """
    Place an order for a product.

    The order, the product and the article updates are written in one
    batch.
    """
    product = await store.get(PRODUCTS, order.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")

    plan = allocate_order(product, order.allocation)
    if plan.pcs <= 0:
        raise HTTPException(status_code=400, detail="Order allocates no pieces to this product")

    articles = await store.fetch_all(ARTICLES)
    article_index = index_by_key(articles, ARTICLE_KEY_FIELDS, logger=logger)

    order_id = new_document_id()
    document = order.model_dump(by_alias=True, exclude={"allocation"}, exclude_none=True)
    document["pcs"] = plan.pcs
    document["allocation"] = {key: pcs for key, pcs in order.allocation.items() if pcs > 0}

    batch = store.batch()
    batch.set(ORDERS, order_id, document)
    batch.update(
        PRODUCTS,
        order.product_id,
        {"items": plan.items, "orders": [*(product.get("orders") or []), order_id]},
    )

    updated_articles = 0
    for key, in_purchase in plan.article_updates:
        match = article_index.get(key)
        if match is None:
            logger.warning("Allocated variant has no article document", sku=key[0], item_number=key[1])
            continue
        batch.update(ARTICLES, match[0], {"inPurchase": in_purchase})
        updated_articles += 1

    await batch.commit()
    await invalidate_inventory_caches()

    logger.info(
        "Order created",
        order_id=order_id,
        product_id=order.product_id,
        pcs=plan.pcs,
        updated_articles=updated_articles,
    )
    return OrderCreated(id=order_id, pcs=plan.pcs, product_id=order.product_id, updated_articles=updated_articles)


@router.delete("/{order_id}")
async def delete_order(
    order_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, str]:
    if not await store.delete(ORDERS, order_id):
        raise HTTPException(status_code=404, detail="Order not found")

    logger.info("Order deleted", order_id=order_id)
    return {"deleted": order_id}
