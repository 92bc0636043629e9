"""
Buying Orders API Endpoints

Supplier purchase orders tracked by the buying team.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from stocksync.database.connection import get_document_store
from stocksync.database.models import BUYING_ORDERS
from stocksync.database.store import DocumentNotFoundError, DocumentStore

router = APIRouter()
logger = structlog.get_logger(__name__)


class BuyingOrderCreate(BaseModel):
    """Stored field names follow the buying team's Danish terms"""
    leverandor: str = ""
    ordreDato: Optional[date] = None
    ordreNr: str = ""
    style: str = ""
    farve: str = ""
    koebtAntal: int = Field(default=0, ge=0)
    etaDato: Optional[date] = None
    leveringsuge: Optional[int] = None
    saeson: str = ""
    productId: Optional[str] = None
    bekraeftet: bool = False
    leveret: str = "Nej"
    kommentarer: List[str] = Field(default_factory=list)


class BuyingOrderUpdate(BaseModel):
    leverandor: Optional[str] = None
    ordreDato: Optional[date] = None
    ordreNr: Optional[str] = None
    style: Optional[str] = None
    farve: Optional[str] = None
    koebtAntal: Optional[int] = Field(default=None, ge=0)
    etaDato: Optional[date] = None
    leveringsuge: Optional[int] = None
    saeson: Optional[str] = None
    productId: Optional[str] = None
    bekraeftet: Optional[bool] = None
    leveret: Optional[str] = None


class CommentCreate(BaseModel):
    text: str = Field(min_length=1)


@router.get("")
async def list_buying_orders(
    leverandor: Optional[str] = None,
    store: DocumentStore = Depends(get_document_store),
) -> List[Dict[str, Any]]:
    filters = {"leverandor": leverandor} if leverandor else None
    return await store.query(BUYING_ORDERS, filters=filters, order_by="ordreDato", descending=True)


@router.post("", status_code=201)
async def create_buying_order(
    order: BuyingOrderCreate,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    document = order.model_dump(mode="json")
    doc_id = await store.add(BUYING_ORDERS, document)
    logger.info("Buying order created", buying_order_id=doc_id, leverandor=order.leverandor)
    return {"id": doc_id, **document}


@router.patch("/{order_id}")
async def update_buying_order(
    order_id: str,
    changes: BuyingOrderUpdate,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    fields = changes.model_dump(mode="json", exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    try:
        await store.update(BUYING_ORDERS, order_id, fields)
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Buying order not found")

    logger.info("Buying order updated", buying_order_id=order_id, fields=sorted(fields))
    return {"id": order_id, **(await store.get(BUYING_ORDERS, order_id) or {})}


@router.post("/{order_id}/comments", status_code=201)
async def add_comment(
    order_id: str,
    comment: CommentCreate,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    order = await store.get(BUYING_ORDERS, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Buying order not found")

    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M")
    comments = [*(order.get("kommentarer") or []), f"{stamp}: {comment.text.strip()}"]
    await store.update(BUYING_ORDERS, order_id, {"kommentarer": comments})
    return {"id": order_id, "kommentarer": comments}


@router.delete("/{order_id}")
async def delete_buying_order(
    order_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, str]:
    if not await store.delete(BUYING_ORDERS, order_id):
        raise HTTPException(status_code=404, detail="Buying order not found")

    logger.info("Buying order deleted", buying_order_id=order_id)
    return {"deleted": order_id}
