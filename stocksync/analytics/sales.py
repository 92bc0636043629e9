"""
Sales Analytics

Sales figures derived from the `sold` counters of stored products:
- Daily sales snapshots (`dailyProductSales`), one document per run
- Total sold per snapshot date
- Sold difference per product across the latest snapshots of a season
- Top sellers grouped by product name, vendor and color, with DG
  (dækningsgrad, gross margin on recommended retail) in percent
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from stocksync.database.models import DAILY_PRODUCT_SALES, PRODUCTS, SNAPSHOTS
from stocksync.transformation.records import parse_int

logger = structlog.get_logger(__name__)

SNAPSHOT_ID_FORMAT = "%Y-%m-%d_%H-%M"
DIFFERENCE_WINDOW = 14
TOP_SELLERS_PER_PAGE = 10

_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_float(value: Any) -> float:
    """Leading decimal number of a value ("249.95 DKK" -> 249.95); 0.0 when there is none"""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if value == value else 0.0
    match = _LEADING_FLOAT.match(str(value))
    return float(match.group(1)) if match else 0.0


# =============================================================================
# Daily sales snapshots
# =============================================================================

def product_sales(product: Mapping[str, Any]) -> Dict[str, Any]:
    """Sales summary of one stored product"""
    colors: Dict[str, Dict[str, int]] = {}
    total = 0
    for item in product.get("items") or []:
        sold = parse_int(item.get("sold"))
        color = item.get("color") or "Unknown"
        colors.setdefault(color, {"totalSold": 0})["totalSold"] += sold
        total += sold

    return {
        "productName": product.get("productName") or "Unknown Product",
        "category": product.get("category") or "Uncategorized",
        "season": product.get("season") or "Unknown Season",
        "varestatus": product.get("varestatus") or "Unknown Status",
        "totalSales": total,
        "colors": colors,
    }


def build_daily_sales_snapshot(
    products: Mapping[str, Mapping[str, Any]],
    run_at: datetime,
    tz: str = "Europe/Copenhagen",
) -> Tuple[str, Dict[str, Any]]:
    """
    Snapshot document for the given products.

    Returns the document id ("YYYY-MM-DD_HH-mm" in local time) and the
    document.
    """
    if run_at.tzinfo is None:
        run_at = run_at.replace(tzinfo=timezone.utc)
    local = run_at.astimezone(ZoneInfo(tz))

    document = {
        "date": local.date().isoformat(),
        "runAt": local.isoformat(),
        "timestamp": run_at.astimezone(timezone.utc).isoformat(),
        "products": {doc_id: product_sales(product) for doc_id, product in products.items()},
    }
    return local.strftime(SNAPSHOT_ID_FORMAT), document


async def take_daily_sales_snapshot(
    store,
    tz: str = "Europe/Copenhagen",
    now: Optional[datetime] = None,
    log=None,
) -> Tuple[str, Dict[str, Any]]:
    """Store a sales snapshot of all products; a second run in the same minute overwrites it"""
    log = log or logger
    products = await store.fetch_all(PRODUCTS)
    doc_id, document = build_daily_sales_snapshot(products, now or datetime.now(timezone.utc), tz)
    await store.set(DAILY_PRODUCT_SALES, doc_id, document, merge=True)
    log.info("Daily sales snapshot stored", snapshot_id=doc_id, products=len(products))
    return doc_id, document


def snapshot_total(snapshot: Mapping[str, Any], product_ids: Optional[Iterable[str]] = None) -> int:
    selected = set(product_ids) if product_ids else None
    total = 0
    for product_id, product in (snapshot.get("products") or {}).items():
        if selected is not None and product_id not in selected:
            continue
        total += sum(color.get("totalSold", 0) for color in (product.get("colors") or {}).values())
    return total


def sales_by_date(
    snapshots: Iterable[Mapping[str, Any]],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    product_ids: Optional[Iterable[str]] = None,
) -> List[Dict[str, Any]]:
    """Total sold per snapshot date, oldest first; both range ends inclusive"""
    product_ids = list(product_ids or [])
    totals: Dict[str, int] = {}
    for snapshot in snapshots:
        day = snapshot.get("date")
        if not day:
            continue
        if start_date and day < start_date.isoformat():
            continue
        if end_date and day > end_date.isoformat():
            continue
        totals[day] = totals.get(day, 0) + snapshot_total(snapshot, product_ids)

    return [{"date": day, "totalSold": totals[day]} for day in sorted(totals)]


class SalesDifference(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str
    product_name: str
    category: str
    total_sold_difference: int


def sales_difference(
    snapshots: List[Mapping[str, Any]],
    season: str,
    limit: int = 10,
) -> Dict[str, Any]:
    """
    Sold difference per product of a season, latest minus earliest.

    `snapshots` are ordered newest first. Products need at least two
    snapshots in the season; zero differences are left out. Returns the
    period bounds and the top `limit` products by difference.
    """
    if len(snapshots) < 2:
        return {"periodStart": None, "periodEnd": None, "products": []}

    latest, earliest = snapshots[0], snapshots[-1]
    product_ids: List[str] = []
    for snapshot in snapshots:
        for product_id in snapshot.get("products") or {}:
            if product_id not in product_ids:
                product_ids.append(product_id)

    differences = []
    for product_id in product_ids:
        series = []
        for snapshot in snapshots:
            product = (snapshot.get("products") or {}).get(product_id)
            if product and product.get("season") == season:
                series.append(sum(c.get("totalSold", 0) for c in (product.get("colors") or {}).values()))
        if len(series) < 2:
            continue

        difference = series[0] - series[-1]
        if difference == 0:
            continue

        latest_product = (latest.get("products") or {}).get(product_id) or {}
        differences.append(
            SalesDifference(
                product_id=product_id,
                product_name=latest_product.get("productName") or "Unknown",
                category=latest_product.get("category") or "Unknown",
                total_sold_difference=difference,
            )
        )

    differences.sort(key=lambda d: d.total_sold_difference, reverse=True)
    return {
        "periodStart": earliest.get("date"),
        "periodEnd": latest.get("date"),
        "products": [d.model_dump(by_alias=True) for d in differences[:limit]],
    }


# =============================================================================
# Top sellers
# =============================================================================

class TopSeller(BaseModel):
    """Sales of one product/vendor/color variant"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_name: str
    vendor: str
    color: str
    total_sales: float = 0
    rec_retail: float = 0
    cost_price: float = 0
    coverage_ratio: Optional[float] = None


def coverage_ratio(rec_retail: float, cost_price: float) -> Optional[float]:
    """DG in percent, None without a retail price"""
    if rec_retail == 0:
        return None
    return round((rec_retail - cost_price) / rec_retail * 100, 2)


def rank_top_sellers(
    products: Iterable[Mapping[str, Any]],
    ascending: bool = False,
) -> List[TopSeller]:
    """
    Group all embedded items by product name, vendor and color.

    Prices are taken from the first item of a group.
    """
    groups: Dict[Tuple[str, str, str], TopSeller] = {}
    for product in products:
        for item in product.get("items") or []:
            key = (
                item.get("productName") or "Unnamed Product",
                item.get("leverandor") or "Unknown Vendor",
                item.get("color") or "Unknown",
            )
            seller = groups.get(key)
            if seller is None:
                rec_retail = parse_float(item.get("recRetail"))
                cost_price = parse_float(item.get("costPrice"))
                seller = TopSeller(
                    product_name=key[0],
                    vendor=key[1],
                    color=key[2],
                    rec_retail=rec_retail,
                    cost_price=cost_price,
                    coverage_ratio=coverage_ratio(rec_retail, cost_price),
                )
                groups[key] = seller
            seller.total_sales += parse_float(item.get("sold"))

    return sorted(groups.values(), key=lambda s: s.total_sales, reverse=not ascending)


def paginate(items: List[Any], page: int = 1, per_page: int = TOP_SELLERS_PER_PAGE) -> Dict[str, Any]:
    total = len(items)
    pages = max(1, -(-total // per_page))
    page = min(max(page, 1), pages)
    start = (page - 1) * per_page
    return {
        "items": items[start:start + per_page],
        "page": page,
        "pages": pages,
        "total": total,
    }


async def take_top_sellers_snapshot(store, now: Optional[datetime] = None, log=None) -> str:
    """Store the current top seller ranking in `snapshots`"""
    log = log or logger
    products = await store.fetch_all(PRODUCTS)
    ranking = rank_top_sellers(products.values())
    doc_id = await store.add(
        SNAPSHOTS,
        {
            "type": "topSellers",
            "timestamp": (now or datetime.now(timezone.utc)).isoformat(),
            "variants": [seller.model_dump(by_alias=True) for seller in ranking],
        },
    )
    log.info("Top sellers snapshot stored", snapshot_id=doc_id, variants=len(ranking))
    return doc_id
