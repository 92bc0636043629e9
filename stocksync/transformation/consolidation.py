"""
Stock Consolidation

Per-color stock tables for the stock list, and order allocation against a
product's color/size variants.

Each color carries a closed set of metric series, every series mapping
size -> quantity:
- stock: pieces on hand
- sold: pieces sold, negated so a row sum reads as availability
- inPurchase: pieces on order
- disponibel: stock + sold + inPurchase
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from stocksync.transformation.records import parse_int

UNKNOWN = "Unknown"


class Metric(str, Enum):
    """Metric series tracked per size"""
    STOCK = "stock"
    SOLD = "sold"
    IN_PURCHASE = "inPurchase"
    DISPONIBEL = "disponibel"


SizeSeries = Dict[str, int]


def empty_series() -> Dict[Metric, SizeSeries]:
    return {metric: {} for metric in Metric}


class ConsolidatedItem(BaseModel):
    """Stock table of one color of a product"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    color: str
    sizes: List[str]
    series: Dict[Metric, SizeSeries] = Field(default_factory=empty_series)
    delivery_weeks: Dict[str, Dict[Metric, SizeSeries]] = Field(default_factory=dict)
    delivery_week: str = UNKNOWN
    leverandor: str = UNKNOWN
    salgspris: str = UNKNOWN
    vejledende_udsalgspris: str = UNKNOWN

    def total(self, metric: Metric) -> int:
        return sum(self.series[metric].values())


def _add(series: Dict[Metric, SizeSeries], size: str, values: Mapping[Metric, int]) -> None:
    for metric, value in values.items():
        series[metric][size] = series[metric].get(size, 0) + value


def article_metrics(article: Mapping[str, Any]) -> Dict[Metric, int]:
    stock = parse_int(article.get("stock"))
    sold = -parse_int(article.get("sold"))
    in_purchase = parse_int(article.get("inPurchase"))
    return {
        Metric.STOCK: stock,
        Metric.SOLD: sold,
        Metric.IN_PURCHASE: in_purchase,
        Metric.DISPONIBEL: stock + sold + in_purchase,
    }


def product_sizes(product: Mapping[str, Any]) -> List[str]:
    sizes = product.get("sizesArray")
    if sizes:
        return list(sizes)
    ordered: List[str] = []
    for article in product.get("items") or []:
        size = article.get("size")
        if size and size not in ordered:
            ordered.append(size)
    return ordered


def consolidate_product(
    product: Mapping[str, Any],
    orders: Iterable[Mapping[str, Any]] = (),
) -> Dict[str, ConsolidatedItem]:
    """
    Per-color stock tables of a stored product, colors sorted alphabetically.

    Articles sharing color and size are summed. The delivery week comes from
    the first article of a color and is replaced by the delivery week of an
    order placed for the same style name and color.
    """
    orders = list(orders)
    sizes = product_sizes(product)
    consolidated: Dict[str, ConsolidatedItem] = {}

    for article in product.get("items") or []:
        color = article.get("color") or UNKNOWN
        item = consolidated.get(color)
        if item is None:
            item = ConsolidatedItem(
                color=color,
                sizes=sizes,
                delivery_week=article.get("leveringsuge") or UNKNOWN,
                leverandor=article.get("leverandor") or UNKNOWN,
                salgspris=article.get("salgspris") or UNKNOWN,
                vejledende_udsalgspris=article.get("vejledendeUdsalgspris") or UNKNOWN,
            )
            consolidated[color] = item

        size = article.get("size") or ""
        metrics = article_metrics(article)
        _add(item.series, size, metrics)

        week = article.get("leveringsuge") or UNKNOWN
        _add(item.delivery_weeks.setdefault(week, empty_series()), size, metrics)

        related = next(
            (
                order for order in orders
                if order.get("styleName") == article.get("productName")
                and order.get("styleColor") == article.get("color")
            ),
            None,
        )
        if related and related.get("deliveryWeek"):
            item.delivery_week = str(related["deliveryWeek"])

    return {color: consolidated[color] for color in sorted(consolidated)}


def allocation_key(color: Optional[str], size: Optional[str]) -> str:
    return f"{color or ''}-{size or ''}"


class AllocationPlan(BaseModel):
    """Effect of an order on a product's variants"""
    pcs: int
    items: List[Dict[str, Any]]
    article_updates: List[Tuple[Tuple[str, str], str]]


def allocate_order(product: Mapping[str, Any], allocation: Mapping[str, int]) -> AllocationPlan:
    """
    Apply a "color-size" -> pieces allocation to a product's embedded items.

    Returns the total pieces, the items with raised `inPurchase`, and the
    (sku, itemNumber) -> new `inPurchase` updates for the article documents.
    Allocations for variants the product does not have are ignored. Each
    allocation goes to the first item with that color and size only.
    """
    pcs = 0
    items = []
    article_updates = []
    remaining = dict(allocation)

    for article in product.get("items") or []:
        quantity = int(remaining.pop(allocation_key(article.get("color"), article.get("size")), 0))
        if quantity > 0:
            in_purchase = str(parse_int(article.get("inPurchase")) + quantity)
            article = {**article, "inPurchase": in_purchase}
            article_updates.append(((article.get("sku", ""), article.get("itemNumber", "")), in_purchase))
            pcs += quantity
        items.append(dict(article))

    return AllocationPlan(pcs=pcs, items=items, article_updates=article_updates)
