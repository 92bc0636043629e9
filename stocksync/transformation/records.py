"""
Inventory Records

Typed views of the inventory feed:
- ArticleRecord: one feed row (SKU/size/color variant)
- ProductAggregate: articles grouped under item number, name and supplier
- ColumnMap: feed header names resolved to record fields

Stored documents use camelCase keys; the models expose snake_case
attributes with camelCase aliases.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN_SUPPLIER = "Unknown Supplier"

DEFAULT_SUPPLIER_COLUMNS = ["Leverandør", "Leverandor", "Leverandørnavn", "Supplier", "Vendor"]

# Accepted header names per record field, in priority order
COLUMN_ALIASES: Dict[str, List[str]] = {
    "item_number": ["Item number", "Itemnumber", "Varenummer"],
    "size": ["Size", "Størrelse"],
    "color": ["Color", "Colour", "Farve"],
    "brand": ["Brand"],
    "product_name": ["Product name", "Productname", "Varenavn"],
    "category": ["Category", "Kategori"],
    "cost_price": ["Cost price", "Kostpris"],
    "rec_retail": ["Rec Retail", "Rec. Retail", "Recommended retail"],
    "ean": ["EAN"],
    "stock": ["Stock", "Lager"],
    "sku": ["SKU"],
    "quality": ["Quality", "Kvalitet"],
    "season": ["Season", "Sæson"],
    "sold": ["Sold", "Solgt"],
    "in_purchase": ["In Purchase", "In purchase", "I indkøb"],
    "leveringsuge": ["Leveringsuge", "Delivery week"],
    "salgspris": ["Salgspris", "Sale price"],
    "vejledende_udsalgspris": ["Vejl. udsalgspris", "Vejledende udsalgspris", "Suggested retail price"],
    "varestatus": ["Varestatus", "Status"],
    "inaktiv": ["Inaktiv", "Inactive"],
}

INACTIVE_MARKERS = {"1", "x", "y", "ja", "yes", "true", "sand"}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

ArticleKey = Tuple[str, str]
ProductKey = Tuple[str, str, str]


def parse_int(value: Any) -> int:
    """Leading integer of a value ("12", " 7 pcs", "3.9" -> 3); 0 when there is none"""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else 0
    if value is None:
        return 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ArticleRecord(BaseModel):
    """One inventory variant as exported by the ERP"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    item_number: str = Field(min_length=1)
    sku: str = Field(min_length=1)
    product_name: str = ""
    size: Optional[str] = None
    color: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    cost_price: Optional[str] = None
    rec_retail: Optional[str] = None
    ean: Optional[str] = None
    stock: Optional[str] = None
    quality: Optional[str] = None
    season: Optional[str] = None
    sold: Optional[str] = None
    in_purchase: Optional[str] = None
    leveringsuge: Optional[str] = None
    leverandor: str = UNKNOWN_SUPPLIER
    salgspris: Optional[str] = None
    vejledende_udsalgspris: Optional[str] = None
    varestatus: Optional[str] = None
    inaktiv: Optional[str] = None
    is_active: bool = True

    @property
    def key(self) -> ArticleKey:
        return (self.sku, self.item_number)

    @property
    def stock_count(self) -> int:
        return parse_int(self.stock)

    def to_document(self) -> Dict[str, Any]:
        """Stored form: camelCase keys, unset fields left out"""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass
class ProductAggregate:
    """
    Articles sharing item number, product name and supplier.

    Total stock and the size set are rebuilt from the members on every
    grouping run, never patched incrementally.
    """
    item_number: str
    product_name: str
    supplier: str
    category: Optional[str] = None
    season: Optional[str] = None
    varestatus: Optional[str] = None
    is_active: bool = True
    items: List[ArticleRecord] = field(default_factory=list)
    sizes: List[str] = field(default_factory=list)
    total_stock: int = 0

    @property
    def key(self) -> ProductKey:
        return (self.item_number, self.product_name, self.supplier)

    @property
    def sizes_display(self) -> str:
        return ", ".join(self.sizes)

    def add(self, article: ArticleRecord) -> None:
        self.items.append(article)
        if article.size and article.size not in self.sizes:
            self.sizes.append(article.size)
        self.total_stock += article.stock_count

    def to_document(self) -> Dict[str, Any]:
        document = {
            "itemNumber": self.item_number,
            "productName": self.product_name,
            "leverandor": self.supplier,
            "category": self.category,
            "season": self.season,
            "varestatus": self.varestatus,
            "isActive": self.is_active,
            "totalStock": self.total_stock,
            "sizes": self.sizes_display,
            "sizesArray": list(self.sizes),
            "items": [article.to_document() for article in self.items],
        }
        return {key: value for key, value in document.items() if value is not None}


class ColumnMap:
    """
    Feed headers resolved to record fields.

    Matching is case-insensitive on trimmed header names. For every field the
    first alias present in the header wins; supplier columns are tried in
    order and the first non-empty value is used.
    """

    def __init__(
        self,
        columns: Dict[str, str],
        supplier_columns: List[str],
        unknown_supplier: str = UNKNOWN_SUPPLIER,
    ):
        self.columns = columns
        self.supplier_columns = supplier_columns
        self.unknown_supplier = unknown_supplier

    @classmethod
    def from_headers(
        cls,
        headers: Iterable[str],
        supplier_aliases: Optional[List[str]] = None,
        unknown_supplier: str = UNKNOWN_SUPPLIER,
        aliases: Optional[Dict[str, List[str]]] = None,
    ) -> "ColumnMap":
        by_name = {header.strip().lower(): header for header in headers}

        columns = {}
        for field_name, names in (aliases or COLUMN_ALIASES).items():
            for name in names:
                header = by_name.get(name.strip().lower())
                if header is not None:
                    columns[field_name] = header
                    break

        supplier_columns = []
        for name in supplier_aliases or DEFAULT_SUPPLIER_COLUMNS:
            header = by_name.get(name.strip().lower())
            if header is not None and header not in supplier_columns:
                supplier_columns.append(header)

        return cls(columns, supplier_columns, unknown_supplier)

    @property
    def missing_fields(self) -> List[str]:
        return [name for name in COLUMN_ALIASES if name not in self.columns]

    def resolve_supplier(self, row: Mapping[str, Any]) -> str:
        for header in self.supplier_columns:
            value = _clean(row.get(header))
            if value:
                return value
        return self.unknown_supplier

    def extract(self, row: Mapping[str, Any]) -> Dict[str, Optional[str]]:
        """Field values of a row, trimmed, with empty cells as None"""
        values = {name: _clean(row.get(header)) for name, header in self.columns.items()}
        values["leverandor"] = self.resolve_supplier(row)
        return values


def is_inactive(marker: Optional[str]) -> bool:
    return bool(marker) and marker.strip().lower() in INACTIVE_MARKERS
