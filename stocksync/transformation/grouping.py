"""
Product Grouping

Folds flat feed rows into ProductAggregates keyed by
(item number, product name, supplier).
"""

from typing import Any, Dict, Iterable, Mapping, Optional

import structlog
from pydantic import ValidationError

from stocksync.transformation.records import (
    ArticleRecord,
    ColumnMap,
    ProductAggregate,
    ProductKey,
    is_inactive,
)


def build_article(row: Mapping[str, Any], column_map: ColumnMap) -> Optional[ArticleRecord]:
    """
    Article for one feed row, or None when SKU or item number is missing.

    Raises:
        ValidationError: If the row cannot be turned into an article
    """
    values = column_map.extract(row)
    if not values.get("sku") or not values.get("item_number"):
        return None

    values["is_active"] = not is_inactive(values.get("inaktiv"))
    return ArticleRecord(**{name: value for name, value in values.items() if value is not None})


def group_rows(
    rows: Iterable[Mapping[str, Any]],
    column_map: Optional[ColumnMap] = None,
    logger=None,
) -> Dict[ProductKey, ProductAggregate]:
    """
    Group feed rows into products.

    Rows without SKU or item number are dropped silently. Rows that fail for
    any other reason are logged and skipped; grouping carries on.

    Args:
        rows: Feed rows keyed by header name
        column_map: Header resolution; derived from the first row when omitted
        logger: Logger for row-level problems

    Returns:
        Products in first-seen order
    """
    log = logger or structlog.get_logger(__name__)
    groups: Dict[ProductKey, ProductAggregate] = {}
    dropped = 0
    failed = 0

    for line, row in enumerate(rows, start=2):
        if column_map is None:
            column_map = ColumnMap.from_headers(row.keys())
            if column_map.missing_fields:
                log.warning("Feed is missing columns", fields=column_map.missing_fields)

        try:
            article = build_article(row, column_map)
        except (ValidationError, TypeError, AttributeError) as e:
            failed += 1
            log.error("Skipping unreadable row", line=line, error=str(e))
            continue

        if article is None:
            dropped += 1
            continue

        key = (article.item_number, article.product_name, article.leverandor)
        product = groups.get(key)
        if product is None:
            product = ProductAggregate(
                item_number=article.item_number,
                product_name=article.product_name,
                supplier=article.leverandor,
                category=article.category,
                season=article.season,
                varestatus=article.varestatus,
                is_active=article.is_active,
            )
            groups[key] = product

        product.add(article)

    log.info(
        "Grouped feed rows into products",
        products=len(groups),
        rows_without_key=dropped,
        rows_failed=failed,
    )
    return groups

