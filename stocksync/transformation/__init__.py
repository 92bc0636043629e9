"""
Data Transformation Module
"""
from .records import ArticleRecord, ProductAggregate, ColumnMap, parse_int
from .grouping import group_rows, build_article
from .reconciliation import (
    compute_delta,
    index_by_key,
    plan_change,
    find_mixed_type_fields,
    ARTICLE_KEY_FIELDS,
    PRODUCT_KEY_FIELDS,
)
from .consolidation import ConsolidatedItem, Metric, consolidate_product, allocate_order

__all__ = [
    "ArticleRecord",
    "ProductAggregate",
    "ColumnMap",
    "parse_int",
    "group_rows",
    "build_article",
    "compute_delta",
    "index_by_key",
    "plan_change",
    "find_mixed_type_fields",
    "ARTICLE_KEY_FIELDS",
    "PRODUCT_KEY_FIELDS",
    "ConsolidatedItem",
    "Metric",
    "consolidate_product",
    "allocate_order",
]
