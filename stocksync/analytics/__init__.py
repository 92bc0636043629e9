"""
Sales Analytics Module
"""
from .sales import (
    TopSeller,
    build_daily_sales_snapshot,
    coverage_ratio,
    paginate,
    rank_top_sellers,
    sales_by_date,
    sales_difference,
    take_daily_sales_snapshot,
    take_top_sellers_snapshot,
)

__all__ = [
    "TopSeller",
    "build_daily_sales_snapshot",
    "coverage_ratio",
    "paginate",
    "rank_top_sellers",
    "sales_by_date",
    "sales_difference",
    "take_daily_sales_snapshot",
    "take_top_sellers_snapshot",
]
