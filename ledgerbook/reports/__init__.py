"""Reporting package: deterministic aggregation over the ledger."""

from ledgerbook.reports.aggregation import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    chart_series,
    contacts_for_type,
    group_by_category,
    low_stock_items,
    net_profit,
    profit_and_loss,
    recent_transactions,
    search_transactions,
    summarize,
    total_by_type,
    total_stock_value,
)

__all__ = [
    "DEFAULT_LOW_STOCK_THRESHOLD",
    "chart_series",
    "contacts_for_type",
    "group_by_category",
    "low_stock_items",
    "net_profit",
    "profit_and_loss",
    "recent_transactions",
    "search_transactions",
    "summarize",
    "total_by_type",
    "total_stock_value",
]
