"""Ledger reports package."""

from smart_ledger.queries.reports import (
    BudgetProgress,
    CategoryTotal,
    MonthlySummary,
    TrendPoint,
    budget_progress,
    daily_trend,
    expense_by_category,
    format_day,
    group_by_day,
    local_date,
    local_timezone,
    month_transactions,
    recent,
    search,
    summarize,
    top_expense_category,
)

__all__ = [
    "BudgetProgress",
    "CategoryTotal",
    "MonthlySummary",
    "TrendPoint",
    "budget_progress",
    "daily_trend",
    "expense_by_category",
    "format_day",
    "group_by_day",
    "local_date",
    "local_timezone",
    "month_transactions",
    "recent",
    "search",
    "summarize",
    "top_expense_category",
]
