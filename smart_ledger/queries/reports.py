"""
Ledger Reports

DESIGN DECISION: Everything the dashboard, history and statistics pages
show is computed here, as pure functions over a transaction list.
The pages only render what these return, so the numbers can be tested
without a UI.

Calendar grouping uses the configured local timezone; stored timestamps
are UTC.
"""

from collections import OrderedDict
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from smart_ledger.config import get_settings
from smart_ledger.models.categories import OTHER_EXPENSE_ID, CategoryRegistry
from smart_ledger.models.ledger import (
    TOTAL_BUDGET_CATEGORY,
    Budget,
    DailySummary,
    Transaction,
    TransactionType,
)


class MonthlySummary(BaseModel):
    income: float = 0.0
    expense: float = 0.0

    @property
    def balance(self) -> float:
        return self.income - self.expense


class BudgetProgress(BaseModel):
    """Spending against the total monthly budget."""

    total: float
    spent: float

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.spent / self.total * 100

    @property
    def over_budget(self) -> bool:
        return self.percent > 100

    @property
    def remaining(self) -> float:
        """Negative when over budget."""
        return self.total - self.spent


class CategoryTotal(BaseModel):
    name: str
    value: float


class TrendPoint(BaseModel):
    day: date
    label: str
    income: float = 0.0
    expense: float = 0.0


def local_timezone() -> tzinfo:
    return ZoneInfo(get_settings().app.timezone)


def local_date(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of a timestamp in the local timezone."""
    return moment.astimezone(tz or local_timezone()).date()


def format_day(day: date) -> str:
    """'2024年3月5日'"""
    return f"{day.year}年{day.month}月{day.day}日"


def month_transactions(
    transactions: Iterable[Transaction],
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> list[Transaction]:
    """Transactions dated in the same calendar month as ``now``."""
    tz = tz or local_timezone()
    today = local_date(now, tz)
    result = []
    for txn in transactions:
        day = local_date(txn.date, tz)
        if day.year == today.year and day.month == today.month:
            result.append(txn)
    return result


def summarize(transactions: Iterable[Transaction]) -> MonthlySummary:
    summary = MonthlySummary()
    for txn in transactions:
        if txn.is_income:
            summary.income += txn.amount
        else:
            summary.expense += txn.amount
    return summary


def budget_progress(budgets: Iterable[Budget], spent: float) -> BudgetProgress:
    total = next(
        (b.amount for b in budgets if b.category_id == TOTAL_BUDGET_CATEGORY),
        0.0,
    )
    return BudgetProgress(total=total, spent=spent)


def recent(transactions: Iterable[Transaction], limit: int = 5) -> list[Transaction]:
    return list(transactions)[:limit]


def search(
    transactions: Iterable[Transaction],
    term: str,
    registry: CategoryRegistry,
) -> list[Transaction]:
    """Case-insensitive match against the note or the category name."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(transactions)
    return [
        txn for txn in transactions
        if needle in txn.note.lower()
        or needle in registry.name_of(txn.category_id).lower()
    ]


def group_by_day(
    transactions: Iterable[Transaction],
    tz: Optional[tzinfo] = None,
) -> list[DailySummary]:
    """Group by local calendar date, keeping the order days first appear in."""
    tz = tz or local_timezone()
    groups: "OrderedDict[date, DailySummary]" = OrderedDict()
    for txn in transactions:
        day = local_date(txn.date, tz)
        summary = groups.get(day)
        if summary is None:
            summary = groups[day] = DailySummary(date=day)
        summary.transactions.append(txn)
        if txn.is_income:
            summary.income += txn.amount
        else:
            summary.expense += txn.amount
    return list(groups.values())


def expense_by_category(
    transactions: Iterable[Transaction],
    registry: CategoryRegistry,
) -> list[CategoryTotal]:
    """Expense totals per category name, in order of first appearance."""
    fallback_name = registry.name_of(OTHER_EXPENSE_ID)
    totals: "OrderedDict[str, float]" = OrderedDict()
    for txn in transactions:
        if txn.type != TransactionType.EXPENSE:
            continue
        name = registry.name_of(txn.category_id, default=fallback_name)
        totals[name] = totals.get(name, 0.0) + txn.amount
    return [CategoryTotal(name=name, value=value) for name, value in totals.items()]


def top_expense_category(
    transactions: Iterable[Transaction],
    registry: CategoryRegistry,
) -> Optional[str]:
    totals = expense_by_category(transactions, registry)
    if not totals:
        return None
    return max(totals, key=lambda t: t.value).name


def daily_trend(
    transactions: Iterable[Transaction],
    today: date,
    days: int = 7,
    tz: Optional[tzinfo] = None,
) -> list[TrendPoint]:
    """Income and expense per day for the last ``days`` days, oldest first."""
    tz = tz or local_timezone()
    points: "OrderedDict[date, TrendPoint]" = OrderedDict()
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        points[day] = TrendPoint(day=day, label=f"{day.month:02d}/{day.day:02d}")

    for txn in transactions:
        point = points.get(local_date(txn.date, tz))
        if point is None:
            continue
        if txn.is_income:
            point.income += txn.amount
        else:
            point.expense += txn.amount
    return list(points.values())
