"""
Aggregates behind the summary card and the 7-day trend chart.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel

from ..core.config import settings, split_csv
from ..models.bill import StoredBill


class DailyTotal(BaseModel):
    label: str  # MM-dd
    total: Decimal


class BillSummary(BaseModel):
    month_expense: Decimal
    last_7_days: list[DailyTotal]
    bill_count: int


def expense_types() -> set[str]:
    return set(split_csv(settings.expense_types))


def _expenses(bills: Iterable[StoredBill], types: set[str] | None) -> list[StoredBill]:
    types = types if types is not None else expense_types()
    return [b for b in bills if b.type in types]


def current_month_expense(
    bills: Iterable[StoredBill],
    today: date | None = None,
    types: set[str] | None = None,
) -> Decimal:
    """Sum of expense bills recorded in today's calendar month"""
    today = today or date.today()
    return sum(
        (
            b.amount
            for b in _expenses(bills, types)
            if b.timestamp.year == today.year and b.timestamp.month == today.month
        ),
        Decimal("0"),
    )


def last_7_days_trend(
    bills: Iterable[StoredBill],
    today: date | None = None,
    types: set[str] | None = None,
) -> list[DailyTotal]:
    """Daily expense totals for the last seven days, oldest first, ending today"""
    today = today or date.today()
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
    totals = {day: Decimal("0") for day in days}

    for bill in _expenses(bills, types):
        day = bill.timestamp.date()
        if day in totals:
            totals[day] += bill.amount

    return [DailyTotal(label=day.strftime("%m-%d"), total=totals[day]) for day in days]


def summarize(bills: list[StoredBill], today: date | None = None) -> BillSummary:
    today = today or datetime.now().date()
    return BillSummary(
        month_expense=current_month_expense(bills, today),
        last_7_days=last_7_days_trend(bills, today),
        bill_count=len(bills),
    )
