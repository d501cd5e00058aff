import logging
from datetime import UTC, datetime

from spendwise.categories import Category
from spendwise.db.models import Expense, MonthlyBucket

logger = logging.getLogger(__name__)


def month_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


def _month_range(start: tuple[int, int], end: tuple[int, int]) -> list[tuple[int, int]]:
    months = []
    year, month = start
    while (year, month) <= end:
        months.append((year, month))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def monthly_buckets(expenses: list[Expense], now: datetime | None = None) -> list[MonthlyBucket]:
    """Per-category sums for every month from the earliest expense through the current month.

    Months with no expenses still get a zeroed bucket. Expenses dated in a
    month after the current one fall outside the range and are not counted.
    """
    now = now or datetime.now(UTC)
    current = (now.year, now.month)
    if expenses:
        earliest = min(e.date for e in expenses)
        start = min((earliest.year, earliest.month), current)
    else:
        start = current

    buckets: dict[str, MonthlyBucket] = {}
    for year, month in _month_range(start, current):
        first_day = datetime(year, month, 1)
        buckets[month_key(first_day)] = MonthlyBucket(month=month_key(first_day), label=first_day.strftime("%b %Y"))

    dropped = 0
    for expense in expenses:
        bucket = buckets.get(month_key(expense.date))
        if bucket is None:
            dropped += 1
            continue
        bucket.totals[expense.category] += expense.amount
    if dropped:
        logger.debug("Left %d future-dated expenses out of the monthly chart", dropped)

    return list(buckets.values())


def this_month_total(buckets: list[MonthlyBucket], now: datetime | None = None) -> float:
    now = now or datetime.now(UTC)
    key = month_key(now)
    bucket = next((b for b in buckets if b.month == key), None)
    return bucket.total if bucket else 0.0


def spending_by_category(expenses: list[Expense]) -> list[dict]:
    totals: dict[Category, dict] = {}
    for expense in expenses:
        row = totals.setdefault(expense.category, {"category": expense.category, "total": 0.0, "count": 0})
        row["total"] += expense.amount
        row["count"] += 1
    return sorted(totals.values(), key=lambda r: r["total"], reverse=True)
