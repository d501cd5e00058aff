from dataclasses import replace
from datetime import UTC, datetime, timedelta

from spendwise.categories import Category, DateWindow, PaymentMode
from spendwise.db.models import Expense, FilterState

DEFAULT_FILTERS = FilterState()

_WINDOW_DAYS = {
    DateWindow.LAST_30_DAYS: 30,
    DateWindow.LAST_90_DAYS: 90,
}


def start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def window_bounds(window: DateWindow, now: datetime) -> tuple[datetime, datetime] | None:
    """Inclusive (start, end) for a date window, or None when it is unbounded."""
    if window == DateWindow.THIS_MONTH:
        return start_of_month(now), now
    if window in _WINDOW_DAYS:
        return now - timedelta(days=_WINDOW_DAYS[window]), now
    return None


def passes_filter(expense: Expense, filters: FilterState, now: datetime | None = None) -> bool:
    now = now or datetime.now(UTC)
    bounds = window_bounds(filters.date_window, now)
    if bounds is not None:
        start, end = bounds
        if not start <= expense.date <= end:
            return False
    if filters.categories and expense.category not in filters.categories:
        return False
    if filters.payment_modes and expense.payment_mode not in filters.payment_modes:
        return False
    return True


def filter_expenses(expenses: list[Expense], filters: FilterState, now: datetime | None = None) -> list[Expense]:
    now = now or datetime.now(UTC)
    return [e for e in expenses if passes_filter(e, filters, now)]


def sort_for_display(expenses: list[Expense]) -> list[Expense]:
    return sorted(expenses, key=lambda e: e.date, reverse=True)


def toggle_category(filters: FilterState, category: Category) -> FilterState:
    return replace(filters, categories=filters.categories ^ {category})


def toggle_payment_mode(filters: FilterState, mode: PaymentMode) -> FilterState:
    return replace(filters, payment_modes=filters.payment_modes ^ {mode})


def set_date_window(filters: FilterState, window: DateWindow) -> FilterState:
    return replace(filters, date_window=window)


def describe_filters(filters: FilterState) -> str:
    categories = ", ".join(c for c in Category if c in filters.categories) or "all"
    modes = ", ".join(m for m in PaymentMode if m in filters.payment_modes) or "all"
    return f"Period: {filters.date_window}\nCategories: {categories}\nPayment modes: {modes}"
