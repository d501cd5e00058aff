import math
from dataclasses import dataclass, field
from datetime import UTC, datetime

from spendwise.categories import (
    Category,
    DateWindow,
    PaymentMode,
    parse_category,
    parse_payment_mode,
)

NOTES_MAX_LENGTH = 100
EARLIEST_DATE = datetime(1900, 1, 1, tzinfo=UTC)


class DraftValidationError(ValueError):
    pass


def parse_datetime(value: str | datetime) -> datetime:
    """Parse an ISO-8601 date or date-time; naive values are taken as UTC."""
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_datetime(value: datetime) -> str:
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True, frozen=True)
class Expense:
    id: str
    amount: float
    category: Category
    payment_mode: PaymentMode
    date: datetime
    notes: str = ""
    user: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "Expense":
        return cls(
            id=str(data["_id"]),
            amount=float(data["amount"]),
            category=parse_category(data["category"]),
            payment_mode=parse_payment_mode(data["paymentMode"]),
            date=parse_datetime(data["date"]),
            notes=data.get("notes") or "",
            user=str(data["user"]) if data.get("user") is not None else None,
        )


@dataclass(slots=True, frozen=True)
class ExpenseDraft:
    amount: float
    category: Category = Category.OTHERS
    payment_mode: PaymentMode = PaymentMode.CASH
    date: datetime = field(default_factory=lambda: datetime.now(UTC))
    notes: str = ""

    def __post_init__(self):
        amount = self.amount
        if isinstance(amount, bool) or not isinstance(amount, int | float):
            raise DraftValidationError("Amount must be a positive number")
        if not math.isfinite(amount) or amount <= 0:
            raise DraftValidationError("Amount must be a positive number")
        if len(self.notes) > NOTES_MAX_LENGTH:
            raise DraftValidationError(f"Notes must be {NOTES_MAX_LENGTH} characters or less")
        if not isinstance(self.category, Category):
            object.__setattr__(self, "category", parse_category(self.category))
        if not isinstance(self.payment_mode, PaymentMode):
            object.__setattr__(self, "payment_mode", parse_payment_mode(self.payment_mode))
        date = parse_datetime(self.date)
        if date > datetime.now(UTC):
            raise DraftValidationError("Date cannot be in the future")
        if date < EARLIEST_DATE:
            raise DraftValidationError("Date cannot be before 1900-01-01")
        object.__setattr__(self, "date", date)

    def to_api(self) -> dict:
        return {
            "amount": self.amount,
            "category": self.category.value,
            "notes": self.notes,
            "date": format_datetime(self.date),
            "paymentMode": self.payment_mode.value,
        }


@dataclass(slots=True, frozen=True)
class FilterState:
    date_window: DateWindow = DateWindow.THIS_MONTH
    categories: frozenset[Category] = frozenset()
    payment_modes: frozenset[PaymentMode] = frozenset()

    @property
    def active_count(self) -> int:
        return len(self.categories) + len(self.payment_modes)


@dataclass(slots=True)
class MonthlyBucket:
    month: str
    label: str
    totals: dict[Category, float] = field(default_factory=lambda: {c: 0.0 for c in Category})

    @property
    def total(self) -> float:
        return sum(self.totals.values())


@dataclass(slots=True)
class Session:
    chat_id: int
    token: str
    user_id: str | None = None
    name: str | None = None
    email: str | None = None
    created_at: datetime | None = None
