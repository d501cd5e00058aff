from enum import StrEnum
from typing import TypeVar


class Category(StrEnum):
    RENTAL = "Rental"
    GROCERIES = "Groceries"
    ENTERTAINMENT = "Entertainment"
    TRAVEL = "Travel"
    OTHERS = "Others"


class PaymentMode(StrEnum):
    UPI = "UPI"
    CREDIT_CARD = "Credit Card"
    NET_BANKING = "Net Banking"
    CASH = "Cash"


class DateWindow(StrEnum):
    THIS_MONTH = "This month"
    LAST_30_DAYS = "Last 30 days"
    LAST_90_DAYS = "Last 90 days"
    ALL_TIME = "All time"


class InvalidChoiceError(ValueError):
    def __init__(self, kind: str, value: str, choices: list[str]) -> None:
        self.kind = kind
        self.value = value
        super().__init__(f"Unknown {kind} '{value}'. Choose one of: {', '.join(choices)}.")


E = TypeVar("E", bound=StrEnum)

_KIND_NAMES = {
    Category: "category",
    PaymentMode: "payment mode",
    DateWindow: "period",
}


def _normalize(text: str) -> str:
    return "".join(ch for ch in text.lower() if ch not in " -_")


def parse_choice(enum_cls: type[E], value: str) -> E:
    """Resolve user or wire text to a variant, ignoring case, spaces, hyphens and underscores."""
    wanted = _normalize(value)
    for member in enum_cls:
        if _normalize(member.value) == wanted:
            return member
    raise InvalidChoiceError(_KIND_NAMES.get(enum_cls, enum_cls.__name__), value, [m.value for m in enum_cls])


def parse_category(value: str) -> Category:
    return parse_choice(Category, value)


def parse_payment_mode(value: str) -> PaymentMode:
    return parse_choice(PaymentMode, value)


def parse_date_window(value: str) -> DateWindow:
    return parse_choice(DateWindow, value)
