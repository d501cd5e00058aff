from spendwise.config import settings


def format_amount(amount: float, symbol: str | None = None) -> str:
    sym = symbol if symbol is not None else settings.currency_symbol
    if len(sym) <= 1:
        return f"{sym}{amount:,.2f}"
    return f"{amount:,.2f} {sym}"
