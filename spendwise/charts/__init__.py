from spendwise.charts.templates import (
    monthly_category_chart,
    monthly_category_figure,
)

__all__ = [
    "monthly_category_chart",
    "monthly_category_figure",
]
