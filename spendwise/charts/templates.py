from __future__ import annotations

import tempfile
from typing import Any

import plotly.graph_objects as go
import plotly.io as pio

from spendwise.categories import Category
from spendwise.config import settings
from spendwise.db.models import MonthlyBucket

THEME: dict[str, Any] = {
    "colors": {
        "categories": {
            Category.RENTAL: "#4C72B0",
            Category.GROCERIES: "#55A868",
            Category.ENTERTAINMENT: "#8172B3",
            Category.TRAVEL: "#E5AE38",
            Category.OTHERS: "#8B8B8B",
        },
        "grid": "#E5E5E5",
        "background": "#FAFAFA",
        "text": "#2D3436",
    },
    "font": {
        "family": "Inter, sans-serif",
        "size": 13,
        "title_size": 16,
    },
    "size": {
        "width": 800,
        "height": 500,
        "scale": 2,
    },
    "margin": {"l": 60, "r": 30, "t": 60, "b": 50},
}

_custom_template = pio.templates["plotly_white"]
_custom_template.layout.font = dict(
    family=THEME["font"]["family"],
    size=THEME["font"]["size"],
    color=THEME["colors"]["text"],
)
_custom_template.layout.title = dict(
    font=dict(size=THEME["font"]["title_size"], color=THEME["colors"]["text"]),
    x=0.5,
    xanchor="center",
)
_custom_template.layout.plot_bgcolor = THEME["colors"]["background"]
_custom_template.layout.xaxis = dict(gridcolor=THEME["colors"]["grid"])
_custom_template.layout.yaxis = dict(gridcolor=THEME["colors"]["grid"])
pio.templates["spendwise"] = _custom_template
pio.templates.default = "spendwise"


def _base_layout() -> dict[str, Any]:
    return {
        "margin": THEME["margin"],
        "width": THEME["size"]["width"],
        "height": THEME["size"]["height"],
    }


def _save(fig: go.Figure) -> str:
    tmp = tempfile.NamedTemporaryFile(suffix=".png", delete=False)  # noqa: SIM115
    tmp.close()
    fig.write_image(tmp.name, scale=THEME["size"]["scale"])
    return tmp.name


def monthly_category_figure(buckets: list[MonthlyBucket], symbol: str | None = None) -> go.Figure:
    sym = symbol if symbol is not None else settings.currency_symbol
    labels = [b.label for b in buckets]

    fig = go.Figure()
    for category in Category:
        fig.add_trace(
            go.Bar(
                x=labels,
                y=[b.totals[category] for b in buckets],
                name=category.value,
                marker_color=THEME["colors"]["categories"][category],
                hovertemplate="%{x}<br>" + category.value + ": " + sym + "%{y:,.2f}<extra></extra>",
            )
        )

    fig.update_layout(
        **_base_layout(),
        barmode="stack",
        title="Monthly Expense Analytics",
        yaxis_tickprefix=sym if len(sym) <= 1 else "",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig


async def monthly_category_chart(buckets: list[MonthlyBucket], symbol: str | None = None) -> str | None:
    if not buckets:
        return None
    return _save(monthly_category_figure(buckets, symbol))
