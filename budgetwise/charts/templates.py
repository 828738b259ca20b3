from __future__ import annotations

import tempfile
from datetime import date
from decimal import Decimal
from typing import Any

import numpy as np
import plotly.graph_objects as go
import plotly.io as pio

from budgetwise.categories import Category
from budgetwise.currency import currency_symbol, format_amount

THEME: dict[str, Any] = {
    "colors": {
        "palette": [
            "#2E86AB",
            "#3BB273",
            "#E15554",
            "#7768AE",
            "#E1BC29",
            "#4D9DE0",
            "#F18F01",
            "#5C946E",
            "#8D8D8D",
            "#C73E1D",
            "#A23B72",
            "#C9B37E",
            "#6FB7D1",
            "#9AC2FF",
            "#B5838D",
        ],
        "primary": "#2E86AB",
        "secondary": "#3BB273",
        "trend_line": "#E15554",
        "budget_line": "#7768AE",
        "grid": "#E6E6E6",
        "background": "#FBFBFB",
        "text": "#22313F",
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
    "margin": {"l": 60, "r": 60, "t": 60, "b": 50},
}

PIE_CATEGORY_THRESHOLD = 6
TREND_MIN_POINTS = 5

_template = pio.templates["plotly_white"]
_template.layout.font = dict(
    family=THEME["font"]["family"],
    size=THEME["font"]["size"],
    color=THEME["colors"]["text"],
)
_template.layout.title = dict(
    font=dict(size=THEME["font"]["title_size"], color=THEME["colors"]["text"]),
    x=0.5,
    xanchor="center",
)
_template.layout.plot_bgcolor = THEME["colors"]["background"]
_template.layout.xaxis = dict(gridcolor=THEME["colors"]["grid"])
_template.layout.yaxis = dict(gridcolor=THEME["colors"]["grid"])
pio.templates["budgetwise"] = _template
pio.templates.default = "budgetwise"


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


def category_figure(totals: dict[Category, Decimal], cur: str) -> go.Figure | None:
    if not totals:
        return None

    ordered = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    labels = [c.display_name for c, _ in ordered]
    values = [float(v) for _, v in ordered]
    palette = THEME["colors"]["palette"]

    if len(labels) <= PIE_CATEGORY_THRESHOLD:
        fig = go.Figure(
            go.Pie(
                labels=labels,
                values=values,
                marker=dict(colors=palette[: len(labels)]),
                texttemplate="%{label}<br>%{percent:.0%}",
                hovertemplate="%{label}: %{value:.2f} " + cur + "<extra></extra>",
                hole=0.35,
                sort=False,
            )
        )
        fig.update_layout(**_base_layout(), title="Spending by Category", showlegend=False)
        fig.add_annotation(
            text=format_amount(sum(v for _, v in ordered), cur),
            x=0.5,
            y=0.5,
            showarrow=False,
            font=dict(size=18, color=THEME["colors"]["text"]),
        )
        return fig

    fig = go.Figure(
        go.Bar(
            x=values,
            y=labels,
            orientation="h",
            marker_color=palette[: len(labels)],
            text=[format_amount(v, cur) for _, v in ordered],
            textposition="outside",
            hovertemplate="%{y}: %{x:.2f} " + cur + "<extra></extra>",
        )
    )
    fig.update_layout(**_base_layout(), title="Spending by Category", xaxis_title=cur)
    fig.update_yaxes(autorange="reversed")
    return fig


def daily_figure(series: dict[date, Decimal], cur: str, budget: Decimal | None = None) -> go.Figure | None:
    if not series:
        return None

    sym = currency_symbol(cur)
    days = [d.isoformat() for d in series]
    totals = [float(v) for v in series.values()]

    fig = go.Figure()
    fig.add_trace(
        go.Bar(
            x=days,
            y=totals,
            marker_color=THEME["colors"]["secondary"],
            hovertemplate="%{x}: %{y:.2f} " + cur + "<extra></extra>",
            name="Daily total",
        )
    )
    fig.add_trace(
        go.Scatter(
            x=days,
            y=np.cumsum(totals).tolist(),
            mode="lines+markers",
            line=dict(color=THEME["colors"]["primary"], width=2),
            marker=dict(size=4),
            name="Cumulative",
            yaxis="y2",
            hovertemplate="%{x}: %{y:.2f} " + cur + "<extra></extra>",
        )
    )

    if len(totals) >= TREND_MIN_POINTS:
        x_idx = list(range(len(totals)))
        trend = np.polyval(np.polyfit(x_idx, totals, 1), x_idx)
        fig.add_trace(
            go.Scatter(
                x=days,
                y=trend.tolist(),
                mode="lines",
                line=dict(color=THEME["colors"]["trend_line"], width=2, dash="dash"),
                name="Trend",
                hoverinfo="skip",
            )
        )

    # Budget is compared against the cumulative line, so it sits on the secondary axis.
    if budget is not None and budget > 0:
        fig.add_hline(
            y=float(budget),
            line_dash="dot",
            line_color=THEME["colors"]["budget_line"],
            annotation_text=f"Budget: {format_amount(budget, cur)}",
            annotation_position="top left",
            yref="y2",
        )

    tick_prefix = sym if len(sym) <= 1 else ""
    fig.update_layout(
        **_base_layout(),
        title="Daily Spending",
        yaxis_title=cur,
        yaxis_tickprefix=tick_prefix,
        yaxis2=dict(title="Cumulative", overlaying="y", side="right", showgrid=False, tickprefix=tick_prefix),
        showlegend=True,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig


async def spending_by_category_chart(totals: dict[Category, Decimal], cur: str = "ZAR") -> str | None:
    fig = category_figure(totals, cur)
    return _save(fig) if fig else None


async def daily_spending_chart(
    series: dict[date, Decimal],
    cur: str = "ZAR",
    budget: Decimal | None = None,
) -> str | None:
    fig = daily_figure(series, cur, budget)
    return _save(fig) if fig else None
