"""
Standard chart wrappers using Plotly.
"""
import plotly.express as px
import plotly.graph_objects as go
import pandas as pd
from typing import Optional

from junket_os.config import CURRENCY_SYMBOL


# =============================================================================
# CHART THEME
# =============================================================================

CHART_COLORS = {
    "primary": "#1f77b4",
    "secondary": "#ff7f0e",
    "success": "#28a745",
    "warning": "#ffc107",
    "danger": "#dc3545",
    "neutral": "#6c757d",
    "light": "#f8f9fa",
}

CHART_TEMPLATE = "plotly_white"

DEFAULT_LAYOUT = {
    "template": CHART_TEMPLATE,
    "font": {"family": "Arial, sans-serif", "size": 12},
    "margin": {"l": 50, "r": 30, "t": 40, "b": 50},
    "hoverlabel": {"bgcolor": "white"},
}


def apply_layout(fig: go.Figure, **kwargs) -> go.Figure:
    """Apply standard layout to figure."""
    layout = {**DEFAULT_LAYOUT, **kwargs}
    fig.update_layout(**layout)
    return fig


def _empty_figure(title: str, message: str = "No activity in this period") -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text=message, x=0.5, y=0.5, xref="paper", yref="paper",
        showarrow=False, font={"color": CHART_COLORS["neutral"]},
    )
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    return apply_layout(fig, title=title, height=300)


# =============================================================================
# DAILY ACTIVITY
# =============================================================================

def daily_rolling_chart(daily: pd.DataFrame,
                        title: str = "Daily Rolling & Win/Loss") -> go.Figure:
    """
    Rolling bars with customer win/loss line on a shared date axis.

    Dates are categorical strings; days without activity are not drawn.
    """
    if daily.empty:
        return _empty_figure(title)

    fig = go.Figure()
    fig.add_trace(go.Bar(
        name="Rolling",
        x=daily["date"],
        y=daily["rolling"],
        marker_color=CHART_COLORS["primary"],
    ))
    fig.add_trace(go.Scatter(
        name="Win/Loss",
        x=daily["date"],
        y=daily["win_loss"],
        mode="lines+markers",
        line={"color": CHART_COLORS["secondary"]},
    ))

    fig.update_layout(
        xaxis={"type": "category", "title": ""},
        yaxis_title=f"Amount ({CURRENCY_SYMBOL})",
    )
    return apply_layout(fig, title=title)


def daily_cash_flow_chart(daily: pd.DataFrame,
                          title: str = "Daily Buy-in / Buy-out") -> go.Figure:
    """Grouped buy-in and buy-out bars per day."""
    if daily.empty:
        return _empty_figure(title)

    fig = go.Figure()
    fig.add_trace(go.Bar(
        name="Buy-in", x=daily["date"], y=daily["buy_in"],
        marker_color=CHART_COLORS["success"],
    ))
    fig.add_trace(go.Bar(
        name="Buy-out", x=daily["date"], y=daily["buy_out"],
        marker_color=CHART_COLORS["danger"],
    ))
    fig.update_layout(
        barmode="group",
        xaxis={"type": "category", "title": ""},
        yaxis_title=f"Amount ({CURRENCY_SYMBOL})",
    )
    return apply_layout(fig, title=title)


# =============================================================================
# BAR CHARTS
# =============================================================================

def horizontal_bar(df: pd.DataFrame, x: str, y: str,
                   title: str = "", color: Optional[str] = None,
                   text: Optional[str] = None) -> go.Figure:
    """
    Create horizontal bar chart.
    """
    if df.empty:
        return _empty_figure(title)

    fig = px.bar(
        df, x=x, y=y, orientation="h",
        title=title,
        color=color,
        text=text,
    )

    fig.update_traces(textposition="outside")
    fig.update_layout(yaxis={"categoryorder": "total ascending"})

    return apply_layout(fig)


def top_customers_chart(top: pd.DataFrame, title: str = "Top Customers by Rolling") -> go.Figure:
    """Top customers, largest rolling at the top."""
    chart_df = top.assign(label=top["name"].fillna(top["customer_id"]))
    return horizontal_bar(chart_df, x="rolling", y="label", title=title)


def agent_performance_chart(perf: pd.DataFrame,
                            title: str = "Agent Rolling vs Commission") -> go.Figure:
    """Grouped rolling and commission bars per agent."""
    if perf.empty:
        return _empty_figure(title)

    labels = perf["name"].fillna(perf["agent_id"])
    fig = go.Figure()
    fig.add_trace(go.Bar(
        name="Rolling", x=labels, y=perf["rolling"],
        marker_color=CHART_COLORS["primary"],
    ))
    fig.add_trace(go.Bar(
        name="Commission", x=labels, y=perf["commission"],
        marker_color=CHART_COLORS["warning"],
    ))
    fig.update_layout(barmode="group", xaxis_title="")
    return apply_layout(fig, title=title)


def trip_status_pie(breakdown: pd.DataFrame, title: str = "Trips by Status") -> go.Figure:
    if breakdown.empty:
        return _empty_figure(title, "No trips")
    fig = px.pie(breakdown, names="status", values="trips", title=title, hole=0.4)
    return apply_layout(fig, height=300)


def house_waterfall(summary, title: str = "House Result") -> go.Figure:
    """Gross win -> commission -> expenses -> final profit."""
    fig = go.Figure(go.Waterfall(
        name="",
        orientation="v",
        measure=["relative", "relative", "relative", "total"],
        x=["House Gross Win", "Commission", "Expenses", "House Final Profit"],
        y=[
            summary.house_gross_win,
            -summary.total_rolling_commission,
            -summary.total_expenses,
            0,
        ],
        connector={"line": {"color": CHART_COLORS["neutral"]}},
        increasing={"marker": {"color": CHART_COLORS["success"]}},
        decreasing={"marker": {"color": CHART_COLORS["danger"]}},
        totals={"marker": {"color": CHART_COLORS["primary"]}},
    ))
    return apply_layout(fig, title=title, showlegend=False)
