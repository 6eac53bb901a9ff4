"""
Layout components: header, connection banner, filters, KPI strip.
"""
import streamlit as st
from typing import Optional
import pandas as pd

from junket_os.config import config, ROLES
from junket_os.metrics.aggregator import MetricsSummary
from junket_os.ui.state import (
    DATE_RANGE_OPTIONS, get_state, set_state, get_poller, refresh_now,
)
from junket_os.ui.formatting import kpi_value, fmt_currency


# =============================================================================
# HEADER AND CONNECTION STATUS
# =============================================================================

def render_header(title: str, caption: Optional[str] = None):
    """Render page header with last-refresh time."""
    col1, col2 = st.columns([3, 1])

    with col1:
        st.title(title)
        if caption:
            st.caption(caption)

    with col2:
        poller = get_poller()
        if poller.last_success_at is not None:
            st.caption(f"Updated {poller.last_success_at.strftime('%H:%M:%S')} UTC")
        days = get_state("date_range_days")
        st.caption(f"Period: {DATE_RANGE_OPTIONS.get(days, f'Last {days} days')}")


def render_connection_status() -> bool:
    """
    Show a banner when the last poll failed, with a retry button.

    Returns True when there is a snapshot to render (possibly stale).
    """
    poller = get_poller()

    if poller.status == "error":
        col1, col2 = st.columns([5, 1])
        with col1:
            if poller.snapshot is not None:
                st.warning(f"{poller.message}. Showing last loaded data.")
            else:
                st.error(poller.message)
        with col2:
            if st.button("Retry", key="connection_retry"):
                refresh_now()
                st.rerun()

    return poller.snapshot is not None


def render_filter_chips():
    """Render active filter chips."""
    filters = []

    role = get_state("role")
    if role != "admin":
        filters.append(f"Role: {role}")

    agent = get_state("selected_agent")
    if role == "admin" and agent:
        filters.append(f"Agent: {agent}")

    days = get_state("date_range_days")
    if days:
        filters.append(DATE_RANGE_OPTIONS.get(days, f"Last {days} days"))

    if filters:
        chips = " | ".join([f"`{f}`" for f in filters])
        st.caption(f"Filters: {chips}")


# =============================================================================
# SIDEBAR FILTERS
# =============================================================================

def render_sidebar_filters(agents: pd.DataFrame, show_date_range: bool = True,
                           show_agent_select: bool = True):
    """Render sidebar with viewer and period filters."""
    st.sidebar.header("Viewer")

    current_role = get_state("role")
    role = st.sidebar.selectbox(
        "Role",
        options=list(ROLES),
        index=list(ROLES).index(current_role) if current_role in ROLES else 0,
        key="filter_role",
    )
    set_state("role", role)

    agent_options = agents[["agent_id", "name"]].dropna(subset=["agent_id"])
    agent_labels = {
        row.agent_id: (row.name or row.agent_id) for row in agent_options.itertuples(index=False)
    }

    if role == "agent":
        ids = list(agent_labels.keys())
        current = get_state("agent_id")
        agent_id = st.sidebar.selectbox(
            "Signed in as agent",
            options=ids,
            format_func=lambda x: agent_labels.get(x, x),
            index=ids.index(current) if current in ids else 0,
            key="filter_agent_identity",
        ) if ids else None
        set_state("agent_id", agent_id)
    elif role == "staff":
        staff_id = st.sidebar.text_input(
            "Staff ID", value=get_state("staff_id") or "", key="filter_staff_id"
        )
        set_state("staff_id", staff_id.strip() or None)

    st.sidebar.divider()
    st.sidebar.header("Filters")

    if show_agent_select and role in ("admin", "staff"):
        options = [None] + list(agent_labels.keys())
        current = get_state("selected_agent")
        selected = st.sidebar.selectbox(
            "Agent",
            options=options,
            format_func=lambda x: "All agents" if x is None else agent_labels.get(x, x),
            index=options.index(current) if current in options else 0,
            key="filter_agent",
        )
        set_state("selected_agent", selected)

    if show_date_range:
        options = list(DATE_RANGE_OPTIONS.keys())
        current = get_state("date_range_days")
        days = st.sidebar.selectbox(
            "Date Range",
            options=options,
            format_func=lambda x: DATE_RANGE_OPTIONS[x],
            index=options.index(current) if current in options else 0,
            key="filter_date_range",
        )
        set_state("date_range_days", days)

    st.sidebar.divider()

    realtime = st.sidebar.toggle(
        f"Real-time updates (every {config.refresh_interval_seconds}s)",
        value=get_state("realtime_enabled"),
        key="filter_realtime",
    )
    set_state("realtime_enabled", realtime)
    get_poller().toggle(realtime)

    if st.sidebar.button("Refresh now", key="filter_refresh"):
        refresh_now()
        st.rerun()


# =============================================================================
# KPI CARDS
# =============================================================================

KPI_LABELS = {
    "customer_total_rolling": ("Total Rolling", "currency"),
    "customer_total_win_loss": ("Customer Win/Loss", "signed"),
    "customer_total_buy_in": ("Total Buy-in", "currency"),
    "customer_total_buy_out": ("Total Buy-out", "currency"),
    "net_cash_flow": ("Net Cash Flow", "signed"),
    "total_rolling_commission": ("Rolling Commission", "currency"),
    "total_expenses": ("Trip Expenses", "currency"),
    "company_share": ("Company Share", "currency"),
    "house_gross_win": ("House Gross Win", "signed"),
    "house_net_win": ("House Net Win", "signed"),
    "house_final_profit": ("House Final Profit", "signed"),
    "profit_margin": ("Profit Margin", "percent"),
    "commission_ratio": ("Commission Ratio", "percent"),
    "expense_ratio": ("Expense Ratio", "percent"),
    "total_customers": ("Customers", "count"),
    "active_customers": ("Active Customers", "count"),
    "total_agents": ("Agents", "count"),
    "active_agents": ("Active Agents", "count"),
    "total_trips": ("Trips", "count"),
    "ongoing_trips": ("Ongoing Trips", "count"),
    "recent_rolling_records": ("Rolling (24h)", "count"),
    "recent_cash_records": ("Transactions (24h)", "count"),
}


def render_kpi_card(label: str, value: str, delta: Optional[str] = None,
                    delta_color: str = "normal", help: Optional[str] = None):
    """Render a single KPI card."""
    st.metric(
        label=label,
        value=value,
        delta=delta,
        delta_color=delta_color,
        help=help,
    )


def render_kpi_strip(summary: MetricsSummary, keys: list):
    """
    Render horizontal strip of KPI cards for the given summary fields.
    """
    values = summary.to_dict()
    cols = st.columns(len(keys))

    for i, key in enumerate(keys):
        with cols[i]:
            label, format_type = KPI_LABELS.get(key, (key.replace("_", " ").title(), "currency"))
            render_kpi_card(label, kpi_value(values.get(key), format_type))


def render_house_breakdown(summary: MetricsSummary):
    """Gross -> net -> final as a compact text block."""
    lines = [
        "| | |",
        "|---|---:|",
        f"| House Gross Win | {fmt_currency(summary.house_gross_win)} |",
        f"| less Rolling Commission | {fmt_currency(summary.total_rolling_commission)} |",
        f"| = House Net Win | {fmt_currency(summary.house_net_win)} |",
        f"| less Trip Expenses | {fmt_currency(summary.total_expenses)} |",
        f"| = **House Final Profit** | **{fmt_currency(summary.house_final_profit)}** |",
    ]
    st.markdown("\n".join(lines))


# =============================================================================
# SECTION HEADERS
# =============================================================================

def section_header(title: str, description: Optional[str] = None):
    """Render section header with optional description."""
    st.subheader(title)
    if description:
        st.caption(description)
