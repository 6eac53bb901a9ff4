"""
Dashboard Page

Live operating picture: house result, cash flow, top customers, trip status
and last-24h activity. Refreshes on the configured interval.
"""
import streamlit as st
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.config import config
from junket_os.ui.state import init_state, get_state, get_view_filter, current_snapshot
from junket_os.ui.layout import (
    render_header, render_connection_status, render_sidebar_filters,
    render_filter_chips, render_kpi_strip, render_house_breakdown, section_header,
)
from junket_os.ui.formatting import format_metric_df
from junket_os.ui.charts import top_customers_chart, trip_status_pie, house_waterfall
from junket_os.metrics.filters import apply_view_filter
from junket_os.metrics.aggregator import (
    compute_summary, get_top_customers, trip_status_breakdown,
)


st.set_page_config(page_title="Dashboard", page_icon="📈", layout="wide")

init_state()


def render_dashboard():
    snapshot = current_snapshot()
    if not render_connection_status() or snapshot is None:
        return

    view = get_view_filter(include_date_range=False)
    scoped = apply_view_filter(snapshot, view)
    summary = compute_summary(scoped)

    render_filter_chips()

    # =========================================================================
    # SECTION A: HOUSE RESULT
    # =========================================================================
    section_header("House Performance", "All-time totals for the current viewer")

    render_kpi_strip(summary, [
        "customer_total_rolling", "customer_total_win_loss",
        "house_gross_win", "house_final_profit", "profit_margin",
    ])
    render_kpi_strip(summary, [
        "customer_total_buy_in", "customer_total_buy_out", "net_cash_flow",
        "total_rolling_commission", "total_expenses",
    ])

    col1, col2 = st.columns([2, 1])
    with col1:
        st.plotly_chart(house_waterfall(summary), use_container_width=True)
    with col2:
        render_house_breakdown(summary)

    st.markdown("---")

    # =========================================================================
    # SECTION B: ACTIVITY
    # =========================================================================
    section_header("Activity", f"Counts; recent = last {config.recent_activity_hours}h")

    render_kpi_strip(summary, [
        "active_customers", "active_agents", "total_trips", "ongoing_trips",
        "recent_rolling_records", "recent_cash_records",
    ])

    col1, col2 = st.columns([2, 1])

    with col1:
        top = get_top_customers(scoped, n=config.top_customers_dashboard)
        st.plotly_chart(top_customers_chart(top), use_container_width=True)
        if len(top) > 0:
            st.dataframe(
                format_metric_df(top[["name", "rolling", "win_loss", "buy_in", "buy_out", "commission"]]),
                use_container_width=True,
                hide_index=True,
            )

    with col2:
        st.plotly_chart(trip_status_pie(trip_status_breakdown(scoped)), use_container_width=True)


def main():
    render_header("Dashboard", "Junket operations at a glance")

    snapshot = current_snapshot()
    if snapshot is not None:
        render_sidebar_filters(snapshot.agents, show_date_range=False)

    run_every = config.refresh_interval_seconds if get_state("realtime_enabled") else None
    st.fragment(run_every=run_every)(render_dashboard)()


if __name__ == "__main__":
    main()
