"""
Reports Page

Period reporting with date-range and agent filters: summary, daily activity,
top customers, agent performance, trip ledger, and downloadable exports.
"""
import streamlit as st
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.config import config
from junket_os.ui.state import init_state, get_state, get_view_filter, current_snapshot
from junket_os.ui.layout import (
    render_header, render_connection_status, render_sidebar_filters,
    render_filter_chips, render_kpi_strip, section_header,
)
from junket_os.ui.formatting import format_metric_df
from junket_os.ui.charts import (
    daily_rolling_chart, daily_cash_flow_chart, top_customers_chart,
    agent_performance_chart,
)
from junket_os.metrics.filters import apply_view_filter
from junket_os.metrics.aggregator import (
    compute_summary, get_top_customers, get_agent_performance, build_trip_ledger,
)
from junket_os.metrics.daily import get_daily_chart_data
from junket_os.exports import (
    build_report_payload, export_report_json, export_report_excel, export_dataframe_csv,
)


st.set_page_config(page_title="Reports", page_icon="📊", layout="wide")

init_state()


def render_reports():
    snapshot = current_snapshot()
    if not render_connection_status() or snapshot is None:
        return

    view = get_view_filter()
    filtered = apply_view_filter(snapshot, view)
    summary = compute_summary(filtered)

    daily = get_daily_chart_data(filtered)
    top = get_top_customers(filtered, n=config.top_customers_reports)
    agents = get_agent_performance(filtered) if view.role == "admin" else None
    ledger = build_trip_ledger(filtered)

    render_filter_chips()
    st.caption(
        f"{summary.total_rolling_records:,} rolling records • "
        f"{summary.total_cash_records:,} buy-in/out transactions"
    )

    # =========================================================================
    # SECTION A: SUMMARY
    # =========================================================================
    section_header("Summary")

    render_kpi_strip(summary, [
        "customer_total_rolling", "customer_total_win_loss",
        "total_rolling_commission", "total_expenses", "house_final_profit",
    ])
    render_kpi_strip(summary, [
        "net_cash_flow", "company_share", "profit_margin",
        "commission_ratio", "expense_ratio",
    ])

    st.markdown("---")

    # =========================================================================
    # SECTION B: DAILY ACTIVITY
    # =========================================================================
    section_header("Daily Activity", "Days without activity are not shown")

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(daily_rolling_chart(daily), use_container_width=True)
    with col2:
        st.plotly_chart(daily_cash_flow_chart(daily), use_container_width=True)

    with st.expander("Daily table"):
        st.dataframe(format_metric_df(daily), use_container_width=True, hide_index=True)

    st.markdown("---")

    # =========================================================================
    # SECTION C: CUSTOMERS AND AGENTS
    # =========================================================================
    section_header(f"Top {config.top_customers_reports} Customers", "Ranked by rolling in the period")

    if len(top) == 0:
        st.info("No customer rolling in this period.")
    else:
        st.plotly_chart(top_customers_chart(top), use_container_width=True)
        st.dataframe(
            format_metric_df(top[[
                "name", "rolling", "win_loss", "buy_in", "buy_out", "net_cash_flow",
                "commission", "rolling_percentage", "record_count",
            ]]),
            use_container_width=True,
            hide_index=True,
        )

    if agents is not None:
        section_header("Agent Performance")
        if len(agents) == 0:
            st.info("No agent activity in this period.")
        else:
            st.plotly_chart(agent_performance_chart(agents), use_container_width=True)
            st.dataframe(
                format_metric_df(agents.drop(columns=["agent_id"])),
                use_container_width=True,
                hide_index=True,
            )

    section_header("Trips", "Sharing = the trip's stored profit split; recomputed = from records")
    if len(ledger) == 0:
        st.info("No trips in this period.")
    else:
        st.dataframe(
            format_metric_df(ledger.drop(columns=["trip_id"])),
            use_container_width=True,
            hide_index=True,
        )

    st.markdown("---")

    # =========================================================================
    # SECTION D: EXPORT
    # =========================================================================
    section_header("Export")

    payload = build_report_payload(
        summary, filtered, daily, top, agents,
        date_range_days=view.date_range_days,
        selected_agent=view.agent_id,
        user_role=view.role,
    )
    json_bytes, json_name = export_report_json(payload)
    xlsx_bytes, xlsx_name = export_report_excel({
        "daily": daily,
        "top_customers": top,
        "agent_performance": agents,
        "trips": ledger,
    })
    csv_bytes, csv_name = export_dataframe_csv(daily, filename="daily_activity.csv")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.download_button("Download report (JSON)", data=json_bytes, file_name=json_name,
                           mime="application/json", key="download_report_json")
    with col2:
        st.download_button("Download tables (Excel)", data=xlsx_bytes, file_name=xlsx_name,
                           mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                           key="download_report_xlsx")
    with col3:
        st.download_button("Download daily (CSV)", data=csv_bytes, file_name=csv_name,
                           mime="text/csv", key="download_daily_csv")


def main():
    render_header("Reports", "Financial reporting by period and agent")

    snapshot = current_snapshot()
    if snapshot is not None:
        render_sidebar_filters(snapshot.agents)

    run_every = config.refresh_interval_seconds if get_state("realtime_enabled") else None
    st.fragment(run_every=run_every)(render_reports)()


if __name__ == "__main__":
    main()
