"""
Data Quality Page

Make numbers defensible: store status, schema checks, field coverage,
trip financial sanity checks and sharing-vs-records reconciliation.
"""
import streamlit as st
import pandas as pd
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.ui.state import init_state, current_snapshot
from junket_os.ui.layout import render_header, render_connection_status, section_header
from junket_os.ui.formatting import format_metric_df
from junket_os.data.loader import get_data_status
from junket_os.data.schema import (
    snapshot_frames, validate_snapshot, display_validation_result, get_column_info, check_record_links,
)
from junket_os.metrics.aggregator import build_trip_ledger
from junket_os.metrics.sharing import validate_trip_financials


st.set_page_config(page_title="Data Quality", page_icon="✅", layout="wide")

init_state()


def calculate_coverage_stats(df: pd.DataFrame) -> pd.DataFrame:
    """Non-null coverage per column, worst first."""
    total = len(df)
    rows = []
    for col in df.columns:
        non_null = int(df[col].notna().sum())
        rows.append({
            "Column": col,
            "Non-Null": non_null,
            "Null": total - non_null,
            "Coverage %": non_null / total * 100 if total > 0 else 0,
        })
    return pd.DataFrame(rows).sort_values("Coverage %", kind="stable")


def check_trip_financials(ledger: pd.DataFrame) -> pd.DataFrame:
    """validate_trip_financials per trip; only trips with findings are returned."""
    findings = []
    for trip in ledger.itertuples(index=False):
        result = validate_trip_financials(trip.buy_in, trip.buy_out, trip.win_loss, trip.rolling)
        for message in result["errors"]:
            findings.append({"trip": trip.name or trip.trip_id, "level": "error", "message": message})
        for message in result["warnings"]:
            findings.append({"trip": trip.name or trip.trip_id, "level": "warning", "message": message})
    return pd.DataFrame(findings, columns=["trip", "level", "message"])


def main():
    render_header("Data Quality", "Checks on the loaded snapshot")

    snapshot = current_snapshot()
    if not render_connection_status() or snapshot is None:
        return

    # =========================================================================
    # SECTION A: STORE STATUS
    # =========================================================================
    section_header("Store Status")

    status = get_data_status()
    if status["connected"]:
        st.success(f"✓ {status['backend']}: {status['message']}")
    else:
        st.error(f"✗ {status['backend']}: {status['message']}")

    counts = snapshot.counts()
    cols = st.columns(len(counts))
    for col, (name, count) in zip(cols, counts.items()):
        with col:
            st.metric(name.replace("_", " ").title(), f"{count:,}")

    st.markdown("---")

    # =========================================================================
    # SECTION B: SCHEMA VALIDATION
    # =========================================================================
    section_header("Schema Validation")

    tables = snapshot_frames(snapshot)
    for name, result in validate_snapshot(snapshot).items():
        display_validation_result(result, name)

    selected = st.selectbox("Inspect collection", options=list(tables.keys()))
    with st.expander("Field Coverage Details"):
        st.dataframe(
            calculate_coverage_stats(tables[selected]),
            use_container_width=True,
            hide_index=True,
            column_config={
                "Non-Null": st.column_config.NumberColumn(format="%d"),
                "Null": st.column_config.NumberColumn(format="%d"),
                "Coverage %": st.column_config.NumberColumn(format="%.1f%%"),
            },
        )
    with st.expander("Column Info"):
        st.dataframe(get_column_info(tables[selected]), use_container_width=True, hide_index=True)

    st.markdown("---")

    # =========================================================================
    # SECTION C: RECORD LINKAGE
    # =========================================================================
    section_header("Record Linkage", "Records that reference missing customers or trips")

    linkage = check_record_links(snapshot)
    if sum(linkage.values()) == 0:
        st.success("✓ Every record links to a known customer and trip")
    else:
        st.dataframe(
            pd.DataFrame([{"check": k.replace("_", " "), "records": v} for k, v in linkage.items() if v]),
            use_container_width=True,
            hide_index=True,
        )

    st.markdown("---")

    # =========================================================================
    # SECTION D: TRIP FINANCIALS
    # =========================================================================
    section_header("Trip Financials", "Sanity checks per trip")

    ledger = build_trip_ledger(snapshot)
    findings = check_trip_financials(ledger)

    if len(findings) == 0:
        st.success("✓ No trip financial issues detected")
    else:
        n_errors = int((findings["level"] == "error").sum())
        if n_errors:
            st.error(f"{n_errors} error(s) found")
        st.dataframe(findings, use_container_width=True, hide_index=True)

    with st.expander("Trip ledger by source"):
        st.caption(
            "Trips with a stored sharing breakdown take win/loss, expenses and "
            "company share from it; other trips are recomputed from records."
        )
        st.dataframe(format_metric_df(ledger), use_container_width=True, hide_index=True)


if __name__ == "__main__":
    main()
