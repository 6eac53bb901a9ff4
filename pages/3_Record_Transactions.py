"""
Record Transactions Page

Enter rolling records and buy-in/buy-out transactions for a trip.
"""
import logging
import streamlit as st
import pandas as pd
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.ui.state import init_state, get_state, get_view_filter, current_snapshot, refresh_now
from junket_os.ui.layout import render_header, render_connection_status, render_sidebar_filters, section_header
from junket_os.ui.formatting import format_metric_df
from junket_os.data.records import (
    RecordValidationError, VALID_CASH_TYPES, build_rolling_record, build_cash_record,
)
from junket_os.data.store import get_store, StoreConnectionError
from junket_os.metrics.filters import ViewFilter, apply_view_filter

logger = logging.getLogger(__name__)


st.set_page_config(page_title="Record Transactions", page_icon="📝", layout="wide")

init_state()

GAME_TYPES = ["baccarat", "blackjack", "roulette", "sic-bo", "dragon-tiger", "other"]


def _options(df: pd.DataFrame, id_col: str) -> dict:
    """id -> display label, in snapshot order."""
    return {
        row[id_col]: f"{row['name'] or row[id_col]}"
        for _, row in df.dropna(subset=[id_col]).iterrows()
    }


def _save(collection: str, record: dict) -> bool:
    try:
        saved = get_store().save(collection, record)
    except StoreConnectionError as e:
        st.error(f"Could not save: {e}")
        return False
    logger.info(f"Recorded {collection} entry {saved.get('id')}")
    refresh_now()
    return True


def render_rolling_form(customers: dict, trips: dict, staff_id):
    section_header("Rolling Record", "Rolling amount wagered and the customer's win/loss (positive = customer won)")

    with st.form("rolling_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            customer_id = st.selectbox("Customer", options=list(customers.keys()),
                                       format_func=lambda x: customers.get(x, x))
            rolling_amount = st.number_input("Rolling amount", min_value=0.0, step=1000.0)
            game_type = st.selectbox("Game", options=GAME_TYPES)
        with col2:
            trip_id = st.selectbox("Trip", options=[None] + list(trips.keys()),
                                   format_func=lambda x: "No trip" if x is None else trips.get(x, x))
            win_loss = st.number_input("Win/Loss", step=1000.0)
            venue = st.text_input("Venue")
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("Save rolling record")

    if submitted:
        try:
            record = build_rolling_record(
                customer_id, rolling_amount, win_loss,
                trip_id=trip_id, staff_id=staff_id, game_type=game_type,
                venue=venue, notes=notes,
            )
        except RecordValidationError as e:
            st.error(str(e))
            return
        if _save("rolling_records", record):
            st.success("Rolling record saved")


def render_cash_form(customers: dict, trips: dict, staff_id):
    section_header("Buy-in / Buy-out", "Chips issued to or cashed out by a customer")

    with st.form("cash_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            customer_id = st.selectbox("Customer", options=list(customers.keys()),
                                       format_func=lambda x: customers.get(x, x), key="cash_customer")
            transaction_type = st.radio("Type", options=list(VALID_CASH_TYPES), horizontal=True)
        with col2:
            trip_id = st.selectbox("Trip", options=[None] + list(trips.keys()),
                                   format_func=lambda x: "No trip" if x is None else trips.get(x, x),
                                   key="cash_trip")
            amount = st.number_input("Amount", min_value=0.0, step=1000.0)
        venue = st.text_input("Venue", key="cash_venue")
        notes = st.text_area("Notes", key="cash_notes")
        submitted = st.form_submit_button("Save transaction")

    if submitted:
        try:
            record = build_cash_record(
                customer_id, transaction_type, amount,
                trip_id=trip_id, staff_id=staff_id, venue=venue, notes=notes,
            )
        except RecordValidationError as e:
            st.error(str(e))
            return
        if _save("buy_in_out_records", record):
            st.success(f"{transaction_type.title()} saved")


def main():
    render_header("Record Transactions", "Rolling and cash entries for active trips")

    snapshot = current_snapshot()
    if not render_connection_status() or snapshot is None:
        return

    render_sidebar_filters(snapshot.agents, show_date_range=False)

    view = get_view_filter(include_date_range=False)
    if view.role == "staff":
        # Staff record for any customer; scoping only applies to what they have already entered
        scoped = apply_view_filter(snapshot, ViewFilter(role="admin", agent_id=view.agent_id))
    else:
        scoped = apply_view_filter(snapshot, view)

    customers = _options(scoped.customers[scoped.customers["is_active"].astype(bool)], "customer_id")
    open_trips = scoped.trips[scoped.trips["status"].isin(["planned", "ongoing", "active"])]
    trips = _options(open_trips, "trip_id")

    if not customers:
        st.info("No active customers available to record against.")
        return

    staff_id = get_state("staff_id")

    tab1, tab2 = st.tabs(["Rolling", "Buy-in / Buy-out"])
    with tab1:
        render_rolling_form(customers, trips, staff_id)
    with tab2:
        render_cash_form(customers, trips, staff_id)

    st.markdown("---")
    section_header("Latest Rolling Records")
    latest = scoped.rolling_records.sort_values("ts", ascending=False, na_position="last").head(20)
    st.dataframe(
        format_metric_df(latest[["timestamp", "customer_id", "trip_id", "rolling_amount", "win_loss", "game_type"]]),
        use_container_width=True,
        hide_index=True,
    )


if __name__ == "__main__":
    main()
