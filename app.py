"""
Junket Operations Dashboard

Main entry point for Streamlit app.
"""
import logging
import streamlit as st
from pathlib import Path

# Page config must be first Streamlit command
st.set_page_config(
    page_title="Junket Operations",
    page_icon="🎰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Add package root to path
import sys
sys.path.insert(0, str(Path(__file__).parent))

from junket_os.config import config, COLLECTIONS
from junket_os.ui.state import init_state, current_snapshot, get_poller
from junket_os.ui.layout import render_connection_status
from junket_os.ui.formatting import fmt_count
from junket_os.data.loader import get_data_status

logging.basicConfig(
    level=config.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def main():
    """Main app entry point."""

    # Initialize session state
    init_state()

    # Header
    st.title("Junket Operations Dashboard")
    st.caption("Agents → Customers → Trips → Rolling & Cash Records")

    # Check store availability
    status = get_data_status()

    if not status["connected"]:
        st.error("Data store unavailable!")
        st.markdown(f"""
        ### Setup Required

        Backend: `{config.store_backend}`, {status['message']}

        **Local store:** place one JSON file per collection in `{config.store_dir}`:
        {", ".join(f"`{name}.json`" for name in COLLECTIONS.values())}

        **API store:** set `STORE_BACKEND=api` and `API_BASE_URL` (and `API_TOKEN`
        if the backend requires it).
        """)

        st.info("Once the store is reachable, refresh this page.")
        return

    # Load snapshot
    with st.spinner("Loading data..."):
        snapshot = current_snapshot()

    if not render_connection_status() or snapshot is None:
        return

    # Navigation
    st.markdown("---")

    col1, col2 = st.columns([1, 4])

    with col1:
        st.markdown("### Quick Links")
        st.page_link("pages/1_Dashboard.py", label="Dashboard", icon="📈")
        st.page_link("pages/2_Reports.py", label="Reports", icon="📊")
        st.page_link("pages/3_Record_Transactions.py", label="Record Transactions", icon="📝")
        st.page_link("pages/4_Data_Quality.py", label="Data Quality", icon="✅")

    with col2:
        st.markdown("### Data Overview")

        counts = snapshot.counts()
        cols = st.columns(len(counts))
        for col, (name, count) in zip(cols, counts.items()):
            with col:
                st.metric(name.replace("_", " ").title(), fmt_count(count))

    # Data status
    st.markdown("---")
    with st.expander("Data Status", expanded=not config.is_prod):
        poller = get_poller()
        st.markdown(f"**Backend:** `{status['backend']}`, {status['message']}")
        st.markdown(f"**Refresh interval:** {config.refresh_interval_seconds}s")
        if poller.last_success_at is not None:
            st.markdown(f"**Last loaded:** {poller.last_success_at:%Y-%m-%d %H:%M:%S} UTC")


if __name__ == "__main__":
    main()
