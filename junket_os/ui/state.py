"""
Session state management for Streamlit app.
"""
import streamlit as st
from typing import Optional, Any

from junket_os.config import config
from junket_os.data.loader import SnapshotPoller, Snapshot, load_snapshot, clear_snapshot_cache
from junket_os.metrics.filters import ViewFilter


# =============================================================================
# DEFAULT VALUES
# =============================================================================

DEFAULTS = {
    "role": "admin",
    "agent_id": None,
    "staff_id": None,
    "date_range_days": None,
    "selected_agent": None,
    "realtime_enabled": True,
    "poller": None,
}

DATE_RANGE_OPTIONS = {
    None: "All time",
    7: "Last 7 days",
    30: "Last 30 days",
    90: "Last 90 days",
    365: "Last 12 months",
}


# =============================================================================
# STATE HELPERS
# =============================================================================

def init_state():
    """Initialize all session state keys with defaults."""
    for key, default in DEFAULTS.items():
        if key not in st.session_state:
            st.session_state[key] = default


def get_state(key: str) -> Any:
    """Get state value with default fallback."""
    init_state()
    return st.session_state.get(key, DEFAULTS.get(key))


def set_state(key: str, value: Any):
    """Set state value."""
    st.session_state[key] = value


# =============================================================================
# VIEW FILTER
# =============================================================================

def get_view_filter(include_date_range: bool = True) -> ViewFilter:
    """
    Build the ViewFilter for the current viewer.

    For admins the selected agent acts as the drill-down override; for
    agents the signed-in agent id always wins.
    """
    role = get_state("role")
    agent_id = get_state("agent_id") if role == "agent" else get_state("selected_agent")
    return ViewFilter(
        role=role,
        agent_id=agent_id,
        date_range_days=get_state("date_range_days") if include_date_range else None,
        staff_id=get_state("staff_id"),
    )


# =============================================================================
# POLLER
# =============================================================================

def get_poller() -> SnapshotPoller:
    """The session's poller, created on first use."""
    poller = get_state("poller")
    if poller is None:
        poller = SnapshotPoller(
            fetch=load_snapshot,
            interval_seconds=config.refresh_interval_seconds,
            enabled=get_state("realtime_enabled"),
        )
        set_state("poller", poller)
    return poller


def current_snapshot() -> Optional[Snapshot]:
    """Poll if due and return the latest good snapshot (None before first success)."""
    poller = get_poller()
    poller.toggle(get_state("realtime_enabled"))
    return poller.poll_if_due()


def refresh_now() -> Optional[Snapshot]:
    """Manual refresh / retry: bypass the fetch cache and poll now."""
    clear_snapshot_cache()
    return get_poller().retry()
