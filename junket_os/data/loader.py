"""
Snapshot loading with Streamlit caching and interval polling.

A Snapshot is one consistent, immutable view of every collection. Screens
compute from a snapshot and replace it wholesale on the next poll; nothing
is ever partially refreshed.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

import pandas as pd
import streamlit as st

from junket_os.config import config, COLLECTIONS, CASH_COLLECTIONS
from junket_os.data.normalize import (
    normalize_agents,
    normalize_customers,
    normalize_trips,
    normalize_rolling_records,
    normalize_cash_records,
    merge_cash_collections,
)
from junket_os.data.store import get_store, StoreConnectionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Normalized collections valid for one computation pass."""
    agents: pd.DataFrame
    customers: pd.DataFrame
    trips: pd.DataFrame
    rolling_records: pd.DataFrame
    cash_records: pd.DataFrame
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def counts(self) -> Dict[str, int]:
        return {
            "agents": len(self.agents),
            "customers": len(self.customers),
            "trips": len(self.trips),
            "rolling_records": len(self.rolling_records),
            "cash_records": len(self.cash_records),
        }


def build_snapshot(raw: Mapping[str, List[Dict[str, Any]]],
                   fetched_at: Optional[datetime] = None) -> Snapshot:
    """
    Normalize raw collections into a Snapshot.

    `raw` is keyed by collection name; absent collections are empty.
    Cash records are merged from every cash collection.
    """
    cash_raw = merge_cash_collections(*(raw.get(name, []) for name in CASH_COLLECTIONS))
    kwargs = {}
    if fetched_at is not None:
        kwargs["fetched_at"] = fetched_at
    return Snapshot(
        agents=normalize_agents(raw.get("agents", [])),
        customers=normalize_customers(raw.get("customers", [])),
        trips=normalize_trips(raw.get("trips", [])),
        rolling_records=normalize_rolling_records(raw.get("rolling_records", [])),
        cash_records=normalize_cash_records(cash_raw),
        **kwargs,
    )


def empty_snapshot() -> Snapshot:
    return build_snapshot({})


def fetch_raw(store) -> Dict[str, List[Dict[str, Any]]]:
    """Fetch every collection from the store. Raises StoreConnectionError."""
    raw = {}
    for key, collection in COLLECTIONS.items():
        raw[key] = store.get(collection)
    logger.info(
        "Fetched collections: "
        + ", ".join(f"{k}={len(v)}" for k, v in raw.items())
    )
    return raw


def fetch_snapshot(store) -> Snapshot:
    """Fetch and normalize in one step."""
    return build_snapshot(fetch_raw(store))


@st.cache_data(ttl=config.cache_ttl_seconds, show_spinner=False)
def load_raw_collections() -> Dict[str, List[Dict[str, Any]]]:
    """Cached raw fetch from the configured store."""
    return fetch_raw(get_store())


def load_snapshot() -> Snapshot:
    """Load the current snapshot (cached raw fetch, fresh normalization)."""
    return build_snapshot(load_raw_collections())


def clear_snapshot_cache():
    """Force the next load to hit the store."""
    load_raw_collections.clear()


def get_data_status(store=None) -> Dict[str, Any]:
    """Connection and per-collection availability."""
    store = store or get_store()
    ok, message = store.health_check()
    return {
        "backend": type(store).__name__,
        "connected": ok,
        "message": message,
    }


# =============================================================================
# POLLING
# =============================================================================

class SnapshotPoller:
    """
    Fixed-interval re-fetch and recompute.

    Keeps the last good snapshot. A failed poll leaves it in place and flips
    `status` to 'error' with a readable message; `retry()` polls immediately.
    There is no backoff beyond the fixed interval.
    """

    def __init__(self, fetch: Callable[[], Snapshot],
                 interval_seconds: Optional[int] = None,
                 enabled: bool = True):
        self.fetch = fetch
        self.interval = timedelta(seconds=interval_seconds or config.refresh_interval_seconds)
        self.enabled = enabled
        self.snapshot: Optional[Snapshot] = None
        self.status = "idle"
        self.message = ""
        self.last_polled_at: Optional[datetime] = None
        self.last_success_at: Optional[datetime] = None

    def toggle(self, enabled: Optional[bool] = None) -> bool:
        self.enabled = (not self.enabled) if enabled is None else enabled
        return self.enabled

    def is_due(self, now: Optional[datetime] = None) -> bool:
        if self.snapshot is None and self.last_polled_at is None:
            return True
        if not self.enabled:
            return False
        now = now or datetime.now(timezone.utc)
        return now - self.last_polled_at >= self.interval

    def poll(self, now: Optional[datetime] = None) -> Optional[Snapshot]:
        now = now or datetime.now(timezone.utc)
        self.last_polled_at = now
        try:
            snapshot = self.fetch()
        except StoreConnectionError as e:
            logger.warning(f"Snapshot refresh failed: {e}")
            self.status = "error"
            self.message = f"Failed to load data: {e}"
            return self.snapshot

        self.snapshot = snapshot
        self.status = "connected"
        self.message = "Data loaded successfully"
        self.last_success_at = now
        return snapshot

    def poll_if_due(self, now: Optional[datetime] = None) -> Optional[Snapshot]:
        if self.is_due(now):
            return self.poll(now)
        return self.snapshot

    def retry(self) -> Optional[Snapshot]:
        """Manual retry action."""
        return self.poll()

    @property
    def is_connected(self) -> bool:
        return self.status == "connected"
