"""
View filtering: role scoping, agent drill-down and date range.

Every screen builds a ViewFilter and runs the snapshot through
apply_view_filter before any aggregation. Role scoping runs first, then the
date range over what the role can see.
"""
import pandas as pd
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from junket_os.data.loader import Snapshot


@dataclass(frozen=True)
class ViewFilter:
    """Who is looking and at what slice."""
    role: str = "admin"
    agent_id: Optional[str] = None
    date_range_days: Optional[int] = None
    staff_id: Optional[str] = None


def resolve_now(now: Optional[datetime] = None) -> pd.Timestamp:
    """Evaluation time as a tz-aware UTC timestamp."""
    if now is None:
        return pd.Timestamp.now(tz="UTC")
    ts = pd.Timestamp(now)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def record_agent_ids(records: pd.DataFrame, customers: pd.DataFrame) -> pd.Series:
    """
    Agent reference per record: the record's own agent_id when set,
    otherwise the owning customer's agent.
    """
    if records.empty:
        return pd.Series(dtype=object, index=records.index)
    owner = customers.dropna(subset=["customer_id"]).drop_duplicates("customer_id")
    owner_map = owner.set_index("customer_id")["agent_id"]
    via_customer = records["customer_id"].map(owner_map)
    return records["agent_id"].where(records["agent_id"].notna(), via_customer)


def trip_agent_mask(trips: pd.DataFrame, agent_id: str) -> pd.Series:
    """Trip belongs to the agent via agent_id or its trip-agent list."""
    if trips.empty or agent_id is None:
        return pd.Series(False, index=trips.index, dtype=bool)
    return trips.apply(
        lambda t: t["agent_id"] == agent_id or agent_id in (t["agent_ids"] or []),
        axis=1,
    ).astype(bool)


def _scope_to_agent(snapshot: Snapshot, agent_id: Optional[str]) -> Snapshot:
    """Intersect every collection with one agent's data."""
    agent_id = None if agent_id is None else str(agent_id)
    rolling = snapshot.rolling_records
    cash = snapshot.cash_records
    rolling_agents = record_agent_ids(rolling, snapshot.customers)
    cash_agents = record_agent_ids(cash, snapshot.customers)

    return replace(
        snapshot,
        agents=snapshot.agents[snapshot.agents["agent_id"] == agent_id],
        customers=snapshot.customers[snapshot.customers["agent_id"] == agent_id],
        trips=snapshot.trips[trip_agent_mask(snapshot.trips, agent_id)],
        rolling_records=rolling[rolling_agents == agent_id],
        cash_records=cash[cash_agents == agent_id],
    )


def _scope_to_staff(snapshot: Snapshot, staff_id: Optional[str]) -> Snapshot:
    """Records created by the staff member, then customers/trips they reference."""
    staff_id = None if staff_id is None else str(staff_id)
    rolling = snapshot.rolling_records[snapshot.rolling_records["staff_id"] == staff_id]
    cash = snapshot.cash_records[snapshot.cash_records["staff_id"] == staff_id]

    customer_ids = set(rolling["customer_id"].dropna()) | set(cash["customer_id"].dropna())
    trip_ids = set(rolling["trip_id"].dropna()) | set(cash["trip_id"].dropna())

    customers = snapshot.customers[snapshot.customers["customer_id"].isin(customer_ids)]
    agent_ids = set(customers["agent_id"].dropna())

    return replace(
        snapshot,
        agents=snapshot.agents[snapshot.agents["agent_id"].isin(agent_ids)],
        customers=customers,
        trips=snapshot.trips[snapshot.trips["trip_id"].isin(trip_ids)],
        rolling_records=rolling,
        cash_records=cash,
    )


def _scope_to_date_range(snapshot: Snapshot, days: int,
                         now: Optional[datetime] = None) -> Snapshot:
    """
    Keep records at or after now - days, no upper bound.

    Trips are kept when they start inside the window or when an in-window
    record references them, so a trip that began earlier still carries the
    commission and sharing result for rolling that lands in the window.
    """
    cutoff = resolve_now(now) - timedelta(days=days)
    trips = snapshot.trips
    rolling = snapshot.rolling_records[snapshot.rolling_records["ts"] >= cutoff]
    cash = snapshot.cash_records[snapshot.cash_records["ts"] >= cutoff]
    referenced = set(rolling["trip_id"].dropna()) | set(cash["trip_id"].dropna())
    return replace(
        snapshot,
        trips=trips[(trips["trip_ts"] >= cutoff) | trips["trip_id"].isin(referenced)],
        rolling_records=rolling,
        cash_records=cash,
    )


def apply_view_filter(snapshot: Snapshot, view: ViewFilter,
                      now: Optional[datetime] = None) -> Snapshot:
    """
    Apply role scoping, optional agent override and date range.

    An agent without an agent id sees nothing; a staff member without a staff
    id sees nothing. Unknown roles are treated like admin.
    """
    scoped = snapshot

    if view.role == "agent":
        scoped = _scope_to_agent(scoped, view.agent_id)
    elif view.role == "staff":
        scoped = _scope_to_staff(scoped, view.staff_id)
        if view.agent_id is not None:
            scoped = _scope_to_agent(scoped, view.agent_id)
    elif view.agent_id is not None:
        scoped = _scope_to_agent(scoped, view.agent_id)

    if view.date_range_days is not None:
        scoped = _scope_to_date_range(scoped, view.date_range_days, now)

    return scoped
