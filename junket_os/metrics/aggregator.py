"""
Metrics aggregation engine.

Single source of truth for: rolling, win/loss, buy-in/out, commission,
expenses, house gross/net/final, and the ratios every screen shows.

Inputs are a (filtered) Snapshot; outputs are new values. Nothing here does
I/O, keeps state, or mutates its inputs. Every numeric column goes through
safe_numeric before arithmetic and every ratio is zero-guarded, so the
result never contains NaN.
"""
import pandas as pd
import numpy as np
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from junket_os.config import config
from junket_os.data.loader import Snapshot
from junket_os.data.normalize import safe_numeric
from junket_os.metrics.filters import (
    ViewFilter,
    apply_view_filter,
    record_agent_ids,
    resolve_now,
    trip_agent_mask,
)
from junket_os.metrics.sharing import calculate_trip_sharing


@dataclass
class MetricsSummary:
    """Flat summary shown on every screen. All-zero by default."""
    # Customer activity
    customer_total_rolling: float = 0.0
    customer_total_win_loss: float = 0.0
    customer_total_buy_in: float = 0.0
    customer_total_buy_out: float = 0.0
    net_cash_flow: float = 0.0

    # Trip costs
    total_rolling_commission: float = 0.0
    total_expenses: float = 0.0
    company_share: float = 0.0

    # House performance
    house_gross_win: float = 0.0
    house_net_win: float = 0.0
    house_final_profit: float = 0.0

    # Ratios (percent of rolling)
    profit_margin: float = 0.0
    commission_ratio: float = 0.0
    expense_ratio: float = 0.0

    # Counts
    total_customers: int = 0
    active_customers: int = 0
    total_agents: int = 0
    active_agents: int = 0
    total_trips: int = 0
    completed_trips: int = 0
    ongoing_trips: int = 0
    active_trips: int = 0
    planned_trips: int = 0
    total_rolling_records: int = 0
    total_cash_records: int = 0
    recent_rolling_records: int = 0
    recent_cash_records: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# HELPERS
# =============================================================================

def _total(series: pd.Series) -> float:
    return float(safe_numeric(series).sum()) if len(series) else 0.0


def percent_of(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, defined as 0 when denominator is 0."""
    if denominator == 0:
        return 0.0
    return float(numerator / denominator * 100)


def _default_rate(default_rate: Optional[float]) -> float:
    return config.default_commission_rate if default_rate is None else default_rate


def record_commission(rolling: pd.DataFrame, customers: pd.DataFrame,
                      default_rate: Optional[float] = None) -> pd.Series:
    """
    Commission per rolling record: rolling_amount × customer rate / 100.

    Customers missing from the snapshot, or with a zero rate, use the
    default rate (1.4%).
    """
    rate = _default_rate(default_rate)
    if rolling.empty:
        return pd.Series(dtype=float, index=rolling.index)
    rate_map = (
        customers.dropna(subset=["customer_id"])
        .drop_duplicates("customer_id")
        .set_index("customer_id")["rolling_percentage"]
    )
    rates = safe_numeric(rolling["customer_id"].map(rate_map))
    rates = rates.where(rates > 0, rate)
    return safe_numeric(rolling["rolling_amount"]) * rates / 100


def _cash_by_type(cash: pd.DataFrame, transaction_type: str) -> pd.DataFrame:
    return cash[cash["transaction_type"] == transaction_type]


def count_recent(timestamps: pd.Series, now: Optional[datetime] = None,
                 hours: Optional[int] = None) -> int:
    """Records in the trailing window ending at `now` (sliding, not calendar days)."""
    if len(timestamps) == 0:
        return 0
    hours = config.recent_activity_hours if hours is None else hours
    cutoff = resolve_now(now) - timedelta(hours=hours)
    return int((timestamps > cutoff).sum())


# =============================================================================
# TRIP LEDGER
# =============================================================================

LEDGER_COLUMNS = [
    "trip_id", "name", "status", "source", "rolling", "win_loss", "commission",
    "expenses", "buy_in", "buy_out", "net_cash_flow", "house_final_profit",
    "company_share",
]


def build_trip_ledger(snapshot: Snapshot, default_rate: Optional[float] = None) -> pd.DataFrame:
    """
    One row per trip with the values every screen uses for that trip.

    Precedence rule, applied the same way everywhere: a trip carrying a
    sharing breakdown takes win/loss, expenses and company share from that
    breakdown ('sharing'); every other trip recomputes them from records and
    expense lines ('recomputed'). Rolling, commission and buy-in/out are always
    recomputed from records. The two sources are never blended for one trip.
    """
    trips = snapshot.trips
    if trips.empty:
        return pd.DataFrame(columns=LEDGER_COLUMNS)

    rolling = snapshot.rolling_records.copy()
    rolling["commission"] = record_commission(rolling, snapshot.customers, default_rate)
    rolling["rolling_amount"] = safe_numeric(rolling["rolling_amount"])
    rolling["win_loss"] = safe_numeric(rolling["win_loss"])
    by_trip = rolling.groupby("trip_id").agg(
        rolling=("rolling_amount", "sum"),
        win_loss=("win_loss", "sum"),
        commission=("commission", "sum"),
    )

    cash = snapshot.cash_records.copy()
    cash["amount"] = safe_numeric(cash["amount"])
    buy_in = _cash_by_type(cash, "buy-in").groupby("trip_id")["amount"].sum()
    buy_out = _cash_by_type(cash, "buy-out").groupby("trip_id")["amount"].sum()

    rows = []
    for trip in trips.itertuples(index=False):
        tid = trip.trip_id
        t_rolling = float(by_trip["rolling"].get(tid, 0.0))
        t_commission = float(by_trip["commission"].get(tid, 0.0))
        t_buy_in = float(buy_in.get(tid, 0.0))
        t_buy_out = float(buy_out.get(tid, 0.0))

        if trip.has_sharing:
            source = "sharing"
            t_win_loss = float(trip.sharing_total_win_loss)
            t_expenses = float(trip.sharing_total_expenses)
            t_company_share = float(trip.sharing_company_share)
        else:
            source = "recomputed"
            t_win_loss = float(by_trip["win_loss"].get(tid, 0.0))
            t_expenses = float(trip.expenses_total)
            t_company_share = calculate_trip_sharing(
                t_win_loss, t_expenses, t_commission,
                agents=trip.agent_shares,
                total_buy_in=t_buy_in, total_buy_out=t_buy_out,
            ).company_share

        rows.append({
            "trip_id": tid,
            "name": trip.name,
            "status": trip.status,
            "source": source,
            "rolling": t_rolling,
            "win_loss": t_win_loss,
            "commission": t_commission,
            "expenses": t_expenses,
            "buy_in": t_buy_in,
            "buy_out": t_buy_out,
            "net_cash_flow": t_buy_out - t_buy_in,
            "house_final_profit": -t_win_loss - t_commission - t_expenses,
            "company_share": t_company_share,
        })

    return pd.DataFrame(rows, columns=LEDGER_COLUMNS)


# =============================================================================
# SUMMARY
# =============================================================================

def compute_summary(snapshot: Snapshot,
                    now: Optional[datetime] = None,
                    default_rate: Optional[float] = None) -> MetricsSummary:
    """
    Compute the metrics summary for an already-filtered snapshot.

    Win/loss of rolling records attached to a trip with a sharing breakdown
    is replaced by that trip's authoritative win/loss.
    """
    rolling = snapshot.rolling_records
    cash = snapshot.cash_records
    customers = snapshot.customers
    agents = snapshot.agents
    trips = snapshot.trips

    ledger = build_trip_ledger(snapshot, default_rate)

    sharing_trip_ids = set(trips.loc[trips["has_sharing"], "trip_id"].dropna())
    on_sharing_trip = rolling["trip_id"].isin(sharing_trip_ids)
    sharing_win_loss = _total(ledger.loc[ledger["source"] == "sharing", "win_loss"])

    total_rolling = _total(rolling["rolling_amount"])
    total_win_loss = _total(rolling.loc[~on_sharing_trip, "win_loss"]) + sharing_win_loss
    total_buy_in = _total(_cash_by_type(cash, "buy-in")["amount"])
    total_buy_out = _total(_cash_by_type(cash, "buy-out")["amount"])

    total_commission = _total(ledger["commission"])
    total_expenses = _total(ledger["expenses"])

    house_gross_win = -total_win_loss
    house_net_win = house_gross_win - total_commission
    house_final_profit = house_net_win - total_expenses

    status = trips["status"]
    return MetricsSummary(
        customer_total_rolling=total_rolling,
        customer_total_win_loss=total_win_loss,
        customer_total_buy_in=total_buy_in,
        customer_total_buy_out=total_buy_out,
        net_cash_flow=total_buy_out - total_buy_in,
        total_rolling_commission=total_commission,
        total_expenses=total_expenses,
        company_share=_total(ledger["company_share"]),
        house_gross_win=house_gross_win,
        house_net_win=house_net_win,
        house_final_profit=house_final_profit,
        profit_margin=percent_of(house_final_profit, total_rolling),
        commission_ratio=percent_of(total_commission, total_rolling),
        expense_ratio=percent_of(total_expenses, total_rolling),
        total_customers=len(customers),
        active_customers=int(customers["is_active"].astype(bool).sum()),
        total_agents=len(agents),
        active_agents=int(agents["is_active"].astype(bool).sum()),
        total_trips=len(trips),
        completed_trips=int((status == "completed").sum()),
        ongoing_trips=int((status == "ongoing").sum()),
        active_trips=int((status == "active").sum()),
        planned_trips=int((status == "planned").sum()),
        total_rolling_records=len(rolling),
        total_cash_records=len(cash),
        recent_rolling_records=count_recent(rolling["ts"], now),
        recent_cash_records=count_recent(cash["ts"], now),
    )


def get_summary(snapshot: Snapshot, view: ViewFilter,
                now: Optional[datetime] = None) -> MetricsSummary:
    """Filter then aggregate: the one call every screen makes."""
    return compute_summary(apply_view_filter(snapshot, view, now), now)


# =============================================================================
# PER-ENTITY ROLLUPS
# =============================================================================

CUSTOMER_ROLLUP_COLUMNS = [
    "customer_id", "name", "agent_id", "is_active", "rolling_percentage",
    "rolling", "win_loss", "buy_in", "buy_out", "net_cash_flow", "commission",
    "record_count", "transaction_count",
]


def customer_rollup(snapshot: Snapshot) -> pd.DataFrame:
    """Period totals per customer, in snapshot order."""
    customers = snapshot.customers
    if customers.empty:
        return pd.DataFrame(columns=CUSTOMER_ROLLUP_COLUMNS)

    rolling = snapshot.rolling_records.assign(
        rolling_amount=lambda d: safe_numeric(d["rolling_amount"]),
        win_loss=lambda d: safe_numeric(d["win_loss"]),
    )
    cash = snapshot.cash_records.assign(amount=lambda d: safe_numeric(d["amount"]))

    by_customer = rolling.groupby("customer_id").agg(
        rolling=("rolling_amount", "sum"),
        win_loss=("win_loss", "sum"),
        record_count=("rolling_amount", "size"),
    )
    buy_in = _cash_by_type(cash, "buy-in").groupby("customer_id")["amount"].sum()
    buy_out = _cash_by_type(cash, "buy-out").groupby("customer_id")["amount"].sum()
    tx_count = cash.groupby("customer_id").size()

    result = customers[["customer_id", "name", "agent_id", "is_active", "rolling_percentage"]].copy()
    ids = result["customer_id"]
    result["rolling"] = safe_numeric(ids.map(by_customer["rolling"]))
    result["win_loss"] = safe_numeric(ids.map(by_customer["win_loss"]))
    result["buy_in"] = safe_numeric(ids.map(buy_in))
    result["buy_out"] = safe_numeric(ids.map(buy_out))
    result["net_cash_flow"] = result["buy_out"] - result["buy_in"]
    result["commission"] = result["rolling"] * safe_numeric(result["rolling_percentage"]) / 100
    result["record_count"] = safe_numeric(ids.map(by_customer["record_count"])).astype(int)
    result["transaction_count"] = safe_numeric(ids.map(tx_count)).astype(int)

    return result[CUSTOMER_ROLLUP_COLUMNS].reset_index(drop=True)


def get_top_customers(snapshot: Snapshot, n: int = 5) -> pd.DataFrame:
    """
    Customers ranked by period rolling, descending, top `n`.

    Stable sort: ties keep snapshot order. Customers without period rolling
    are left out.
    """
    rollup = customer_rollup(snapshot)
    ranked = rollup[rollup["rolling"] > 0].sort_values(
        "rolling", ascending=False, kind="stable"
    )
    return ranked.head(n).reset_index(drop=True)


AGENT_PERFORMANCE_COLUMNS = [
    "agent_id", "name", "customers", "active_customers", "rolling", "win_loss",
    "buy_in", "buy_out", "net_cash_flow", "commission", "house_gross_win",
    "trips", "rolling_records", "transaction_records", "average_rolling_percentage",
]


def get_agent_performance(snapshot: Snapshot,
                          default_rate: Optional[float] = None) -> pd.DataFrame:
    """
    Summary rollup scoped per agent.

    Win/loss follows the same precedence as compute_summary: each sharing
    trip the agent is on contributes its ledger win/loss in place of the
    agent's records on that trip, so a row matches the agent's own summary.
    A trip shared by several agents counts in full on each of their rows.
    Agents with zero rolling and zero customers are dropped.
    """
    agents = snapshot.agents
    if agents.empty:
        return pd.DataFrame(columns=AGENT_PERFORMANCE_COLUMNS)

    customers = snapshot.customers
    rolling = snapshot.rolling_records.copy()
    cash = snapshot.cash_records.copy()
    rolling["owner"] = record_agent_ids(rolling, customers)
    rolling["commission"] = record_commission(rolling, customers, default_rate)
    cash["owner"] = record_agent_ids(cash, customers)

    ledger = build_trip_ledger(snapshot, default_rate)
    sharing_win_loss = (
        ledger[ledger["source"] == "sharing"].dropna(subset=["trip_id"])
        .set_index("trip_id")["win_loss"]
    )

    rows = []
    for agent in agents.itertuples(index=False):
        aid = agent.agent_id
        a_customers = customers[customers["agent_id"] == aid]
        a_rolling = rolling[rolling["owner"] == aid]
        a_cash = cash[cash["owner"] == aid]
        a_trips = snapshot.trips[trip_agent_mask(snapshot.trips, aid)]

        r_total = _total(a_rolling["rolling_amount"])
        a_sharing = a_trips.loc[a_trips["has_sharing"], "trip_id"].dropna()
        wl_total = (
            _total(a_rolling.loc[~a_rolling["trip_id"].isin(set(a_sharing)), "win_loss"])
            + _total(a_sharing.map(sharing_win_loss))
        )
        bi_total = _total(_cash_by_type(a_cash, "buy-in")["amount"])
        bo_total = _total(_cash_by_type(a_cash, "buy-out")["amount"])
        rates = safe_numeric(a_customers["rolling_percentage"])

        rows.append({
            "agent_id": aid,
            "name": agent.name,
            "customers": len(a_customers),
            "active_customers": int(a_customers["is_active"].astype(bool).sum()),
            "rolling": r_total,
            "win_loss": wl_total,
            "buy_in": bi_total,
            "buy_out": bo_total,
            "net_cash_flow": bo_total - bi_total,
            "commission": _total(a_rolling["commission"]),
            "house_gross_win": -wl_total,
            "trips": len(a_trips),
            "rolling_records": len(a_rolling),
            "transaction_records": len(a_cash),
            "average_rolling_percentage": float(rates.mean()) if len(rates) else 0.0,
        })

    result = pd.DataFrame(rows, columns=AGENT_PERFORMANCE_COLUMNS)
    keep = (result["rolling"] != 0) | (result["customers"] > 0)
    return result[keep].reset_index(drop=True)


def trip_status_breakdown(snapshot: Snapshot) -> pd.DataFrame:
    """Trip counts per status, for the dashboard status chart."""
    trips = snapshot.trips
    if trips.empty:
        return pd.DataFrame(columns=["status", "trips"])
    counts = trips.groupby("status").size().rename("trips").reset_index()
    return counts.sort_values("trips", ascending=False, kind="stable").reset_index(drop=True)
