"""
Tests for the metrics aggregator: summary, trip ledger and rollups.
"""
import math
import pytest
import pandas as pd
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.data.loader import build_snapshot, empty_snapshot
from junket_os.metrics.filters import ViewFilter, apply_view_filter
from junket_os.metrics.aggregator import (
    MetricsSummary,
    compute_summary,
    get_summary,
    build_trip_ledger,
    customer_rollup,
    get_top_customers,
    get_agent_performance,
    trip_status_breakdown,
    percent_of,
    count_recent,
)


NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


def sample_raw():
    """Two agents, three customers, two trips (one with a sharing breakdown)."""
    return {
        "agents": [
            {"id": "A", "name": "Agent A", "status": "active"},
            {"id": "B", "name": "Agent B", "status": "inactive"},
        ],
        "customers": [
            {"id": "c1", "name": "Chan", "agent_id": "A", "rolling_percentage": 1.0, "is_active": True},
            {"id": "c2", "name": "Wong", "agentId": "A", "rollingPercentage": 2.0, "isActive": True},
            {"id": "c3", "name": "Lee", "agent_id": "B", "is_active": False},
        ],
        "trips": [
            {
                "id": "t1", "trip_name": "Macau Jan", "status": "completed",
                "start_date": "2024-01-02", "agent_id": "A",
                "expenses": [{"amount": 300}, {"amount": 200}],
            },
            {
                "id": "t2", "trip_name": "Manila Jan", "status": "in-progress",
                "start_date": "2024-01-05", "agent_id": "B",
                "expenses": [{"amount": 999}],
                "sharing": {"total_win_loss": -8000, "total_expenses": 400, "company_share": 2500},
            },
        ],
        "rolling_records": [
            {"id": "r1", "customer_id": "c1", "trip_id": "t1", "rolling_amount": 10000,
             "win_loss": -2000, "recorded_at": "2024-01-02T10:00:00Z"},
            {"id": "r2", "customer_id": "c2", "trip_id": "t1", "rolling_amount": 5000,
             "win_loss": 1000, "recorded_at": "2024-01-03T10:00:00Z"},
            {"id": "r3", "customer_id": "c3", "trip_id": "t2", "rolling_amount": 20000,
             "win_loss": -5000, "recorded_at": "2024-01-10T06:00:00Z"},
        ],
        "buy_in_out_records": [
            {"id": "x1", "customer_id": "c1", "trip_id": "t1", "transaction_type": "buy-in",
             "amount": 5000, "timestamp": "2024-01-02T09:00:00Z"},
            {"id": "x2", "customer_id": "c1", "trip_id": "t1", "transaction_type": "buy-out",
             "amount": 3000, "timestamp": "2024-01-02T20:00:00Z"},
        ],
        "transactions": [
            {"id": "x3", "customer_id": "c3", "trip_id": "t2", "transaction_type": "cash-out",
             "amount": 1500, "timestamp": "2024-01-10T08:00:00Z"},
        ],
    }


class TestEmptyInput:
    """Aggregating nothing yields the all-zero summary."""

    def test_empty_snapshot_is_all_zero(self):
        summary = compute_summary(empty_snapshot(), NOW)

        assert summary == MetricsSummary()

    def test_empty_rollups_are_empty(self):
        snapshot = empty_snapshot()

        assert len(build_trip_ledger(snapshot)) == 0
        assert len(get_top_customers(snapshot)) == 0
        assert len(get_agent_performance(snapshot)) == 0
        assert len(trip_status_breakdown(snapshot)) == 0


class TestZeroSafety:
    """Malformed numbers coerce to zero and never leak NaN."""

    def test_no_nan_in_summary(self):
        snapshot = build_snapshot({
            "customers": [{"id": "c1", "rolling_percentage": "n/a"}],
            "trips": [{"id": "t1", "expenses": [{"amount": None}, {"amount": "abc"}]}],
            "rolling_records": [
                {"customer_id": "c1", "trip_id": "t1", "rolling_amount": None, "win_loss": float("nan")},
                {"customer_id": "c1", "trip_id": "t1", "rolling_amount": "1,000", "win_loss": "bad"},
            ],
            "buy_in_out_records": [
                {"customer_id": "c1", "transaction_type": "buy-in", "amount": None},
            ],
        })

        summary = compute_summary(snapshot, NOW)

        for name, value in summary.to_dict().items():
            assert not (isinstance(value, float) and math.isnan(value)), name
        assert summary.customer_total_rolling == 1000
        assert summary.customer_total_win_loss == 0
        assert summary.total_expenses == 0

    def test_missing_rate_uses_default_commission(self):
        snapshot = build_snapshot({
            "customers": [{"id": "c1"}],
            "trips": [{"id": "t1"}],
            "rolling_records": [{"customer_id": "c1", "trip_id": "t1", "rolling_amount": 100000}],
        })

        summary = compute_summary(snapshot, NOW)

        assert summary.total_rolling_commission == pytest.approx(1400)


class TestRatioGuard:
    """Ratios are zero whenever rolling is zero."""

    def test_zero_rolling_gives_zero_ratios(self):
        snapshot = build_snapshot({
            "trips": [{"id": "t1", "expenses": [{"amount": 500}]}],
            "rolling_records": [{"customer_id": "c1", "trip_id": "t1", "rolling_amount": 0, "win_loss": -300}],
        })

        summary = compute_summary(snapshot, NOW)

        assert summary.customer_total_rolling == 0
        assert summary.profit_margin == 0
        assert summary.commission_ratio == 0
        assert summary.expense_ratio == 0

    def test_percent_of(self):
        assert percent_of(25, 200) == 12.5
        assert percent_of(25, 0) == 0.0


class TestSignConvention:
    """Customer win/loss is the negation of house win."""

    def test_customer_win_is_house_loss(self):
        snapshot = build_snapshot({
            "rolling_records": [{"customer_id": "c1", "rolling_amount": 1000, "win_loss": 500}],
        })

        summary = compute_summary(snapshot, NOW)

        assert summary.customer_total_win_loss == 500
        assert summary.house_gross_win == -500

    def test_house_cascade(self):
        summary = compute_summary(build_snapshot(sample_raw()), NOW)

        assert summary.house_net_win == pytest.approx(
            summary.house_gross_win - summary.total_rolling_commission
        )
        assert summary.house_final_profit == pytest.approx(
            summary.house_net_win - summary.total_expenses
        )
        assert summary.net_cash_flow == pytest.approx(
            summary.customer_total_buy_out - summary.customer_total_buy_in
        )


class TestTripSharingPrecedence:
    """A stored sharing breakdown wins over recomputed values for that trip only."""

    def test_ledger_sources(self):
        ledger = build_trip_ledger(build_snapshot(sample_raw())).set_index("trip_id")

        assert ledger.loc["t1", "source"] == "recomputed"
        assert ledger.loc["t2", "source"] == "sharing"

    def test_sharing_trip_values(self):
        ledger = build_trip_ledger(build_snapshot(sample_raw())).set_index("trip_id")

        # From the breakdown, not from records (-5000) or expense lines (999)
        assert ledger.loc["t2", "win_loss"] == -8000
        assert ledger.loc["t2", "expenses"] == 400
        assert ledger.loc["t2", "company_share"] == 2500
        # Rolling and commission always come from records (c3 has the default 1.4%)
        assert ledger.loc["t2", "rolling"] == 20000
        assert ledger.loc["t2", "commission"] == pytest.approx(280)

    def test_recomputed_trip_values(self):
        ledger = build_trip_ledger(build_snapshot(sample_raw())).set_index("trip_id")

        assert ledger.loc["t1", "win_loss"] == -1000
        assert ledger.loc["t1", "expenses"] == 500
        # 10000 * 1% + 5000 * 2%
        assert ledger.loc["t1", "commission"] == pytest.approx(200)
        # No trip agents: the company keeps the whole final profit
        assert ledger.loc["t1", "company_share"] == pytest.approx(1000 - 200 - 500)

    def test_summary_uses_sharing_win_loss(self):
        summary = compute_summary(build_snapshot(sample_raw()), NOW)

        assert summary.customer_total_win_loss == -2000 + 1000 - 8000
        assert summary.total_expenses == 500 + 400
        assert summary.company_share == pytest.approx(300 + 2500)

    def test_repeated_trip_counted_once(self):
        raw = sample_raw()
        raw["trips"].append(dict(raw["trips"][1]))

        summary = compute_summary(build_snapshot(raw), NOW)

        assert summary.total_trips == 2
        assert summary.customer_total_win_loss == -2000 + 1000 - 8000

    def test_empty_sharing_mapping_is_ignored(self):
        raw = sample_raw()
        raw["trips"][1]["sharing"] = {"notes": "pending"}

        ledger = build_trip_ledger(build_snapshot(raw)).set_index("trip_id")

        assert ledger.loc["t2", "source"] == "recomputed"
        assert ledger.loc["t2", "win_loss"] == -5000
        assert ledger.loc["t2", "expenses"] == 999


class TestSummaryCounts:
    """Counts and the trailing 24h window."""

    def test_counts(self):
        summary = compute_summary(build_snapshot(sample_raw()), NOW)

        assert summary.total_customers == 3
        assert summary.active_customers == 2
        assert summary.total_agents == 2
        assert summary.active_agents == 1
        assert summary.total_trips == 2
        assert summary.completed_trips == 1
        assert summary.ongoing_trips == 1
        assert summary.total_rolling_records == 3
        assert summary.total_cash_records == 3

    def test_recent_counts(self):
        summary = compute_summary(build_snapshot(sample_raw()), NOW)

        assert summary.recent_rolling_records == 1
        assert summary.recent_cash_records == 1

    def test_count_recent_is_sliding(self):
        ts = pd.Series(pd.to_datetime([
            "2024-01-09T12:00:00Z",  # exactly 24h ago: excluded
            "2024-01-09T12:00:01Z",
            "2024-01-10T11:59:00Z",
        ], utc=True))

        assert count_recent(ts, NOW) == 2
        assert count_recent(ts.iloc[:0], NOW) == 0


class TestGetSummary:
    """Filter then aggregate."""

    def test_agent_view_excludes_other_agents(self):
        snapshot = build_snapshot(sample_raw())

        summary = get_summary(snapshot, ViewFilter(role="agent", agent_id="A"), NOW)

        assert summary.total_customers == 2
        assert summary.customer_total_rolling == 15000
        assert summary.customer_total_win_loss == -1000
        assert summary.customer_total_buy_out == 3000
        assert summary.total_trips == 1


class TestTopCustomers:
    """Ranking by period rolling."""

    def test_stable_ties(self):
        snapshot = build_snapshot({
            "customers": [{"id": "A"}, {"id": "B"}, {"id": "C"}],
            "rolling_records": [
                {"customer_id": "A", "rolling_amount": 100},
                {"customer_id": "B", "rolling_amount": 100},
                {"customer_id": "C", "rolling_amount": 50},
            ],
        })

        top = get_top_customers(snapshot, n=2)

        assert top["customer_id"].tolist() == ["A", "B"]

    def test_excludes_customers_without_rolling(self):
        snapshot = build_snapshot({
            "customers": [{"id": "A"}, {"id": "B"}],
            "rolling_records": [{"customer_id": "B", "rolling_amount": 10}],
        })

        top = get_top_customers(snapshot, n=5)

        assert top["customer_id"].tolist() == ["B"]

    def test_rollup_totals(self):
        rollup = customer_rollup(build_snapshot(sample_raw())).set_index("customer_id")

        assert rollup.loc["c1", "buy_in"] == 5000
        assert rollup.loc["c1", "buy_out"] == 3000
        assert rollup.loc["c1", "net_cash_flow"] == -2000
        assert rollup.loc["c1", "commission"] == pytest.approx(100)
        assert rollup.loc["c3", "buy_out"] == 1500
        assert rollup.loc["c3", "transaction_count"] == 1


class TestAgentPerformance:
    """Per-agent rollup."""

    def test_per_agent_values(self):
        perf = get_agent_performance(build_snapshot(sample_raw())).set_index("agent_id")

        assert perf.loc["A", "customers"] == 2
        assert perf.loc["A", "rolling"] == 15000
        assert perf.loc["A", "commission"] == pytest.approx(200)
        assert perf.loc["A", "house_gross_win"] == 1000
        assert perf.loc["A", "average_rolling_percentage"] == pytest.approx(1.5)
        assert perf.loc["B", "trips"] == 1
        assert perf.loc["B", "buy_out"] == 1500

    def test_sharing_trip_matches_agent_summary(self):
        snapshot = build_snapshot(sample_raw())

        perf = get_agent_performance(snapshot).set_index("agent_id")
        agent_view = apply_view_filter(snapshot, ViewFilter(role="agent", agent_id="B"), NOW)
        summary = compute_summary(agent_view, NOW)

        # t2's breakdown (-8000), not its record (-5000)
        assert perf.loc["B", "win_loss"] == -8000
        assert perf.loc["B", "house_gross_win"] == 8000
        assert perf.loc["B", "win_loss"] == summary.customer_total_win_loss
        assert perf.loc["A", "win_loss"] == -1000

    def test_drops_idle_agents(self):
        raw = sample_raw()
        raw["agents"].append({"id": "C", "name": "Idle"})

        perf = get_agent_performance(build_snapshot(raw))

        assert "C" not in perf["agent_id"].tolist()

    def test_record_agent_overrides_customer_agent(self):
        snapshot = build_snapshot({
            "agents": [{"id": "A"}, {"id": "B"}],
            "customers": [{"id": "c1", "agent_id": "A"}],
            "rolling_records": [{"customer_id": "c1", "agent_id": "B", "rolling_amount": 100}],
        })

        perf = get_agent_performance(snapshot).set_index("agent_id")

        assert perf.loc["B", "rolling"] == 100
        assert perf.loc["A", "rolling"] == 0


class TestTripStatusBreakdown:

    def test_status_counts(self):
        breakdown = trip_status_breakdown(build_snapshot(sample_raw()))

        assert dict(zip(breakdown["status"], breakdown["trips"])) == {"completed": 1, "ongoing": 1}
