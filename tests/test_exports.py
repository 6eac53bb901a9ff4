"""
Tests for report and table exports.
"""
import json
import pytest
import pandas as pd
import sys
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.data.loader import build_snapshot
from junket_os.metrics.filters import ViewFilter, apply_view_filter
from junket_os.metrics.aggregator import compute_summary, get_top_customers, get_agent_performance
from junket_os.metrics.daily import get_daily_chart_data
from junket_os.exports import (
    build_report_payload,
    export_report_json,
    export_report_excel,
    export_dataframe_csv,
    export_dataframe_excel,
)


NOW = datetime(2024, 1, 3, tzinfo=timezone.utc)


def report_inputs():
    snapshot = build_snapshot({
        "agents": [{"id": "A", "name": "Agent A"}],
        "customers": [{"id": "c1", "name": "Chan", "agent_id": "A"}],
        "trips": [{"id": "t1", "agent_id": "A", "start_date": "2024-01-01"}],
        "rolling_records": [
            {"customer_id": "c1", "trip_id": "t1", "rolling_amount": 1000, "win_loss": -100,
             "recorded_at": "2024-01-01T10:00:00Z"},
        ],
        "buy_in_out_records": [
            {"id": "x1", "customer_id": "c1", "trip_id": "t1", "transaction_type": "buy-in",
             "amount": 500, "timestamp": "2024-01-01T09:00:00Z"},
        ],
    })
    filtered = apply_view_filter(snapshot, ViewFilter(role="admin", agent_id="A", date_range_days=30), NOW)
    return filtered, compute_summary(filtered, NOW)


class TestReportPayload:

    def test_payload_sections(self):
        filtered, summary = report_inputs()

        payload = build_report_payload(
            summary, filtered,
            get_daily_chart_data(filtered),
            get_top_customers(filtered, n=10),
            get_agent_performance(filtered),
            date_range_days=30, selected_agent="A", user_role="admin",
            generated_at=NOW,
        )

        assert payload["generated_at"] == "2024-01-03T00:00:00+00:00"
        assert payload["date_range"] == 30
        assert payload["selected_agent"] == "A"
        assert payload["summary"]["customer_total_rolling"] == 1000
        assert payload["daily_data"][0]["date"] == "2024-01-01"
        assert payload["top_customers"][0]["customer_id"] == "c1"
        assert payload["agent_performance"][0]["agent_id"] == "A"
        assert payload["raw_data"] == {
            "customers": 1, "trips": 1, "rolling_records": 1, "transaction_records": 1,
        }

    def test_json_export(self):
        filtered, summary = report_inputs()
        payload = build_report_payload(
            summary, filtered, pd.DataFrame(), pd.DataFrame(), None, generated_at=NOW,
        )

        data, filename = export_report_json(payload)

        parsed = json.loads(data.decode("utf-8"))
        assert parsed["agent_performance"] == []
        assert parsed["summary"]["house_gross_win"] == 100
        assert filename.startswith("junket-report-") and filename.endswith(".json")


class TestTableExports:

    def test_csv(self):
        df = pd.DataFrame({"date": ["2024-01-01"], "rolling": [500.0]})

        data, filename = export_dataframe_csv(df, filename="daily.csv")

        assert filename == "daily.csv"
        assert data.decode("utf-8").splitlines()[0] == "date,rolling"

    def test_excel(self):
        df = pd.DataFrame({"name": ["Chan"], "rolling": [1000.0]})

        data, filename = export_dataframe_excel(df)

        assert filename.endswith(".xlsx")
        assert pd.read_excel(BytesIO(data), engine="openpyxl")["rolling"].tolist() == [1000.0]

    def test_report_workbook_skips_empty_sheets(self):
        data, _ = export_report_excel({
            "daily": pd.DataFrame({"date": ["2024-01-01"]}),
            "agent_performance": pd.DataFrame(),
            "trips": None,
        })

        sheets = pd.read_excel(BytesIO(data), sheet_name=None, engine="openpyxl")
        assert list(sheets) == ["daily"]
