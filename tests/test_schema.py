"""
Tests for schema validation.
"""
import pytest
import pandas as pd
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.data.schema import (
    validate_required_columns,
    check_optional_columns,
    validate_schema,
    get_column_info,
    SchemaValidationError,
    find_blank_keys,
    validate_snapshot,
    check_record_links,
)
from junket_os.data.loader import build_snapshot, empty_snapshot
from junket_os.config import REQUIRED_COLUMNS


class TestValidateRequiredColumns:
    """Tests for required column validation."""

    def test_all_columns_present(self):
        """All required columns present should return valid."""
        df = pd.DataFrame({
            "customer_id": ["c1"],
            "trip_id": ["t1"],
            "timestamp": ["2024-01-01T10:00:00Z"],
            "rolling_amount": [1000.0],
            "win_loss": [-50.0],
        })

        is_valid, missing = validate_required_columns(df, "rolling_records")

        assert is_valid is True
        assert missing == []

    def test_missing_columns(self):
        """Missing columns should be detected."""
        df = pd.DataFrame({
            "customer_id": ["c1"],
            # Missing other columns
        })

        is_valid, missing = validate_required_columns(df, "cash_records")

        assert is_valid is False
        assert "transaction_type" in missing
        assert "amount" in missing

    def test_unknown_table(self):
        """Unknown table name should pass (no requirements)."""
        df = pd.DataFrame({"any_col": [1, 2, 3]})

        is_valid, missing = validate_required_columns(df, "unknown_table")

        assert is_valid is True
        assert missing == []

    def test_normalized_frames_always_valid(self):
        """Normalization emits every canonical column, even for empty input."""
        snapshot = empty_snapshot()
        frames = {
            "agents": snapshot.agents,
            "customers": snapshot.customers,
            "trips": snapshot.trips,
            "rolling_records": snapshot.rolling_records,
            "cash_records": snapshot.cash_records,
        }

        for name in REQUIRED_COLUMNS:
            is_valid, missing = validate_required_columns(frames[name], name)
            assert is_valid, (name, missing)


class TestValidateSchema:
    """Tests for full schema validation."""

    def test_strict_mode_raises(self):
        """Strict mode should raise on missing columns."""
        df = pd.DataFrame({
            "customer_id": ["c1"],
        })

        with pytest.raises(SchemaValidationError):
            validate_schema(df, "customers", strict=True)

    def test_non_strict_returns_result(self):
        """Non-strict mode should return result dict."""
        df = pd.DataFrame({
            "customer_id": ["c1"],
        })

        result = validate_schema(df, "customers", strict=False)

        assert result["is_valid"] is False
        assert "rolling_percentage" in result["missing_required"]
        assert result["total_rows"] == 1
        assert result["total_columns"] == 1


class TestCheckOptionalColumns:
    """Tests for optional column checking."""

    def test_returns_missing_optional(self):
        """Should return list of missing optional columns."""
        df = pd.DataFrame({
            "trip_id": ["t1"],
            # Missing optional columns like agent_ids, currency, etc.
        })

        missing = check_optional_columns(df, "trips")

        assert "agent_ids" in missing
        assert "currency" in missing

    def test_empty_for_unknown_table(self):
        """Unknown table should return empty list."""
        df = pd.DataFrame({"col": [1]})

        missing = check_optional_columns(df, "unknown")

        assert missing == []


class TestColumnInfo:

    def test_handles_list_columns(self):
        """Trip frames carry list-valued columns; unique counts must not fail on them."""
        snapshot = build_snapshot({
            "trips": [{"id": "t1", "agents": [{"agent_id": "A"}]}, {"id": "t2"}],
        })

        info = get_column_info(snapshot.trips).set_index("column")

        assert info.loc["trip_id", "non_null"] == 2
        assert info.loc["agent_ids", "unique"] == 2


def linked_snapshot():
    return build_snapshot({
        "customers": [{"id": "c1", "agent_id": "A"}],
        "trips": [{"id": "t1", "agent_id": "A"}],
        "rolling_records": [
            {"customer_id": "c1", "trip_id": "t1", "rolling_amount": 100, "timestamp": "2024-01-01T10:00:00Z"},
            {"customer_id": "ghost", "trip_id": "t9", "rolling_amount": 100},
        ],
        "buy_in_out_records": [
            {"id": "x1", "customer_id": "c1", "transaction_type": "refund", "amount": 5,
             "timestamp": "2024-01-01T09:00:00Z"},
        ],
    })


class TestSnapshotChecks:

    def test_blank_keys(self):
        df = pd.DataFrame({"customer_id": ["c1", None, None]})

        assert find_blank_keys(df, "customers") == {"customer_id": 2}
        assert find_blank_keys(df.iloc[:1], "customers") == {}

    def test_validate_snapshot_covers_every_collection(self):
        results = validate_snapshot(linked_snapshot())

        assert set(results) == set(REQUIRED_COLUMNS)
        assert all(r["is_valid"] for r in results.values())
        assert results["rolling_records"]["blank_keys"] == {"ts": 1}
        assert results["cash_records"]["blank_keys"] == {"transaction_type": 1}

    def test_record_links(self):
        links = check_record_links(linked_snapshot())

        assert links["rolling_unknown_customer"] == 1
        assert links["rolling_unknown_trip"] == 1
        assert links["rolling_no_timestamp"] == 1
        assert links["cash_unknown_customer"] == 0
        assert links["cash_unknown_trip"] == 0
        assert links["cash_unknown_type"] == 1
