"""
Schema and integrity checks for the canonical collection frames.

Normalization always emits the canonical columns, so a missing required
column means the frame was built some other way. The checks that matter
in practice are blank keys and records that point at customers or trips
missing from the snapshot.
"""
import pandas as pd
import streamlit as st
from typing import List, Tuple, Dict

from junket_os.config import REQUIRED_COLUMNS, OPTIONAL_COLUMNS, KEY_COLUMNS


class SchemaValidationError(Exception):
    """Raised in strict mode when a frame lacks required columns."""
    pass


def snapshot_frames(snapshot) -> Dict[str, pd.DataFrame]:
    """The snapshot's frames keyed by collection name."""
    return {name: getattr(snapshot, name) for name in REQUIRED_COLUMNS}


def validate_required_columns(df: pd.DataFrame, table_name: str) -> Tuple[bool, List[str]]:
    """(is_valid, missing_columns); unknown collections have no requirements."""
    required = REQUIRED_COLUMNS.get(table_name, [])
    missing = [col for col in required if col not in df.columns]
    return not missing, missing


def check_optional_columns(df: pd.DataFrame, table_name: str) -> List[str]:
    return [col for col in OPTIONAL_COLUMNS.get(table_name, []) if col not in df.columns]


def find_blank_keys(df: pd.DataFrame, table_name: str) -> Dict[str, int]:
    """Key column -> number of rows where it is blank. Only columns with blanks."""
    blanks = {}
    for col in KEY_COLUMNS.get(table_name, []):
        if col not in df.columns:
            continue
        count = int(df[col].isna().sum())
        if count:
            blanks[col] = count
    return blanks


def validate_schema(df: pd.DataFrame, table_name: str, strict: bool = True) -> Dict:
    """
    Validate one collection frame.

    Args:
        df: Normalized collection frame
        table_name: Collection name (agents, customers, trips, rolling_records, cash_records)
        strict: Raise SchemaValidationError when required columns are missing

    Returns:
        Dict with is_valid, missing_required, missing_optional, blank_keys,
        total_columns and total_rows. is_valid covers columns only; blank
        keys are reported separately.
    """
    is_valid, missing_required = validate_required_columns(df, table_name)

    if strict and not is_valid:
        raise SchemaValidationError(
            f"{table_name} is missing required columns: {missing_required}"
        )

    return {
        "is_valid": is_valid,
        "missing_required": missing_required,
        "missing_optional": check_optional_columns(df, table_name),
        "blank_keys": find_blank_keys(df, table_name),
        "total_columns": len(df.columns),
        "total_rows": len(df),
    }


def validate_snapshot(snapshot) -> Dict[str, Dict]:
    """Non-strict validate_schema for every collection in the snapshot."""
    return {
        name: validate_schema(df, name, strict=False)
        for name, df in snapshot_frames(snapshot).items()
    }


def check_record_links(snapshot) -> Dict[str, int]:
    """Counts of rolling and cash records with broken or missing references."""
    customer_ids = set(snapshot.customers["customer_id"].dropna())
    trip_ids = set(snapshot.trips["trip_id"].dropna())

    counts = {}
    for prefix, records in (("rolling", snapshot.rolling_records), ("cash", snapshot.cash_records)):
        counts[f"{prefix}_unknown_customer"] = int((~records["customer_id"].isin(customer_ids)).sum())
        counts[f"{prefix}_unknown_trip"] = int(
            (records["trip_id"].notna() & ~records["trip_id"].isin(trip_ids)).sum()
        )
        counts[f"{prefix}_no_timestamp"] = int(records["ts"].isna().sum())
    counts["cash_unknown_type"] = int(snapshot.cash_records["transaction_type"].isna().sum())
    return counts


def display_validation_result(result: Dict, table_name: str):
    """Render one validate_schema result."""
    if result["is_valid"] and not result["blank_keys"]:
        st.success(f"{table_name}: OK ({result['total_rows']:,} rows)")
    elif not result["is_valid"]:
        st.error(f"{table_name}: missing required columns {result['missing_required']}")
    else:
        blanks = ", ".join(f"{count:,} without {col}" for col, count in result["blank_keys"].items())
        st.warning(f"{table_name}: {result['total_rows']:,} rows, {blanks}")

    if result["missing_optional"]:
        st.caption(f"{table_name}: optional columns absent: {', '.join(result['missing_optional'])}")


def get_column_info(df: pd.DataFrame) -> pd.DataFrame:
    """Dtype, non-null count, null % and distinct count per column."""
    rows = []
    for col in df.columns:
        series = df[col]
        rows.append({
            "column": col,
            "dtype": str(series.dtype),
            "non_null": int(series.notna().sum()),
            "null_pct": f"{series.isna().mean() * 100:.1f}%" if len(series) else "0.0%",
            # list-valued trip columns are unhashable
            "unique": series.astype(str).nunique(),
        })
    return pd.DataFrame(rows)
