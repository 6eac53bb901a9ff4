"""
Export utilities for tables and reports.
"""
import pandas as pd
import json
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from io import BytesIO

from junket_os.data.loader import Snapshot
from junket_os.metrics.aggregator import MetricsSummary


def _stamp(fmt: str = "%Y%m%d_%H%M%S") -> str:
    return datetime.now().strftime(fmt)


def export_dataframe_csv(df: pd.DataFrame, filename: Optional[str] = None) -> tuple:
    """
    Export dataframe to CSV bytes.

    Returns: (csv_bytes, filename)
    """
    if filename is None:
        filename = f"export_{_stamp()}.csv"

    csv_bytes = df.to_csv(index=False).encode('utf-8')

    return csv_bytes, filename


def export_dataframe_excel(df: pd.DataFrame, filename: Optional[str] = None,
                           sheet_name: str = "Data") -> tuple:
    """
    Export dataframe to Excel bytes.

    Returns: (excel_bytes, filename)
    """
    if filename is None:
        filename = f"export_{_stamp()}.xlsx"

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)

    return buffer.getvalue(), filename


def export_report_excel(sheets: Dict[str, pd.DataFrame],
                        filename: Optional[str] = None) -> tuple:
    """
    Several report tables in one workbook, one sheet each. Empty tables are skipped.
    """
    if filename is None:
        filename = f"junket-report-{_stamp('%Y-%m-%d')}.xlsx"

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        written = 0
        for name, df in sheets.items():
            if df is not None and len(df) > 0:
                df.to_excel(writer, sheet_name=name[:31], index=False)
                written += 1
        if written == 0:
            pd.DataFrame().to_excel(writer, sheet_name="empty", index=False)

    return buffer.getvalue(), filename


# =============================================================================
# JSON REPORT
# =============================================================================

def _records(df: Optional[pd.DataFrame]) -> list:
    """DataFrame -> list of plain dicts (numpy scalars and NaN made JSON-safe)."""
    if df is None or len(df) == 0:
        return []
    return json.loads(df.to_json(orient="records", date_format="iso"))


def build_report_payload(summary: MetricsSummary,
                         filtered: Snapshot,
                         daily: pd.DataFrame,
                         top_customers: pd.DataFrame,
                         agent_performance: pd.DataFrame,
                         date_range_days: Optional[int] = None,
                         selected_agent: Optional[str] = None,
                         user_role: str = "admin",
                         generated_at: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Report document: filter context, summary, daily series, top customers,
    agent performance, and the row counts behind them.

    `filtered` is the snapshot after the view filter was applied.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    return {
        "generated_at": generated_at.isoformat(),
        "date_range": date_range_days,
        "selected_agent": selected_agent,
        "user_role": user_role,
        "summary": summary.to_dict(),
        "daily_data": _records(daily),
        "top_customers": _records(top_customers),
        "agent_performance": _records(agent_performance),
        "raw_data": {
            "customers": len(filtered.customers),
            "trips": len(filtered.trips),
            "rolling_records": len(filtered.rolling_records),
            "transaction_records": len(filtered.cash_records),
        },
    }


def export_report_json(payload: Dict[str, Any], filename: Optional[str] = None) -> tuple:
    """
    Serialize a report payload.

    Returns: (json_bytes, filename)
    """
    if filename is None:
        filename = f"junket-report-{_stamp('%Y-%m-%d')}.json"

    json_bytes = json.dumps(payload, indent=2, default=str).encode('utf-8')

    return json_bytes, filename
