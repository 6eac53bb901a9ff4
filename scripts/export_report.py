#!/usr/bin/env python
"""
Export a report from the command line, same content as the Reports page.

Usage:
    python scripts/export_report.py
    python scripts/export_report.py --days 30 --agent-id a1 --format xlsx
    python scripts/export_report.py --backend api --output reports/
"""
import argparse
import logging
import sys
from pathlib import Path

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.config import config, ROLES
from junket_os.data.store import get_store, LocalStore, StoreConnectionError
from junket_os.data.loader import fetch_snapshot
from junket_os.metrics.filters import ViewFilter, apply_view_filter
from junket_os.metrics.aggregator import (
    compute_summary, get_top_customers, get_agent_performance, build_trip_ledger,
)
from junket_os.metrics.daily import get_daily_chart_data
from junket_os.exports import build_report_payload, export_report_json, export_report_excel


def main():
    parser = argparse.ArgumentParser(description="Export a metrics report")
    parser.add_argument("--data-dir", type=str, default=None, help="Override data directory (local store)")
    parser.add_argument("--backend", choices=["local", "api"], default=None, help="Store backend")
    parser.add_argument("--role", choices=list(ROLES), default="admin", help="Viewer role")
    parser.add_argument("--agent-id", type=str, default=None, help="Agent id (agent role or drill-down)")
    parser.add_argument("--staff-id", type=str, default=None, help="Staff id (staff role)")
    parser.add_argument("--days", type=int, default=None, help="Only the last N days")
    parser.add_argument("--top", type=int, default=config.top_customers_reports, help="Top customers to list")
    parser.add_argument("--format", choices=["json", "xlsx"], default="json", help="Output format")
    parser.add_argument("--output", type=str, default=".", help="Output directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else config.log_level.upper())

    if args.data_dir:
        store = LocalStore(Path(args.data_dir) / "store")
    else:
        store = get_store(args.backend)

    try:
        snapshot = fetch_snapshot(store)
    except StoreConnectionError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    view = ViewFilter(
        role=args.role,
        agent_id=args.agent_id,
        date_range_days=args.days,
        staff_id=args.staff_id,
    )
    filtered = apply_view_filter(snapshot, view)
    summary = compute_summary(filtered)
    daily = get_daily_chart_data(filtered)
    top = get_top_customers(filtered, n=args.top)
    agents = get_agent_performance(filtered)

    if args.format == "json":
        payload = build_report_payload(
            summary, filtered, daily, top, agents,
            date_range_days=args.days,
            selected_agent=args.agent_id,
            user_role=args.role,
        )
        data, filename = export_report_json(payload)
    else:
        data, filename = export_report_excel({
            "daily": daily,
            "top_customers": top,
            "agent_performance": agents,
            "trips": build_trip_ledger(filtered),
        })

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    path.write_bytes(data)

    print(f"✓ Report written to {path}")
    print(f"  Rolling: {summary.customer_total_rolling:,.0f}")
    print(f"  House final profit: {summary.house_final_profit:,.0f}")


if __name__ == "__main__":
    main()
