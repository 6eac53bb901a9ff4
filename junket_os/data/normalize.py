"""
Normalization layer: one canonical shape for every record, whatever the fetch path.

The REST API speaks snake_case, the direct database client speaks camelCase,
and some payloads mix both. Every raw record passes through here exactly once;
downstream code only ever sees the canonical snake_case columns.

CRITICAL: All numeric fields are coerced with safe_number / safe_numeric.
One malformed record must never poison a whole summary.
"""
import math
import pandas as pd
import numpy as np
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from junket_os.config import (
    config,
    FIELD_ALIASES,
    SHARING_ALIASES,
    TRIP_STATUS_MAP,
    CASH_TYPE_MAP,
)


# =============================================================================
# CANONICAL COLUMNS
# =============================================================================

AGENT_COLUMNS = ["agent_id", "name", "is_active", "commission_rate", "created_at"]

CUSTOMER_COLUMNS = [
    "customer_id", "name", "agent_id", "agent_name", "is_active",
    "rolling_percentage", "credit_limit", "available_credit",
    "total_rolling", "total_win_loss", "total_buy_in", "total_buy_out",
    "created_at",
]

SHARING_COLUMNS = [f"sharing_{name}" for name in SHARING_ALIASES]

TRIP_COLUMNS = [
    "trip_id", "name", "status", "start_date", "end_date", "trip_date", "trip_ts",
    "agent_id", "agent_ids", "agent_shares", "staff_id", "customer_ids",
    "expenses_total", "currency", "has_sharing",
] + SHARING_COLUMNS

ROLLING_COLUMNS = [
    "record_id", "customer_id", "trip_id", "agent_id", "staff_id",
    "timestamp", "ts", "date", "rolling_amount", "win_loss", "game_type",
]

CASH_COLUMNS = [
    "record_id", "customer_id", "trip_id", "agent_id", "staff_id",
    "timestamp", "ts", "date", "transaction_type", "amount",
]


# =============================================================================
# SAFE COERCION
# =============================================================================

def safe_number(value: Any, default: float = 0.0) -> float:
    """
    Coerce anything to a finite float.

    None, NaN, infinities, empty strings and unparseable strings all become
    `default`. Thousands separators in strings are tolerated.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def safe_numeric(series: pd.Series) -> pd.Series:
    """Vectorised safe_number; element-wise so both paths always agree."""
    if pd.api.types.is_float_dtype(series) or pd.api.types.is_integer_dtype(series):
        values = series.astype(float)
        return values.replace([np.inf, -np.inf], np.nan).fillna(0.0)
    return series.map(safe_number).astype(float)


def _as_id(value: Any) -> Optional[str]:
    """Reference ids are compared as strings; blanks mean 'no reference'."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def pick(record: Mapping[str, Any], aliases: Sequence[str], default: Any = None) -> Any:
    """
    Return the first non-null value among `aliases`.

    Aliases are ordered snake_case first, so an explicit snake_case value wins
    over its camelCase twin on the same record.
    """
    for key in aliases:
        if key in record and not _is_missing(record[key]):
            return record[key]
    return default


def _pick_field(record: Mapping[str, Any], collection: str, field: str, default: Any = None) -> Any:
    return pick(record, FIELD_ALIASES[collection][field], default)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "active")
    return bool(value)


def _active_flag(record: Mapping[str, Any], collection: str) -> bool:
    """Explicit active flag wins, then status == 'active'; no information means active."""
    aliases = FIELD_ALIASES[collection]
    flag = pick(record, aliases.get("is_active", []))
    if flag is not None:
        return _as_bool(flag)
    status = pick(record, aliases.get("status", []))
    if status is not None:
        return str(status).strip().lower() == "active"
    return True


# =============================================================================
# TIMESTAMPS
# =============================================================================

def date_part(value: Any) -> Optional[str]:
    """
    Date portion of a raw timestamp, as written by the source.

    No timezone conversion: '2024-01-01T23:30:00-05:00' is bucketed on
    2024-01-01 even though it is 2024-01-02 in UTC.
    """
    if _is_missing(value):
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.strftime("%Y-%m-%d")
    text = str(value).strip()
    if not text:
        return None
    head = text.split("T")[0].split(" ")[0]
    return head or None


def parse_timestamps(values: pd.Series) -> pd.Series:
    """Parse raw timestamps to tz-aware UTC; unparseable values become NaT."""
    if len(values) == 0:
        return pd.Series(pd.NaT, index=values.index, dtype="datetime64[ns, UTC]")
    return pd.to_datetime(values, errors="coerce", utc=True, format="ISO8601")


def _finish_frame(rows: List[Dict[str, Any]], columns: List[str],
                  numeric_cols: Iterable[str] = (),
                  timestamp_col: Optional[str] = None,
                  ts_col: str = "ts") -> pd.DataFrame:
    df = pd.DataFrame(rows, columns=columns)
    for col in numeric_cols:
        df[col] = safe_numeric(df[col])
    if timestamp_col is not None:
        df[ts_col] = parse_timestamps(df[timestamp_col])
    return df.reset_index(drop=True)


# =============================================================================
# AGENTS / CUSTOMERS
# =============================================================================

def normalize_agents(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Canonical agents frame."""
    rows = []
    for raw in records or []:
        rows.append({
            "agent_id": _as_id(_pick_field(raw, "agents", "agent_id")),
            "name": _pick_field(raw, "agents", "name", ""),
            "is_active": _active_flag(raw, "agents"),
            "commission_rate": _pick_field(raw, "agents", "commission_rate"),
            "created_at": _pick_field(raw, "agents", "created_at"),
        })
    return _finish_frame(rows, AGENT_COLUMNS, numeric_cols=["commission_rate"])


def normalize_customers(records: Iterable[Mapping[str, Any]],
                        default_rate: Optional[float] = None) -> pd.DataFrame:
    """
    Canonical customers frame.

    rolling_percentage falls back to the default commission rate (1.4%)
    when absent, zero or malformed.
    """
    if default_rate is None:
        default_rate = config.default_commission_rate

    rows = []
    for raw in records or []:
        rate = safe_number(_pick_field(raw, "customers", "rolling_percentage"))
        rows.append({
            "customer_id": _as_id(_pick_field(raw, "customers", "customer_id")),
            "name": _pick_field(raw, "customers", "name", ""),
            "agent_id": _as_id(_pick_field(raw, "customers", "agent_id")),
            "agent_name": _pick_field(raw, "customers", "agent_name", ""),
            "is_active": _active_flag(raw, "customers"),
            "rolling_percentage": rate if rate > 0 else default_rate,
            "credit_limit": _pick_field(raw, "customers", "credit_limit"),
            "available_credit": _pick_field(raw, "customers", "available_credit"),
            "total_rolling": _pick_field(raw, "customers", "total_rolling"),
            "total_win_loss": _pick_field(raw, "customers", "total_win_loss"),
            "total_buy_in": _pick_field(raw, "customers", "total_buy_in"),
            "total_buy_out": _pick_field(raw, "customers", "total_buy_out"),
            "created_at": _pick_field(raw, "customers", "created_at"),
        })
    return _finish_frame(rows, CUSTOMER_COLUMNS, numeric_cols=[
        "rolling_percentage", "credit_limit", "available_credit",
        "total_rolling", "total_win_loss", "total_buy_in", "total_buy_out",
    ])


# =============================================================================
# TRIPS
# =============================================================================

def extract_sharing(raw_trip: Mapping[str, Any]) -> Optional[Dict[str, float]]:
    """
    Pull the authoritative sharing breakdown off a trip, if it has one.

    Accepts `sharing` or `trip_sharing`, as a mapping or a one-element list
    (the shape of an embedded join). A breakdown counts as present only when
    it carries at least one recognised field; every field is coerced.
    """
    sharing = pick(raw_trip, ["sharing", "trip_sharing", "tripSharing"])
    if isinstance(sharing, list):
        sharing = sharing[0] if sharing else None
    if not isinstance(sharing, Mapping):
        return None

    present = any(
        pick(sharing, aliases) is not None for aliases in SHARING_ALIASES.values()
    )
    if not present:
        return None

    return {
        name: safe_number(pick(sharing, aliases))
        for name, aliases in SHARING_ALIASES.items()
    }


def _trip_expenses_total(raw_trip: Mapping[str, Any]) -> float:
    expenses = pick(raw_trip, ["expenses", "trip_expenses", "tripExpenses"], [])
    if not isinstance(expenses, list):
        return 0.0
    total = 0.0
    for item in expenses:
        if isinstance(item, Mapping):
            total += safe_number(item.get("amount"))
        else:
            total += safe_number(item)
    return total


def _trip_customer_ids(raw_trip: Mapping[str, Any]) -> List[str]:
    entries = pick(raw_trip, ["customers", "trip_customers", "tripCustomers"], [])
    ids = []
    if not isinstance(entries, list):
        return ids
    for entry in entries:
        if isinstance(entry, Mapping):
            value = pick(entry, ["customer_id", "customerId", "id"])
        else:
            value = entry
        cid = _as_id(value)
        if cid is not None and cid not in ids:
            ids.append(cid)
    return ids


def _trip_agent_shares(raw_trip: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Trip agents as [{'agent_id', 'agent_name', 'share_percentage'}]."""
    entries = pick(raw_trip, ["agents", "trip_agents", "tripAgents"], [])
    shares = []
    if not isinstance(entries, list):
        return shares
    for entry in entries:
        if isinstance(entry, Mapping):
            agent_id = _as_id(pick(entry, ["agent_id", "agentId", "id"]))
            if agent_id is None:
                continue
            shares.append({
                "agent_id": agent_id,
                "agent_name": pick(entry, ["agent_name", "agentName", "name"], ""),
                "share_percentage": safe_number(
                    pick(entry, ["share_percentage", "sharePercentage"])
                ),
            })
        else:
            agent_id = _as_id(entry)
            if agent_id is not None:
                shares.append({"agent_id": agent_id, "agent_name": "", "share_percentage": 0.0})
    return shares


def normalize_trip_status(value: Any) -> str:
    if _is_missing(value):
        return "planned"
    text = str(value).strip().lower()
    return TRIP_STATUS_MAP.get(text, text)


def normalize_trips(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """
    Canonical trips frame with nested expenses, agents and sharing flattened.

    A trip id seen more than once keeps its first record.
    """
    rows = []
    for raw in records or []:
        start = _pick_field(raw, "trips", "start_date")
        trip_date = start
        if trip_date is None:
            trip_date = _pick_field(raw, "trips", "date")
        if trip_date is None:
            trip_date = _pick_field(raw, "trips", "created_at")

        shares = _trip_agent_shares(raw)
        agent_id = _as_id(_pick_field(raw, "trips", "agent_id"))
        agent_ids = [s["agent_id"] for s in shares]
        if agent_id is not None and agent_id not in agent_ids:
            agent_ids.insert(0, agent_id)

        sharing = extract_sharing(raw)
        row = {
            "trip_id": _as_id(_pick_field(raw, "trips", "trip_id")),
            "name": _pick_field(raw, "trips", "name", ""),
            "status": normalize_trip_status(_pick_field(raw, "trips", "status")),
            "start_date": start,
            "end_date": _pick_field(raw, "trips", "end_date"),
            "trip_date": trip_date,
            "agent_id": agent_id,
            "agent_ids": agent_ids,
            "agent_shares": shares,
            "staff_id": _as_id(_pick_field(raw, "trips", "staff_id")),
            "customer_ids": _trip_customer_ids(raw),
            "expenses_total": _trip_expenses_total(raw),
            "currency": _pick_field(raw, "trips", "currency", "HKD"),
            "has_sharing": sharing is not None,
        }
        for name in SHARING_ALIASES:
            row[f"sharing_{name}"] = sharing[name] if sharing else 0.0
        rows.append(row)

    df = _finish_frame(
        rows, TRIP_COLUMNS,
        numeric_cols=["expenses_total"] + SHARING_COLUMNS,
        timestamp_col="trip_date", ts_col="trip_ts",
    ).astype({"has_sharing": bool})
    repeated = df["trip_id"].notna() & df["trip_id"].duplicated()
    return df[~repeated].reset_index(drop=True)


# =============================================================================
# RECORDS
# =============================================================================

def _embedded_agent(raw: Mapping[str, Any]) -> Optional[str]:
    """Agent id from an embedded customer object, when the record has one."""
    customer = raw.get("customer")
    if isinstance(customer, Mapping):
        return _as_id(pick(customer, ["agent_id", "agentId"]))
    return None


def normalize_rolling_records(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Canonical rolling records frame."""
    rows = []
    for raw in records or []:
        timestamp = _pick_field(raw, "rolling_records", "timestamp")
        agent_id = _as_id(_pick_field(raw, "rolling_records", "agent_id"))
        rows.append({
            "record_id": _as_id(_pick_field(raw, "rolling_records", "record_id")),
            "customer_id": _as_id(_pick_field(raw, "rolling_records", "customer_id")),
            "trip_id": _as_id(_pick_field(raw, "rolling_records", "trip_id")),
            "agent_id": agent_id if agent_id is not None else _embedded_agent(raw),
            "staff_id": _as_id(_pick_field(raw, "rolling_records", "staff_id")),
            "timestamp": timestamp,
            "date": date_part(timestamp),
            "rolling_amount": _pick_field(raw, "rolling_records", "rolling_amount"),
            "win_loss": _pick_field(raw, "rolling_records", "win_loss"),
            "game_type": _pick_field(raw, "rolling_records", "game_type", ""),
        })
    return _finish_frame(rows, ROLLING_COLUMNS,
                         numeric_cols=["rolling_amount", "win_loss"],
                         timestamp_col="timestamp")


def normalize_cash_type(value: Any) -> Optional[str]:
    if _is_missing(value):
        return None
    return CASH_TYPE_MAP.get(str(value).strip().lower())


def normalize_cash_records(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """
    Canonical buy-in/out frame.

    `cash-out` is folded into `buy-out`. Amounts are stored non-negative;
    direction is carried by transaction_type only.
    """
    rows = []
    for raw in records or []:
        timestamp = _pick_field(raw, "cash_records", "timestamp")
        agent_id = _as_id(_pick_field(raw, "cash_records", "agent_id"))
        rows.append({
            "record_id": _as_id(_pick_field(raw, "cash_records", "record_id")),
            "customer_id": _as_id(_pick_field(raw, "cash_records", "customer_id")),
            "trip_id": _as_id(_pick_field(raw, "cash_records", "trip_id")),
            "agent_id": agent_id if agent_id is not None else _embedded_agent(raw),
            "staff_id": _as_id(_pick_field(raw, "cash_records", "staff_id")),
            "timestamp": timestamp,
            "date": date_part(timestamp),
            "transaction_type": normalize_cash_type(
                _pick_field(raw, "cash_records", "transaction_type")
            ),
            "amount": _pick_field(raw, "cash_records", "amount"),
        })
    df = _finish_frame(rows, CASH_COLUMNS, numeric_cols=["amount"], timestamp_col="timestamp")
    df["amount"] = df["amount"].abs()
    return df


def merge_cash_collections(*collections: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Concatenate cash collections, keeping the first record seen per id."""
    merged = []
    seen = set()
    for records in collections:
        for raw in records or []:
            record_id = _as_id(_pick_field(raw, "cash_records", "record_id"))
            if record_id is not None:
                if record_id in seen:
                    continue
                seen.add(record_id)
            merged.append(raw)
    return merged
