"""
Building new gaming records for the store.

Validation mirrors the backend's own checks so a bad entry is rejected in
the form instead of round-tripping to the API.
"""
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from junket_os.data.normalize import safe_number, normalize_cash_type


class RecordValidationError(Exception):
    """Raised when a new record is missing fields or has invalid values."""
    pass


VALID_CASH_TYPES = ("buy-in", "buy-out")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require(value: Any, label: str) -> str:
    if value is None or not str(value).strip():
        raise RecordValidationError(f"{label} is required")
    return str(value).strip()


def build_rolling_record(customer_id: str,
                         rolling_amount: Any,
                         win_loss: Any = 0,
                         trip_id: Optional[str] = None,
                         staff_id: Optional[str] = None,
                         agent_id: Optional[str] = None,
                         game_type: str = "baccarat",
                         venue: str = "",
                         notes: str = "",
                         timestamp: Optional[str] = None) -> Dict[str, Any]:
    """New rolling record, snake_case, ready for store.save('rolling_records', ...)."""
    customer_id = _require(customer_id, "Customer")

    amount = safe_number(rolling_amount, default=float("nan"))
    if math.isnan(amount):
        raise RecordValidationError("Rolling amount must be a number")
    if amount < 0:
        raise RecordValidationError("Rolling amount cannot be negative")

    result = safe_number(win_loss, default=float("nan"))
    if math.isnan(result):
        raise RecordValidationError("Win/loss must be a number")

    return {
        "id": str(uuid.uuid4()),
        "customer_id": customer_id,
        "trip_id": trip_id or None,
        "staff_id": staff_id or None,
        "agent_id": agent_id or None,
        "rolling_amount": amount,
        "win_loss": result,
        "game_type": game_type,
        "venue": venue,
        "notes": notes,
        "recorded_at": timestamp or _now_iso(),
    }


def build_cash_record(customer_id: str,
                      transaction_type: str,
                      amount: Any,
                      trip_id: Optional[str] = None,
                      staff_id: Optional[str] = None,
                      venue: str = "",
                      notes: str = "",
                      timestamp: Optional[str] = None) -> Dict[str, Any]:
    """New buy-in/buy-out record, ready for store.save('buy_in_out_records', ...)."""
    customer_id = _require(customer_id, "Customer")

    canonical_type = normalize_cash_type(transaction_type)
    if canonical_type not in VALID_CASH_TYPES:
        raise RecordValidationError(
            f"Invalid transaction type: {transaction_type!r} (expected one of {', '.join(VALID_CASH_TYPES)})"
        )

    value = safe_number(amount)
    if value <= 0:
        raise RecordValidationError("Amount must be greater than zero")

    return {
        "id": str(uuid.uuid4()),
        "customer_id": customer_id,
        "trip_id": trip_id or None,
        "staff_id": staff_id or None,
        "transaction_type": canonical_type,
        "amount": value,
        "venue": venue,
        "notes": notes,
        "timestamp": timestamp or _now_iso(),
    }
