"""
Application configuration management.
"""
import os
from pathlib import Path
from dataclasses import dataclass, field


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir:
        return Path(env_dir)
    return Path("./data")


@dataclass
class AppConfig:
    """Application configuration with environment overrides."""

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)

    # Environment
    app_env: str = field(default_factory=lambda: os.getenv("APP_ENV", "dev"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Remote store
    store_backend: str = field(default_factory=lambda: os.getenv("STORE_BACKEND", "local"))
    api_base_url: str = field(default_factory=lambda: os.getenv("API_BASE_URL", "http://localhost:3001/api"))
    api_token: str = field(default_factory=lambda: os.getenv("API_TOKEN", ""))
    request_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "5")))

    # Refresh / cache settings
    refresh_interval_seconds: int = field(default_factory=lambda: int(os.getenv("REFRESH_INTERVAL_SECONDS", "30")))
    cache_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "30")))

    # Business logic defaults
    default_commission_rate: float = field(default_factory=lambda: float(os.getenv("DEFAULT_COMMISSION_RATE", "1.4")))
    recent_activity_hours: int = field(default_factory=lambda: int(os.getenv("RECENT_ACTIVITY_HOURS", "24")))

    # Top-N sizes per view
    top_customers_dashboard: int = 5
    top_customers_reports: int = 10

    @property
    def store_dir(self) -> Path:
        return self.data_dir / "store"

    @property
    def is_prod(self) -> bool:
        return self.app_env.lower() == "prod"


# Global config instance
config = AppConfig()


# Collection names in the remote store
COLLECTIONS = {
    "agents": "agents",
    "customers": "customers",
    "trips": "trips",
    "rolling_records": "rolling_records",
    "buy_in_out_records": "buy_in_out_records",
    "transactions": "transactions",
}

# Cash movements live in two collections and are merged on load
CASH_COLLECTIONS = ["buy_in_out_records", "transactions"]

# REST endpoints per collection
API_ENDPOINTS = {
    "agents": "/agents",
    "customers": "/customers",
    "trips": "/trips",
    "rolling_records": "/rolling-records",
    "buy_in_out_records": "/buy-in-out-records",
    "transactions": "/transactions",
}

# Roles understood by the view filter
ROLES = ("admin", "agent", "staff")

# Trip status spellings from the store -> canonical status
TRIP_STATUS_MAP = {
    "planned": "planned",
    "ongoing": "ongoing",
    "in-progress": "ongoing",
    "in_progress": "ongoing",
    "active": "active",
    "completed": "completed",
    "cancelled": "cancelled",
}

# Cash transaction type spellings -> canonical type
CASH_TYPE_MAP = {
    "buy-in": "buy-in",
    "buy_in": "buy-in",
    "buyin": "buy-in",
    "buy-out": "buy-out",
    "buy_out": "buy-out",
    "buyout": "buy-out",
    "cash-out": "buy-out",
    "cash_out": "buy-out",
}


# =============================================================================
# FIELD ALIASES
# =============================================================================
# Canonical column -> accepted raw spellings, in order of preference.
# snake_case spellings come first so they win when both are present.

FIELD_ALIASES = {
    "agents": {
        "agent_id": ["id", "agent_id", "agentId"],
        "name": ["name", "agent_name", "agentName"],
        "status": ["status"],
        "commission_rate": ["commission_rate", "commissionRate"],
        "created_at": ["created_at", "createdAt"],
    },
    "customers": {
        "customer_id": ["id", "customer_id", "customerId"],
        "name": ["name", "customer_name", "customerName"],
        "agent_id": ["agent_id", "agentId"],
        "agent_name": ["agent_name", "agentName"],
        "status": ["status"],
        "is_active": ["is_active", "isActive"],
        "rolling_percentage": ["rolling_percentage", "rollingPercentage"],
        "credit_limit": ["credit_limit", "creditLimit"],
        "available_credit": ["available_credit", "availableCredit"],
        "total_rolling": ["total_rolling", "totalRolling"],
        "total_win_loss": ["total_win_loss", "totalWinLoss"],
        "total_buy_in": ["total_buy_in", "totalBuyIn"],
        "total_buy_out": ["total_buy_out", "totalBuyOut"],
        "created_at": ["created_at", "createdAt"],
    },
    "trips": {
        "trip_id": ["id", "trip_id", "tripId"],
        "name": ["trip_name", "name", "tripName"],
        "status": ["status"],
        "start_date": ["start_date", "startDate"],
        "end_date": ["end_date", "endDate"],
        "date": ["date"],
        "agent_id": ["agent_id", "agentId"],
        "staff_id": ["staff_id", "staffId"],
        "currency": ["currency"],
        "created_at": ["created_at", "createdAt"],
    },
    "rolling_records": {
        "record_id": ["id", "record_id", "recordId"],
        "customer_id": ["customer_id", "customerId"],
        "trip_id": ["trip_id", "tripId"],
        "agent_id": ["agent_id", "agentId"],
        "staff_id": ["staff_id", "staffId"],
        "rolling_amount": ["rolling_amount", "rollingAmount", "amount"],
        "win_loss": ["win_loss", "winLoss"],
        "game_type": ["game_type", "gameType"],
        "timestamp": [
            "datetime", "recorded_at", "recordedAt", "session_start_time",
            "sessionStartTime", "created_at", "createdAt", "timestamp",
        ],
    },
    "cash_records": {
        "record_id": ["id", "record_id", "recordId"],
        "customer_id": ["customer_id", "customerId"],
        "trip_id": ["trip_id", "tripId"],
        "agent_id": ["agent_id", "agentId"],
        "staff_id": ["staff_id", "staffId", "recorded_by_staff_id", "recordedByStaffId"],
        "transaction_type": ["transaction_type", "transactionType", "type"],
        "amount": ["amount"],
        "timestamp": ["timestamp", "created_at", "createdAt", "updated_at", "updatedAt"],
    },
}

# Trip sharing breakdown fields (canonical -> spellings)
SHARING_ALIASES = {
    "total_rolling": ["total_rolling", "totalRolling"],
    "total_win_loss": ["total_win_loss", "totalWinLoss"],
    "total_expenses": ["total_expenses", "totalExpenses"],
    "total_rolling_commission": ["total_rolling_commission", "totalRollingCommission"],
    "total_buy_in": ["total_buy_in", "totalBuyIn"],
    "total_buy_out": ["total_buy_out", "totalBuyOut"],
    "net_cash_flow": ["net_cash_flow", "netCashFlow"],
    "net_result": ["net_result", "netResult"],
    "total_agent_share": ["total_agent_share", "totalAgentShare"],
    "company_share": ["company_share", "companyShare"],
}


# =============================================================================
# CANONICAL COLUMNS
# =============================================================================

# Required columns (hard fail if missing)
REQUIRED_COLUMNS = {
    "agents": ["agent_id", "name", "is_active"],
    "customers": ["customer_id", "agent_id", "is_active", "rolling_percentage"],
    "trips": ["trip_id", "status", "trip_date", "customer_ids", "expenses_total", "has_sharing"],
    "rolling_records": ["customer_id", "trip_id", "timestamp", "rolling_amount", "win_loss"],
    "cash_records": ["customer_id", "trip_id", "timestamp", "transaction_type", "amount"],
}

# Optional columns (soft warn if missing)
OPTIONAL_COLUMNS = {
    "customers": ["name", "credit_limit", "available_credit", "created_at"],
    "trips": ["name", "agent_id", "agent_ids", "staff_id", "currency"],
    "rolling_records": ["record_id", "agent_id", "staff_id", "game_type"],
    "cash_records": ["record_id", "staff_id"],
}

# Id columns that must be populated on every row
KEY_COLUMNS = {
    "agents": ["agent_id"],
    "customers": ["customer_id"],
    "trips": ["trip_id"],
    "rolling_records": ["customer_id", "ts"],
    "cash_records": ["customer_id", "ts", "transaction_type"],
}

# Formatting constants
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "HK$")
