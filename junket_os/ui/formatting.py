"""
Consistent number and display formatting.
"""
import pandas as pd
from typing import Union

from junket_os.config import CURRENCY_SYMBOL


# =============================================================================
# NUMBER FORMATTERS
# =============================================================================

def fmt_currency(value: Union[float, int, None], decimals: int = 0) -> str:
    """Format as currency: HK$1,234 or -HK$1,234.56"""
    if value is None or pd.isna(value):
        return "—"
    sign = "-" if value < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(value):,.{decimals}f}"


def fmt_percent(value: Union[float, int, None], decimals: int = 1) -> str:
    """Format percentage: 12.3%"""
    if value is None or pd.isna(value):
        return "—"
    return f"{value:,.{decimals}f}%"


def fmt_count(value: Union[float, int, None]) -> str:
    """Format count: 1,234"""
    if value is None or pd.isna(value):
        return "—"
    return f"{int(value):,}"


def fmt_signed(value: Union[float, int, None]) -> str:
    """Currency with explicit +/- sign, for win/loss and cash flow."""
    if value is None or pd.isna(value):
        return "—"
    sign = "+" if value > 0 else ""
    return f"{sign}{fmt_currency(value)}"


def result_color(value: float, invert: bool = False) -> str:
    """
    Green/red for a money result.

    invert: True for customer win/loss, where a positive number is a house loss.
    """
    if value is None or pd.isna(value) or value == 0:
        return "#6c757d"
    good = value < 0 if invert else value > 0
    return "#28a745" if good else "#dc3545"


# =============================================================================
# DATAFRAME FORMATTERS
# =============================================================================

CURRENCY_COLS = [
    "rolling", "win_loss", "commission", "expenses", "buy_in", "buy_out",
    "net_cash_flow", "house_gross_win", "house_final_profit", "company_share",
    "credit_limit", "available_credit",
]

PERCENT_COLS = [
    "rolling_percentage", "average_rolling_percentage", "profit_margin",
    "commission_ratio", "expense_ratio",
]

COUNT_COLS = [
    "customers", "active_customers", "trips", "rolling_records",
    "transaction_records", "record_count", "transaction_count", "transactions",
]

COLUMN_LABELS = {
    "customer_id": "Customer ID",
    "agent_id": "Agent ID",
    "trip_id": "Trip ID",
    "name": "Name",
    "status": "Status",
    "source": "Source",
    "date": "Date",
    "rolling": "Rolling",
    "win_loss": "Win/Loss",
    "commission": "Commission",
    "expenses": "Expenses",
    "buy_in": "Buy-in",
    "buy_out": "Buy-out",
    "net_cash_flow": "Net Cash Flow",
    "house_gross_win": "House Gross Win",
    "house_final_profit": "House Final Profit",
    "company_share": "Company Share",
    "rolling_percentage": "Rolling %",
    "average_rolling_percentage": "Avg Rolling %",
    "customers": "Customers",
    "active_customers": "Active Customers",
    "trips": "Trips",
    "rolling_records": "Rolling Records",
    "transaction_records": "Transactions",
    "record_count": "Records",
    "transaction_count": "Transactions",
    "transactions": "Transactions",
    "is_active": "Active",
}


def format_metric_df(df: pd.DataFrame, rename: bool = True) -> pd.DataFrame:
    """
    Format a metrics dataframe for display.

    Applies appropriate formatting to known column types.
    """
    df = df.copy()

    for col in df.columns:
        if col in CURRENCY_COLS:
            df[col] = df[col].apply(fmt_currency)
        elif col in PERCENT_COLS:
            df[col] = df[col].apply(fmt_percent)
        elif col in COUNT_COLS:
            df[col] = df[col].apply(fmt_count)

    if rename:
        df = df.rename(columns=COLUMN_LABELS)
    return df


# =============================================================================
# KPI CARD HELPERS
# =============================================================================

def kpi_value(value: Union[float, int, None], format_type: str = "currency") -> str:
    """
    Format a KPI value for card display.

    Args:
        value: The value to format
        format_type: One of 'currency', 'signed', 'percent', 'count'
    """
    if format_type == "currency":
        return fmt_currency(value)
    elif format_type == "signed":
        return fmt_signed(value)
    elif format_type == "percent":
        return fmt_percent(value)
    elif format_type == "count":
        return fmt_count(value)
    else:
        return str(value) if value is not None else "—"
