"""
Daily time series for charts.

Records are bucketed on the date portion of their raw timestamp string, as
the source wrote it. Days without any rolling or cash activity are absent
(sparse series), and rows come out in ascending date order.
"""
import pandas as pd
from typing import Optional

from junket_os.config import config
from junket_os.data.loader import Snapshot
from junket_os.data.normalize import safe_numeric


DAILY_COLUMNS = [
    "date", "rolling", "win_loss", "commission", "buy_in", "buy_out",
    "net_cash_flow", "record_count", "transactions",
]


def get_daily_chart_data(snapshot: Snapshot,
                         commission_rate: Optional[float] = None) -> pd.DataFrame:
    """
    One row per active day.

    Columns:
    - rolling, win_loss: Σ over rolling records that day
    - commission: rolling × flat rate (default 1.4%)
    - buy_in, buy_out: Σ cash amounts by type
    - net_cash_flow: buy_out - buy_in
    - record_count: rolling records that day
    - transactions: cash records that day
    """
    if commission_rate is None:
        commission_rate = config.default_commission_rate

    rolling = snapshot.rolling_records.dropna(subset=["date"])
    cash = snapshot.cash_records.dropna(subset=["date"])

    if rolling.empty and cash.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)

    rolling = rolling.assign(
        rolling_amount=safe_numeric(rolling["rolling_amount"]),
        win_loss=safe_numeric(rolling["win_loss"]),
    )
    cash = cash.assign(amount=safe_numeric(cash["amount"]))
    cash = cash.assign(
        buy_in=cash["amount"].where(cash["transaction_type"] == "buy-in", 0.0),
        buy_out=cash["amount"].where(cash["transaction_type"] == "buy-out", 0.0),
    )

    rolling_daily = rolling.groupby("date").agg(
        rolling=("rolling_amount", "sum"),
        win_loss=("win_loss", "sum"),
        record_count=("rolling_amount", "size"),
    )
    cash_daily = cash.groupby("date").agg(
        buy_in=("buy_in", "sum"),
        buy_out=("buy_out", "sum"),
        transactions=("amount", "size"),
    )

    daily = rolling_daily.join(cash_daily, how="outer")
    for col in ["rolling", "win_loss", "buy_in", "buy_out", "record_count", "transactions"]:
        if col not in daily.columns:
            daily[col] = 0
        daily[col] = safe_numeric(daily[col])

    daily["commission"] = daily["rolling"] * commission_rate / 100
    daily["net_cash_flow"] = daily["buy_out"] - daily["buy_in"]
    daily["record_count"] = daily["record_count"].astype(int)
    daily["transactions"] = daily["transactions"].astype(int)

    daily = daily.rename_axis("date").reset_index()
    daily["date"] = daily["date"].astype(str)
    return daily.sort_values("date", kind="stable")[DAILY_COLUMNS].reset_index(drop=True)
