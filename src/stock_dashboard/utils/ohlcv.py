"""OHLCV data standardization utilities."""

from typing import Any

import pandas as pd

CANONICAL_COLUMNS = ["date", "open", "high", "low", "close", "volume"]

# Provider array key -> canonical column
_CANDLE_KEYS = {"o": "open", "h": "high", "l": "low", "c": "close", "v": "volume"}


def candles_to_frame(payload: dict[str, Any] | None) -> pd.DataFrame:
    """
    Convert a provider candle payload ({s, t, o, h, l, c, v}) to a DataFrame.

    Output columns (always, in this order): date, open, high, low, close, volume.
    Dates are ISO strings (YYYY-MM-DD for daily bars, full ISO for intraday).
    A payload whose status is not "ok" or that carries no timestamps yields an
    empty frame with the same schema.
    """
    payload = payload or {}
    timestamps = payload.get("t") or []
    if payload.get("s") != "ok" or not timestamps:
        return pd.DataFrame(columns=CANONICAL_COLUMNS)

    n = len(timestamps)
    df = pd.DataFrame({"date": pd.to_datetime(timestamps, unit="s", utc=True)})
    for key, col in _CANDLE_KEYS.items():
        values = list(payload.get(key) or [])
        # Ragged arrays are padded so every bar keeps its timestamp
        values = (values + [None] * n)[:n]
        df[col] = pd.to_numeric(pd.Series(values, dtype="object"), errors="coerce")

    has_time = (df["date"].dt.normalize() != df["date"]).any()
    if has_time:
        df["date"] = df["date"].dt.strftime("%Y-%m-%dT%H:%M:%S%z")
    else:
        df["date"] = df["date"].dt.strftime("%Y-%m-%d")

    return df[CANONICAL_COLUMNS]


def summarize_frame(df: pd.DataFrame) -> dict[str, Any]:
    """Range statistics for a standardized OHLCV frame."""
    close_prices = df["close"].dropna()
    if len(close_prices) >= 2:
        start_price = float(close_prices.iloc[0])
        end_price = float(close_prices.iloc[-1])
        total_return = (end_price - start_price) / start_price if start_price != 0 else None
    else:
        start_price = float(close_prices.iloc[0]) if len(close_prices) > 0 else None
        end_price = start_price
        total_return = None

    return {
        "data_points": len(df),
        "start_date": df["date"].iloc[0] if len(df) > 0 else None,
        "end_date": df["date"].iloc[-1] if len(df) > 0 else None,
        "start_price": start_price,
        "end_price": end_price,
        "period_high": float(df["high"].max()) if not df["high"].isna().all() else None,
        "period_low": float(df["low"].min()) if not df["low"].isna().all() else None,
        "total_return": round(total_return, 4) if total_return is not None else None,
    }


def df_to_rows(df: pd.DataFrame) -> list[dict]:
    """Convert to list of dicts for inline preview. Lowercase keys."""
    return df.astype(object).where(df.notna(), None).to_dict("records")
