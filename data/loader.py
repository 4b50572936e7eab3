"""Bar loading utilities for the reference data feeds.

Loads OHLCV bars from parquet or CSV files (Yahoo Finance style exports are
recognised). Returns clean DataFrames with UTC timestamps, sorted ascending.
"""

import logging
from pathlib import Path

import pandas as pd
import pyarrow.parquet as pq

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"time", "open", "high", "low", "close"}
COLUMN_ALIASES = {
    "date": "time",
    "datetime": "time",
    "timestamp": "time",
    "tick_volume": "volume",
}
DROP_COLUMNS = {"adj close", "adj_close", "shapes"}


def load_parquet(path: str | Path) -> pd.DataFrame:
    """Load a single parquet file and return a clean OHLC DataFrame."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Parquet file not found: {path}")

    table = pq.read_table(path)
    df = table.to_pandas()
    return _clean_dataframe(df, source=str(path))


def load_csv(path: str | Path) -> pd.DataFrame:
    """Load a single CSV file of bars."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    df = pd.read_csv(path)
    return _clean_dataframe(df, source=str(path))


def validate_dataframe(df: pd.DataFrame) -> list[str]:
    """Validate an OHLC DataFrame and return list of issues found."""
    issues = []

    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        issues.append(f"Missing columns: {sorted(missing)}")

    if "time" not in df.columns:
        return issues

    if not pd.api.types.is_datetime64_any_dtype(df["time"]):
        issues.append("'time' column is not datetime type")

    n_dupes = df["time"].duplicated().sum()
    if n_dupes > 0:
        issues.append(f"Found {n_dupes} duplicate timestamps")

    ohlc_cols = [c for c in ["open", "high", "low", "close"] if c in df.columns]
    if ohlc_cols:
        n_nan = df[ohlc_cols].isna().sum().sum()
        if n_nan > 0:
            issues.append(f"Found {n_nan} NaN values in OHLC columns")

    return issues


def _clean_dataframe(df: pd.DataFrame, source: str = "") -> pd.DataFrame:
    """Standardize an OHLC DataFrame."""
    df.columns = [c.strip().lower() for c in df.columns]

    cols_to_drop = [c for c in df.columns if c in DROP_COLUMNS]
    if cols_to_drop:
        df = df.drop(columns=cols_to_drop)

    df = df.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if k in df.columns})

    if "time" in df.columns:
        if not pd.api.types.is_datetime64_any_dtype(df["time"]):
            df["time"] = pd.to_datetime(df["time"], utc=True)
        elif df["time"].dt.tz is None:
            df["time"] = df["time"].dt.tz_localize("UTC")

    if "volume" not in df.columns:
        df["volume"] = 0

    keep_cols = ["time", "open", "high", "low", "close", "volume"]
    df = df[[c for c in keep_cols if c in df.columns]]

    if "time" in df.columns:
        df = df.sort_values("time").drop_duplicates(subset=["time"]).reset_index(drop=True)

    logger.info("Loaded %d rows from %s", len(df), source)
    return df
