import logging
import os
from typing import List, Optional, Tuple

import pandas as pd

from src.harmonic_analysis.types import Bar

logger = logging.getLogger(__name__)

FORMAT_A_COLUMNS = ['date', 'time', 'open', 'high', 'low', 'close', 'volume']

Gap = Tuple[pd.Timestamp, pd.Timestamp, float]


def detect_format(filepath: str) -> str:
    """
    Detects the format of the CSV file.

    Args:
        filepath: Path to the CSV file.

    Returns:
        "format_a" for Semicolon-Separated Historical Data.
        "format_b" for TradingView Comma-Separated Data.

    Raises:
        ValueError: If format cannot be detected.
    """
    with open(filepath, 'r') as f:
        # Read first few lines to be robust against blank leading lines
        lines = [f.readline() for _ in range(10)]
    lines = [line.strip() for line in lines if line.strip()]

    if not lines:
        raise ValueError("File is empty")

    first_line = lines[0]

    if ';' in first_line:
        return "format_a"

    if ',' in first_line:
        if "time" in first_line.lower() and "open" in first_line.lower():
            return "format_b"
        parts = first_line.split(',')
        if parts[0].replace('.', '', 1).isdigit():
            return "format_b"

    raise ValueError(
        "Could not detect CSV format. Expected semicolon-separated historical "
        "format or comma-separated TradingView format."
    )


def _read_format_a(filepath: str) -> pd.DataFrame:
    # DD/MM/YYYY;HH:MM:SS;Open;High;Low;Close;Volume, no header
    df = pd.read_csv(
        filepath,
        sep=';',
        header=None,
        names=FORMAT_A_COLUMNS,
        dtype={
            'date': str, 'time': str,
            'open': 'float64', 'high': 'float64', 'low': 'float64', 'close': 'float64',
            'volume': 'int64'
        },
        engine='c'
    )
    datetime_str = df['date'] + ' ' + df['time']
    df['timestamp'] = pd.to_datetime(datetime_str, format='%d/%m/%Y %H:%M:%S', utc=True)
    return df.drop(columns=['date', 'time'])


def _read_format_b(filepath: str) -> pd.DataFrame:
    # time,open,high,low,close[,Volume] with header, time as Unix epoch seconds
    df = pd.read_csv(filepath, sep=',', engine='c')
    df.columns = df.columns.str.lower()

    required = {'time', 'open', 'high', 'low', 'close'}
    if not required.issubset(df.columns):
        raise ValueError(f"Missing required columns. Found: {df.columns.tolist()}")

    if 'volume' not in df.columns:
        df['volume'] = 0
    else:
        df['volume'] = df['volume'].fillna(0).astype('int64')

    df['timestamp'] = pd.to_datetime(df['time'], unit='s', utc=True)
    df = df.drop(columns=['time'])
    for c in ['open', 'high', 'low', 'close']:
        df[c] = df[c].astype('float64')
    return df


def find_gaps(df: pd.DataFrame, gap_threshold_minutes: float = 1.5) -> List[Gap]:
    """
    List gaps between consecutive bars longer than the threshold.

    Returns:
        List of (start, end, duration_minutes).
    """
    if len(df) < 2:
        return []
    time_diff = df.index.to_series().diff()
    gap_mask = time_diff > pd.Timedelta(minutes=gap_threshold_minutes)

    gaps = []
    for loc in gap_mask.to_numpy().nonzero()[0]:
        start_time = df.index[loc - 1]
        end_time = df.index[loc]
        gaps.append((start_time, end_time, (end_time - start_time).total_seconds() / 60.0))
    return gaps


def load_ohlc(filepath: str, gap_threshold_minutes: float = 1.5) -> Tuple[pd.DataFrame, List[Gap]]:
    """
    Loads OHLC data from a CSV file into a standardized DataFrame.

    Args:
        filepath: Path to the CSV file.
        gap_threshold_minutes: Spacing above which consecutive bars count as
            a gap (1.5x the bar interval; default suits 1m data).

    Returns:
        Tuple containing:
            - DataFrame indexed by UTC timestamp with columns open, high, low, close, volume.
            - List of gaps (start, end, duration_minutes).

    Raises:
        FileNotFoundError, ValueError.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"File not found: {filepath}")

    if os.path.getsize(filepath) == 0:
        raise ValueError("File is empty")

    fmt = detect_format(filepath)

    try:
        df = _read_format_a(filepath) if fmt == "format_a" else _read_format_b(filepath)
    except (KeyError, ValueError, TypeError, pd.errors.ParserError) as e:
        raise ValueError(f"Error parsing file: {e}")

    df = df[['timestamp', 'open', 'high', 'low', 'close', 'volume']]
    df = df.set_index('timestamp').sort_index(kind='mergesort')

    # Keep the last occurrence of a repeated timestamp
    duplicate_timestamps = df.index.duplicated(keep='last')
    if duplicate_timestamps.any():
        logger.debug(
            "Duplicate timestamps in %s: %d removed",
            os.path.basename(filepath), int(duplicate_timestamps.sum()),
        )
        df = df[~duplicate_timestamps]

    valid_mask = (
        (df['low'] <= df['open']) & (df['open'] <= df['high']) &
        (df['low'] <= df['close']) & (df['close'] <= df['high']) &
        (df['volume'] >= 0)
    )
    if not valid_mask.all():
        invalid_count = int((~valid_mask).sum())
        total_count = len(df)
        if invalid_count / total_count > 0.01:
            raise ValueError(
                f"Too many invalid rows: {invalid_count}/{total_count} ({invalid_count/total_count:.2%})"
            )
        logger.warning("Dropping %d invalid OHLC row(s) from %s", invalid_count, filepath)
        df = df[valid_mask]

    return df, find_gaps(df, gap_threshold_minutes)


def dataframe_to_bars(df: pd.DataFrame, start_index: int = 0) -> List[Bar]:
    """
    Convert an OHLC DataFrame to a Bar list.

    Accepts the DataFrame returned by load_ohlc() (DatetimeIndex) or one
    with a timestamp/time/date column. Column names are matched
    case-insensitively. Bars are numbered consecutively from start_index.

    Example:
        >>> df, _ = load_ohlc("ES-4h.csv")
        >>> bars = dataframe_to_bars(df)
    """
    col_map = {str(c).lower(): c for c in df.columns}
    missing = {'open', 'high', 'low', 'close'} - set(col_map)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    if isinstance(df.index, pd.DatetimeIndex):
        times = df.index
    else:
        ts_col = next((col_map[c] for c in ('timestamp', 'time', 'date', 'datetime') if c in col_map), None)
        if ts_col is None:
            raise ValueError("DataFrame needs a DatetimeIndex or a timestamp column")
        times = df[ts_col]
        if pd.api.types.is_numeric_dtype(times):
            times = pd.to_datetime(times, unit='s', utc=True)
        else:
            times = pd.to_datetime(times, utc=True)
        times = pd.DatetimeIndex(times)

    if times.tz is None:
        times = times.tz_localize('UTC')
    epoch_seconds = ((times - pd.Timestamp("1970-01-01", tz="UTC")) // pd.Timedelta(seconds=1)).to_numpy()

    opens = df[col_map['open']].to_numpy(dtype=float)
    highs = df[col_map['high']].to_numpy(dtype=float)
    lows = df[col_map['low']].to_numpy(dtype=float)
    closes = df[col_map['close']].to_numpy(dtype=float)

    return [
        Bar(
            index=start_index + i,
            timestamp=int(epoch_seconds[i]),
            open=float(opens[i]),
            high=float(highs[i]),
            low=float(lows[i]),
            close=float(closes[i]),
        )
        for i in range(len(df))
    ]


def load_bars(
    filepath: str,
    start: Optional[pd.Timestamp] = None,
    end: Optional[pd.Timestamp] = None,
) -> List[Bar]:
    """Load a CSV and return its bars, optionally restricted to [start, end]."""
    df, gaps = load_ohlc(filepath)
    if start is not None:
        df = df[df.index >= start]
    if end is not None:
        df = df[df.index <= end]
    if gaps:
        logger.info("%s: %d gap(s) in data", os.path.basename(filepath), len(gaps))
    return dataframe_to_bars(df)
