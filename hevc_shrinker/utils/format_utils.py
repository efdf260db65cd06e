"""
This module contains helper functions for formatting data into human-readable strings.
These functions are used throughout the application, particularly in logging and in
the ledger listing, to present durations, sizes and timestamps consistently.
"""

from datetime import datetime, timedelta
from typing import Optional


def format_timedelta(td_object: timedelta) -> str:
    """"HH:MM:SS" for a run duration, e.g. 7261 seconds -> "02:01:01"."""
    hours, remainder = divmod(int(td_object.total_seconds()), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def formatted_size(size_bytes: float) -> str:
    """
    Human-readable byte count in binary units.

    1536 -> "1.50 KB", 2097152 -> "2 MB". Negative sizes are shown as "0 B".
    """
    size = max(float(size_bytes), 0.0)
    if size < 1024:
        return f"{int(size)} B"
    for unit in ("KB", "MB", "GB"):
        size /= 1024.0
        if size < 1024:
            return f"{size:.2f} {unit}".replace(".00 ", " ")
    return f"{size / 1024.0:.2f} TB".replace(".00 ", " ")


def format_size_change(before_bytes: int, after_bytes: int) -> str:
    """`"1.50 GB -> 700 MB (45.6%)"`; the percentage is after/before."""
    ratio = f"{after_bytes / before_bytes * 100:.1f}%" if before_bytes > 0 else "n/a"
    return f"{formatted_size(before_bytes)} -> {formatted_size(after_bytes)} ({ratio})"


def format_epoch(epoch_seconds: Optional[float]) -> str:
    """Local `YYYY-MM-DD HH:MM:SS` for a Unix timestamp; "-" when missing."""
    if epoch_seconds is None:
        return "-"
    return datetime.fromtimestamp(epoch_seconds).strftime("%Y-%m-%d %H:%M:%S")
