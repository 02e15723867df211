"""Pure formatting helpers for CLI messages."""

from __future__ import annotations


def fmt_size(b: int | None) -> str:
    """Format bytes as a human-readable size."""
    if not b:
        return "-"
    units = [("GB", 1 << 30), ("MB", 1 << 20), ("KB", 1 << 10)]
    for suffix, threshold in units:
        if b >= threshold:
            value = b / threshold
            return f"{value:.0f} {suffix}" if value >= 10 else f"{value:.1f} {suffix}"
    return f"{b}B"


def fmt_elapsed(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m{secs:02d}s"


def fmt_rate(rows: int, seconds: float) -> str:
    if seconds <= 0:
        return "-"
    return f"{rows / seconds:,.0f} rows/s"
