"""Human-readable formatting for byte counts and durations."""

from __future__ import annotations

from datetime import timedelta
import math

_BYTE_UNITS = ("B", "kB", "MB", "GB", "TB", "PB", "EB")


def format_bytes(size: int) -> str:
    """Format ``size`` with SI (base 1000) units, e.g. ``512 MB`` or ``1.2 GB``.

    The value is rounded to one decimal first; results below 10 keep that
    decimal place.
    """
    if size < 0:
        raise ValueError(f"size must be non-negative, got {size}")
    if size < 10:
        return f"{size} B"

    value = float(size)
    unit = _BYTE_UNITS[0]
    for unit in _BYTE_UNITS:
        if value < 1000 or unit == _BYTE_UNITS[-1]:
            break
        value /= 1000
    # round half up to one decimal before choosing the precision
    value = math.floor(value * 10 + 0.5) / 10
    if value < 10:
        return f"{value:.1f} {unit}"
    return f"{value:.0f} {unit}"


def format_duration(duration: timedelta) -> str:
    total = int(duration.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    parts: list[str] = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds or not parts:
        parts.append(f"{seconds}s")
    return "".join(parts)
