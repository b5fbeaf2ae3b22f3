"""
Data formatting utilities.
"""

from datetime import datetime, timezone
from typing import Sequence, Union


def format_duration(seconds: int) -> str:
    """
    Format a duration in seconds as days, hours and minutes.

    Args:
        seconds: Duration; negative values are in the past

    Returns:
        e.g. "1d 2h 3m", "less than a minute" or "1h 1m ago"
    """
    if seconds < 0:
        return f"{format_duration(-seconds)} ago"

    days = seconds // (24 * 60 * 60)
    hours = (seconds % (24 * 60 * 60)) // (60 * 60)
    minutes = (seconds % (60 * 60)) // 60

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    return " ".join(parts) or "less than a minute"


def format_address(address: str, short: bool = True) -> str:
    """
    Format Ethereum address for display.

    Args:
        address: Ethereum address
        short: Whether to shorten the address

    Returns:
        Formatted address
    """
    if not address:
        return ""

    if not address.startswith("0x"):
        address = f"0x{address}"

    if short and len(address) > 10:
        return f"{address[:6]}...{address[-4:]}"

    return address


def format_timestamp(timestamp: Union[str, int]) -> str:
    """
    Format Unix timestamp as UTC ISO 8601.

    Args:
        timestamp: Unix timestamp (seconds)

    Returns:
        e.g. "2024-01-01T00:00:00Z", or "" for unparseable input
    """
    try:
        if isinstance(timestamp, str):
            timestamp = int(timestamp)

        dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
        return dt.strftime("%Y-%m-%dT%H:%M:%SZ")
    except (ValueError, TypeError, OSError, OverflowError):
        return ""


def format_schedule_identity(identity: Sequence[str], short: bool = False) -> str:
    """Join an identity tuple for log lines and reports."""
    return " ".join(format_address(part, short) for part in identity)
