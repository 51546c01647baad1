"""
Utility functions for safe value handling in metrics calculations.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional


def safe_float(value: Any, default: float = 0.0) -> float:
    """
    Safely convert value to float.

    Args:
        value: Value to convert (Decimal, int, float, numeric string or None)
        default: Default if conversion fails

    Returns:
        Float value, or default
    """
    if value is None:
        return default

    try:
        if isinstance(value, (int, float, Decimal)):
            return float(value)
        if isinstance(value, str):
            cleaned = value.replace(",", "").strip()
            return float(cleaned) if cleaned else default
        return default
    except (ValueError, TypeError, ArithmeticError):
        return default


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Return an aware UTC datetime.

    Naive values (as returned by some drivers for timestamptz columns) are
    assumed to already be in UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Number of whole days elapsed from earlier to later (floored)."""
    return (as_utc(later) - as_utc(earlier)).days


def to_decimal(value: Optional[float]) -> Optional[Decimal]:
    """Decimal for a Numeric column, rounded to cents."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"))
