"""Parse-with-default helpers for LoanBook.

Persisted records and form input arrive as loosely typed data: numbers as
strings, empty strings for "not set", scalars where a list is expected.
Every field is coerced through exactly one helper here. A value that
cannot be parsed falls back to that field's default instead of raising.
"""
import logging
import math
from datetime import date, datetime
from typing import Any, Optional, Tuple

from loanbook.config import (
    DATE_FORMAT_STORAGE,
    DEFAULT_INTERVAL_DAYS,
    DEFAULT_WEEKDAY,
    PAYMENT_FIXED,
    PAYMENT_TYPES,
)

logger = logging.getLogger(__name__)


def _first(value):
    """Unwrap a list/tuple to its first element (None when empty)."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def round2(value: float) -> float:
    """Round to two decimal places."""
    return round(value, 2)


def parse_amount(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    """Parse a monetary or percentage value.

    Args:
        value: Number, numeric string, or None/empty string.
        default: Returned when the value is missing or unparsable.

    Returns:
        The value as a float, or the default.
    """
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        logger.debug("Unparsable amount %r, using %r", value, default)
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def parse_count(value: Any, default: Optional[int] = 0) -> Optional[int]:
    """Parse a whole number, truncating any fractional part ("12.7" -> 12)."""
    amount = parse_amount(value, default=None)
    if amount is None:
        return default
    return int(amount)


def parse_date(value: Any) -> Optional[date]:
    """Parse a calendar date from a date, datetime or YYYY-MM-DD string.

    Time-of-day is discarded. Anything else yields None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip()[:10], DATE_FORMAT_STORAGE).date()
    except ValueError:
        logger.debug("Unparsable date %r", value)
        return None


def format_date(value: Optional[date]) -> Optional[str]:
    """Format a date for storage, passing None through."""
    if value is None:
        return None
    return value.strftime(DATE_FORMAT_STORAGE)


def parse_payment_type(value: Any) -> str:
    """Parse a payment type; unrecognized values behave as fixed."""
    if value in PAYMENT_TYPES:
        return value
    logger.debug("Unknown payment type %r, treating as %s", value, PAYMENT_FIXED)
    return PAYMENT_FIXED


def parse_interval_days(value: Any) -> int:
    """Parse an interval in days; missing, unparsable or <= 0 gives the default."""
    days = parse_count(_first(value), default=None)
    if days is None or days <= 0:
        return DEFAULT_INTERVAL_DAYS
    return days


def parse_weekday(value: Any) -> int:
    """Parse a weekday index (0=Sunday .. 6=Saturday); invalid gives Friday."""
    weekday = parse_count(_first(value), default=None)
    if weekday is None or not 0 <= weekday <= 6:
        return DEFAULT_WEEKDAY
    return weekday


def parse_month_days(value: Any) -> Tuple[int, ...]:
    """Parse day-of-month values into a sorted tuple of unique days 1-31.

    Accepts a scalar or a list. Values outside 1-31 or unparsable are dropped
    rather than clamped to the month end; days 29-31 are still clamped per
    month by the scheduler.
    """
    raw_values = value if isinstance(value, (list, tuple, set)) else [value]
    days = set()
    for raw in raw_values:
        day = parse_count(raw, default=None)
        if day is not None and 1 <= day <= 31:
            days.add(day)
        else:
            logger.debug("Dropping invalid day of month %r", raw)
    return tuple(sorted(days))
