"""Due-date scheduling for LoanBook.

Computes the next due date of a contract from its frequency rule and an
anchor date: the last paid cycle date, or the day before the loan started
when nothing has been paid yet.
"""
import calendar
import logging
from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from loanbook.config import (
    DUE_DATE_HORIZON,
    EPOCH_ANCHOR,
    MONTHLY_SCAN_MONTHS,
    WEEKLY_SCAN_DAYS,
)
from loanbook.models import Contract, IntervalDays, MonthlyDates, WeeklyDay

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def sunday_based_weekday(day: date) -> int:
    """Weekday index with 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def anchor_date(contract: Contract) -> date:
    """Date the next due date is searched from (exclusive).

    The day before the start lets the first due date fall on the start date
    itself for monthly and weekly rules.
    """
    if contract.last_paid_date is not None:
        return contract.last_paid_date
    if contract.loan_start_date is not None:
        try:
            return contract.loan_start_date - timedelta(days=1)
        except OverflowError:
            logger.debug("Contract %s starts on %s, anchoring at epoch",
                         contract.id, contract.loan_start_date)
    return EPOCH_ANCHOR


def _next_monthly(anchor: date, days) -> Optional[date]:
    month_start = anchor.replace(day=1)
    for offset in range(MONTHLY_SCAN_MONTHS):
        try:
            month = month_start + relativedelta(months=offset)
        except (ValueError, OverflowError):
            return None
        days_in_month = calendar.monthrange(month.year, month.month)[1]
        candidates = [
            month.replace(day=min(day, days_in_month))
            for day in days
        ]
        candidates = [c for c in candidates if c > anchor]
        if candidates:
            return min(candidates)
    return None


def _next_weekly(anchor: date, weekday: int) -> Optional[date]:
    for offset in range(1, WEEKLY_SCAN_DAYS + 1):
        try:
            candidate = anchor + timedelta(days=offset)
        except OverflowError:
            return None
        if sunday_based_weekday(candidate) == weekday:
            return candidate
    return None


def _next_interval(anchor: date, days: int) -> Optional[date]:
    try:
        return anchor + timedelta(days=days)
    except OverflowError:
        return None


def compute_next_due_date(contract: Contract) -> Optional[date]:
    """Compute the next due date strictly after the contract's anchor.

    Args:
        contract: The contract to schedule.

    Returns:
        The next due date, or None when the rule yields nothing within the
        scan horizon (12 months / 7 days) or only dates past year 3000.
    """
    anchor = anchor_date(contract)
    frequency = contract.frequency

    if isinstance(frequency, MonthlyDates):
        next_due = _next_monthly(anchor, frequency.days)
    elif isinstance(frequency, WeeklyDay):
        next_due = _next_weekly(anchor, frequency.weekday)
    elif isinstance(frequency, IntervalDays):
        next_due = _next_interval(anchor, frequency.days)
    else:
        logger.debug("Contract %s has no usable frequency rule (%r)",
                     contract.id, frequency)
        next_due = None

    if next_due is None or next_due > DUE_DATE_HORIZON:
        return None
    return next_due


def frequency_label(frequency) -> str:
    """Human-readable description of a frequency rule."""
    if isinstance(frequency, MonthlyDates):
        return f"Monthly on day {', '.join(str(d) for d in frequency.days)}"
    if isinstance(frequency, WeeklyDay):
        return f"Weekly on {WEEKDAY_NAMES[frequency.weekday]}"
    if isinstance(frequency, IntervalDays):
        return f"Every {frequency.days} days"
    return "Unscheduled"
