"""Centralized configuration for LoanBook.

This module contains the default values, scan horizons and business rule
constants used by the scheduling and ledger services, plus a small
environment-driven runtime configuration for the boundary layer.
"""
import os
from dataclasses import dataclass
from datetime import date

# =============================================================================
# SCHEDULE DEFAULTS
# =============================================================================

# Interval used when an interval_days rule has no usable value
DEFAULT_INTERVAL_DAYS = 10

# Weekday used when a weekly_day rule has no usable value (0=Sunday, 5=Friday)
DEFAULT_WEEKDAY = 5

# Day of month pre-selected for new monthly contracts
DEFAULT_MONTHLY_DAY = 5

# How far ahead the monthly scan looks before giving up
MONTHLY_SCAN_MONTHS = 12

# How far ahead the weekly scan looks before giving up
WEEKLY_SCAN_DAYS = 7

# Anchor used when a contract has no usable start date
EPOCH_ANCHOR = date(1970, 1, 1)

# Due dates past this are treated as "never found"
DUE_DATE_HORIZON = date(3000, 1, 1)

# =============================================================================
# CONTRACT TYPES
# =============================================================================

PAYMENT_AUTO = "auto"
PAYMENT_FIXED = "fixed"
PAYMENT_FIXED_INSTALLMENT = "fixed_installment"

PAYMENT_TYPES = (PAYMENT_AUTO, PAYMENT_FIXED, PAYMENT_FIXED_INSTALLMENT)

FREQUENCY_MONTHLY_DATE = "monthly_date"
FREQUENCY_WEEKLY_DAY = "weekly_day"
FREQUENCY_INTERVAL_DAYS = "interval_days"

TRANSACTION_TYPE_PAYMENT = "payment"

# =============================================================================
# STORAGE
# =============================================================================

# Keys of the two persisted collections
CONTRACTS_KEY = "loan_app_customers_v2"
TRANSACTIONS_KEY = "loan_app_transactions_v2"

# Default SQLite file for the key-value store
DEFAULT_DB_PATH = "loan_book.db"

# Date format for storage (ISO 8601)
DATE_FORMAT_STORAGE = "%Y-%m-%d"

# =============================================================================
# MESSAGES
# =============================================================================

NOTE_REGULAR_PAYMENT = "Regular payment"
NOTE_PARTIAL_PAYMENT = "Partial/extra payment"

DELETE_CONTRACT_WARNING = "Delete this contract? This cannot be undone."
DELETE_TRANSACTION_WARNING = (
    "Deleting a transaction does not restore principal already deducted. "
    "Edit the contract to correct 'remaining principal' or 'last paid date' manually."
)


@dataclass
class LoanBookConfig:
    """Runtime configuration for the boundary layer."""

    db_path: str = DEFAULT_DB_PATH
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "LoanBookConfig":
        """Create config from environment variables."""
        return cls(
            db_path=os.getenv("LOANBOOK_DB_PATH", DEFAULT_DB_PATH),
            log_level=os.getenv("LOANBOOK_LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOANBOOK_LOG_FORMAT", "standard"),
        )
