"""Services package for LoanBook business logic.

Pure functions over contracts and transactions; no persistence here.
"""

from .schedule_calculator import compute_next_due_date, frequency_label
from .ledger_engine import apply_payment, derive_all, derive_state, sync_payment_terms

__all__ = ['compute_next_due_date', 'frequency_label', 'apply_payment',
           'derive_all', 'derive_state', 'sync_payment_terms']
