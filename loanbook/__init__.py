"""LoanBook: a personal loan-book ledger."""

from loanbook.database import DatabaseManager, KeyValueStore
from loanbook.engine import LoanBook
from loanbook.models import Contract, PaymentRequest, Transaction

__all__ = ["DatabaseManager", "KeyValueStore", "LoanBook", "Contract",
           "PaymentRequest", "Transaction"]
