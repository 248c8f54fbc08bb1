"""Boundary facade for LoanBook.

This module provides the LoanBook class, which owns the key-value store and
the in-memory ledger state. It loads both collections once, delegates every
computation to the pure services in ``loanbook.services`` and writes both
collections back as one atomic snapshot after each mutation.

Service modules:
    - schedule_calculator: next due date per contract
    - ledger_engine: derivation, payments and contract terms
    - reports (loanbook.reports): totals and groupings
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from loanbook import reports
from loanbook.config import (
    CONTRACTS_KEY,
    DELETE_CONTRACT_WARNING,
    DELETE_TRANSACTION_WARNING,
    TRANSACTIONS_KEY,
    LoanBookConfig,
)
from loanbook.database import DatabaseManager
from loanbook.logging_config import setup_logging
from loanbook.models import (
    Contract,
    EnrichedContract,
    LedgerState,
    PaymentOutcome,
    PaymentRequest,
    PortfolioStats,
    ReportGroup,
    Transaction,
)
from loanbook.result import ErrorType, Result
from loanbook.services import ledger_engine

logger = logging.getLogger(__name__)


class LoanBook:
    """Loads, mutates and persists the loan book.

    Attributes:
        store: KeyValueStore used for persistence.
        state: Current LedgerState (contracts and newest-first transactions).
    """

    def __init__(self, store, today_provider=None):
        """Initialize LoanBook and load persisted state.

        Args:
            store: KeyValueStore instance (e.g. DatabaseManager).
            today_provider: Optional callable returning today's date.
        """
        self.store = store
        self._today_provider = today_provider or date.today
        self.state = self._load_state()

    @classmethod
    def from_config(cls, config: LoanBookConfig = None) -> "LoanBook":
        """Configure logging and open the SQLite store named by the config.

        Reads the environment when no config is given.
        """
        config = config or LoanBookConfig.from_env()
        setup_logging(config.log_level, config.log_format)
        return cls(DatabaseManager(config.db_path))

    def _load_state(self) -> LedgerState:
        raw_contracts = self.store.load(CONTRACTS_KEY) or []
        raw_transactions = self.store.load(TRANSACTIONS_KEY) or []
        state = LedgerState(
            contracts=[Contract.from_dict(c) for c in raw_contracts],
            transactions=[Transaction.from_dict(t) for t in raw_transactions],
        )
        logger.info("Loaded %d contracts and %d transactions",
                    len(state.contracts), len(state.transactions))
        return state

    def _commit(self, state: LedgerState):
        """Persist both collections in one write, then adopt the new state."""
        self.store.save_many({
            CONTRACTS_KEY: [c.to_dict() for c in state.contracts],
            TRANSACTIONS_KEY: [t.to_dict() for t in state.transactions],
        })
        self.state = state

    def today(self) -> date:
        return self._today_provider()

    # ===== QUERIES =====

    def get_contract(self, contract_id: str) -> Optional[Contract]:
        return self.state.find_contract(contract_id)

    def enriched_contracts(self, today: date = None) -> List[EnrichedContract]:
        """All contracts with derived state, soonest due first."""
        return ledger_engine.derive_all(self.state.contracts, self.state.transactions,
                                        today or self.today())

    def get_enriched(self, contract_id: str, today: date = None) -> Optional[EnrichedContract]:
        contract = self.get_contract(contract_id)
        if contract is None:
            return None
        return ledger_engine.derive_state(contract, self.state.transactions, today or self.today())

    def stats(self, today: date = None) -> PortfolioStats:
        return reports.portfolio_stats(self.state.contracts, self.state.transactions,
                                       self.enriched_contracts(today))

    def report_groups(self, today: date = None) -> List[ReportGroup]:
        return reports.report_groups(self.enriched_contracts(today))

    def contract_history(self, contract_id: str) -> List[Transaction]:
        return reports.contract_history(self.state.transactions, contract_id)

    def recent_transactions(self, limit: int = 5) -> List[Transaction]:
        return reports.recent_transactions(self.state.transactions, limit)

    def export_report(self, output_path: str, today: date = None) -> Result:
        """Write the per-customer report to a .csv or Excel file."""
        return reports.export_report(self.report_groups(today), output_path)

    # ===== CONTRACTS =====

    def add_contract(self, data: Dict[str, Any]) -> Contract:
        """Create and persist a contract from submitted form data."""
        contract = ledger_engine.create_contract(data)
        self._commit(LedgerState(
            contracts=self.state.contracts + [contract],
            transactions=list(self.state.transactions),
        ))
        logger.info("Added contract %s (%s) for %s", contract.id, contract.name, contract.loan_amount)
        return contract

    def update_contract(self, contract_id: str, changes: Dict[str, Any]) -> Result:
        """Merge form data into a contract and persist it."""
        contract = self.get_contract(contract_id)
        if contract is None:
            return Result.fail(f"Contract '{contract_id}' not found", ErrorType.NOT_FOUND)

        updated = ledger_engine.update_contract(contract, changes)
        self._commit(LedgerState(
            contracts=[updated if c.id == contract_id else c for c in self.state.contracts],
            transactions=list(self.state.transactions),
        ))
        logger.info("Updated contract %s", contract_id)
        return Result.ok(updated)

    def delete_contract(self, contract_id: str, confirmed: bool = False) -> Result:
        """Delete a contract once the user has confirmed.

        Without ``confirmed`` nothing changes and the failure carries the
        warning to show. Transactions of the contract are not deleted.
        """
        if self.get_contract(contract_id) is None:
            return Result.fail(f"Contract '{contract_id}' not found", ErrorType.NOT_FOUND)
        if not confirmed:
            return Result.fail(DELETE_CONTRACT_WARNING, ErrorType.CONFIRMATION_REQUIRED)

        self._commit(ledger_engine.remove_contract(self.state, contract_id))
        logger.info("Deleted contract %s", contract_id)
        return Result.ok(contract_id)

    # ===== PAYMENTS =====

    def record_payment(self, contract_id: str, request: PaymentRequest,
                       today: date = None) -> PaymentOutcome:
        """Apply a payment and persist the transaction and contract together.

        Raises:
            ContractNotFoundError: If the contract does not exist.
        """
        new_state, outcome = ledger_engine.record_payment(
            self.state, contract_id, request, today or self.today())
        self._commit(new_state)
        logger.info("Recorded payment %s on contract %s: amount=%s principal=%s cycle=%s",
                    outcome.transaction.id, contract_id, request.amount,
                    request.principal_reduction, outcome.transaction.cycle_date_snapshot)
        return outcome

    def delete_transaction(self, transaction_id: str, confirmed: bool = False) -> Result:
        """Delete a transaction once the user has confirmed.

        The contract's remaining principal and last paid date are NOT
        restored; the returned value is the warning telling the user to
        correct them by hand.
        """
        if self.state.find_transaction(transaction_id) is None:
            return Result.fail(f"Transaction '{transaction_id}' not found", ErrorType.NOT_FOUND)
        if not confirmed:
            return Result.fail(DELETE_TRANSACTION_WARNING, ErrorType.CONFIRMATION_REQUIRED)

        self._commit(ledger_engine.remove_transaction(self.state, transaction_id))
        logger.warning("Deleted transaction %s; contract balance and cycle were not restored",
                       transaction_id)
        return Result.ok(DELETE_TRANSACTION_WARNING)
