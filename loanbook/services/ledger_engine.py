"""Ledger derivation and payment application for LoanBook.

All functions here are pure: they take contracts and transactions and
return new values. Persisting the result is the caller's job (see
``loanbook.engine.LoanBook``).
"""
import logging
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loanbook.config import (
    NOTE_PARTIAL_PAYMENT,
    NOTE_REGULAR_PAYMENT,
    PAYMENT_AUTO,
    PAYMENT_FIXED_INSTALLMENT,
)
from loanbook.exceptions import ContractNotFoundError, TransactionNotFoundError
from loanbook.models import (
    Contract,
    EnrichedContract,
    LedgerState,
    PaymentOutcome,
    PaymentRequest,
    Transaction,
)
from loanbook.parsing import (
    parse_amount,
    parse_count,
    parse_date,
    parse_payment_type,
    round2,
    round_half_up,
)
from loanbook.services.schedule_calculator import compute_next_due_date

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# DERIVATION
# =============================================================================

def is_paid_by_balance(current_balance: float) -> bool:
    """Payoff by exhausted balance."""
    return current_balance <= 0


def is_paid_by_installments(contract: Contract, total_paid: float) -> bool:
    """Payoff of an installment contract whose payments reached the loan amount."""
    return (contract.payment_type == PAYMENT_FIXED_INSTALLMENT
            and total_paid >= contract.loan_amount)


def actual_disbursed(contract: Contract) -> float:
    """Cash the borrower actually received."""
    if contract.payment_type == PAYMENT_FIXED_INSTALLMENT and contract.net_received_amount:
        return contract.net_received_amount
    return contract.loan_amount - contract.service_fee


def derive_state(contract: Contract, transactions: Iterable[Transaction], today: date) -> EnrichedContract:
    """Derive the runtime state of one contract as of ``today``.

    Args:
        contract: The contract.
        transactions: The full transaction log (filtered here by contract id).
        today: The reference day for overdue checks.

    Returns:
        EnrichedContract with balance, payoff, due date and penalty fields.
    """
    total_paid = sum(t.amount for t in transactions if t.customer_id == contract.id)
    current_balance = contract.current_principal

    is_fully_paid = (is_paid_by_balance(current_balance)
                     or is_paid_by_installments(contract, total_paid))

    next_due_date = None if is_fully_paid else compute_next_due_date(contract)

    is_overdue = False
    days_overdue = 0
    current_penalty = 0.0
    if next_due_date is not None and next_due_date < today:
        is_overdue = True
        days_overdue = (today - next_due_date).days
        current_penalty = days_overdue * contract.daily_penalty_amount

    return EnrichedContract(
        contract=contract,
        next_due_date=next_due_date,
        is_overdue=is_overdue,
        days_overdue=days_overdue,
        current_penalty=current_penalty,
        actual_disbursed=actual_disbursed(contract),
        total_paid=total_paid,
        is_fully_paid=is_fully_paid,
        current_balance=current_balance,
    )


def derive_all(contracts: Iterable[Contract], transactions: Iterable[Transaction],
               today: date) -> List[EnrichedContract]:
    """Derive every contract, soonest due first and undated contracts last."""
    transactions = list(transactions)
    enriched = [derive_state(c, transactions, today) for c in contracts]
    return sorted(enriched, key=lambda e: (e.next_due_date is None,
                                           e.next_due_date or date.min))


# =============================================================================
# PAYMENTS
# =============================================================================

def build_payment_note(advance_cycle: bool, principal_reduction: float) -> str:
    """Transaction note. Only a regular payment names the principal reduction."""
    if not advance_cycle:
        return NOTE_PARTIAL_PAYMENT
    if principal_reduction > 0:
        return f"{NOTE_REGULAR_PAYMENT} + principal ${principal_reduction:g}"
    return NOTE_REGULAR_PAYMENT


def apply_payment(contract: Contract, snapshot: EnrichedContract,
                  request: PaymentRequest, transaction_id: str = None) -> PaymentOutcome:
    """Apply a payment to a contract.

    The cycle advances to the due date that was owed (``snapshot``), never
    to the payment date, so early or late payments do not shift the
    schedule. Inputs are not validated: a principal reduction larger than
    the amount received is accepted as entered.

    Args:
        contract: The contract being paid.
        snapshot: Its enriched state before this payment.
        request: Amount, principal reduction, cycle flag and date.
        transaction_id: Optional id for the new transaction.

    Returns:
        PaymentOutcome with the updated contract and the new transaction.
    """
    if request.amount < request.principal_reduction:
        logger.warning(
            "Payment on contract %s reduces principal by %s but only %s was received",
            contract.id, request.principal_reduction, request.amount)

    due_date = snapshot.next_due_date
    transaction = Transaction(
        id=transaction_id or _new_id(),
        customer_id=contract.id,
        customer_name=contract.name,
        amount=request.amount,
        principal_paid=request.principal_reduction,
        payment_date=request.payment_date,
        note=build_payment_note(request.advance_cycle, request.principal_reduction),
        cycle_date_snapshot=due_date,
    )

    updates: Dict[str, Any] = {}
    if request.advance_cycle and due_date is not None:
        updates['last_paid_date'] = due_date

    if request.principal_reduction > 0:
        new_principal = max(0.0, contract.current_principal - request.principal_reduction)
        updates['remaining_principal'] = new_principal
        if contract.payment_type == PAYMENT_AUTO and contract.interest_rate > 0:
            updates['payment_amount'] = float(
                round_half_up(new_principal * contract.interest_rate / 100))

    return PaymentOutcome(updated_contract=replace(contract, **updates),
                          transaction=transaction)


def record_payment(state: LedgerState, contract_id: str, request: PaymentRequest,
                   today: date) -> Tuple[LedgerState, PaymentOutcome]:
    """Apply a payment and return the next ledger state.

    Raises:
        ContractNotFoundError: If no contract has ``contract_id``.
    """
    contract = state.find_contract(contract_id)
    if contract is None:
        raise ContractNotFoundError(contract_id)

    snapshot = derive_state(contract, state.transactions, today)
    outcome = apply_payment(contract, snapshot, request)

    contracts = [outcome.updated_contract if c.id == contract_id else c
                 for c in state.contracts]
    transactions = [outcome.transaction] + list(state.transactions)
    return LedgerState(contracts=contracts, transactions=transactions), outcome


def remove_transaction(state: LedgerState, transaction_id: str) -> LedgerState:
    """Drop a transaction. The contract's principal and cycle are left as they are.

    Raises:
        TransactionNotFoundError: If no transaction has ``transaction_id``.
    """
    if state.find_transaction(transaction_id) is None:
        raise TransactionNotFoundError(transaction_id)
    return LedgerState(
        contracts=list(state.contracts),
        transactions=[t for t in state.transactions if t.id != transaction_id],
    )


def remove_contract(state: LedgerState, contract_id: str) -> LedgerState:
    """Drop a contract. Its transactions are kept."""
    if state.find_contract(contract_id) is None:
        raise ContractNotFoundError(contract_id)
    return LedgerState(
        contracts=[c for c in state.contracts if c.id != contract_id],
        transactions=list(state.transactions),
    )


# =============================================================================
# CONTRACT TERMS
# =============================================================================

_FIELD_PARSERS = {
    'name': lambda v: "" if v is None else str(v),
    'loan_amount': parse_amount,
    'remaining_principal': lambda v: parse_amount(v, default=None),
    'loan_start_date': parse_date,
    'last_paid_date': parse_date,
    'interest_rate': parse_amount,
    'payment_amount': parse_amount,
    'payment_type': parse_payment_type,
    'service_fee': parse_amount,
    'daily_penalty_amount': parse_amount,
    'net_received_amount': lambda v: parse_amount(v, default=None),
    'total_installments': lambda v: parse_count(v, default=None),
}


def sync_payment_terms(contract: Contract, changed_field: str) -> Contract:
    """Keep payment amount and interest rate consistent after an edit.

    - auto: loan amount, rate or type changes recompute the payment amount;
      a payment amount change back-solves the rate.
    - fixed_installment: loan amount, installment count or type changes
      recompute the payment amount.
    - fixed: the payment amount is left alone.
    """
    loan = contract.loan_amount
    updates: Dict[str, Any] = {}

    if contract.payment_type == PAYMENT_FIXED_INSTALLMENT:
        installments = contract.total_installments or 0
        if (changed_field in ('loan_amount', 'total_installments', 'payment_type')
                and loan > 0 and installments > 0):
            updates['payment_amount'] = float(round_half_up(loan / installments))
    elif contract.payment_type == PAYMENT_AUTO:
        rate = contract.interest_rate
        payment = contract.payment_amount
        if changed_field in ('loan_amount', 'interest_rate', 'payment_type'):
            if loan > 0 and rate > 0:
                updates['payment_amount'] = float(round_half_up(loan * rate / 100))
        elif changed_field == 'payment_amount':
            if loan > 0 and payment > 0:
                updates['interest_rate'] = round2(payment / loan * 100)

    if changed_field == 'payment_type' and contract.payment_type != PAYMENT_FIXED_INSTALLMENT:
        updates['net_received_amount'] = None
        updates['total_installments'] = None

    return replace(contract, **updates) if updates else contract


def edit_contract_field(contract: Contract, field_name: str, raw_value: Any) -> Contract:
    """Set one field from raw input and re-sync the dependent terms.

    Raises:
        KeyError: If ``field_name`` is not an editable contract field.
    """
    value = _FIELD_PARSERS[field_name](raw_value)
    return sync_payment_terms(replace(contract, **{field_name: value}), field_name)


def create_contract(data: Dict[str, Any], created_at: Optional[str] = None) -> Contract:
    """Build a new contract from submitted form data.

    The remaining principal starts at the loan amount and nothing is paid.
    """
    contract = Contract.from_dict(data)
    return replace(
        contract,
        id=_new_id(),
        remaining_principal=contract.loan_amount,
        last_paid_date=None,
        created_at=created_at or datetime.now().isoformat(timespec='seconds'),
    )


def update_contract(contract: Contract, changes: Dict[str, Any]) -> Contract:
    """Merge submitted form data into an existing contract. The id never changes."""
    merged = {**contract.to_dict(), **changes, 'id': contract.id}
    return Contract.from_dict(merged)
