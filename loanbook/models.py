"""Data structures for LoanBook.

Contracts and transactions are stored as camelCase plain dicts. The
dataclasses here are the in-memory form; ``from_dict``/``to_dict`` convert
between the two and run every field through ``loanbook.parsing``.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

from loanbook.config import (
    DEFAULT_MONTHLY_DAY,
    FREQUENCY_INTERVAL_DAYS,
    FREQUENCY_MONTHLY_DATE,
    FREQUENCY_WEEKLY_DAY,
    PAYMENT_AUTO,
    TRANSACTION_TYPE_PAYMENT,
)
from loanbook.parsing import (
    format_date,
    parse_amount,
    parse_count,
    parse_date,
    parse_interval_days,
    parse_month_days,
    parse_payment_type,
    parse_weekday,
)


# =============================================================================
# FREQUENCY RULES
# =============================================================================

@dataclass(frozen=True)
class MonthlyDates:
    """Due on each of the given days of every month."""
    days: Tuple[int, ...]

    frequency_type = FREQUENCY_MONTHLY_DATE

    def to_value(self):
        return list(self.days)


@dataclass(frozen=True)
class WeeklyDay:
    """Due once a week on ``weekday`` (0=Sunday .. 6=Saturday)."""
    weekday: int

    frequency_type = FREQUENCY_WEEKLY_DAY

    def to_value(self):
        return self.weekday


@dataclass(frozen=True)
class IntervalDays:
    """Due every ``days`` days after the anchor."""
    days: int

    frequency_type = FREQUENCY_INTERVAL_DAYS

    def to_value(self):
        return self.days


@dataclass(frozen=True)
class UnknownFrequency:
    """A rule with a missing or unrecognized type. Never produces a due date."""
    frequency_type: Optional[str] = None
    raw_value: Any = None

    def to_value(self):
        return self.raw_value


Frequency = Union[MonthlyDates, WeeklyDay, IntervalDays, UnknownFrequency]


def frequency_from_raw(frequency_type: Optional[str], frequency_value: Any) -> Frequency:
    """Build the frequency variant from the stored type tag and value."""
    if frequency_type == FREQUENCY_MONTHLY_DATE:
        return MonthlyDates(parse_month_days(frequency_value))
    if frequency_type == FREQUENCY_WEEKLY_DAY:
        return WeeklyDay(parse_weekday(frequency_value))
    if frequency_type == FREQUENCY_INTERVAL_DAYS:
        return IntervalDays(parse_interval_days(frequency_value))
    return UnknownFrequency(frequency_type, frequency_value)


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class Contract:
    """A single loan agreement."""
    id: str
    name: str = ""
    loan_amount: float = 0.0
    remaining_principal: Optional[float] = None
    loan_start_date: Optional[date] = None
    last_paid_date: Optional[date] = None
    interest_rate: float = 0.0
    payment_amount: float = 0.0
    payment_type: str = PAYMENT_AUTO
    frequency: Frequency = field(default_factory=lambda: MonthlyDates((DEFAULT_MONTHLY_DAY,)))
    service_fee: float = 0.0
    daily_penalty_amount: float = 0.0
    net_received_amount: Optional[float] = None
    total_installments: Optional[int] = None
    created_at: Optional[str] = None

    @property
    def current_principal(self) -> float:
        """Outstanding principal; legacy records without one use the loan amount."""
        if self.remaining_principal is None:
            return self.loan_amount
        return self.remaining_principal

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Contract':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name') or "",
            loan_amount=parse_amount(data.get('loanAmount')),
            remaining_principal=parse_amount(data.get('remainingPrincipal'), default=None),
            loan_start_date=parse_date(data.get('loanStartDate')),
            last_paid_date=parse_date(data.get('lastPaidDate')),
            interest_rate=parse_amount(data.get('interestRate')),
            payment_amount=parse_amount(data.get('paymentAmount')),
            payment_type=parse_payment_type(data.get('paymentType')),
            frequency=frequency_from_raw(data.get('frequencyType'), data.get('frequencyValue')),
            service_fee=parse_amount(data.get('serviceFee')),
            daily_penalty_amount=parse_amount(data.get('dailyPenaltyAmount')),
            net_received_amount=parse_amount(data.get('netReceivedAmount'), default=None),
            total_installments=parse_count(data.get('totalInstallments'), default=None),
            created_at=data.get('createdAt'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'loanAmount': self.loan_amount,
            'remainingPrincipal': self.remaining_principal,
            'loanStartDate': format_date(self.loan_start_date),
            'lastPaidDate': format_date(self.last_paid_date),
            'interestRate': self.interest_rate,
            'paymentAmount': self.payment_amount,
            'paymentType': self.payment_type,
            'frequencyType': self.frequency.frequency_type,
            'frequencyValue': self.frequency.to_value(),
            'serviceFee': self.service_fee,
            'dailyPenaltyAmount': self.daily_penalty_amount,
            'netReceivedAmount': self.net_received_amount,
            'totalInstallments': self.total_installments,
            'createdAt': self.created_at,
        }


@dataclass(frozen=True)
class Transaction:
    """One recorded payment. Never modified after creation."""
    id: str
    customer_id: str
    amount: float
    principal_paid: float
    payment_date: Optional[date]
    note: str = ""
    cycle_date_snapshot: Optional[date] = None
    customer_name: str = ""
    type: str = TRANSACTION_TYPE_PAYMENT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=str(data.get('id', '')),
            customer_id=str(data.get('customerId', '')),
            amount=parse_amount(data.get('amount')),
            principal_paid=parse_amount(data.get('principalPaid')),
            payment_date=parse_date(data.get('date')),
            note=data.get('note') or "",
            cycle_date_snapshot=parse_date(data.get('cycleDateSnapshot')),
            customer_name=data.get('customerName') or "",
            type=data.get('type') or TRANSACTION_TYPE_PAYMENT,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'customerId': self.customer_id,
            'customerName': self.customer_name,
            'amount': self.amount,
            'principalPaid': self.principal_paid,
            'date': format_date(self.payment_date),
            'type': self.type,
            'note': self.note,
            'cycleDateSnapshot': format_date(self.cycle_date_snapshot),
        }


# =============================================================================
# DERIVED VIEWS
# =============================================================================

@dataclass(frozen=True)
class EnrichedContract:
    """A contract plus its runtime state as of a given day."""
    contract: Contract
    next_due_date: Optional[date]
    is_overdue: bool
    days_overdue: int
    current_penalty: float
    actual_disbursed: float
    total_paid: float
    is_fully_paid: bool
    current_balance: float

    @property
    def id(self) -> str:
        return self.contract.id

    @property
    def name(self) -> str:
        return self.contract.name


@dataclass(frozen=True)
class PaymentRequest:
    """A payment as submitted by the user."""
    amount: float
    payment_date: date
    principal_reduction: float = 0.0
    advance_cycle: bool = True


@dataclass(frozen=True)
class PaymentOutcome:
    """The updated contract and the new transaction produced by one payment."""
    updated_contract: Contract
    transaction: Transaction


@dataclass
class LedgerState:
    """Both persisted collections. Transactions are kept newest first."""
    contracts: List[Contract] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)

    def find_contract(self, contract_id: str) -> Optional[Contract]:
        for contract in self.contracts:
            if contract.id == contract_id:
                return contract
        return None

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None


@dataclass(frozen=True)
class PortfolioStats:
    total_loaned: float
    total_collected: float
    overdue_count: int
    total_penalty: float


@dataclass
class ReportGroup:
    """All contracts of one customer name."""
    name: str
    loans: List[EnrichedContract]
    total_loaned: float
    total_paid: float
