"""Domain models - closed status enums and pure dataclasses for ledger arithmetic"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class LoanStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"
    DEFAULTED = "DEFAULTED"


class CollateralStatus(str, Enum):
    PLEDGED = "PLEDGED"
    RELEASED = "RELEASED"
    AUCTIONED = "AUCTIONED"
    LOST = "LOST"


class PaymentType(str, Enum):
    LOAN_DISBURSEMENT = "LOAN_DISBURSEMENT"
    EMI_PAYMENT = "EMI_PAYMENT"
    PARTIAL_PAYMENT = "PARTIAL_PAYMENT"
    INTEREST_PAYMENT = "INTEREST_PAYMENT"
    PENALTY_PAYMENT = "PENALTY_PAYMENT"
    LOAN_CLOSURE = "LOAN_CLOSURE"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    UPI = "UPI"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHEQUE = "CHEQUE"
    CARD = "CARD"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# Payment types that reduce principal outstanding
PRINCIPAL_REDUCING_TYPES = frozenset(
    {PaymentType.EMI_PAYMENT, PaymentType.PARTIAL_PAYMENT, PaymentType.LOAN_CLOSURE}
)

# Payment types a client may record; disbursement is system-generated
REPAYMENT_TYPES = frozenset(PaymentType) - {PaymentType.LOAN_DISBURSEMENT}


@dataclass
class LedgerEntry:
    """Money movement against a loan, as seen by the calculator"""

    amount: Decimal
    payment_type: PaymentType
    status: PaymentStatus = PaymentStatus.COMPLETED


@dataclass
class PledgedItem:
    """Collateral item fields needed for summary projections"""

    weight_grams: Decimal
    total_value: Decimal
    status: CollateralStatus


@dataclass
class EmiQuote:
    """Flat-rate repayment terms for a loan"""

    total_interest: Decimal
    total_payable: Decimal
    emi_amount: Decimal


@dataclass
class ScheduledInstallment:
    """Single installment in a flat-rate EMI schedule"""

    installment_number: int
    due_date: date
    principal_amount: Decimal
    interest_amount: Decimal
    total_amount: Decimal


@dataclass
class OverdueInfo:
    """Days-past-maturity assessment of a loan"""

    is_overdue: bool
    days_overdue: int
    bucket: str | None


@dataclass
class CollateralSummary:
    """Fold over a collection of collateral items"""

    total_items: int
    total_weight: Decimal
    total_value: Decimal
    pledged_items: int
    released_items: int


@dataclass
class LedgerTotals:
    """Collected and disbursed aggregates over a payment history"""

    total_collected: Decimal
    total_disbursed: Decimal
    principal_collected: Decimal
    interest_collected: Decimal
    penalty_collected: Decimal
