"""Payment ledger - append-only money movements against a loan"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from goldloan_core.domain.calculator import compute_ledger_totals, money
from goldloan_core.domain.exceptions import InvalidState, NotFound, ValidationError
from goldloan_core.domain.lifecycle import REPAYING_STATUSES
from goldloan_core.domain.models import (
    REPAYMENT_TYPES,
    LedgerTotals,
    LoanStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
)
from goldloan_core.infrastructure.database.models import PaymentRecord
from goldloan_core.infrastructure.database.repositories import PaymentRepository
from goldloan_core.infrastructure.database.session import atomic
from goldloan_core.infrastructure.observability.logging import log_payment
from goldloan_core.infrastructure.observability.metrics import payment_counter
from goldloan_core.services.loans import LoanLifecycleService, generate_receipt_number


def validate_amount(amount) -> Decimal:
    try:
        value = money(amount)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("amount", "Amount must be a number")
    if value <= 0:
        raise ValidationError("amount", "Amount must be greater than zero")
    return value


@dataclass
class PaymentStatistics:
    total_payments: int = 0
    total_amount: Decimal = Decimal("0.00")
    payments_today: int = 0
    payments_this_month: int = 0
    average_payment_amount: Decimal = Decimal("0.00")
    payment_method_breakdown: Dict[str, int] = field(default_factory=lambda: {m.value: 0 for m in PaymentMethod})


class PaymentLedger:
    """Records repayments and re-derives loan status after every append"""

    def __init__(self, db: Session):
        self.db = db
        self.payments = PaymentRepository(db)
        self.lifecycle = LoanLifecycleService(db)

    def get(self, payment_id: uuid.UUID) -> PaymentRecord:
        payment = self.payments.get(payment_id)
        if payment is None:
            raise NotFound("Payment", payment_id)
        return payment

    def list(
        self,
        loan_id: Optional[uuid.UUID] = None,
        payment_type: Optional[PaymentType] = None,
        limit: int = 100,
    ) -> List[PaymentRecord]:
        return self.payments.list(loan_id=loan_id, payment_type=payment_type, limit=limit)

    def totals(self, loan_id: uuid.UUID) -> LedgerTotals:
        loan = self.lifecycle.get(loan_id)
        return compute_ledger_totals(loan.payments)

    def statistics(self, today: Optional[date] = None) -> PaymentStatistics:
        """Repayment counts and amounts across all loans; disbursements are excluded"""
        today = today or date.today()
        stats = PaymentStatistics()
        for payment in self.payments.repayments():
            stats.total_payments += 1
            stats.total_amount += money(payment.amount)
            stats.payment_method_breakdown[payment.payment_method.value] += 1
            if payment.payment_date == today:
                stats.payments_today += 1
            if (payment.payment_date.year, payment.payment_date.month) == (today.year, today.month):
                stats.payments_this_month += 1
        if stats.total_payments:
            stats.average_payment_amount = money(stats.total_amount / stats.total_payments)
        return stats

    def record_payment(
        self,
        loan_id: uuid.UUID,
        amount,
        payment_type: PaymentType,
        payment_method: PaymentMethod,
        actor: str,
        payment_date: Optional[date] = None,
        transaction_ref: Optional[str] = None,
        remarks: Optional[str] = None,
        expected_status: Optional[LoanStatus] = None,
        today: Optional[date] = None,
    ) -> PaymentRecord:
        """
        Append a completed repayment and re-derive the loan status.

        Requirements:
        - Loan must be ACTIVE or OVERDUE
        - LOAN_DISBURSEMENT is system-generated by disbursement only
        - Entry, cached balance and status commit in one transaction
        """
        amount = validate_amount(amount)
        if payment_type not in REPAYMENT_TYPES:
            raise ValidationError("paymentType", "Disbursements are recorded by the disburse command only")
        payment_date = payment_date or today or date.today()

        with atomic(self.db):
            loan = self.lifecycle.load_for_update(loan_id, expected_status)
            if loan.status not in REPAYING_STATUSES:
                raise InvalidState(
                    f"Loan {loan.loan_number} is {loan.status.value}; payments are accepted only while ACTIVE or OVERDUE"
                )
            entry = self.payments.append(
                PaymentRecord(
                    loan=loan,
                    receipt_number=generate_receipt_number(payment_date),
                    amount=amount,
                    payment_type=payment_type,
                    payment_method=payment_method,
                    status=PaymentStatus.COMPLETED,
                    payment_date=payment_date,
                    transaction_ref=transaction_ref,
                    remarks=remarks,
                    recorded_by=actor,
                )
            )
            previous = self.lifecycle.refresh(loan, today)

        payment_counter.labels(payment_type=payment_type.value).inc()
        log_payment(str(loan_id), actor, entry.receipt_number, payment_type.value, str(amount))
        if previous != loan.status:
            self.lifecycle.record_committed(loan, actor, previous, "record_payment")
        return entry
