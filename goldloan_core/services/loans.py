"""Loan state machine - origination, approval, disbursement and derived status"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from goldloan_core.config import settings
from goldloan_core.domain.calculator import compute_emi, compute_outstanding_balance, money
from goldloan_core.domain.collateral import compute_item_value
from goldloan_core.domain.exceptions import ConcurrentModification, InvalidState, NotFound, ValidationError
from goldloan_core.domain.lifecycle import derive_status, ensure_transition
from goldloan_core.domain.models import CollateralStatus, LoanStatus, PaymentMethod, PaymentStatus, PaymentType
from goldloan_core.infrastructure.database.models import GoldItemRecord, LoanRecord, PaymentRecord
from goldloan_core.infrastructure.database.repositories import LoanRepository, PaymentRepository
from goldloan_core.infrastructure.database.session import atomic
from goldloan_core.infrastructure.observability.logging import log_transition
from goldloan_core.infrastructure.observability.metrics import payment_counter, record_transition
from goldloan_core.utils.date_utils import add_months, utcnow


def require_text(value: Optional[str], field: str, message: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(field, message)
    return value.strip()


def generate_receipt_number(on_date: date) -> str:
    return f"{settings.receipt_number_prefix}-{on_date:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


class LoanLifecycleService:
    """Commands that move a loan along its status graph"""

    def __init__(self, db: Session):
        self.db = db
        self.loans = LoanRepository(db)
        self.payments = PaymentRepository(db)

    def get(self, loan_id: uuid.UUID) -> LoanRecord:
        loan = self.loans.get(loan_id)
        if loan is None:
            raise NotFound("Loan", loan_id)
        return loan

    def list(self, statuses: Optional[List[LoanStatus]] = None, limit: int = 100) -> List[LoanRecord]:
        return self.loans.list(statuses, limit)

    def load_for_update(self, loan_id: uuid.UUID, expected_status: Optional[LoanStatus] = None) -> LoanRecord:
        """Lock the loan row and check the caller's view of its status is current"""
        loan = self.loans.get_for_update(loan_id)
        if loan is None:
            raise NotFound("Loan", loan_id)
        if expected_status is not None and loan.status != expected_status:
            raise ConcurrentModification(
                f"Loan {loan.loan_number} is {loan.status.value}, caller expected {expected_status.value}"
            )
        return loan

    def create_loan(
        self,
        customer_id: str,
        principal_amount,
        interest_rate_percent,
        tenure_months: int,
        actor: str,
        items: Iterable[dict] = (),
    ) -> LoanRecord:
        """Originate a PENDING loan together with its pledged items"""
        customer_id = require_text(customer_id, "customerId", "Customer is required")
        quote = compute_emi(principal_amount, interest_rate_percent, tenure_months)

        with atomic(self.db):
            loan = LoanRecord(
                loan_number=self.loans.next_loan_number(settings.loan_number_prefix),
                customer_id=customer_id,
                principal_amount=money(principal_amount),
                interest_rate_percent=Decimal(str(interest_rate_percent)),
                tenure_months=int(tenure_months),
                total_interest=quote.total_interest,
                status=LoanStatus.PENDING,
                outstanding_balance=money(principal_amount),
                created_by=actor,
            )
            for item in items:
                loan.items.append(new_gold_item(**item))
            self.loans.add(loan)

        log_transition(str(loan.id), actor, "NEW", loan.status.value, "create")
        return loan

    def approve(
        self,
        loan_id: uuid.UUID,
        actor: str,
        remarks: Optional[str] = None,
        expected_status: Optional[LoanStatus] = None,
    ) -> LoanRecord:
        """PENDING -> APPROVED, freezing the EMI"""
        with atomic(self.db):
            loan = self.load_for_update(loan_id, expected_status)
            ensure_transition(loan.status, LoanStatus.APPROVED)
            quote = compute_emi(loan.principal_amount, loan.interest_rate_percent, loan.tenure_months)
            loan.total_interest = quote.total_interest
            loan.emi_amount = quote.emi_amount
            loan.approval_remarks = remarks.strip() if remarks else None
            loan.approved_by = actor
            loan.approved_at = utcnow()
            loan.status = LoanStatus.APPROVED

        self.record_committed(loan, actor, LoanStatus.PENDING, "approve")
        return loan

    def reject(
        self,
        loan_id: uuid.UUID,
        actor: str,
        remarks: Optional[str],
        expected_status: Optional[LoanStatus] = None,
    ) -> LoanRecord:
        """PENDING -> REJECTED; remarks are mandatory"""
        remarks = require_text(remarks, "remarks", "Rejection remarks are required")
        with atomic(self.db):
            loan = self.load_for_update(loan_id, expected_status)
            ensure_transition(loan.status, LoanStatus.REJECTED)
            loan.rejection_remarks = remarks
            loan.rejected_by = actor
            loan.rejected_at = utcnow()
            loan.status = LoanStatus.REJECTED

        self.record_committed(loan, actor, LoanStatus.PENDING, "reject")
        return loan

    def disburse(
        self,
        loan_id: uuid.UUID,
        actor: str,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        today: Optional[date] = None,
        expected_status: Optional[LoanStatus] = None,
    ) -> LoanRecord:
        """
        APPROVED -> ACTIVE.

        Appends the LOAN_DISBURSEMENT ledger entry for the full principal and
        stamps disbursement and maturity dates. Entry and status change commit
        together or not at all.
        """
        today = today or date.today()
        with atomic(self.db):
            loan = self.load_for_update(loan_id, expected_status)
            ensure_transition(loan.status, LoanStatus.ACTIVE)
            self.payments.append(
                PaymentRecord(
                    loan=loan,
                    receipt_number=generate_receipt_number(today),
                    amount=money(loan.principal_amount),
                    payment_type=PaymentType.LOAN_DISBURSEMENT,
                    payment_method=payment_method,
                    status=PaymentStatus.COMPLETED,
                    payment_date=today,
                    recorded_by=actor,
                )
            )
            loan.disbursed_date = today
            loan.maturity_date = add_months(today, loan.tenure_months)
            loan.disbursed_by = actor
            loan.status = LoanStatus.ACTIVE
            loan.outstanding_balance = compute_outstanding_balance(loan.principal_amount, loan.payments)

        payment_counter.labels(payment_type=PaymentType.LOAN_DISBURSEMENT.value).inc()
        self.record_committed(loan, actor, LoanStatus.APPROVED, "disburse")
        return loan

    def recompute_derived_status(
        self,
        loan_id: uuid.UUID,
        actor: str = "system",
        today: Optional[date] = None,
    ) -> LoanRecord:
        """Re-derive balance and ACTIVE/OVERDUE/COMPLETED status from the ledger"""
        with atomic(self.db):
            loan = self.load_for_update(loan_id)
            previous = self.refresh(loan, today)

        if previous != loan.status:
            self.record_committed(loan, actor, previous, "recompute")
        return loan

    def refresh(self, loan: LoanRecord, today: Optional[date] = None) -> LoanStatus:
        """
        Recompute the cached balance and apply the derived status in place.

        Must run inside the caller's transaction. Returns the status held
        before the call; writes nothing when neither value changed.
        """
        today = today or date.today()
        previous = loan.status
        balance = compute_outstanding_balance(loan.principal_amount, loan.payments)
        if loan.outstanding_balance is None or money(loan.outstanding_balance) != balance:
            loan.outstanding_balance = balance

        target = derive_status(previous, balance, loan.maturity_date, today)
        if target != previous:
            ensure_transition(previous, target)
            loan.status = target
            if target == LoanStatus.COMPLETED:
                loan.completed_at = utcnow()
        return previous

    def mark_defaulted(
        self,
        loan_id: uuid.UUID,
        actor: str,
        remarks: Optional[str],
        expected_status: Optional[LoanStatus] = None,
    ) -> LoanRecord:
        """ACTIVE/OVERDUE -> DEFAULTED (administrative)"""
        remarks = require_text(remarks, "remarks", "Default remarks are required")
        with atomic(self.db):
            loan = self.load_for_update(loan_id, expected_status)
            previous = loan.status
            self.apply_default(loan, actor, remarks)

        self.record_committed(loan, actor, previous, "default")
        return loan

    def apply_default(self, loan: LoanRecord, actor: str, remarks: str) -> None:
        ensure_transition(loan.status, LoanStatus.DEFAULTED)
        loan.default_remarks = remarks
        loan.defaulted_by = actor
        loan.defaulted_at = utcnow()
        loan.status = LoanStatus.DEFAULTED

    def delete_loan(self, loan_id: uuid.UUID, actor: str) -> None:
        """Hard delete, only for loans that never reached the ledger"""
        with atomic(self.db):
            loan = self.load_for_update(loan_id)
            if loan.status not in (LoanStatus.PENDING, LoanStatus.REJECTED):
                raise InvalidState(f"Loan {loan.loan_number} is {loan.status.value} and cannot be deleted")
            if self.payments.count_for_loan(loan.id) > 0:
                raise InvalidState(f"Loan {loan.loan_number} has ledger entries and cannot be deleted")
            previous = loan.status
            self.loans.delete(loan)

        log_transition(str(loan_id), actor, previous.value, "DELETED", "delete")

    def record_committed(self, loan: LoanRecord, actor: str, previous: LoanStatus, step: str) -> None:
        record_transition(previous.value, loan.status.value)
        log_transition(str(loan.id), actor, previous.value, loan.status.value, step)


def new_gold_item(
    item_type: str,
    weight_grams,
    purity: str,
    rate_at_pledge,
    description: Optional[str] = None,
) -> GoldItemRecord:
    """Build a PLEDGED item with its pledge-time value"""
    total_value = compute_item_value(weight_grams, rate_at_pledge)
    return GoldItemRecord(
        item_type=require_text(item_type, "itemType", "Item type is required"),
        weight_grams=Decimal(str(weight_grams)),
        purity=require_text(purity, "purity", "Purity is required"),
        rate_at_pledge=money(rate_at_pledge),
        total_value=total_value,
        description=description,
        status=CollateralStatus.PLEDGED,
    )
