"""Tests for loan origination and lifecycle commands"""

import pytest
import uuid
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from goldloan_core.domain.exceptions import (
    ConcurrentModification,
    InvalidState,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from goldloan_core.domain.models import LoanStatus, PaymentMethod, PaymentType
from goldloan_core.infrastructure.database.models import LoanRecord
from goldloan_core.infrastructure.database.session import atomic
from goldloan_core.services.loans import LoanLifecycleService

ACTOR = "officer-1"


@pytest.fixture
def service(db: Session) -> LoanLifecycleService:
    return LoanLifecycleService(db)


def test_create_loan_starts_pending_with_items(pending_loan: LoanRecord):
    assert pending_loan.status == LoanStatus.PENDING
    assert pending_loan.loan_number == "LN00001"
    assert pending_loan.outstanding_balance == Decimal("100000.00")
    assert pending_loan.total_interest == Decimal("12000.00")
    assert pending_loan.emi_amount is None
    assert pending_loan.created_by == ACTOR
    assert sorted(item.total_value for item in pending_loan.items) == [Decimal("63000.00"), Decimal("120000.00")]


def test_loan_numbers_are_sequential(service: LoanLifecycleService, pending_loan: LoanRecord):
    second = service.create_loan("CUST-002", Decimal("5000"), Decimal("10"), 6, ACTOR)

    assert second.loan_number == "LN00002"


def test_loan_number_after_delete_is_not_reused(service: LoanLifecycleService, pending_loan: LoanRecord):
    second = service.create_loan("CUST-002", Decimal("5000"), Decimal("10"), 6, ACTOR)
    service.delete_loan(pending_loan.id, ACTOR)

    third = service.create_loan("CUST-003", Decimal("5000"), Decimal("10"), 6, ACTOR)

    assert second.loan_number == "LN00002"
    assert third.loan_number == "LN00003"
    assert [loan.loan_number for loan in service.list()] == ["LN00002", "LN00003"]


def test_create_loan_requires_customer(service: LoanLifecycleService):
    with pytest.raises(ValidationError) as exc_info:
        service.create_loan("  ", Decimal("5000"), Decimal("10"), 6, ACTOR)
    assert exc_info.value.field == "customerId"


def test_create_loan_rejects_bad_terms_without_writing(service: LoanLifecycleService):
    with pytest.raises(ValidationError):
        service.create_loan("CUST-002", Decimal("0"), Decimal("10"), 6, ACTOR)

    assert service.list() == []


def test_create_loan_rolls_back_on_invalid_item(service: LoanLifecycleService):
    bad_item = {"item_type": "Ring", "weight_grams": Decimal("0"), "purity": "18K", "rate_at_pledge": Decimal("5000")}

    with pytest.raises(ValidationError):
        service.create_loan("CUST-002", Decimal("5000"), Decimal("10"), 6, ACTOR, items=[bad_item])

    assert service.list() == []


def test_approve_freezes_emi(service: LoanLifecycleService, pending_loan: LoanRecord):
    loan = service.approve(pending_loan.id, "manager-1", remarks="  Verified  ")

    assert loan.status == LoanStatus.APPROVED
    assert loan.emi_amount == Decimal("9333.33")
    assert loan.approved_by == "manager-1"
    assert loan.approval_remarks == "Verified"
    assert loan.approved_at is not None


def test_approve_twice_is_invalid_transition(service: LoanLifecycleService, pending_loan: LoanRecord):
    service.approve(pending_loan.id, ACTOR)

    with pytest.raises(InvalidTransition) as exc_info:
        service.approve(pending_loan.id, ACTOR)

    assert exc_info.value.from_status == LoanStatus.APPROVED
    assert exc_info.value.attempted == LoanStatus.APPROVED


def test_reject_requires_remarks(service: LoanLifecycleService, pending_loan: LoanRecord):
    with pytest.raises(ValidationError) as exc_info:
        service.reject(pending_loan.id, ACTOR, remarks="   ")

    assert exc_info.value.field == "remarks"
    assert service.get(pending_loan.id).status == LoanStatus.PENDING


def test_reject_records_audit_fields(service: LoanLifecycleService, pending_loan: LoanRecord):
    loan = service.reject(pending_loan.id, ACTOR, remarks="Purity mismatch")

    assert loan.status == LoanStatus.REJECTED
    assert loan.rejection_remarks == "Purity mismatch"
    assert loan.rejected_by == ACTOR


def test_reject_active_loan_is_invalid(service: LoanLifecycleService, active_loan: LoanRecord):
    with pytest.raises(InvalidTransition):
        service.reject(active_loan.id, ACTOR, remarks="Too late")

    assert service.get(active_loan.id).status == LoanStatus.ACTIVE


def test_disburse_pending_loan_is_invalid(service: LoanLifecycleService, pending_loan: LoanRecord):
    with pytest.raises(InvalidTransition):
        service.disburse(pending_loan.id, ACTOR)

    assert service.get(pending_loan.id).payments == []


def test_disburse_appends_ledger_entry_and_sets_maturity(service: LoanLifecycleService, pending_loan: LoanRecord):
    service.approve(pending_loan.id, ACTOR)

    loan = service.disburse(pending_loan.id, ACTOR, payment_method=PaymentMethod.BANK_TRANSFER, today=date(2024, 1, 31))

    assert loan.status == LoanStatus.ACTIVE
    assert loan.disbursed_date == date(2024, 1, 31)
    assert loan.maturity_date == date(2025, 1, 31)
    assert loan.outstanding_balance == Decimal("100000.00")
    assert len(loan.payments) == 1
    entry = loan.payments[0]
    assert entry.payment_type == PaymentType.LOAN_DISBURSEMENT
    assert entry.payment_method == PaymentMethod.BANK_TRANSFER
    assert entry.amount == Decimal("100000.00")
    assert entry.receipt_number.startswith("RCPT-20240131-")


def test_expected_status_mismatch_is_concurrent_modification(service: LoanLifecycleService, pending_loan: LoanRecord):
    service.approve(pending_loan.id, ACTOR)

    with pytest.raises(ConcurrentModification):
        service.reject(pending_loan.id, ACTOR, remarks="Stale view", expected_status=LoanStatus.PENDING)

    assert service.get(pending_loan.id).status == LoanStatus.APPROVED


def test_stale_version_is_concurrent_modification(db: Session, pending_loan: LoanRecord):
    """A write based on an outdated row version is refused"""
    stale = db.get(LoanRecord, pending_loan.id)
    assert stale.version == 1

    other = Session(bind=db.get_bind())
    try:
        LoanLifecycleService(other).approve(pending_loan.id, "manager-2")
    finally:
        other.close()

    with pytest.raises(ConcurrentModification):
        with atomic(db):
            stale.rejection_remarks = "Based on stale read"

    assert LoanLifecycleService(db).get(pending_loan.id).status == LoanStatus.APPROVED


def test_missing_loan_is_not_found(service: LoanLifecycleService):
    with pytest.raises(NotFound):
        service.approve(uuid.uuid4(), ACTOR)


def test_recompute_marks_matured_loan_overdue(service: LoanLifecycleService, matured_loan: LoanRecord):
    loan = service.recompute_derived_status(matured_loan.id)

    assert loan.status == LoanStatus.OVERDUE


def test_recompute_leaves_current_loan_active(service: LoanLifecycleService, active_loan: LoanRecord):
    loan = service.recompute_derived_status(active_loan.id)

    assert loan.status == LoanStatus.ACTIVE
    assert loan.outstanding_balance == Decimal("100000.00")


def test_recompute_does_not_touch_pending_loan(service: LoanLifecycleService, pending_loan: LoanRecord):
    loan = service.recompute_derived_status(pending_loan.id, today=date(2099, 1, 1))

    assert loan.status == LoanStatus.PENDING


def test_mark_defaulted_requires_repaying_loan(service: LoanLifecycleService, pending_loan: LoanRecord):
    with pytest.raises(InvalidTransition):
        service.mark_defaulted(pending_loan.id, ACTOR, remarks="Absconded")


def test_mark_defaulted_active_loan(service: LoanLifecycleService, active_loan: LoanRecord):
    loan = service.mark_defaulted(active_loan.id, ACTOR, remarks="Absconded")

    assert loan.status == LoanStatus.DEFAULTED
    assert loan.defaulted_by == ACTOR
    assert loan.default_remarks == "Absconded"


def test_delete_pending_loan(service: LoanLifecycleService, pending_loan: LoanRecord):
    loan_id = pending_loan.id

    service.delete_loan(loan_id, ACTOR)

    with pytest.raises(NotFound):
        service.get(loan_id)


def test_delete_disbursed_loan_is_refused(service: LoanLifecycleService, active_loan: LoanRecord):
    with pytest.raises(InvalidState):
        service.delete_loan(active_loan.id, ACTOR)

    assert service.get(active_loan.id).status == LoanStatus.ACTIVE
