"""Tests for the overdue sweep, default checks and aging statistics"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from goldloan_core.domain.exceptions import InvalidTransition
from goldloan_core.domain.models import LoanStatus, PaymentMethod, PaymentType
from goldloan_core.infrastructure.database.models import LoanRecord
from goldloan_core.services.ledger import PaymentLedger
from goldloan_core.services.loans import LoanLifecycleService
from goldloan_core.services.overdue import OverdueService

ACTOR = "officer-1"


@pytest.fixture
def overdue(db: Session) -> OverdueService:
    return OverdueService(db)


@pytest.fixture
def loan_factory(db: Session, disburse_loan):
    """Disbursed 10,000 loans for 3 months, on the given date"""

    def _create(disbursed_on: date) -> LoanRecord:
        loan = LoanLifecycleService(db).create_loan("CUST-X", Decimal("10000"), Decimal("12"), 3, ACTOR)
        return disburse_loan(loan, on=disbursed_on)

    return _create


def test_sweep_marks_matured_loans_overdue(overdue: OverdueService, matured_loan: LoanRecord, loan_factory):
    current = loan_factory(date.today())

    result = overdue.sweep()

    assert result.total_processed == 2
    assert result.new_overdue_count == 1
    assert result.completed_count == 0
    assert matured_loan.status == LoanStatus.OVERDUE
    assert current.status == LoanStatus.ACTIVE


def test_sweep_is_idempotent(overdue: OverdueService, matured_loan: LoanRecord):
    overdue.sweep()
    again = overdue.sweep()

    assert again.total_processed == 1
    assert again.new_overdue_count == 0
    assert matured_loan.status == LoanStatus.OVERDUE


def test_sweep_counts_failed_loans_and_continues(
    overdue: OverdueService, matured_loan: LoanRecord, loan_factory, monkeypatch
):
    broken = loan_factory(date.today())
    original = LoanLifecycleService.recompute_derived_status

    def recompute(self, loan_id, *args, **kwargs):
        if loan_id == broken.id:
            raise RuntimeError("balance service unavailable")
        return original(self, loan_id, *args, **kwargs)

    monkeypatch.setattr(LoanLifecycleService, "recompute_derived_status", recompute)

    result = overdue.sweep()

    assert result.total_processed == 1
    assert result.new_overdue_count == 1
    assert result.failed_count == 1
    assert matured_loan.status == LoanStatus.OVERDUE
    assert broken.status == LoanStatus.ACTIVE


def test_sweep_ignores_non_repaying_loans(overdue: OverdueService, pending_loan: LoanRecord):
    result = overdue.sweep(today=date(2099, 1, 1))

    assert result.total_processed == 0
    assert pending_loan.status == LoanStatus.PENDING


def test_check_default_below_threshold(overdue: OverdueService, matured_loan: LoanRecord):
    marked, threshold = overdue.check_default(matured_loan.id, ACTOR)

    assert marked is False
    assert threshold == 90
    assert matured_loan.status == LoanStatus.OVERDUE


def test_check_default_at_threshold(overdue: OverdueService, matured_loan: LoanRecord):
    marked, threshold = overdue.check_default(matured_loan.id, ACTOR, threshold_days=30)

    assert marked is True
    assert threshold == 30
    assert matured_loan.status == LoanStatus.DEFAULTED
    assert matured_loan.defaulted_by == ACTOR
    assert "threshold 30" in matured_loan.default_remarks


def test_check_default_leaves_current_loan(overdue: OverdueService, active_loan: LoanRecord):
    marked, _ = overdue.check_default(active_loan.id, ACTOR, threshold_days=0)

    assert marked is False
    assert active_loan.status == LoanStatus.ACTIVE


def test_defaulted_loan_is_terminal(db: Session, overdue: OverdueService, matured_loan: LoanRecord):
    overdue.check_default(matured_loan.id, ACTOR, threshold_days=1)

    with pytest.raises(InvalidTransition):
        LoanLifecycleService(db).approve(matured_loan.id, ACTOR)
    assert overdue.sweep().total_processed == 0


def test_overdue_loans_filtered_and_sorted(overdue: OverdueService, loan_factory):
    today = date(2024, 12, 31)
    mild = loan_factory(date(2024, 9, 1))  # matures 2024-12-01, 30 days
    severe = loan_factory(date(2024, 5, 1))  # matures 2024-08-01, 152 days
    loan_factory(date(2024, 11, 1))  # matures 2025-02-01

    rows = overdue.overdue_loans(today=today)
    assert [loan.id for loan, _ in rows] == [severe.id, mild.id]
    assert [info.days_overdue for _, info in rows] == [152, 30]
    assert [info.bucket for _, info in rows] == ["90+", "30-60"]

    only_mild = overdue.overdue_loans(today=today, min_days=10, max_days=60)
    assert [loan.id for loan, _ in only_mild] == [mild.id]


def test_settled_loans_are_not_overdue(db: Session, overdue: OverdueService, matured_loan: LoanRecord):
    PaymentLedger(db).record_payment(
        matured_loan.id, Decimal("100000"), PaymentType.LOAN_CLOSURE, PaymentMethod.CASH, ACTOR
    )

    assert overdue.overdue_loans() == []


def test_statistics_bucket_counts(overdue: OverdueService, loan_factory):
    today = date(2024, 12, 31)
    loan_factory(date(2024, 9, 1))
    loan_factory(date(2024, 5, 1))

    stats = overdue.statistics(today=today)

    assert stats.total_overdue_loans == 2
    assert stats.total_overdue_amount == Decimal("20000.00")
    assert stats.average_days_overdue == 91.0
    assert stats.buckets == {"0-30": 0, "30-60": 1, "60-90": 0, "90+": 1}


def test_statistics_without_overdue_loans(overdue: OverdueService, active_loan: LoanRecord):
    stats = overdue.statistics()

    assert stats.total_overdue_loans == 0
    assert stats.total_overdue_amount == Decimal("0.00")
    assert stats.average_days_overdue == 0.0
    assert sum(stats.buckets.values()) == 0


def test_matured_loan_days_overdue(overdue: OverdueService, matured_loan: LoanRecord):
    info = overdue.assess(matured_loan, date.today())

    assert info.is_overdue is True
    assert 30 <= info.days_overdue < 60
    assert info.days_overdue == (date.today() - matured_loan.maturity_date).days
