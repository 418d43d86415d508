"""Unit tests for the loan status graph"""

import pytest
from datetime import date
from decimal import Decimal
from goldloan_core.domain.exceptions import InvalidTransition
from goldloan_core.domain.lifecycle import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    can_transition,
    derive_status,
    ensure_transition,
    reachable_statuses,
)
from goldloan_core.domain.models import LoanStatus

ALLOWED = {
    (LoanStatus.PENDING, LoanStatus.APPROVED),
    (LoanStatus.PENDING, LoanStatus.REJECTED),
    (LoanStatus.APPROVED, LoanStatus.ACTIVE),
    (LoanStatus.ACTIVE, LoanStatus.COMPLETED),
    (LoanStatus.ACTIVE, LoanStatus.OVERDUE),
    (LoanStatus.ACTIVE, LoanStatus.DEFAULTED),
    (LoanStatus.OVERDUE, LoanStatus.COMPLETED),
    (LoanStatus.OVERDUE, LoanStatus.DEFAULTED),
}


def test_every_status_reachable_from_pending():
    assert reachable_statuses() == frozenset(LoanStatus)


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {LoanStatus.REJECTED, LoanStatus.COMPLETED, LoanStatus.DEFAULTED}


@pytest.mark.parametrize("current", list(LoanStatus))
@pytest.mark.parametrize("target", list(LoanStatus))
def test_only_graph_edges_are_allowed(current, target):
    assert can_transition(current, target) == ((current, target) in ALLOWED)


def test_graph_has_no_self_loops():
    for status, targets in TRANSITIONS.items():
        assert status not in targets


def test_reject_from_active_is_invalid():
    with pytest.raises(InvalidTransition) as exc_info:
        ensure_transition(LoanStatus.ACTIVE, LoanStatus.REJECTED)

    assert exc_info.value.from_status == LoanStatus.ACTIVE
    assert exc_info.value.attempted == LoanStatus.REJECTED
    assert exc_info.value.context() == {"from": "ACTIVE", "attempted": "REJECTED"}


def test_derive_completes_settled_loan():
    status = derive_status(LoanStatus.ACTIVE, Decimal("0"), date(2025, 1, 1), date(2024, 6, 1))
    assert status == LoanStatus.COMPLETED


def test_derive_marks_overdue_after_maturity():
    status = derive_status(LoanStatus.ACTIVE, Decimal("10"), date(2024, 1, 1), date(2024, 1, 2))
    assert status == LoanStatus.OVERDUE


def test_derive_keeps_active_before_maturity():
    status = derive_status(LoanStatus.ACTIVE, Decimal("10"), date(2024, 1, 1), date(2024, 1, 1))
    assert status == LoanStatus.ACTIVE


def test_derive_completes_overdue_loan_once_settled():
    status = derive_status(LoanStatus.OVERDUE, Decimal("0"), date(2024, 1, 1), date(2024, 3, 1))
    assert status == LoanStatus.COMPLETED


@pytest.mark.parametrize(
    "status",
    [LoanStatus.PENDING, LoanStatus.APPROVED, LoanStatus.REJECTED, LoanStatus.COMPLETED, LoanStatus.DEFAULTED],
)
def test_derive_leaves_non_repaying_loans_alone(status):
    assert derive_status(status, Decimal("0"), date(2024, 1, 1), date(2024, 3, 1)) == status


def test_derive_is_idempotent():
    args = (Decimal("10"), date(2024, 1, 1), date(2024, 2, 1))
    first = derive_status(LoanStatus.ACTIVE, *args)
    second = derive_status(first, *args)

    assert first == second == LoanStatus.OVERDUE
