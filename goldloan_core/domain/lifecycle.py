"""Loan status graph and derived-status rules"""

from datetime import date
from decimal import Decimal

from goldloan_core.domain.exceptions import InvalidTransition
from goldloan_core.domain.models import LoanStatus

TRANSITIONS = {
    LoanStatus.PENDING: frozenset({LoanStatus.APPROVED, LoanStatus.REJECTED}),
    LoanStatus.APPROVED: frozenset({LoanStatus.ACTIVE}),
    LoanStatus.ACTIVE: frozenset({LoanStatus.COMPLETED, LoanStatus.OVERDUE, LoanStatus.DEFAULTED}),
    LoanStatus.OVERDUE: frozenset({LoanStatus.COMPLETED, LoanStatus.DEFAULTED}),
    LoanStatus.REJECTED: frozenset(),
    LoanStatus.COMPLETED: frozenset(),
    LoanStatus.DEFAULTED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

# Loans accepting repayments and subject to overdue recomputation
REPAYING_STATUSES = frozenset({LoanStatus.ACTIVE, LoanStatus.OVERDUE})


def can_transition(current: LoanStatus, target: LoanStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: LoanStatus, target: LoanStatus) -> None:
    """Raise InvalidTransition unless current -> target is an edge of the graph"""
    if not can_transition(current, target):
        raise InvalidTransition(current, target)


def derive_status(
    current: LoanStatus,
    outstanding_balance: Decimal,
    maturity_date: date | None,
    today: date,
) -> LoanStatus:
    """
    Status implied by the ledger for a repaying loan.

    Settled loans complete; loans past maturity with money owed go overdue.
    Statuses outside ACTIVE/OVERDUE are returned unchanged, as is an
    OVERDUE loan that is still owed money (there is no edge back to ACTIVE).
    """
    if current not in REPAYING_STATUSES:
        return current
    if outstanding_balance <= 0:
        return LoanStatus.COMPLETED
    if maturity_date is not None and today > maturity_date:
        return LoanStatus.OVERDUE
    return current


def reachable_statuses(start: LoanStatus = LoanStatus.PENDING) -> frozenset:
    """Every status reachable from start by following the graph"""
    seen = {start}
    frontier = [start]
    while frontier:
        for target in TRANSITIONS[frontier.pop()]:
            if target not in seen:
                seen.add(target)
                frontier.append(target)
    return frozenset(seen)
