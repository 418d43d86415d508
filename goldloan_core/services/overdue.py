"""Overdue recomputation sweep, default checks and aging statistics"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from goldloan_core.config import settings
from goldloan_core.domain.calculator import AGING_BUCKETS, compute_overdue, money
from goldloan_core.domain.lifecycle import REPAYING_STATUSES
from goldloan_core.domain.models import LoanStatus, OverdueInfo
from goldloan_core.infrastructure.database.models import LoanRecord
from goldloan_core.infrastructure.database.session import atomic
from goldloan_core.infrastructure.observability.metrics import overdue_sweep_counter
from goldloan_core.services.loans import LoanLifecycleService

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    total_processed: int = 0
    new_overdue_count: int = 0
    completed_count: int = 0
    failed_count: int = 0


@dataclass
class OverdueStatistics:
    total_overdue_loans: int = 0
    total_overdue_amount: Decimal = Decimal("0.00")
    average_days_overdue: float = 0.0
    buckets: Dict[str, int] = field(default_factory=lambda: {label: 0 for _, _, label in AGING_BUCKETS})


class OverdueService:
    """Keeps ACTIVE/OVERDUE loans in line with their maturity dates"""

    def __init__(self, db: Session):
        self.db = db
        self.lifecycle = LoanLifecycleService(db)

    def sweep(self, today: Optional[date] = None, actor: str = "system") -> SweepResult:
        """
        Recompute every repaying loan, one transaction per loan.

        A loan that fails to recompute is rolled back on its own and does
        not stop the sweep; it is logged and counted in failed_count.
        """
        today = today or date.today()
        result = SweepResult()

        for loan_id in self.lifecycle.loans.ids_with_status(list(REPAYING_STATUSES)):
            try:
                previous = self.lifecycle.get(loan_id).status
                loan = self.lifecycle.recompute_derived_status(loan_id, actor=actor, today=today)
            except Exception as e:
                logger.error(f"Overdue recompute failed: {e}", extra={"loan_id": str(loan_id)}, exc_info=True)
                result.failed_count += 1
                overdue_sweep_counter.labels(outcome="failed").inc()
                continue

            result.total_processed += 1
            if previous != LoanStatus.OVERDUE and loan.status == LoanStatus.OVERDUE:
                result.new_overdue_count += 1
                overdue_sweep_counter.labels(outcome="overdue").inc()
            elif loan.status == LoanStatus.COMPLETED:
                result.completed_count += 1
                overdue_sweep_counter.labels(outcome="completed").inc()
            else:
                overdue_sweep_counter.labels(outcome="unchanged").inc()

        logger.info(
            "Overdue sweep finished",
            extra={
                "step": "overdue_sweep",
                "total_processed": result.total_processed,
                "new_overdue_count": result.new_overdue_count,
                "completed_count": result.completed_count,
                "failed_count": result.failed_count,
            },
        )
        return result

    def check_default(
        self,
        loan_id: uuid.UUID,
        actor: str,
        threshold_days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> Tuple[bool, int]:
        """Mark an OVERDUE loan DEFAULTED once it is threshold_days past maturity"""
        threshold_days = settings.default_threshold_days if threshold_days is None else threshold_days
        today = today or date.today()

        with atomic(self.db):
            loan = self.lifecycle.load_for_update(loan_id)
            previous = loan.status
            self.lifecycle.refresh(loan, today)
            info = self.assess(loan, today)
            marked = loan.status == LoanStatus.OVERDUE and info.days_overdue >= threshold_days
            if marked:
                self.lifecycle.apply_default(
                    loan, actor, f"Overdue {info.days_overdue} days (threshold {threshold_days})"
                )

        if previous != loan.status:
            self.lifecycle.record_committed(loan, actor, previous, "check_default")
        return marked, threshold_days

    def overdue_loans(
        self,
        today: Optional[date] = None,
        min_days: Optional[int] = None,
        max_days: Optional[int] = None,
    ) -> List[Tuple[LoanRecord, OverdueInfo]]:
        """Loans currently overdue, most overdue first"""
        today = today or date.today()
        rows = []
        for loan in self.lifecycle.list(list(REPAYING_STATUSES), limit=10_000):
            info = self.assess(loan, today)
            if not info.is_overdue:
                continue
            if min_days is not None and info.days_overdue < min_days:
                continue
            if max_days is not None and info.days_overdue > max_days:
                continue
            rows.append((loan, info))
        return sorted(rows, key=lambda row: row[1].days_overdue, reverse=True)

    def statistics(self, today: Optional[date] = None) -> OverdueStatistics:
        stats = OverdueStatistics()
        total_days = 0
        for loan, info in self.overdue_loans(today):
            stats.total_overdue_loans += 1
            stats.total_overdue_amount += money(loan.outstanding_balance)
            stats.buckets[info.bucket] += 1
            total_days += info.days_overdue
        if stats.total_overdue_loans:
            stats.average_days_overdue = round(total_days / stats.total_overdue_loans, 1)
        return stats

    @staticmethod
    def assess(loan: LoanRecord, today: date) -> OverdueInfo:
        return compute_overdue(loan.maturity_date, loan.outstanding_balance, today)
