"""Overdue aging endpoints"""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from goldloan_core.api.dependencies import get_actor, get_event_client, parse_id, schedule_event
from goldloan_core.api.v1.loans import loan_response
from goldloan_core.api.v1.schemas import (
    CheckDefaultResponse,
    LoanResponse,
    OverdueLoanSchema,
    OverdueStatisticsResponse,
    SweepResponse,
)
from goldloan_core.domain.models import LoanStatus
from goldloan_core.infrastructure.clients.events import LifecycleEventClient
from goldloan_core.infrastructure.database.session import get_db
from goldloan_core.services.overdue import OverdueService

router = APIRouter()


@router.get("/overdue/loans", response_model=List[OverdueLoanSchema])
def list_overdue_loans(
    min_days_overdue: Optional[int] = Query(None, alias="minDaysOverdue", ge=0),
    max_days_overdue: Optional[int] = Query(None, alias="maxDaysOverdue", ge=0),
    db: Session = Depends(get_db),
):
    rows = OverdueService(db).overdue_loans(min_days=min_days_overdue, max_days=max_days_overdue)
    return [
        OverdueLoanSchema(
            id=str(loan.id),
            loan_number=loan.loan_number,
            customer_id=loan.customer_id,
            principal_amount=loan.principal_amount,
            outstanding_balance=loan.outstanding_balance,
            status=loan.status,
            maturity_date=loan.maturity_date,
            days_overdue=info.days_overdue,
            bucket=info.bucket,
        )
        for loan, info in rows
    ]


@router.get("/overdue/statistics", response_model=OverdueStatisticsResponse)
def get_overdue_statistics(db: Session = Depends(get_db)):
    """Counts and amounts per aging bucket (0-30, 30-60, 60-90, 90+)"""
    stats = OverdueService(db).statistics()
    return OverdueStatisticsResponse(
        total_overdue_loans=stats.total_overdue_loans,
        total_overdue_amount=stats.total_overdue_amount,
        average_days_overdue=stats.average_days_overdue,
        buckets=stats.buckets,
    )


@router.post("/overdue/update-all", response_model=SweepResponse)
def update_all_overdue(db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    """Recompute status for every ACTIVE/OVERDUE loan, one transaction per loan"""
    result = OverdueService(db).sweep(actor=actor)
    return SweepResponse(
        total_processed=result.total_processed,
        new_overdue_count=result.new_overdue_count,
        completed_count=result.completed_count,
        failed_count=result.failed_count,
    )


@router.post("/overdue/update/{loan_id}", response_model=LoanResponse)
def update_loan_overdue(loan_id: str, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    service = OverdueService(db)
    loan = service.lifecycle.recompute_derived_status(parse_id(loan_id, "loanId"), actor=actor)
    return loan_response(loan)


@router.post("/overdue/check-default/{loan_id}", response_model=CheckDefaultResponse)
def check_default(
    loan_id: str,
    background_tasks: BackgroundTasks,
    threshold_days: Optional[int] = Query(None, alias="thresholdDays", ge=0),
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    event_client: LifecycleEventClient = Depends(get_event_client),
):
    service = OverdueService(db)
    loan_uuid = parse_id(loan_id, "loanId")
    marked, threshold = service.check_default(loan_uuid, actor, threshold_days)
    if marked:
        loan = service.lifecycle.get(loan_uuid)
        if loan.status == LoanStatus.DEFAULTED:
            schedule_event(background_tasks, event_client, "LOAN_DEFAULTED", loan, actor)
    return CheckDefaultResponse(was_marked_defaulted=marked, threshold_days=threshold)
