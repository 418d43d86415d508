"""Loan origination and lifecycle endpoints"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from sqlalchemy.orm import Session

from goldloan_core.api.dependencies import get_actor, get_event_client, parse_id, schedule_event
from goldloan_core.api.v1.schemas import (
    ApproveRequest,
    CollateralSummarySchema,
    CreateLoanRequest,
    DisburseRequest,
    EmiScheduleResponse,
    InstallmentSchema,
    LoanListResponse,
    LoanPaymentSummaryResponse,
    LoanResponse,
    RemarksRequest,
)
from goldloan_core.domain.calculator import build_emi_schedule, compute_emi, compute_overdue
from goldloan_core.domain.collateral import summarize_items
from goldloan_core.domain.models import LoanStatus
from goldloan_core.infrastructure.clients.events import LifecycleEventClient
from goldloan_core.infrastructure.database.models import LoanRecord
from goldloan_core.infrastructure.database.session import get_db
from goldloan_core.services.ledger import PaymentLedger
from goldloan_core.services.loans import LoanLifecycleService

router = APIRouter()


def summary_schema(summary) -> CollateralSummarySchema:
    return CollateralSummarySchema(
        total_items=summary.total_items,
        total_weight=summary.total_weight,
        total_value=summary.total_value,
        pledged_items=summary.pledged_items,
        released_items=summary.released_items,
    )


def loan_response(loan: LoanRecord, today: Optional[date] = None) -> LoanResponse:
    """Serialize a loan with derived fields computed on read"""
    today = today or date.today()
    overdue = compute_overdue(loan.maturity_date, loan.outstanding_balance, today)
    emi_amount = loan.emi_amount
    if emi_amount is None:
        emi_amount = compute_emi(loan.principal_amount, loan.interest_rate_percent, loan.tenure_months).emi_amount

    return LoanResponse(
        id=str(loan.id),
        loan_number=loan.loan_number,
        customer_id=loan.customer_id,
        principal_amount=loan.principal_amount,
        interest_rate_percent=loan.interest_rate_percent,
        tenure_months=loan.tenure_months,
        total_interest=loan.total_interest,
        emi_amount=emi_amount,
        emi_frozen=loan.emi_amount is not None,
        status=loan.status,
        disbursed_date=loan.disbursed_date,
        maturity_date=loan.maturity_date,
        outstanding_balance=loan.outstanding_balance,
        is_overdue=overdue.is_overdue,
        days_overdue=overdue.days_overdue,
        overdue_bucket=overdue.bucket,
        approval_remarks=loan.approval_remarks,
        approved_by=loan.approved_by,
        approved_at=loan.approved_at,
        rejection_remarks=loan.rejection_remarks,
        rejected_by=loan.rejected_by,
        disbursed_by=loan.disbursed_by,
        default_remarks=loan.default_remarks,
        created_by=loan.created_by,
        created_at=loan.created_at,
        collateral=summary_schema(summarize_items(loan.items)),
    )


@router.post("/loans", response_model=LoanResponse, status_code=201)
def create_loan(
    request_body: CreateLoanRequest,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """
    Originate a loan in PENDING together with its pledged gold items.

    Returns:
        Loan with generated loan number and quoted (not yet frozen) EMI
    """
    loan = LoanLifecycleService(db).create_loan(
        customer_id=request_body.customer_id,
        principal_amount=request_body.principal_amount,
        interest_rate_percent=request_body.interest_rate_percent,
        tenure_months=request_body.tenure_months,
        actor=actor,
        items=[item.model_dump() for item in request_body.items],
    )
    return loan_response(loan)


@router.get("/loans", response_model=LoanListResponse)
def list_loans(
    status: Optional[List[LoanStatus]] = Query(None, description="Filter by status (repeatable)"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    loans = LoanLifecycleService(db).list(status, limit)
    return LoanListResponse(loans=[loan_response(loan) for loan in loans], total=len(loans))


@router.get("/loans/{loan_id}", response_model=LoanResponse)
def get_loan(loan_id: str, db: Session = Depends(get_db)):
    loan = LoanLifecycleService(db).get(parse_id(loan_id, "loanId"))
    return loan_response(loan)


@router.delete("/loans/{loan_id}", status_code=204)
def delete_loan(loan_id: str, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    """Delete a loan that never reached the ledger (PENDING or REJECTED only)"""
    LoanLifecycleService(db).delete_loan(parse_id(loan_id, "loanId"), actor)
    return Response(status_code=204)


@router.post("/loans/{loan_id}/approve", response_model=LoanResponse)
def approve_loan(
    loan_id: str,
    background_tasks: BackgroundTasks,
    request_body: Optional[ApproveRequest] = None,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    event_client: LifecycleEventClient = Depends(get_event_client),
):
    request_body = request_body or ApproveRequest()
    loan = LoanLifecycleService(db).approve(
        parse_id(loan_id, "loanId"),
        actor,
        remarks=request_body.remarks,
        expected_status=request_body.expected_status,
    )
    schedule_event(background_tasks, event_client, "LOAN_APPROVED", loan, actor)
    return loan_response(loan)


@router.post("/loans/{loan_id}/reject", response_model=LoanResponse)
def reject_loan(
    loan_id: str,
    request_body: RemarksRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    event_client: LifecycleEventClient = Depends(get_event_client),
):
    loan = LoanLifecycleService(db).reject(
        parse_id(loan_id, "loanId"),
        actor,
        remarks=request_body.remarks,
        expected_status=request_body.expected_status,
    )
    schedule_event(background_tasks, event_client, "LOAN_REJECTED", loan, actor)
    return loan_response(loan)


@router.post("/loans/{loan_id}/disburse", response_model=LoanResponse)
def disburse_loan(
    loan_id: str,
    background_tasks: BackgroundTasks,
    request_body: Optional[DisburseRequest] = None,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    event_client: LifecycleEventClient = Depends(get_event_client),
):
    """
    Release the approved principal to the borrower.

    Flow:
    1. Lock the loan and check it is APPROVED
    2. Append the LOAN_DISBURSEMENT ledger entry
    3. Stamp disbursement and maturity dates, move to ACTIVE
    4. Commit all of the above together
    """
    request_body = request_body or DisburseRequest()
    loan = LoanLifecycleService(db).disburse(
        parse_id(loan_id, "loanId"),
        actor,
        payment_method=request_body.payment_method,
        expected_status=request_body.expected_status,
    )
    schedule_event(background_tasks, event_client, "LOAN_DISBURSED", loan, actor)
    return loan_response(loan)


@router.post("/loans/{loan_id}/default", response_model=LoanResponse)
def default_loan(
    loan_id: str,
    request_body: RemarksRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    event_client: LifecycleEventClient = Depends(get_event_client),
):
    loan = LoanLifecycleService(db).mark_defaulted(
        parse_id(loan_id, "loanId"),
        actor,
        remarks=request_body.remarks,
        expected_status=request_body.expected_status,
    )
    schedule_event(background_tasks, event_client, "LOAN_DEFAULTED", loan, actor)
    return loan_response(loan)


@router.get("/loans/{loan_id}/emi-schedule", response_model=EmiScheduleResponse)
def get_emi_schedule(loan_id: str, db: Session = Depends(get_db)):
    """
    Project the flat-rate installment schedule.

    Due dates run monthly from the disbursement date, or from today for a
    loan that has not been disbursed yet.
    """
    loan = LoanLifecycleService(db).get(parse_id(loan_id, "loanId"))
    quote = compute_emi(loan.principal_amount, loan.interest_rate_percent, loan.tenure_months)
    schedule = build_emi_schedule(
        loan.principal_amount,
        loan.interest_rate_percent,
        loan.tenure_months,
        loan.disbursed_date or date.today(),
    )
    return EmiScheduleResponse(
        loan_id=str(loan.id),
        emi_amount=loan.emi_amount if loan.emi_amount is not None else quote.emi_amount,
        total_interest=quote.total_interest,
        installments=[
            InstallmentSchema(
                installment_number=inst.installment_number,
                due_date=inst.due_date,
                principal_amount=inst.principal_amount,
                interest_amount=inst.interest_amount,
                total_amount=inst.total_amount,
            )
            for inst in schedule
        ],
    )


@router.get("/loans/{loan_id}/payments/summary", response_model=LoanPaymentSummaryResponse)
def get_payment_summary(loan_id: str, db: Session = Depends(get_db)):
    """Collected totals exclude the disbursement outflow"""
    ledger = PaymentLedger(db)
    loan_uuid = parse_id(loan_id, "loanId")
    totals = ledger.totals(loan_uuid)
    loan = ledger.lifecycle.get(loan_uuid)
    return LoanPaymentSummaryResponse(
        loan_id=str(loan.id),
        total_collected=totals.total_collected,
        total_disbursed=totals.total_disbursed,
        principal_collected=totals.principal_collected,
        interest_collected=totals.interest_collected,
        penalty_collected=totals.penalty_collected,
        outstanding_balance=loan.outstanding_balance,
    )
