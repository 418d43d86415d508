"""Payment ledger endpoints"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from goldloan_core.api.dependencies import get_actor, get_event_client, parse_id, schedule_event
from goldloan_core.api.v1.schemas import (
    CreatePaymentRequest,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatisticsResponse,
)
from goldloan_core.domain.models import LoanStatus, PaymentType
from goldloan_core.infrastructure.clients.events import LifecycleEventClient
from goldloan_core.infrastructure.database.models import PaymentRecord
from goldloan_core.infrastructure.database.session import get_db
from goldloan_core.services.ledger import PaymentLedger

router = APIRouter()


def payment_response(payment: PaymentRecord) -> PaymentResponse:
    return PaymentResponse(
        id=str(payment.id),
        loan_id=str(payment.loan_id),
        receipt_number=payment.receipt_number,
        amount=payment.amount,
        payment_type=payment.payment_type,
        payment_method=payment.payment_method,
        status=payment.status,
        payment_date=payment.payment_date,
        transaction_ref=payment.transaction_ref,
        remarks=payment.remarks,
        recorded_by=payment.recorded_by,
        created_at=payment.created_at,
    )


@router.post("/payments", response_model=PaymentResponse, status_code=201)
def record_payment(
    request_body: CreatePaymentRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    event_client: LifecycleEventClient = Depends(get_event_client),
):
    """
    Record a repayment against an ACTIVE or OVERDUE loan.

    The loan's outstanding balance and status are re-derived in the same
    transaction; a loan paid down to zero completes immediately.
    """
    ledger = PaymentLedger(db)
    payment = ledger.record_payment(
        parse_id(request_body.loan_id, "loanId"),
        amount=request_body.amount,
        payment_type=request_body.payment_type,
        payment_method=request_body.payment_method,
        actor=actor,
        payment_date=request_body.payment_date,
        transaction_ref=request_body.transaction_ref,
        remarks=request_body.remarks,
        expected_status=request_body.expected_status,
    )

    loan = payment.loan
    if loan.status == LoanStatus.COMPLETED:
        schedule_event(background_tasks, event_client, "LOAN_COMPLETED", loan, actor)
    return payment_response(payment)


@router.get("/payments", response_model=PaymentListResponse)
def list_payments(
    loan_id: Optional[str] = Query(None, alias="loanId"),
    payment_type: Optional[PaymentType] = Query(None, alias="paymentType"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    payments = PaymentLedger(db).list(
        loan_id=parse_id(loan_id, "loanId") if loan_id else None,
        payment_type=payment_type,
        limit=limit,
    )
    return PaymentListResponse(payments=[payment_response(p) for p in payments], total=len(payments))


@router.get("/payments/stats", response_model=PaymentStatisticsResponse)
def get_payment_statistics(db: Session = Depends(get_db)):
    """Repayment totals, today/month counts and a breakdown by payment method"""
    stats = PaymentLedger(db).statistics()
    return PaymentStatisticsResponse(
        total_payments=stats.total_payments,
        total_amount=stats.total_amount,
        payments_today=stats.payments_today,
        payments_this_month=stats.payments_this_month,
        average_payment_amount=stats.average_payment_amount,
        payment_method_breakdown=stats.payment_method_breakdown,
    )


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: str, db: Session = Depends(get_db)):
    return payment_response(PaymentLedger(db).get(parse_id(payment_id, "paymentId")))
