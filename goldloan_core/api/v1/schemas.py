"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from goldloan_core.domain.models import (
    CollateralStatus,
    LoanStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
)


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---------------------------------------------------------------


class GoldItemInput(CamelModel):
    """Collateral item pledged at origination"""

    item_type: str
    weight_grams: Decimal
    purity: str
    rate_at_pledge: Decimal = Field(..., description="Currency per gram, frozen at pledge time")
    description: Optional[str] = None


class CreateLoanRequest(CamelModel):
    """Request body for POST /v1/loans"""

    customer_id: str
    principal_amount: Decimal
    interest_rate_percent: Decimal = Field(..., description="Flat rate per annum")
    tenure_months: int
    items: List[GoldItemInput] = []


class ApproveRequest(CamelModel):
    remarks: Optional[str] = None
    expected_status: Optional[LoanStatus] = None


class RemarksRequest(CamelModel):
    """Body for reject and default; remarks are required by the command"""

    remarks: Optional[str] = None
    expected_status: Optional[LoanStatus] = None


class DisburseRequest(CamelModel):
    payment_method: PaymentMethod = PaymentMethod.CASH
    expected_status: Optional[LoanStatus] = None


class CreatePaymentRequest(CamelModel):
    """Request body for POST /v1/payments"""

    loan_id: str
    amount: Decimal
    payment_type: PaymentType
    payment_method: PaymentMethod
    payment_date: Optional[date] = None
    transaction_ref: Optional[str] = None
    remarks: Optional[str] = None
    expected_status: Optional[LoanStatus] = None


class CreateGoldItemRequest(GoldItemInput):
    """Request body for POST /v1/gold-items"""

    loan_id: str


class UpdateGoldItemRequest(CamelModel):
    """Request body for PUT /v1/gold-items/{id}; only supplied fields change"""

    item_type: Optional[str] = None
    weight_grams: Optional[Decimal] = None
    purity: Optional[str] = None
    rate_at_pledge: Optional[Decimal] = None
    description: Optional[str] = None


class ReleaseRequest(CamelModel):
    released_to_name: Optional[str] = None
    released_to_phone: Optional[str] = None
    release_notes: Optional[str] = None
    expected_status: Optional[LoanStatus] = None


# --- Responses --------------------------------------------------------------


class CollateralSummarySchema(CamelModel):
    total_items: int
    total_weight: Decimal
    total_value: Decimal
    pledged_items: int
    released_items: int


class LoanResponse(CamelModel):
    """Loan with ledger-derived balance and overdue assessment"""

    id: str
    loan_number: str
    customer_id: str
    principal_amount: Decimal
    interest_rate_percent: Decimal
    tenure_months: int
    total_interest: Optional[Decimal] = None
    emi_amount: Decimal
    emi_frozen: bool
    status: LoanStatus
    disbursed_date: Optional[date] = None
    maturity_date: Optional[date] = None
    outstanding_balance: Decimal
    is_overdue: bool
    days_overdue: int
    overdue_bucket: Optional[str] = None
    approval_remarks: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_remarks: Optional[str] = None
    rejected_by: Optional[str] = None
    disbursed_by: Optional[str] = None
    default_remarks: Optional[str] = None
    created_by: str
    created_at: Optional[datetime] = None
    collateral: CollateralSummarySchema


class LoanListResponse(CamelModel):
    loans: List[LoanResponse]
    total: int


class InstallmentSchema(CamelModel):
    """Single installment in the flat-rate schedule"""

    installment_number: int
    due_date: date
    principal_amount: Decimal
    interest_amount: Decimal
    total_amount: Decimal


class EmiScheduleResponse(CamelModel):
    loan_id: str
    emi_amount: Decimal
    total_interest: Decimal
    installments: List[InstallmentSchema]


class PaymentResponse(CamelModel):
    id: str
    loan_id: str
    receipt_number: str
    amount: Decimal
    payment_type: PaymentType
    payment_method: PaymentMethod
    status: PaymentStatus
    payment_date: date
    transaction_ref: Optional[str] = None
    remarks: Optional[str] = None
    recorded_by: str
    created_at: Optional[datetime] = None


class PaymentListResponse(CamelModel):
    payments: List[PaymentResponse]
    total: int


class PaymentStatisticsResponse(CamelModel):
    total_payments: int
    total_amount: Decimal
    payments_today: int
    payments_this_month: int
    average_payment_amount: Decimal
    payment_method_breakdown: Dict[str, int]


class LoanPaymentSummaryResponse(CamelModel):
    loan_id: str
    total_collected: Decimal
    total_disbursed: Decimal
    principal_collected: Decimal
    interest_collected: Decimal
    penalty_collected: Decimal
    outstanding_balance: Decimal


class GoldItemResponse(CamelModel):
    id: str
    loan_id: str
    item_type: str
    description: Optional[str] = None
    weight_grams: Decimal
    purity: str
    rate_at_pledge: Decimal
    total_value: Decimal
    status: CollateralStatus
    released_at: Optional[datetime] = None
    released_by_id: Optional[str] = None
    released_to_name: Optional[str] = None
    released_to_phone: Optional[str] = None
    release_notes: Optional[str] = None


class LoanGoldItemsResponse(CamelModel):
    """Response for GET /v1/gold-items/loan/{loan_id}"""

    summary: CollateralSummarySchema
    items: List[GoldItemResponse]


class ReleaseAllResponse(CamelModel):
    released_count: int
    total_items: int


class OverdueLoanSchema(CamelModel):
    id: str
    loan_number: str
    customer_id: str
    principal_amount: Decimal
    outstanding_balance: Decimal
    status: LoanStatus
    maturity_date: Optional[date] = None
    days_overdue: int
    bucket: Optional[str] = None


class OverdueStatisticsResponse(CamelModel):
    total_overdue_loans: int
    total_overdue_amount: Decimal
    average_days_overdue: float
    buckets: Dict[str, int]


class SweepResponse(CamelModel):
    total_processed: int
    new_overdue_count: int
    completed_count: int
    failed_count: int = 0


class CheckDefaultResponse(CamelModel):
    was_marked_defaulted: bool
    threshold_days: int
