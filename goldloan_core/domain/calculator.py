"""Balance and schedule calculator - pure functions over loan terms and ledger entries"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

from goldloan_core.domain.exceptions import ValidationError
from goldloan_core.domain.models import (
    PRINCIPAL_REDUCING_TYPES,
    EmiQuote,
    LedgerEntry,
    LedgerTotals,
    OverdueInfo,
    PaymentStatus,
    PaymentType,
    ScheduledInstallment,
)
from goldloan_core.utils.date_utils import add_months, days_between

ZERO = Decimal("0.00")

# Inclusive-lower / exclusive-upper day ranges, last bucket open-ended
AGING_BUCKETS = (
    (0, 30, "0-30"),
    (30, 60, "30-60"),
    (60, 90, "60-90"),
    (90, None, "90+"),
)


def money(value) -> Decimal:
    """Always return 2-decimal Decimal with HALF_UP rounding."""
    if value is None:
        value = 0
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _validate_terms(principal: Decimal, annual_rate_percent: Decimal, tenure_months: int) -> None:
    if principal is None or Decimal(str(principal)) <= 0:
        raise ValidationError("principalAmount", "Principal amount must be greater than zero")
    if annual_rate_percent is None or Decimal(str(annual_rate_percent)) < 0:
        raise ValidationError("interestRatePercent", "Interest rate cannot be negative")
    if tenure_months is None or int(tenure_months) <= 0:
        raise ValidationError("tenureMonths", "Tenure must be at least one month")


def compute_total_interest(principal, annual_rate_percent, tenure_months: int) -> Decimal:
    """Flat interest for the whole tenure: principal * rate * months / (12 * 100)"""
    _validate_terms(principal, annual_rate_percent, tenure_months)
    principal = Decimal(str(principal))
    rate = Decimal(str(annual_rate_percent))
    return money(principal * rate * Decimal(int(tenure_months)) / Decimal("1200"))


def compute_emi(principal, annual_rate_percent, tenure_months: int) -> EmiQuote:
    """
    Compute the equated monthly installment under a flat-rate schedule.

    Interest is charged on the original principal for the full tenure and
    spread evenly; there is no reducing balance and no compounding.

    Example:
        principal=100000, rate=12, tenure=12
        total_interest = 100000 * 12 * 12 / 1200 = 12000.00
        emi = (100000 + 12000) / 12 = 9333.33
    """
    total_interest = compute_total_interest(principal, annual_rate_percent, tenure_months)
    total_payable = money(Decimal(str(principal)) + total_interest)
    emi = money(total_payable / Decimal(int(tenure_months)))
    return EmiQuote(total_interest=total_interest, total_payable=total_payable, emi_amount=emi)


def build_emi_schedule(
    principal,
    annual_rate_percent,
    tenure_months: int,
    start_date: date,
) -> List[ScheduledInstallment]:
    """
    Project the flat-rate installment schedule.

    Installment n falls due n months after start_date. Principal and
    interest are split evenly; the last installment absorbs the rounding
    remainder so the parts sum exactly to principal and total interest.
    """
    quote = compute_emi(principal, annual_rate_percent, tenure_months)
    principal = money(principal)
    months = int(tenure_months)

    principal_part = money(principal / months)
    interest_part = money(quote.total_interest / months)

    schedule = []
    for n in range(1, months + 1):
        if n == months:
            p = principal - principal_part * (months - 1)
            i = quote.total_interest - interest_part * (months - 1)
        else:
            p, i = principal_part, interest_part
        schedule.append(
            ScheduledInstallment(
                installment_number=n,
                due_date=add_months(start_date, n),
                principal_amount=p,
                interest_amount=i,
                total_amount=p + i,
            )
        )
    return schedule


def compute_ledger_totals(entries: Iterable[LedgerEntry]) -> LedgerTotals:
    """
    Aggregate completed ledger entries.

    Disbursements are outflow and never count towards collections.
    Pending and failed entries are ignored entirely.
    """
    collected = disbursed = principal = interest = penalty = ZERO
    for entry in entries:
        if entry.status != PaymentStatus.COMPLETED:
            continue
        amount = money(entry.amount)
        if entry.payment_type == PaymentType.LOAN_DISBURSEMENT:
            disbursed += amount
            continue
        collected += amount
        if entry.payment_type in PRINCIPAL_REDUCING_TYPES:
            principal += amount
        elif entry.payment_type == PaymentType.INTEREST_PAYMENT:
            interest += amount
        elif entry.payment_type == PaymentType.PENALTY_PAYMENT:
            penalty += amount

    return LedgerTotals(
        total_collected=collected,
        total_disbursed=disbursed,
        principal_collected=principal,
        interest_collected=interest,
        penalty_collected=penalty,
    )


def compute_outstanding_balance(principal, entries: Iterable[LedgerEntry]) -> Decimal:
    """
    Principal outstanding after completed principal-reducing payments.

    Interest and penalty payments are tracked separately and never netted
    against principal. The result is floored at zero.
    """
    repaid = compute_ledger_totals(entries).principal_collected
    return max(money(principal) - repaid, ZERO)


def bucket_age(days_overdue: int) -> str:
    """Map days past maturity to exactly one aging bucket"""
    if days_overdue < 0:
        raise ValidationError("daysOverdue", "Days overdue cannot be negative")
    for lower, upper, label in AGING_BUCKETS:
        if days_overdue >= lower and (upper is None or days_overdue < upper):
            return label
    raise AssertionError("aging buckets must cover every non-negative day count")


def compute_overdue(maturity_date: date | None, outstanding_balance, today: date) -> OverdueInfo:
    """
    Assess whether a loan is past maturity with money still owed.

    Loans without a maturity date (not yet disbursed) are never overdue.
    """
    if maturity_date is None:
        return OverdueInfo(is_overdue=False, days_overdue=0, bucket=None)

    days_overdue = max(0, days_between(maturity_date, today))
    is_overdue = today > maturity_date and money(outstanding_balance) > 0
    return OverdueInfo(
        is_overdue=is_overdue,
        days_overdue=days_overdue,
        bucket=bucket_age(days_overdue) if is_overdue else None,
    )
