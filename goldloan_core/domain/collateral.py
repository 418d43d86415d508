"""Collateral valuation and summary projection"""

from decimal import Decimal
from typing import Iterable

from goldloan_core.domain.calculator import money
from goldloan_core.domain.exceptions import ValidationError
from goldloan_core.domain.models import CollateralStatus, CollateralSummary, PledgedItem


def validate_item_terms(weight_grams, rate_at_pledge) -> None:
    if weight_grams is None or Decimal(str(weight_grams)) <= 0:
        raise ValidationError("weightGrams", "Weight must be greater than zero")
    if rate_at_pledge is None or Decimal(str(rate_at_pledge)) < 0:
        raise ValidationError("rateAtPledge", "Rate per gram cannot be negative")


def compute_item_value(weight_grams, rate_at_pledge) -> Decimal:
    """Pledge-time value of an item; frozen once stored, never marked to market"""
    validate_item_terms(weight_grams, rate_at_pledge)
    return money(Decimal(str(weight_grams)) * Decimal(str(rate_at_pledge)))


def summarize_items(items: Iterable[PledgedItem]) -> CollateralSummary:
    """Pure fold over an item collection; recomputed on every read"""
    total_items = pledged = released = 0
    total_weight = Decimal("0")
    total_value = Decimal("0.00")
    for item in items:
        total_items += 1
        total_weight += Decimal(str(item.weight_grams))
        total_value += money(item.total_value)
        if item.status == CollateralStatus.PLEDGED:
            pledged += 1
        elif item.status == CollateralStatus.RELEASED:
            released += 1

    return CollateralSummary(
        total_items=total_items,
        total_weight=total_weight,
        total_value=total_value,
        pledged_items=pledged,
        released_items=released,
    )
