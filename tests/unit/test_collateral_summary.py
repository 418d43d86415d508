"""Unit tests for collateral valuation and summary fold"""

import pytest
from decimal import Decimal
from goldloan_core.domain.collateral import compute_item_value, summarize_items
from goldloan_core.domain.exceptions import ValidationError
from goldloan_core.domain.models import CollateralStatus, PledgedItem


def test_item_value_uses_pledge_rate():
    assert compute_item_value(Decimal("10.5"), Decimal("6000")) == Decimal("63000.00")


def test_item_value_allows_zero_rate():
    assert compute_item_value(Decimal("1"), Decimal("0")) == Decimal("0.00")


@pytest.mark.parametrize("weight, rate, field", [(0, 6000, "weightGrams"), (-1, 6000, "weightGrams"), (5, -1, "rateAtPledge")])
def test_item_value_rejects_invalid_terms(weight, rate, field):
    with pytest.raises(ValidationError) as exc_info:
        compute_item_value(weight, rate)
    assert exc_info.value.field == field


def test_summary_of_empty_collection():
    summary = summarize_items([])

    assert summary.total_items == 0
    assert summary.total_weight == 0
    assert summary.total_value == Decimal("0.00")


def test_summary_counts_by_status():
    items = [
        PledgedItem(Decimal("20"), Decimal("120000"), CollateralStatus.PLEDGED),
        PledgedItem(Decimal("10.5"), Decimal("63000"), CollateralStatus.RELEASED),
        PledgedItem(Decimal("5"), Decimal("30000"), CollateralStatus.LOST),
    ]

    summary = summarize_items(items)

    assert summary.total_items == 3
    assert summary.total_weight == Decimal("35.5")
    assert summary.total_value == Decimal("213000.00")
    assert summary.pledged_items == 1
    assert summary.released_items == 1
