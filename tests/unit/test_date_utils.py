"""Tests for calendar month arithmetic"""

from datetime import date
from goldloan_core.utils.date_utils import add_months, days_between


def test_add_months_keeps_day_of_month():
    assert add_months(date(2024, 3, 15), 1) == date(2024, 4, 15)
    assert add_months(date(2024, 11, 15), 2) == date(2025, 1, 15)


def test_add_months_clamps_to_month_end():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 8, 31), 1) == date(2024, 9, 30)


def test_add_months_from_base_date_does_not_drift():
    """Each due date is counted from the start date, so a clamped month does not shorten the next"""
    assert add_months(date(2024, 1, 31), 2) == date(2024, 3, 31)


def test_add_months_backwards():
    assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
    assert add_months(date(2024, 1, 15), -13) == date(2022, 12, 15)


def test_days_between_is_signed():
    assert days_between(date(2024, 1, 1), date(2024, 3, 1)) == 60
    assert days_between(date(2024, 3, 1), date(2024, 1, 1)) == -60
