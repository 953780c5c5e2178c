"""Unit tests for billing period arithmetic"""

import pytest
from datetime import date
from card_reconciler.domain.billing_period import (
    calculate_closing_date,
    calculate_payment_date,
    determine_billing_month,
    format_billing_month,
    is_end_of_month_closing,
)


@pytest.mark.parametrize("closing_day", [0, 31])
@pytest.mark.parametrize("day", [1, 15, 28])
def test_end_of_month_closing_keeps_transaction_month(closing_day: int, day: int):
    assert determine_billing_month(date(2025, 2, day), closing_day) == "2025-02"


def test_transaction_on_closing_day_stays_in_month():
    assert determine_billing_month(date(2025, 1, 15), 15) == "2025-01"


def test_transaction_after_closing_day_moves_to_next_month():
    assert determine_billing_month(date(2025, 1, 16), 15) == "2025-02"


def test_december_transaction_after_closing_rolls_into_next_year():
    assert determine_billing_month(date(2024, 12, 20), 15) == "2025-01"


def test_closing_day_beyond_short_month_uses_last_day():
    """A 30th closing day in February closes on the 28th"""
    assert determine_billing_month(date(2025, 2, 28), 30) == "2025-02"
    assert determine_billing_month(date(2025, 3, 31), 30) == "2025-04"


def test_calculate_closing_date_end_of_month():
    assert calculate_closing_date("2025-02", 31) == date(2025, 2, 28)
    assert calculate_closing_date("2024-02", 31) == date(2024, 2, 29)
    assert calculate_closing_date("2025-04", 0) == date(2025, 4, 30)


def test_calculate_closing_date_fixed_day():
    assert calculate_closing_date("2025-01", 15) == date(2025, 1, 15)


def test_calculate_payment_date_clamps_to_month_end():
    assert calculate_payment_date(date(2025, 1, 31), 31) == date(2025, 2, 28)
    assert calculate_payment_date(date(2024, 1, 31), 31) == date(2024, 2, 29)


def test_calculate_payment_date_crosses_year():
    assert calculate_payment_date(date(2024, 12, 15), 10) == date(2025, 1, 10)


def test_format_billing_month_rollover():
    assert format_billing_month(2024, 13) == "2025-01"
    assert format_billing_month(2025, 3) == "2025-03"


def test_is_end_of_month_closing():
    assert is_end_of_month_closing(0)
    assert is_end_of_month_closing(31)
    assert not is_end_of_month_closing(30)
