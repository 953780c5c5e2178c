"""Unit tests for business day helpers"""

from datetime import date, timedelta
from card_reconciler.utils.date_utils import (
    add_business_days,
    business_days_between,
    generate_date_range,
    is_business_day,
    last_day_of_month,
    local_now,
    subtract_business_days,
)

FRIDAY = date(2025, 2, 28)
MONDAY = date(2025, 3, 3)


def test_weekends_are_not_business_days():
    assert is_business_day(FRIDAY)
    assert not is_business_day(date(2025, 3, 1))
    assert not is_business_day(date(2025, 3, 2))


def test_add_business_days_skips_weekend():
    assert add_business_days(FRIDAY, 1) == MONDAY
    assert add_business_days(FRIDAY, 3) == date(2025, 3, 5)


def test_subtract_business_days_skips_weekend():
    assert subtract_business_days(MONDAY, 1) == FRIDAY
    assert add_business_days(MONDAY, -1) == FRIDAY


def test_zero_business_days_is_identity_even_on_weekend():
    saturday = date(2025, 3, 1)
    assert add_business_days(saturday, 0) == saturday


def test_business_days_between_is_signed():
    assert business_days_between(FRIDAY, MONDAY) == 1
    assert business_days_between(MONDAY, FRIDAY) == -1
    assert business_days_between(FRIDAY, FRIDAY) == 0


def test_business_days_between_over_a_weekend_only():
    assert business_days_between(date(2025, 3, 1), date(2025, 3, 2)) == 0


def test_last_day_of_month_handles_leap_years():
    assert last_day_of_month(2024, 2) == 29
    assert last_day_of_month(2025, 2) == 28
    assert last_day_of_month(2025, 12) == 31


def test_generate_date_range_inclusive():
    days = generate_date_range(FRIDAY, MONDAY)
    assert days == [FRIDAY, date(2025, 3, 1), date(2025, 3, 2), MONDAY]


def test_local_now_uses_timezone():
    assert local_now("Asia/Tokyo").utcoffset() == timedelta(hours=9)
