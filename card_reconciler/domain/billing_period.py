"""Billing period arithmetic driven by a card's closing and payment days"""

from datetime import date
from typing import Tuple

from card_reconciler.utils.date_utils import last_day_of_month


def is_end_of_month_closing(closing_day: int) -> bool:
    """Closing day 0 and 31 both mean the cycle closes on the last day of the month"""
    return closing_day in (0, 31)


def format_billing_month(year: int, month: int) -> str:
    """Format a YYYY-MM string, rolling months past December into the next year"""
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return f"{year:04d}-{month:02d}"


def parse_billing_month(billing_month: str) -> Tuple[int, int]:
    year_str, month_str = billing_month.split("-")
    return int(year_str), int(month_str)


def effective_closing_day(year: int, month: int, closing_day: int) -> int:
    """
    Closing day actually used for a given month.

    A configured 29 or 30 falls back to the month's last day when the month
    is shorter (e.g. February).
    """
    last_day = last_day_of_month(year, month)
    if is_end_of_month_closing(closing_day):
        return last_day
    return min(closing_day, last_day)


def determine_billing_month(transaction_date: date, closing_day: int) -> str:
    """
    Determine which billing month a transaction belongs to.

    - Transaction day <= closing day: billed in the transaction's own month
    - Transaction day > closing day: billed in the following month
    - End-of-month closing (0 or 31): always the transaction's own month
    """
    year, month = transaction_date.year, transaction_date.month

    if is_end_of_month_closing(closing_day):
        return format_billing_month(year, month)

    if transaction_date.day <= effective_closing_day(year, month, closing_day):
        return format_billing_month(year, month)
    return format_billing_month(year, month + 1)


def calculate_closing_date(billing_month: str, closing_day: int) -> date:
    """Closing date of a billing month"""
    year, month = parse_billing_month(billing_month)
    return date(year, month, effective_closing_day(year, month, closing_day))


def calculate_payment_date(closing_date: date, payment_day: int) -> date:
    """
    Payment date for a cycle, always in the month after the closing date.

    A payment day missing from that month is clamped to its last day,
    e.g. day 31 in February becomes the 28th (29th in leap years).
    """
    year, month = parse_billing_month(format_billing_month(closing_date.year, closing_date.month + 1))
    return date(year, month, min(payment_day, last_day_of_month(year, month)))
