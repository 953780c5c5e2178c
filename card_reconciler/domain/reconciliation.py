"""Reconciliation matcher - pairs a card bill with the bank debit that paid it"""

import re
from datetime import date
from typing import List, Optional, Sequence

from card_reconciler.domain.exceptions import MultipleCandidateError
from card_reconciler.domain.models import (
    CONFIDENCE_FULL,
    CONFIDENCE_NONE,
    CONFIDENCE_PARTIAL,
    BankTransaction,
    BillingSummary,
    Discrepancy,
    ReconciliationResult,
    ReconciliationStatus,
)
from card_reconciler.utils.date_utils import add_business_days, business_days_between, subtract_business_days

DEFAULT_WINDOW_BUSINESS_DAYS = 3

# Issuer name fragments as they appear in card names and bank statement descriptions
ISSUER_NAME_FRAGMENTS = (
    "三井住友",
    "三菱UFJ",
    "みずほ",
    "楽天",
    "JCB",
    "アメリカン・エクスプレス",
    "ダイナース",
    "セゾン",
    "イオン",
    "エポス",
    "SMBC",
    "AMEX",
)

GENERIC_CARD_KEYWORDS = ("カード", "クレジット", "card", "credit")

PARTIAL_MATCH_REASON = "amount and date matched but description did not"
NO_TRANSACTION_REASON = "no bank transaction found in the payment window"

# Whitespace plus ASCII, Unicode and full-width dashes, including the katakana long vowel mark
_NOISE = re.compile(r"[\s\-\u2010-\u2015\u2212\u30fc\uff0d\uff70]")


def normalize_text(text: str) -> str:
    """Strip whitespace and dash characters and lower-case"""
    return _NOISE.sub("", text).lower()


def extract_card_keywords(card_name: str) -> List[str]:
    """
    Keywords expected in the bank description of this card's payment.

    Issuer fragments found in the card name win; otherwise fall back to the
    generic card/credit tokens. Keywords come back normalized.
    """
    normalized_name = normalize_text(card_name)
    keywords = [
        normalize_text(fragment)
        for fragment in ISSUER_NAME_FRAGMENTS
        if normalize_text(fragment) in normalized_name
    ]
    if keywords:
        return keywords
    return [normalize_text(keyword) for keyword in GENERIC_CARD_KEYWORDS]


def matches_card_company(description: str, card_name: str) -> bool:
    normalized_description = normalize_text(description)
    return any(keyword in normalized_description for keyword in extract_card_keywords(card_name))


def filter_by_date_range(
    transactions: Sequence[BankTransaction],
    payment_date: date,
    business_days: int = DEFAULT_WINDOW_BUSINESS_DAYS,
) -> List[BankTransaction]:
    """Transactions dated within payment_date +/- business_days (inclusive)"""
    start = subtract_business_days(payment_date, business_days)
    end = add_business_days(payment_date, business_days)
    return [t for t in transactions if start <= t.date <= end]


def filter_by_amount(transactions: Sequence[BankTransaction], amount: int) -> List[BankTransaction]:
    return [t for t in transactions if t.amount == amount]


def filter_by_description(transactions: Sequence[BankTransaction], card_name: str) -> List[BankTransaction]:
    return [t for t in transactions if matches_card_company(t.description, card_name)]


def select_closest_by_date(candidates: Sequence[BankTransaction], payment_date: date) -> BankTransaction:
    """
    Candidate closest to the payment date in calendar days.

    Raises:
        MultipleCandidateError: When two or more candidates share the minimal distance
    """
    min_distance = min(abs((t.date - payment_date).days) for t in candidates)
    closest = [t for t in candidates if abs((t.date - payment_date).days) == min_distance]
    if len(closest) > 1:
        raise MultipleCandidateError(closest)
    return closest[0]


def analyze_discrepancy(summary: BillingSummary, window_transactions: Sequence[BankTransaction]) -> Discrepancy:
    """Describe the nearest miss when no transaction in the window has the billed amount"""
    closest: Optional[BankTransaction] = None
    min_amount_difference = 0
    for txn in window_transactions:
        difference = abs(txn.amount - summary.net_payment_amount)
        if closest is None or difference < min_amount_difference:
            closest = txn
            min_amount_difference = difference

    if closest is None:
        return Discrepancy(
            amount_difference=summary.net_payment_amount,
            date_difference=0,
            description_match=False,
            reason=NO_TRANSACTION_REASON,
        )

    date_difference = business_days_between(summary.payment_date, closest.date)
    description_match = matches_card_company(closest.description, summary.card_name)

    details = []
    if min_amount_difference > 0:
        details.append(f"closest amount differs by {min_amount_difference} yen")
    if date_difference != 0:
        details.append(f"date differs by {date_difference} business days")
    if not description_match:
        details.append("description did not match")
    reason = "no matching bank transaction found"
    if details:
        reason += ": " + "; ".join(details)

    return Discrepancy(
        amount_difference=min_amount_difference,
        date_difference=date_difference,
        description_match=description_match,
        reason=reason,
    )


def reconcile_payment(
    summary: BillingSummary,
    bank_transactions: Sequence[BankTransaction],
    window_business_days: int = DEFAULT_WINDOW_BUSINESS_DAYS,
) -> ReconciliationResult:
    """
    Match a billing summary against candidate bank transactions.

    Filters in order: payment window, exact amount, card keyword in description.
    - One transaction passes all filters: full match (confidence 100)
    - Otherwise any amount match: partial (confidence 70), closest by date
    - No amount match: no match (confidence 0) with the nearest miss reported

    Raises:
        MultipleCandidateError: When amount matches tie on distance from the payment date
    """
    window = filter_by_date_range(bank_transactions, summary.payment_date, window_business_days)
    amount_matches = filter_by_amount(window, summary.net_payment_amount)
    description_matches = filter_by_description(amount_matches, summary.card_name)

    if len(description_matches) == 1:
        matched = description_matches[0]
        return ReconciliationResult(
            is_matched=True,
            confidence=CONFIDENCE_FULL,
            bank_transaction_id=matched.id,
            card_summary_id=summary.id,
            matched_at=matched.date,
            discrepancy=None,
        )

    if amount_matches:
        best = select_closest_by_date(amount_matches, summary.payment_date)
        return ReconciliationResult(
            is_matched=False,
            confidence=CONFIDENCE_PARTIAL,
            bank_transaction_id=None,
            card_summary_id=summary.id,
            matched_at=None,
            discrepancy=Discrepancy(
                amount_difference=0,
                date_difference=business_days_between(summary.payment_date, best.date),
                description_match=False,
                reason=PARTIAL_MATCH_REASON,
            ),
        )

    return ReconciliationResult(
        is_matched=False,
        confidence=CONFIDENCE_NONE,
        bank_transaction_id=None,
        card_summary_id=summary.id,
        matched_at=None,
        discrepancy=analyze_discrepancy(summary, window),
    )


def determine_status(result: ReconciliationResult) -> ReconciliationStatus:
    """Map a single result onto the reconciliation status"""
    if result.is_matched and result.confidence == CONFIDENCE_FULL:
        return ReconciliationStatus.MATCHED
    if result.confidence == CONFIDENCE_PARTIAL:
        return ReconciliationStatus.PARTIAL
    return ReconciliationStatus.UNMATCHED
