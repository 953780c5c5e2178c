"""Domain models - immutable dataclasses representing business entities"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple

from card_reconciler.domain.exceptions import InvalidDomainValueError

BILLING_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

CONFIDENCE_NONE = 0
CONFIDENCE_PARTIAL = 70
CONFIDENCE_FULL = 100


def _require(value: str, name: str) -> None:
    if not value:
        raise InvalidDomainValueError(f"{name} is required")


def _require_yen(value: int, name: str, allow_negative: bool = False) -> None:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDomainValueError(f"{name} must be an integer (yen unit)")
    if not allow_negative and value < 0:
        raise InvalidDomainValueError(f"{name} must be non-negative")


def validate_billing_month(billing_month: str) -> None:
    _require(billing_month, "Billing month")
    if not BILLING_MONTH_PATTERN.match(billing_month):
        raise InvalidDomainValueError("Billing month must be in YYYY-MM format")


@dataclass(frozen=True)
class BillingSummary:
    """Monthly credit card bill produced by the aggregation side"""

    id: str
    card_id: str
    card_name: str
    billing_month: str  # YYYY-MM
    closing_date: date
    payment_date: date
    net_payment_amount: int
    transaction_ids: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _require(self.id, "ID")
        _require(self.card_id, "Card ID")
        _require(self.card_name, "Card name")
        validate_billing_month(self.billing_month)
        _require_yen(self.net_payment_amount, "Net payment amount")
        object.__setattr__(self, "transaction_ids", tuple(self.transaction_ids))


@dataclass(frozen=True)
class BankTransaction:
    """Bank account transaction from external source"""

    id: str
    date: date
    amount: int
    description: str

    def __post_init__(self) -> None:
        _require(self.id, "Transaction ID")
        _require_yen(self.amount, "Amount", allow_negative=True)


@dataclass(frozen=True)
class Discrepancy:
    """Why a billing summary could not be fully matched"""

    amount_difference: int
    date_difference: int  # signed business days
    description_match: bool
    reason: str

    def __post_init__(self) -> None:
        _require_yen(self.amount_difference, "Amount difference", allow_negative=True)
        if isinstance(self.date_difference, bool) or not isinstance(self.date_difference, int):
            raise InvalidDomainValueError("Date difference must be an integer")
        _require(self.reason, "Reason")


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of matching one billing summary against bank transactions"""

    is_matched: bool
    confidence: int
    bank_transaction_id: Optional[str]
    card_summary_id: str
    matched_at: Optional[date]
    discrepancy: Optional[Discrepancy]

    def __post_init__(self) -> None:
        _require(self.card_summary_id, "Card summary ID")
        if self.confidence not in (CONFIDENCE_NONE, CONFIDENCE_PARTIAL, CONFIDENCE_FULL):
            raise InvalidDomainValueError("Confidence must be 0, 70 or 100")
        if self.is_matched:
            if not self.bank_transaction_id:
                raise InvalidDomainValueError("Matched result requires a bank transaction ID")
            if self.matched_at is None:
                raise InvalidDomainValueError("Matched result requires matched_at")
            if self.discrepancy is not None:
                raise InvalidDomainValueError("Matched result cannot carry a discrepancy")
        else:
            if self.discrepancy is None:
                raise InvalidDomainValueError("Unmatched result requires a discrepancy")
            if self.bank_transaction_id is not None or self.matched_at is not None:
                raise InvalidDomainValueError("Unmatched result cannot carry a bank transaction or matched_at")


class ReconciliationStatus(str, Enum):
    """Overall status of a reconciliation run"""

    MATCHED = "MATCHED"
    UNMATCHED = "UNMATCHED"
    PARTIAL = "PARTIAL"
    PENDING = "PENDING"


@dataclass(frozen=True)
class ReconciliationSummary:
    """Counts of results per outcome"""

    total: int
    matched: int
    unmatched: int
    partial: int

    def __post_init__(self) -> None:
        for name in ("total", "matched", "unmatched", "partial"):
            if getattr(self, name) < 0:
                raise InvalidDomainValueError(f"{name} must be non-negative")
        if self.matched + self.unmatched + self.partial != self.total:
            raise InvalidDomainValueError("Summary counts must add up to total")

    @classmethod
    def from_results(cls, results: List[ReconciliationResult]) -> "ReconciliationSummary":
        matched = sum(1 for r in results if r.is_matched)
        partial = sum(1 for r in results if not r.is_matched and r.confidence == CONFIDENCE_PARTIAL)
        return cls(
            total=len(results),
            matched=matched,
            unmatched=len(results) - matched - partial,
            partial=partial,
        )


@dataclass(frozen=True)
class Reconciliation:
    """Reconciliation run for one card and billing month"""

    id: str
    card_id: str
    billing_month: str
    status: ReconciliationStatus
    executed_at: datetime
    results: Tuple[ReconciliationResult, ...]
    summary: ReconciliationSummary
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        _require(self.id, "ID")
        _require(self.card_id, "Card ID")
        validate_billing_month(self.billing_month)
        object.__setattr__(self, "status", ReconciliationStatus(self.status))
        object.__setattr__(self, "results", tuple(self.results))
