"""Domain-specific exceptions"""

from datetime import date
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from card_reconciler.domain.models import BankTransaction


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidDomainValueError(DomainException, ValueError):
    """A value object was constructed with data that breaks its invariants"""

    pass


class BankAPIError(DomainException):
    """Bank API returned an error or is unavailable"""

    pass


class CardSummaryNotFoundError(DomainException):
    """No billing summary exists for the requested card and month, or summary ID"""

    def __init__(self, key: str, billing_month: str | None = None):
        self.key = key
        self.billing_month = billing_month
        if billing_month:
            super().__init__(f"Billing summary not found for card {key} ({billing_month})")
        else:
            super().__init__(f"Billing summary not found: {key}")


class PaymentStatusNotFoundError(DomainException):
    """No payment status record exists for the card summary"""

    def __init__(self, card_summary_id: str):
        self.card_summary_id = card_summary_id
        super().__init__(f"Payment status not found: {card_summary_id}")


class InvalidPaymentDateError(DomainException):
    """Reconciliation was requested before the payment date has passed"""

    def __init__(self, payment_date: date, current_date: date):
        self.payment_date = payment_date
        self.current_date = current_date
        super().__init__(
            f"Payment date {payment_date.isoformat()} is after the current date {current_date.isoformat()}"
        )


class MultipleCandidateError(DomainException):
    """Two or more bank transactions are equally plausible payment matches"""

    def __init__(self, candidates: List["BankTransaction"]):
        self.candidates = list(candidates)
        super().__init__(f"{len(self.candidates)} candidate transactions matched equally well")

    def candidate_details(self) -> List[dict]:
        """Tied candidates in a form suitable for manual resolution"""
        return [
            {
                "id": c.id,
                "date": c.date.isoformat(),
                "amount": c.amount,
                "description": c.description,
            }
            for c in self.candidates
        ]


class InvalidStatusTransitionError(DomainException):
    """Requested payment status change is not in the transition table"""

    def __init__(self, current_status: str, new_status: str):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(f"Cannot transition from {current_status} to {new_status}")
