"""Payment status state machine with append-only history"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from card_reconciler.domain.exceptions import (
    InvalidDomainValueError,
    InvalidStatusTransitionError,
    PaymentStatusNotFoundError,
)


class PaymentStatus(str, Enum):
    """Lifecycle of a card bill payment"""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    PARTIAL = "PARTIAL"
    DISPUTED = "DISPUTED"
    CANCELLED = "CANCELLED"
    MANUAL_CONFIRMED = "MANUAL_CONFIRMED"


class UpdatedBy(str, Enum):
    SYSTEM = "system"
    USER = "user"


ALLOWED_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {
            PaymentStatus.PROCESSING,
            PaymentStatus.PARTIAL,
            PaymentStatus.CANCELLED,
            PaymentStatus.MANUAL_CONFIRMED,
        }
    ),
    PaymentStatus.PROCESSING: frozenset({PaymentStatus.PAID, PaymentStatus.DISPUTED, PaymentStatus.OVERDUE}),
    PaymentStatus.DISPUTED: frozenset({PaymentStatus.MANUAL_CONFIRMED}),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.OVERDUE: frozenset(),
    PaymentStatus.PARTIAL: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
    PaymentStatus.MANUAL_CONFIRMED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[PaymentStatus] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PaymentStatusRecord:
    """
    One status change for a card summary.

    Records are never mutated. A transition produces a new record that
    points back at the old status through previous_status.
    """

    id: str
    card_summary_id: str
    status: PaymentStatus
    previous_status: Optional[PaymentStatus]
    updated_at: datetime
    updated_by: UpdatedBy
    reason: Optional[str]
    reconciliation_id: Optional[str]
    notes: Optional[str]
    created_at: datetime

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidDomainValueError("ID is required")
        if not self.card_summary_id:
            raise InvalidDomainValueError("Card summary ID is required")
        try:
            object.__setattr__(self, "status", PaymentStatus(self.status))
            if self.previous_status is not None:
                object.__setattr__(self, "previous_status", PaymentStatus(self.previous_status))
            object.__setattr__(self, "updated_by", UpdatedBy(self.updated_by))
        except ValueError as e:
            raise InvalidDomainValueError(str(e)) from e
        if self.updated_at is None or self.created_at is None:
            raise InvalidDomainValueError("Timestamps are required")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def get_allowed_transitions(self) -> FrozenSet[PaymentStatus]:
        return ALLOWED_TRANSITIONS[self.status]

    def can_transition_to(self, new_status: PaymentStatus) -> bool:
        if new_status == self.status or self.is_terminal:
            return False
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def transition_to(
        self,
        new_status: PaymentStatus,
        updated_by: UpdatedBy,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        reconciliation_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "PaymentStatusRecord":
        """
        Produce the record that follows this one.

        Raises:
            InvalidStatusTransitionError: If the transition table does not allow the change
        """
        new_status = PaymentStatus(new_status)
        if not self.can_transition_to(new_status):
            raise InvalidStatusTransitionError(self.status.value, new_status.value)

        timestamp = now or _utcnow()
        return PaymentStatusRecord(
            id=str(uuid.uuid4()),
            card_summary_id=self.card_summary_id,
            status=new_status,
            previous_status=self.status,
            updated_at=timestamp,
            updated_by=updated_by,
            reason=reason,
            reconciliation_id=reconciliation_id,
            notes=notes,
            created_at=timestamp,
        )

    @classmethod
    def create_initial(
        cls,
        card_summary_id: str,
        initial_status: PaymentStatus = PaymentStatus.PENDING,
        updated_by: UpdatedBy = UpdatedBy.SYSTEM,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "PaymentStatusRecord":
        """First record for a card summary"""
        timestamp = now or _utcnow()
        return cls(
            id=str(uuid.uuid4()),
            card_summary_id=card_summary_id,
            status=initial_status,
            previous_status=None,
            updated_at=timestamp,
            updated_by=updated_by,
            reason=reason,
            reconciliation_id=None,
            notes=None,
            created_at=timestamp,
        )


@dataclass(frozen=True)
class PaymentStatusHistory:
    """All status records of one card summary, oldest first"""

    card_summary_id: str
    status_changes: Tuple[PaymentStatusRecord, ...]

    def __post_init__(self) -> None:
        if not self.card_summary_id:
            raise InvalidDomainValueError("Card summary ID is required")
        if self.status_changes is None:
            raise InvalidDomainValueError("Status changes is required")
        if any(r.card_summary_id != self.card_summary_id for r in self.status_changes):
            raise InvalidDomainValueError("All status changes must belong to the same card summary")
        object.__setattr__(
            self, "status_changes", tuple(sorted(self.status_changes, key=lambda r: r.updated_at))
        )

    def get_latest_status(self) -> PaymentStatusRecord:
        if not self.status_changes:
            raise PaymentStatusNotFoundError(self.card_summary_id)
        return self.status_changes[-1]

    def get_status_at(self, when: datetime) -> Optional[PaymentStatusRecord]:
        """Status in effect at a point in time, None if every record is later"""
        for record in reversed(self.status_changes):
            if record.updated_at <= when:
                return record
        return None
