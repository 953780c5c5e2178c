"""Payment status updates and queries"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence

from card_reconciler.domain.exceptions import (
    CardSummaryNotFoundError,
    InvalidStatusTransitionError,
    PaymentStatusNotFoundError,
)
from card_reconciler.domain.payment_status import (
    PaymentStatus,
    PaymentStatusHistory,
    PaymentStatusRecord,
    UpdatedBy,
)
from card_reconciler.domain.repositories import BillingSummaryLookup, PaymentStatusStore
from card_reconciler.infrastructure.observability.metrics import record_transition

INITIAL_STATUS_REASON = "initial status"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UpdatePaymentStatusUseCase:
    """Apply a status change, manually by a user or automatically by the system"""

    def __init__(
        self,
        status_store: PaymentStatusStore,
        summary_lookup: BillingSummaryLookup,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.status_store = status_store
        self.summary_lookup = summary_lookup
        self.clock = clock or _utcnow

    def execute_manually(
        self,
        card_summary_id: str,
        new_status: PaymentStatus,
        updated_by: UpdatedBy = UpdatedBy.USER,
        notes: Optional[str] = None,
    ) -> PaymentStatusRecord:
        current = self._get_valid_record_for_transition(card_summary_id, new_status)
        new_record = current.transition_to(
            new_status,
            updated_by,
            reason=f"manual update: {PaymentStatus(new_status).value}",
            notes=notes,
            now=self.clock(),
        )
        return self._save(new_record)

    def execute_automatically(
        self,
        card_summary_id: str,
        new_status: PaymentStatus,
        reason: str,
        reconciliation_id: Optional[str] = None,
    ) -> PaymentStatusRecord:
        current = self._get_valid_record_for_transition(card_summary_id, new_status)
        new_record = current.transition_to(
            new_status,
            UpdatedBy.SYSTEM,
            reason=reason,
            reconciliation_id=reconciliation_id,
            now=self.clock(),
        )
        return self._save(new_record)

    def _get_valid_record_for_transition(self, card_summary_id: str, new_status: PaymentStatus) -> PaymentStatusRecord:
        """
        Current record for the card summary, or a fresh PENDING one if none exists.

        Raises:
            CardSummaryNotFoundError: The card summary does not exist
            InvalidStatusTransitionError: The current status cannot move to new_status
        """
        summary = self.summary_lookup.find_by_id(card_summary_id)
        if summary is None:
            raise CardSummaryNotFoundError(card_summary_id)

        current = self.status_store.find_by_card_summary_id(card_summary_id)
        if current is None:
            current = PaymentStatusRecord.create_initial(
                card_summary_id,
                PaymentStatus.PENDING,
                UpdatedBy.SYSTEM,
                INITIAL_STATUS_REASON,
                now=self.clock(),
            )

        if not current.can_transition_to(new_status):
            raise InvalidStatusTransitionError(current.status.value, PaymentStatus(new_status).value)
        return current

    def _save(self, record: PaymentStatusRecord) -> PaymentStatusRecord:
        saved = self.status_store.save(record)
        record_transition(
            saved.previous_status.value if saved.previous_status else None,
            saved.status.value,
            saved.updated_by.value,
        )
        logging.info(
            f"Payment status updated: {saved.card_summary_id} -> {saved.status.value}",
            extra={
                "card_summary_id": saved.card_summary_id,
                "status": saved.status.value,
                "updated_by": saved.updated_by.value,
            },
        )
        return saved


class PaymentStatusQueryService:
    """Read side of payment status, plus creation of the first record"""

    def __init__(
        self,
        status_store: PaymentStatusStore,
        summary_lookup: BillingSummaryLookup,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.status_store = status_store
        self.summary_lookup = summary_lookup
        self.clock = clock or _utcnow

    def get_current(self, card_summary_id: str) -> PaymentStatusRecord:
        record = self.status_store.find_by_card_summary_id(card_summary_id)
        if record is None:
            raise PaymentStatusNotFoundError(card_summary_id)
        return record

    def get_statuses(self, card_summary_ids: Sequence[str]) -> Dict[str, PaymentStatusRecord]:
        """Latest record per card summary; summaries without records are left out"""
        return self.status_store.find_by_card_summary_ids(card_summary_ids)

    def get_history(self, card_summary_id: str) -> PaymentStatusHistory:
        return self.status_store.find_history_by_card_summary_id(card_summary_id)

    def initialize(self, card_summary_id: str) -> PaymentStatusRecord:
        """Store the initial PENDING record unless the summary already has one"""
        if self.summary_lookup.find_by_id(card_summary_id) is None:
            raise CardSummaryNotFoundError(card_summary_id)

        existing = self.status_store.find_by_card_summary_id(card_summary_id)
        if existing is not None:
            return existing

        record = PaymentStatusRecord.create_initial(
            card_summary_id,
            PaymentStatus.PENDING,
            UpdatedBy.SYSTEM,
            INITIAL_STATUS_REASON,
            now=self.clock(),
        )
        saved = self.status_store.save(record)
        record_transition(None, saved.status.value, saved.updated_by.value)
        return saved
