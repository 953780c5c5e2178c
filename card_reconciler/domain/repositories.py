"""Collaborator contracts the domain and application layers depend on"""

from datetime import date
from typing import Dict, List, Optional, Protocol, Sequence

from card_reconciler.domain.models import BankTransaction, BillingSummary, Reconciliation
from card_reconciler.domain.payment_status import PaymentStatus, PaymentStatusHistory, PaymentStatusRecord


class BillingSummaryLookup(Protocol):
    def find_by_id(self, summary_id: str) -> Optional[BillingSummary]: ...

    def find_by_card_and_month(self, card_id: str, billing_month: str) -> Optional[BillingSummary]: ...

    def find_by_ids(self, summary_ids: Sequence[str]) -> List[BillingSummary]: ...


class BankTransactionSource(Protocol):
    async def find_by_date_range(self, start: date, end: date) -> List[BankTransaction]: ...


class PaymentStatusStore(Protocol):
    def save(self, record: PaymentStatusRecord) -> PaymentStatusRecord: ...

    def find_by_card_summary_id(self, card_summary_id: str) -> Optional[PaymentStatusRecord]: ...

    def find_by_card_summary_ids(self, card_summary_ids: Sequence[str]) -> Dict[str, PaymentStatusRecord]: ...

    def find_all_by_status(self, status: PaymentStatus) -> List[PaymentStatusRecord]: ...

    def find_history_by_card_summary_id(self, card_summary_id: str) -> PaymentStatusHistory: ...


class ReconciliationStore(Protocol):
    def save(self, reconciliation: Reconciliation) -> Reconciliation: ...

    def find_by_id(self, reconciliation_id: str) -> Optional[Reconciliation]: ...

    def find_by_card_and_month(self, card_id: str, billing_month: str) -> Optional[Reconciliation]: ...

    def find_by_card(
        self, card_id: str, start_month: Optional[str] = None, end_month: Optional[str] = None
    ) -> List[Reconciliation]: ...
