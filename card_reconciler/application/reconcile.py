"""Credit card payment reconciliation use case"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from card_reconciler.config import settings
from card_reconciler.domain.exceptions import (
    BankAPIError,
    CardSummaryNotFoundError,
    InvalidPaymentDateError,
    MultipleCandidateError,
)
from card_reconciler.domain.models import (
    BankTransaction,
    BillingSummary,
    Reconciliation,
    ReconciliationSummary,
    validate_billing_month,
)
from card_reconciler.domain.reconciliation import determine_status, reconcile_payment
from card_reconciler.domain.repositories import BankTransactionSource, BillingSummaryLookup, ReconciliationStore
from card_reconciler.infrastructure.observability.logging import log_reconciliation
from card_reconciler.infrastructure.observability.metrics import (
    ambiguous_match_counter,
    bank_fetch_failures_counter,
    record_reconciliation,
)
from card_reconciler.utils.date_utils import add_business_days, local_now, subtract_business_days


class ReconcileCreditCardUseCase:
    """Reconcile one card's bill for a month against the bank account"""

    def __init__(
        self,
        reconciliation_store: ReconciliationStore,
        summary_lookup: BillingSummaryLookup,
        bank_source: BankTransactionSource,
        clock: Optional[Callable[[], datetime]] = None,
        window_business_days: Optional[int] = None,
    ):
        self.reconciliation_store = reconciliation_store
        self.summary_lookup = summary_lookup
        self.bank_source = bank_source
        self.clock = clock or (lambda: local_now(settings.business_timezone))
        self.window_business_days = (
            settings.payment_window_business_days if window_business_days is None else window_business_days
        )

    async def execute(self, card_id: str, billing_month: str) -> Reconciliation:
        """
        Run reconciliation and store the result.

        Flow:
        1. Load the billing summary for the card and month
        2. Refuse when the payment date is still in the future
        3. Fetch bank transactions around the payment date
        4. Match and build the reconciliation
        5. Upsert it by card and month

        Raises:
            CardSummaryNotFoundError: No summary for the card and month
            InvalidPaymentDateError: Payment date has not arrived yet
            MultipleCandidateError: Several transactions tie as the best match
            BankAPIError: Bank transactions could not be fetched
        """
        start_time = time.time()
        validate_billing_month(billing_month)

        summary = self.summary_lookup.find_by_card_and_month(card_id, billing_month)
        if summary is None:
            raise CardSummaryNotFoundError(card_id, billing_month)

        now = self.clock()
        today = now.date()
        if summary.payment_date > today:
            raise InvalidPaymentDateError(summary.payment_date, today)

        bank_transactions = await self._fetch_bank_transactions(summary)

        try:
            result = reconcile_payment(summary, bank_transactions, self.window_business_days)
        except MultipleCandidateError as e:
            ambiguous_match_counter.inc()
            logging.warning(
                f"Ambiguous reconciliation for {card_id} {billing_month}: {e}",
                extra={"card_id": card_id, "billing_month": billing_month},
            )
            raise

        executed_at = now.astimezone(timezone.utc)
        status = determine_status(result)
        reconciliation = Reconciliation(
            id=str(uuid.uuid4()),
            card_id=card_id,
            billing_month=billing_month,
            status=status,
            executed_at=executed_at,
            results=(result,),
            summary=ReconciliationSummary.from_results([result]),
            created_at=executed_at,
            updated_at=executed_at,
        )
        saved = self.reconciliation_store.save(reconciliation)

        duration_ms = (time.time() - start_time) * 1000
        record_reconciliation(status.value)
        log_reconciliation(card_id, billing_month, status.value, result.confidence, duration_ms)
        return saved

    async def _fetch_bank_transactions(self, summary: BillingSummary) -> List[BankTransaction]:
        """Bank transactions within the payment window around the payment date"""
        start = subtract_business_days(summary.payment_date, self.window_business_days)
        end = add_business_days(summary.payment_date, self.window_business_days)
        try:
            return await self.bank_source.find_by_date_range(start, end)
        except BankAPIError:
            bank_fetch_failures_counter.inc()
            raise
