"""Daily payment status batch: advances statuses as the payment date approaches and passes"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from card_reconciler.application.payment_status import UpdatePaymentStatusUseCase
from card_reconciler.config import settings
from card_reconciler.domain.models import BillingSummary
from card_reconciler.domain.payment_status import PaymentStatus
from card_reconciler.domain.repositories import BillingSummaryLookup, PaymentStatusStore
from card_reconciler.infrastructure.observability.logging import log_batch_result
from card_reconciler.infrastructure.observability.metrics import batch_duration_histogram, batch_failure_counter
from card_reconciler.utils.date_utils import local_now


@dataclass
class PassResult:
    """Outcome of one from-status -> to-status pass"""

    success_count: int
    failure_count: int
    total_candidates: int


@dataclass
class BatchResult:
    """Outcome of a full run (both passes)"""

    success: int
    failure: int
    total: int
    duration_ms: float
    timestamp: datetime


class PaymentStatusUpdateScheduler:
    """
    Moves payment statuses forward based on today's date.

    - PENDING -> PROCESSING from `processing_lead_days` calendar days before the payment date
    - PROCESSING -> OVERDUE once more than `overdue_grace_days` calendar days have passed

    Each pass lists candidates, loads their summaries in one bulk lookup, then
    runs the eligible transitions concurrently. One record failing does not
    affect the others; it is retried on the next day's run.
    """

    def __init__(
        self,
        update_use_case: UpdatePaymentStatusUseCase,
        summary_lookup: BillingSummaryLookup,
        status_store: PaymentStatusStore,
        clock: Optional[Callable[[], datetime]] = None,
        processing_lead_days: Optional[int] = None,
        overdue_grace_days: Optional[int] = None,
    ):
        self.update_use_case = update_use_case
        self.summary_lookup = summary_lookup
        self.status_store = status_store
        self.clock = clock or (lambda: local_now(settings.business_timezone))
        self.processing_lead_days = (
            settings.processing_lead_days if processing_lead_days is None else processing_lead_days
        )
        self.overdue_grace_days = settings.overdue_grace_days if overdue_grace_days is None else overdue_grace_days

    def _today(self) -> date:
        # Date only; time of day never matters for eligibility
        return self.clock().date()

    async def update_pending_to_processing(self) -> PassResult:
        today = self._today()
        lead = timedelta(days=self.processing_lead_days)
        return await self._process_status_updates(
            PaymentStatus.PENDING,
            PaymentStatus.PROCESSING,
            lambda summary: today >= summary.payment_date - lead,
            f"{self.processing_lead_days} days before payment date",
        )

    async def update_processing_to_overdue(self) -> PassResult:
        today = self._today()
        grace = timedelta(days=self.overdue_grace_days)
        return await self._process_status_updates(
            PaymentStatus.PROCESSING,
            PaymentStatus.OVERDUE,
            lambda summary: today > summary.payment_date + grace,
            f"{self.overdue_grace_days} days past payment date",
        )

    async def _process_status_updates(
        self,
        from_status: PaymentStatus,
        to_status: PaymentStatus,
        is_due: Callable[[BillingSummary], bool],
        reason: str,
    ) -> PassResult:
        logging.info(f"Updating {from_status.value} to {to_status.value}...")

        # Listing failures propagate: the whole day's batch has failed
        records = await asyncio.to_thread(self.status_store.find_all_by_status, from_status)
        if not records:
            logging.info(f"No {from_status.value} records found")
            return PassResult(success_count=0, failure_count=0, total_candidates=0)

        # One bulk lookup instead of one query per record
        summaries = await asyncio.to_thread(
            self.summary_lookup.find_by_ids, [r.card_summary_id for r in records]
        )
        summary_map = {s.id: s for s in summaries}

        due_ids = []
        for record in records:
            summary = summary_map.get(record.card_summary_id)
            if summary is None:
                logging.warning(
                    f"Billing summary not found: {record.card_summary_id}",
                    extra={"card_summary_id": record.card_summary_id},
                )
                continue
            if is_due(summary):
                due_ids.append(record.card_summary_id)

        outcomes = await asyncio.gather(
            *(
                asyncio.to_thread(self.update_use_case.execute_automatically, card_summary_id, to_status, reason)
                for card_summary_id in due_ids
            ),
            return_exceptions=True,
        )

        success_count = 0
        failure_count = 0
        for card_summary_id, outcome in zip(due_ids, outcomes):
            if isinstance(outcome, BaseException):
                failure_count += 1
                batch_failure_counter.labels(to_status=to_status.value).inc()
                logging.error(
                    f"Failed to update status for {card_summary_id}: {outcome}",
                    extra={"card_summary_id": card_summary_id, "to_status": to_status.value},
                )
            else:
                success_count += 1

        log_batch_result(from_status.value, to_status.value, success_count, failure_count, len(records))
        return PassResult(
            success_count=success_count,
            failure_count=failure_count,
            total_candidates=len(records),
        )

    async def execute_manually(self) -> BatchResult:
        """Run both passes now, in order, and report the aggregate"""
        start_time = time.monotonic()
        try:
            pending_result = await self.update_pending_to_processing()
            overdue_result = await self.update_processing_to_overdue()
        except Exception:
            logging.exception("Payment status batch failed")
            raise

        duration = time.monotonic() - start_time
        batch_duration_histogram.observe(duration)
        return BatchResult(
            success=pending_result.success_count + overdue_result.success_count,
            failure=pending_result.failure_count + overdue_result.failure_count,
            total=pending_result.total_candidates + overdue_result.total_candidates,
            duration_ms=duration * 1000,
            timestamp=self.clock().astimezone(timezone.utc),
        )

    async def run_daily_update(self) -> BatchResult:
        """Entry point for the daily trigger"""
        logging.info("PaymentStatusUpdateBatch started")
        result = await self.execute_manually()
        logging.info(
            f"PaymentStatusUpdateBatch completed: {result.success} succeeded, {result.failure} failed",
            extra={"success": result.success, "failure": result.failure, "total": result.total},
        )
        return result


def seconds_until_next_run(now: datetime, run_hour: int) -> float:
    """Seconds from now until the next occurrence of run_hour:00 in now's timezone"""
    next_run = now.replace(hour=run_hour, minute=0, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return (next_run - now).total_seconds()


async def run_daily_schedule(
    scheduler: PaymentStatusUpdateScheduler,
    run_hour: Optional[int] = None,
    tz_name: Optional[str] = None,
) -> None:
    """
    Trigger the batch once a day until cancelled.

    A failed day is logged and left for the next run.
    """
    run_hour = settings.scheduler_run_hour if run_hour is None else run_hour
    tz_name = tz_name or settings.business_timezone
    while True:
        delay = seconds_until_next_run(local_now(tz_name), run_hour)
        logging.info(f"Next payment status batch in {delay:.0f}s")
        await asyncio.sleep(delay)
        try:
            await scheduler.run_daily_update()
        except Exception as e:
            logging.error(f"PaymentStatusUpdateBatch failed, next attempt on the following run: {e}")
