"""Unit tests for the daily payment status batch"""

import pytest
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo
from card_reconciler.application.payment_status import UpdatePaymentStatusUseCase
from card_reconciler.application.scheduler import PaymentStatusUpdateScheduler, seconds_until_next_run
from card_reconciler.domain.payment_status import PaymentStatus, PaymentStatusRecord, UpdatedBy

from conftest import InMemoryStatusStore, InMemorySummaryLookup, TickingClock, make_summary

TOKYO = ZoneInfo("Asia/Tokyo")
# Monday
TODAY = date(2025, 2, 24)
T0 = datetime(2025, 2, 1, tzinfo=timezone.utc)


def record(card_summary_id: str, status: PaymentStatus) -> PaymentStatusRecord:
    return PaymentStatusRecord.create_initial(card_summary_id, initial_status=status, now=T0)


def build_scheduler(summaries, records, today: date = TODAY, status_store=None):
    status_store = status_store or InMemoryStatusStore(records)
    lookup = InMemorySummaryLookup(summaries)
    clock = TickingClock(datetime(today.year, today.month, today.day, 9, 0, tzinfo=TOKYO))
    use_case = UpdatePaymentStatusUseCase(status_store, lookup, clock=clock)
    return PaymentStatusUpdateScheduler(use_case, lookup, status_store, clock=clock), status_store


class FailingStatusStore(InMemoryStatusStore):
    """Rejects saves for selected card summaries"""

    def __init__(self, records, failing_ids):
        super().__init__(records)
        self.failing_ids = set(failing_ids)

    def save(self, record: PaymentStatusRecord) -> PaymentStatusRecord:
        if record.card_summary_id in self.failing_ids:
            raise RuntimeError("database unavailable")
        return super().save(record)


class BrokenListingStore(InMemoryStatusStore):
    def find_all_by_status(self, status):
        raise RuntimeError("connection refused")


async def test_pending_moves_to_processing_three_days_before_payment():
    scheduler, store = build_scheduler(
        [make_summary(payment_date=TODAY + timedelta(days=3))],
        [record("summary-1", PaymentStatus.PENDING)],
    )

    result = await scheduler.update_pending_to_processing()

    assert (result.success_count, result.failure_count, result.total_candidates) == (1, 0, 1)
    latest = store.find_by_card_summary_id("summary-1")
    assert latest.status == PaymentStatus.PROCESSING
    assert latest.updated_by == UpdatedBy.SYSTEM
    assert latest.reason == "3 days before payment date"


async def test_pending_stays_four_days_before_payment():
    scheduler, store = build_scheduler(
        [make_summary(payment_date=TODAY + timedelta(days=4))],
        [record("summary-1", PaymentStatus.PENDING)],
    )

    result = await scheduler.update_pending_to_processing()

    assert (result.success_count, result.failure_count, result.total_candidates) == (0, 0, 1)
    assert store.find_by_card_summary_id("summary-1").status == PaymentStatus.PENDING


async def test_processing_becomes_overdue_after_grace_period():
    scheduler, store = build_scheduler(
        [
            make_summary("summary-late", billing_month="2024-12", payment_date=TODAY - timedelta(days=8)),
            make_summary("summary-edge", billing_month="2024-11", payment_date=TODAY - timedelta(days=7)),
        ],
        [record("summary-late", PaymentStatus.PROCESSING), record("summary-edge", PaymentStatus.PROCESSING)],
    )

    result = await scheduler.update_processing_to_overdue()

    assert (result.success_count, result.total_candidates) == (1, 2)
    assert store.find_by_card_summary_id("summary-late").status == PaymentStatus.OVERDUE
    assert store.find_by_card_summary_id("summary-late").reason == "7 days past payment date"
    assert store.find_by_card_summary_id("summary-edge").status == PaymentStatus.PROCESSING


async def test_record_without_summary_is_skipped():
    scheduler, _ = build_scheduler([], [record("ghost", PaymentStatus.PENDING)])

    result = await scheduler.update_pending_to_processing()

    assert (result.success_count, result.failure_count, result.total_candidates) == (0, 0, 1)


async def test_one_failure_does_not_stop_the_others():
    summaries = [
        make_summary("summary-ok", billing_month="2025-01", payment_date=TODAY),
        make_summary("summary-bad", billing_month="2024-12", payment_date=TODAY),
    ]
    records = [record("summary-ok", PaymentStatus.PENDING), record("summary-bad", PaymentStatus.PENDING)]
    store = FailingStatusStore(records, failing_ids=["summary-bad"])
    scheduler, _ = build_scheduler(summaries, records, status_store=store)

    result = await scheduler.update_pending_to_processing()

    assert (result.success_count, result.failure_count, result.total_candidates) == (1, 1, 2)
    assert store.find_by_card_summary_id("summary-ok").status == PaymentStatus.PROCESSING
    assert store.find_by_card_summary_id("summary-bad").status == PaymentStatus.PENDING


async def test_no_candidates():
    scheduler, _ = build_scheduler([], [])

    result = await scheduler.update_processing_to_overdue()

    assert (result.success_count, result.failure_count, result.total_candidates) == (0, 0, 0)


async def test_manual_run_aggregates_both_passes():
    summaries = [
        make_summary("summary-due", billing_month="2025-01", payment_date=TODAY + timedelta(days=2)),
        make_summary("summary-late", billing_month="2024-12", payment_date=TODAY - timedelta(days=14)),
    ]
    records = [record("summary-due", PaymentStatus.PENDING), record("summary-late", PaymentStatus.PROCESSING)]
    scheduler, store = build_scheduler(summaries, records)

    result = await scheduler.execute_manually()

    # The second pass also lists the record the first pass just moved to PROCESSING
    assert (result.success, result.failure, result.total) == (2, 0, 3)
    assert result.duration_ms >= 0
    assert result.timestamp.tzinfo is not None
    assert store.find_by_card_summary_id("summary-due").status == PaymentStatus.PROCESSING
    assert store.find_by_card_summary_id("summary-late").status == PaymentStatus.OVERDUE


async def test_manual_run_timestamp_follows_injected_clock():
    scheduler, _ = build_scheduler([], [], today=date(2025, 3, 3))

    result = await scheduler.execute_manually()

    # 09:00 in Tokyo is midnight UTC; the clock ticks once per call
    start = datetime(2025, 3, 3, 0, 0, tzinfo=timezone.utc)
    assert result.timestamp.utcoffset() == timedelta(0)
    assert start <= result.timestamp <= start + timedelta(seconds=10)


async def test_listing_failure_propagates():
    store = BrokenListingStore()
    scheduler, _ = build_scheduler([], [], status_store=store)

    with pytest.raises(RuntimeError, match="connection refused"):
        await scheduler.execute_manually()


def test_seconds_until_next_run_later_today():
    now = datetime(2025, 2, 24, 23, 30, tzinfo=TOKYO)
    assert seconds_until_next_run(now, 0) == 30 * 60


def test_seconds_until_next_run_at_run_hour_waits_a_day():
    now = datetime(2025, 2, 24, 0, 0, tzinfo=TOKYO)
    assert seconds_until_next_run(now, 0) == 24 * 60 * 60
