"""Pytest fixtures for testing"""

import threading
import pytest
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Generator, List, Optional, Sequence
from fastapi.testclient import TestClient

from card_reconciler.api.dependencies import get_clock
from card_reconciler.api.main import create_app
from card_reconciler.domain.models import BankTransaction, BillingSummary, Reconciliation
from card_reconciler.domain.payment_status import PaymentStatus, PaymentStatusHistory, PaymentStatusRecord
from card_reconciler.infrastructure.database.repositories import BillingSummaryRepository
from card_reconciler.infrastructure.database.session import Database

# Thursday; the +/-3 business day window is 2025-02-24 .. 2025-03-04
PAYMENT_DATE = date(2025, 2, 27)


class TickingClock:
    """Deterministic clock that advances one second per call"""

    def __init__(self, start: datetime):
        self.current = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            now = self.current
            self.current += timedelta(seconds=1)
            return now


def make_summary(
    summary_id: str = "summary-1",
    card_id: str = "card-1",
    card_name: str = "三井住友カード",
    billing_month: str = "2025-01",
    payment_date: date = PAYMENT_DATE,
    amount: int = 52340,
) -> BillingSummary:
    return BillingSummary(
        id=summary_id,
        card_id=card_id,
        card_name=card_name,
        billing_month=billing_month,
        closing_date=date(2025, 1, 31),
        payment_date=payment_date,
        net_payment_amount=amount,
        transaction_ids=("txn-a", "txn-b"),
    )


def make_transaction(
    transaction_id: str,
    on: date = PAYMENT_DATE,
    amount: int = 52340,
    description: str = "三井住友カード 口座振替",
) -> BankTransaction:
    return BankTransaction(id=transaction_id, date=on, amount=amount, description=description)


class InMemorySummaryLookup:
    def __init__(self, summaries: Sequence[BillingSummary] = ()):
        self.summaries = {s.id: s for s in summaries}

    def find_by_id(self, summary_id: str) -> Optional[BillingSummary]:
        return self.summaries.get(summary_id)

    def find_by_card_and_month(self, card_id: str, billing_month: str) -> Optional[BillingSummary]:
        for summary in self.summaries.values():
            if summary.card_id == card_id and summary.billing_month == billing_month:
                return summary
        return None

    def find_by_ids(self, summary_ids: Sequence[str]) -> List[BillingSummary]:
        return [self.summaries[i] for i in summary_ids if i in self.summaries]


class InMemoryStatusStore:
    """Append-only store; the most recently saved record per summary is the latest"""

    def __init__(self, records: Sequence[PaymentStatusRecord] = ()):
        self.records: List[PaymentStatusRecord] = list(records)
        self._lock = threading.Lock()

    def save(self, record: PaymentStatusRecord) -> PaymentStatusRecord:
        with self._lock:
            self.records.append(record)
        return record

    def find_by_card_summary_id(self, card_summary_id: str) -> Optional[PaymentStatusRecord]:
        return self._latest().get(card_summary_id)

    def find_by_card_summary_ids(self, card_summary_ids: Sequence[str]) -> Dict[str, PaymentStatusRecord]:
        latest = self._latest()
        return {i: latest[i] for i in card_summary_ids if i in latest}

    def find_all_by_status(self, status: PaymentStatus) -> List[PaymentStatusRecord]:
        return [r for r in self._latest().values() if r.status == status]

    def find_history_by_card_summary_id(self, card_summary_id: str) -> PaymentStatusHistory:
        return PaymentStatusHistory(
            card_summary_id, tuple(r for r in self.records if r.card_summary_id == card_summary_id)
        )

    def _latest(self) -> Dict[str, PaymentStatusRecord]:
        with self._lock:
            return {r.card_summary_id: r for r in self.records}


class InMemoryReconciliationStore:
    def __init__(self):
        self.saved: List[Reconciliation] = []

    def save(self, reconciliation: Reconciliation) -> Reconciliation:
        self.saved.append(reconciliation)
        return reconciliation

    def find_by_id(self, reconciliation_id: str) -> Optional[Reconciliation]:
        return next((r for r in self.saved if r.id == reconciliation_id), None)

    def find_by_card_and_month(self, card_id: str, billing_month: str) -> Optional[Reconciliation]:
        matches = [r for r in self.saved if r.card_id == card_id and r.billing_month == billing_month]
        return matches[-1] if matches else None

    def find_by_card(self, card_id, start_month=None, end_month=None) -> List[Reconciliation]:
        return [r for r in self.saved if r.card_id == card_id]


class FakeBankSource:
    """Serves canned transactions, filtered by the requested range"""

    def __init__(self, transactions: Sequence[BankTransaction] = (), error: Optional[Exception] = None):
        self.transactions = list(transactions)
        self.error = error
        self.calls: List[tuple] = []

    async def find_by_date_range(self, start: date, end: date) -> List[BankTransaction]:
        self.calls.append((start, end))
        if self.error is not None:
            raise self.error
        return [t for t in self.transactions if start <= t.date <= end]


@pytest.fixture
def summary() -> BillingSummary:
    return make_summary()


@pytest.fixture
def clock() -> TickingClock:
    """UTC clock starting well after the sample payment date"""
    return TickingClock(datetime(2025, 3, 10, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def database(tmp_path) -> Generator[Database, None, None]:
    """SQLite database with a fresh schema per test"""
    db = Database(f"sqlite:///{tmp_path / 'test.db'}")
    db.create_schema()
    try:
        yield db
    finally:
        db.drop_schema()
        db.dispose()


@pytest.fixture
def bank_source() -> FakeBankSource:
    return FakeBankSource([make_transaction("bank-1")])


@pytest.fixture
def client(database: Database, bank_source: FakeBankSource, clock: TickingClock) -> Generator[TestClient, None, None]:
    """FastAPI test client backed by the SQLite database, a fake bank and a fixed clock"""
    BillingSummaryRepository(database).add(make_summary())

    app = create_app(database=database, bank_client=bank_source)
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client
