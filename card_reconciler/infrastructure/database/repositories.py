"""Data access layer for billing summaries, payment status records and reconciliations"""

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func

from card_reconciler.domain.models import (
    BillingSummary,
    Discrepancy,
    Reconciliation,
    ReconciliationResult,
    ReconciliationSummary,
)
from card_reconciler.domain.payment_status import PaymentStatus, PaymentStatusHistory, PaymentStatusRecord
from card_reconciler.infrastructure.database.models import (
    BillingSummaryRow,
    PaymentStatusRecordRow,
    ReconciliationRow,
)
from card_reconciler.infrastructure.database.session import Database


def _aware(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored timestamps are always UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class BillingSummaryRepository:
    """Read-only access to billing summaries"""

    def __init__(self, database: Database):
        self.database = database

    def find_by_id(self, summary_id: str) -> Optional[BillingSummary]:
        with self.database.session() as db:
            row = db.get(BillingSummaryRow, summary_id)
            return self._to_domain(row) if row else None

    def find_by_card_and_month(self, card_id: str, billing_month: str) -> Optional[BillingSummary]:
        with self.database.session() as db:
            row = (
                db.query(BillingSummaryRow)
                .filter(BillingSummaryRow.card_id == card_id, BillingSummaryRow.billing_month == billing_month)
                .first()
            )
            return self._to_domain(row) if row else None

    def find_by_ids(self, summary_ids: Sequence[str]) -> List[BillingSummary]:
        """Bulk lookup in a single query"""
        if not summary_ids:
            return []
        with self.database.session() as db:
            rows = db.query(BillingSummaryRow).filter(BillingSummaryRow.id.in_(set(summary_ids))).all()
            return [self._to_domain(row) for row in rows]

    def add(self, summary: BillingSummary) -> BillingSummary:
        """Insert a summary; used by the aggregation side and by fixtures"""
        with self.database.session() as db:
            db.add(
                BillingSummaryRow(
                    id=summary.id,
                    card_id=summary.card_id,
                    card_name=summary.card_name,
                    billing_month=summary.billing_month,
                    closing_date=summary.closing_date,
                    payment_date=summary.payment_date,
                    net_payment_amount=summary.net_payment_amount,
                    transaction_ids=list(summary.transaction_ids),
                )
            )
        return summary

    @staticmethod
    def _to_domain(row: BillingSummaryRow) -> BillingSummary:
        return BillingSummary(
            id=row.id,
            card_id=row.card_id,
            card_name=row.card_name,
            billing_month=row.billing_month,
            closing_date=row.closing_date,
            payment_date=row.payment_date,
            net_payment_amount=row.net_payment_amount,
            transaction_ids=tuple(row.transaction_ids or ()),
        )


class PaymentStatusRepository:
    """Append-only store of payment status records"""

    # Records sharing updated_at are ordered by created_at, then id
    _NEWEST_FIRST = (
        PaymentStatusRecordRow.updated_at.desc(),
        PaymentStatusRecordRow.created_at.desc(),
        PaymentStatusRecordRow.id.desc(),
    )
    _OLDEST_FIRST = (
        PaymentStatusRecordRow.updated_at.asc(),
        PaymentStatusRecordRow.created_at.asc(),
        PaymentStatusRecordRow.id.asc(),
    )

    def __init__(self, database: Database):
        self.database = database

    def save(self, record: PaymentStatusRecord) -> PaymentStatusRecord:
        """Append a record; earlier records are never touched"""
        with self.database.session() as db:
            db.add(
                PaymentStatusRecordRow(
                    id=record.id,
                    card_summary_id=record.card_summary_id,
                    status=record.status.value,
                    previous_status=record.previous_status.value if record.previous_status else None,
                    updated_at=record.updated_at,
                    updated_by=record.updated_by.value,
                    reason=record.reason,
                    reconciliation_id=record.reconciliation_id,
                    notes=record.notes,
                    created_at=record.created_at,
                )
            )
        return record

    def find_by_card_summary_id(self, card_summary_id: str) -> Optional[PaymentStatusRecord]:
        """Latest record for the card summary"""
        with self.database.session() as db:
            row = (
                db.query(PaymentStatusRecordRow)
                .filter(PaymentStatusRecordRow.card_summary_id == card_summary_id)
                .order_by(*self._NEWEST_FIRST)
                .first()
            )
            return self._to_domain(row) if row else None

    def find_by_card_summary_ids(self, card_summary_ids: Sequence[str]) -> Dict[str, PaymentStatusRecord]:
        """Latest record per card summary, keyed by card summary ID"""
        if not card_summary_ids:
            return {}
        with self.database.session() as db:
            rows = (
                db.query(PaymentStatusRecordRow)
                .filter(PaymentStatusRecordRow.card_summary_id.in_(set(card_summary_ids)))
                .order_by(*self._OLDEST_FIRST)
                .all()
            )
            # Ascending order: later rows overwrite earlier ones
            return {row.card_summary_id: self._to_domain(row) for row in rows}

    def find_all_by_status(self, status: PaymentStatus) -> List[PaymentStatusRecord]:
        """Card summaries whose latest record is in the given status"""
        with self.database.session() as db:
            ranked = (
                db.query(
                    PaymentStatusRecordRow.id,
                    PaymentStatusRecordRow.status,
                    func.row_number()
                    .over(partition_by=PaymentStatusRecordRow.card_summary_id, order_by=list(self._NEWEST_FIRST))
                    .label("position"),
                )
                .subquery()
            )
            rows = (
                db.query(PaymentStatusRecordRow)
                .join(ranked, PaymentStatusRecordRow.id == ranked.c.id)
                .filter(ranked.c.position == 1, ranked.c.status == PaymentStatus(status).value)
                .all()
            )
            return [self._to_domain(row) for row in rows]

    def find_history_by_card_summary_id(self, card_summary_id: str) -> PaymentStatusHistory:
        with self.database.session() as db:
            rows = (
                db.query(PaymentStatusRecordRow)
                .filter(PaymentStatusRecordRow.card_summary_id == card_summary_id)
                .order_by(*self._OLDEST_FIRST)
                .all()
            )
            return PaymentStatusHistory(card_summary_id, tuple(self._to_domain(row) for row in rows))

    @staticmethod
    def _to_domain(row: PaymentStatusRecordRow) -> PaymentStatusRecord:
        return PaymentStatusRecord(
            id=row.id,
            card_summary_id=row.card_summary_id,
            status=PaymentStatus(row.status),
            previous_status=PaymentStatus(row.previous_status) if row.previous_status else None,
            updated_at=_aware(row.updated_at),
            updated_by=row.updated_by,
            reason=row.reason,
            reconciliation_id=row.reconciliation_id,
            notes=row.notes,
            created_at=_aware(row.created_at),
        )


class ReconciliationRepository:
    """Reconciliation runs, unique per card and billing month"""

    def __init__(self, database: Database):
        self.database = database

    def save(self, reconciliation: Reconciliation) -> Reconciliation:
        """
        Insert or replace the run for the card and month.

        An existing run keeps its id and created_at. There is no optimistic
        concurrency check; concurrent saves for the same card and month are
        last-write-wins.
        """
        with self.database.session() as db:
            row = (
                db.query(ReconciliationRow)
                .filter(
                    ReconciliationRow.card_id == reconciliation.card_id,
                    ReconciliationRow.billing_month == reconciliation.billing_month,
                )
                .first()
            )
            if row is None:
                row = ReconciliationRow(id=reconciliation.id, created_at=reconciliation.created_at)
                db.add(row)
                saved = reconciliation
            else:
                saved = replace(reconciliation, id=row.id, created_at=_aware(row.created_at))

            row.card_id = saved.card_id
            row.billing_month = saved.billing_month
            row.status = saved.status.value
            row.executed_at = saved.executed_at
            row.results = [_result_to_json(r) for r in saved.results]
            row.summary_total = saved.summary.total
            row.summary_matched = saved.summary.matched
            row.summary_unmatched = saved.summary.unmatched
            row.summary_partial = saved.summary.partial
            row.updated_at = saved.updated_at
        return saved

    def find_by_id(self, reconciliation_id: str) -> Optional[Reconciliation]:
        with self.database.session() as db:
            row = db.get(ReconciliationRow, reconciliation_id)
            return self._to_domain(row) if row else None

    def find_by_card_and_month(self, card_id: str, billing_month: str) -> Optional[Reconciliation]:
        with self.database.session() as db:
            row = (
                db.query(ReconciliationRow)
                .filter(ReconciliationRow.card_id == card_id, ReconciliationRow.billing_month == billing_month)
                .first()
            )
            return self._to_domain(row) if row else None

    def find_by_card(
        self, card_id: str, start_month: Optional[str] = None, end_month: Optional[str] = None
    ) -> List[Reconciliation]:
        """Runs for a card, optionally bounded by billing month (inclusive)"""
        with self.database.session() as db:
            query = db.query(ReconciliationRow).filter(ReconciliationRow.card_id == card_id)
            # YYYY-MM strings sort chronologically
            if start_month:
                query = query.filter(ReconciliationRow.billing_month >= start_month)
            if end_month:
                query = query.filter(ReconciliationRow.billing_month <= end_month)
            rows = query.order_by(ReconciliationRow.billing_month.asc()).all()
            return [self._to_domain(row) for row in rows]

    @staticmethod
    def _to_domain(row: ReconciliationRow) -> Reconciliation:
        return Reconciliation(
            id=row.id,
            card_id=row.card_id,
            billing_month=row.billing_month,
            status=row.status,
            executed_at=_aware(row.executed_at),
            results=tuple(_result_from_json(r) for r in row.results),
            summary=ReconciliationSummary(
                total=row.summary_total,
                matched=row.summary_matched,
                unmatched=row.summary_unmatched,
                partial=row.summary_partial,
            ),
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )


def _result_to_json(result: ReconciliationResult) -> dict:
    discrepancy = result.discrepancy
    return {
        "is_matched": result.is_matched,
        "confidence": result.confidence,
        "bank_transaction_id": result.bank_transaction_id,
        "card_summary_id": result.card_summary_id,
        "matched_at": result.matched_at.isoformat() if result.matched_at else None,
        "discrepancy": (
            {
                "amount_difference": discrepancy.amount_difference,
                "date_difference": discrepancy.date_difference,
                "description_match": discrepancy.description_match,
                "reason": discrepancy.reason,
            }
            if discrepancy
            else None
        ),
    }


def _result_from_json(data: dict) -> ReconciliationResult:
    discrepancy = data.get("discrepancy")
    return ReconciliationResult(
        is_matched=data["is_matched"],
        confidence=data["confidence"],
        bank_transaction_id=data.get("bank_transaction_id"),
        card_summary_id=data["card_summary_id"],
        matched_at=date.fromisoformat(data["matched_at"]) if data.get("matched_at") else None,
        discrepancy=Discrepancy(**discrepancy) if discrepancy else None,
    )
