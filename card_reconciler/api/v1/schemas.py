"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional

from card_reconciler.application.scheduler import BatchResult
from card_reconciler.domain.models import Reconciliation, ReconciliationResult
from card_reconciler.domain.payment_status import PaymentStatus, PaymentStatusHistory, PaymentStatusRecord


class ReconcileRequest(BaseModel):
    """Request body for POST /v1/reconciliations"""

    card_id: str = Field(..., min_length=1, description="Card identifier")
    billing_month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$", description="Billing month (YYYY-MM)")


class DiscrepancySchema(BaseModel):
    amount_difference: int
    date_difference: int
    description_match: bool
    reason: str


class ReconciliationResultSchema(BaseModel):
    is_matched: bool
    confidence: int
    bank_transaction_id: Optional[str] = None
    card_summary_id: str
    matched_at: Optional[date] = None
    discrepancy: Optional[DiscrepancySchema] = None

    @classmethod
    def from_domain(cls, result: ReconciliationResult) -> "ReconciliationResultSchema":
        d = result.discrepancy
        return cls(
            is_matched=result.is_matched,
            confidence=result.confidence,
            bank_transaction_id=result.bank_transaction_id,
            card_summary_id=result.card_summary_id,
            matched_at=result.matched_at,
            discrepancy=(
                DiscrepancySchema(
                    amount_difference=d.amount_difference,
                    date_difference=d.date_difference,
                    description_match=d.description_match,
                    reason=d.reason,
                )
                if d
                else None
            ),
        )


class ReconciliationSummarySchema(BaseModel):
    total: int
    matched: int
    unmatched: int
    partial: int


class ReconciliationResponse(BaseModel):
    """Reconciliation run for a card and billing month"""

    id: str
    card_id: str
    billing_month: str
    status: str
    executed_at: datetime
    results: List[ReconciliationResultSchema]
    summary: ReconciliationSummarySchema
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, reconciliation: Reconciliation) -> "ReconciliationResponse":
        s = reconciliation.summary
        return cls(
            id=reconciliation.id,
            card_id=reconciliation.card_id,
            billing_month=reconciliation.billing_month,
            status=reconciliation.status.value,
            executed_at=reconciliation.executed_at,
            results=[ReconciliationResultSchema.from_domain(r) for r in reconciliation.results],
            summary=ReconciliationSummarySchema(
                total=s.total, matched=s.matched, unmatched=s.unmatched, partial=s.partial
            ),
            created_at=reconciliation.created_at,
            updated_at=reconciliation.updated_at,
        )


class PaymentStatusResponse(BaseModel):
    """Single payment status record"""

    id: str
    card_summary_id: str
    status: PaymentStatus
    previous_status: Optional[PaymentStatus] = None
    updated_at: datetime
    updated_by: str
    reason: Optional[str] = None
    reconciliation_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    allowed_transitions: List[PaymentStatus]

    @classmethod
    def from_domain(cls, record: PaymentStatusRecord) -> "PaymentStatusResponse":
        return cls(
            id=record.id,
            card_summary_id=record.card_summary_id,
            status=record.status,
            previous_status=record.previous_status,
            updated_at=record.updated_at,
            updated_by=record.updated_by.value,
            reason=record.reason,
            reconciliation_id=record.reconciliation_id,
            notes=record.notes,
            created_at=record.created_at,
            allowed_transitions=sorted(record.get_allowed_transitions(), key=lambda s: s.value),
        )


class AllowedTransitionsResponse(BaseModel):
    """Response for GET /v1/payment-status/{card_summary_id}/allowed-transitions"""

    card_summary_id: str
    current_status: PaymentStatus
    allowed_transitions: List[PaymentStatus]

    @classmethod
    def from_domain(cls, record: PaymentStatusRecord) -> "AllowedTransitionsResponse":
        return cls(
            card_summary_id=record.card_summary_id,
            current_status=record.status,
            allowed_transitions=sorted(record.get_allowed_transitions(), key=lambda s: s.value),
        )


class PaymentStatusHistoryResponse(BaseModel):
    """Response for GET /v1/payment-status/{card_summary_id}/history"""

    card_summary_id: str
    status_changes: List[PaymentStatusResponse]

    @classmethod
    def from_domain(cls, history: PaymentStatusHistory) -> "PaymentStatusHistoryResponse":
        return cls(
            card_summary_id=history.card_summary_id,
            status_changes=[PaymentStatusResponse.from_domain(r) for r in history.status_changes],
        )


class UpdatePaymentStatusRequest(BaseModel):
    """Request body for PUT /v1/payment-status/{card_summary_id}"""

    new_status: PaymentStatus
    notes: Optional[str] = Field(None, max_length=1000)


class BatchRunResponse(BaseModel):
    """Response for POST /v1/payment-status/batch/run"""

    success: int
    failure: int
    total: int
    duration_ms: float
    timestamp: datetime

    @classmethod
    def from_domain(cls, result: BatchResult) -> "BatchRunResponse":
        return cls(
            success=result.success,
            failure=result.failure,
            total=result.total,
            duration_ms=result.duration_ms,
            timestamp=result.timestamp,
        )
