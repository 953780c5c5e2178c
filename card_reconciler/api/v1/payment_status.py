"""Payment status endpoints"""

from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query

from card_reconciler.api.dependencies import get_scheduler, get_status_query_service, get_update_status_use_case
from card_reconciler.api.v1.schemas import (
    AllowedTransitionsResponse,
    BatchRunResponse,
    PaymentStatusHistoryResponse,
    PaymentStatusResponse,
    UpdatePaymentStatusRequest,
)
from card_reconciler.application.payment_status import PaymentStatusQueryService, UpdatePaymentStatusUseCase
from card_reconciler.application.scheduler import PaymentStatusUpdateScheduler
from card_reconciler.domain.exceptions import (
    CardSummaryNotFoundError,
    InvalidStatusTransitionError,
    PaymentStatusNotFoundError,
)
from card_reconciler.domain.payment_status import UpdatedBy

router = APIRouter()


@router.post("/payment-status/batch/run", response_model=BatchRunResponse)
async def run_status_batch(scheduler: PaymentStatusUpdateScheduler = Depends(get_scheduler)):
    """Run the daily status batch immediately"""
    result = await scheduler.execute_manually()
    return BatchRunResponse.from_domain(result)


@router.get("/payment-status", response_model=Dict[str, PaymentStatusResponse])
def get_payment_statuses(
    card_summary_ids: List[str] = Query(...),
    service: PaymentStatusQueryService = Depends(get_status_query_service),
):
    """Latest status for several card summaries at once"""
    records = service.get_statuses(card_summary_ids)
    return {card_summary_id: PaymentStatusResponse.from_domain(r) for card_summary_id, r in records.items()}


@router.get("/payment-status/{card_summary_id}", response_model=PaymentStatusResponse)
def get_payment_status(
    card_summary_id: str,
    service: PaymentStatusQueryService = Depends(get_status_query_service),
):
    try:
        return PaymentStatusResponse.from_domain(service.get_current(card_summary_id))
    except PaymentStatusNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/payment-status/{card_summary_id}/initialize", response_model=PaymentStatusResponse)
def initialize_payment_status(
    card_summary_id: str,
    service: PaymentStatusQueryService = Depends(get_status_query_service),
):
    try:
        return PaymentStatusResponse.from_domain(service.initialize(card_summary_id))
    except CardSummaryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/payment-status/{card_summary_id}", response_model=PaymentStatusResponse)
def update_payment_status(
    card_summary_id: str,
    request_body: UpdatePaymentStatusRequest,
    use_case: UpdatePaymentStatusUseCase = Depends(get_update_status_use_case),
):
    """Manual status change by a user"""
    try:
        record = use_case.execute_manually(
            card_summary_id,
            request_body.new_status,
            UpdatedBy.USER,
            request_body.notes,
        )
        return PaymentStatusResponse.from_domain(record)

    except CardSummaryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/payment-status/{card_summary_id}/history", response_model=PaymentStatusHistoryResponse)
def get_payment_status_history(
    card_summary_id: str,
    service: PaymentStatusQueryService = Depends(get_status_query_service),
):
    return PaymentStatusHistoryResponse.from_domain(service.get_history(card_summary_id))


@router.get("/payment-status/{card_summary_id}/allowed-transitions", response_model=AllowedTransitionsResponse)
def get_allowed_transitions(
    card_summary_id: str,
    service: PaymentStatusQueryService = Depends(get_status_query_service),
):
    """Statuses the current record may move to; empty once terminal"""
    try:
        return AllowedTransitionsResponse.from_domain(service.get_current(card_summary_id))
    except PaymentStatusNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
