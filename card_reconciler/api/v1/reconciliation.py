"""Reconciliation endpoints"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from card_reconciler.api.dependencies import get_reconcile_use_case, get_reconciliation_repository, get_request_id
from card_reconciler.api.v1.schemas import ReconcileRequest, ReconciliationResponse
from card_reconciler.application.reconcile import ReconcileCreditCardUseCase
from card_reconciler.domain.exceptions import (
    BankAPIError,
    CardSummaryNotFoundError,
    InvalidPaymentDateError,
    MultipleCandidateError,
)
from card_reconciler.infrastructure.database.repositories import ReconciliationRepository

router = APIRouter()


@router.post("/reconciliations", response_model=ReconciliationResponse)
async def reconcile_credit_card(
    request_body: ReconcileRequest,
    request: Request,
    use_case: ReconcileCreditCardUseCase = Depends(get_reconcile_use_case),
):
    """
    Reconcile a card's bill for a month against the bank account.

    Flow:
    1. Load the billing summary
    2. Fetch bank transactions around the payment date
    3. Match, store and return the reconciliation
    """
    request_id = get_request_id(request)

    try:
        reconciliation = await use_case.execute(request_body.card_id, request_body.billing_month)
        return ReconciliationResponse.from_domain(reconciliation)

    except CardSummaryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidPaymentDateError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except MultipleCandidateError as e:
        raise HTTPException(
            status_code=409,
            detail={"message": str(e), "candidates": e.candidate_details()},
        )

    except BankAPIError as e:
        logging.error(f"Bank API error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Bank service unavailable")


@router.get("/reconciliations/{reconciliation_id}", response_model=ReconciliationResponse)
def get_reconciliation(
    reconciliation_id: str,
    repo: ReconciliationRepository = Depends(get_reconciliation_repository),
):
    reconciliation = repo.find_by_id(reconciliation_id)
    if reconciliation is None:
        raise HTTPException(status_code=404, detail=f"Reconciliation not found: {reconciliation_id}")
    return ReconciliationResponse.from_domain(reconciliation)


@router.get("/reconciliations", response_model=List[ReconciliationResponse])
def list_reconciliations(
    card_id: str = Query(..., min_length=1),
    start_month: Optional[str] = Query(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    end_month: Optional[str] = Query(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    repo: ReconciliationRepository = Depends(get_reconciliation_repository),
):
    """Reconciliations for a card, optionally limited to a billing month range"""
    return [ReconciliationResponse.from_domain(r) for r in repo.find_by_card(card_id, start_month, end_month)]
