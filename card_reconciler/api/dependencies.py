"""Dependency injection for FastAPI endpoints"""

from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends, Request

from card_reconciler.application.payment_status import PaymentStatusQueryService, UpdatePaymentStatusUseCase
from card_reconciler.application.reconcile import ReconcileCreditCardUseCase
from card_reconciler.application.scheduler import PaymentStatusUpdateScheduler
from card_reconciler.infrastructure.clients.bank import BankClient
from card_reconciler.infrastructure.database.repositories import (
    BillingSummaryRepository,
    PaymentStatusRepository,
    ReconciliationRepository,
)
from card_reconciler.infrastructure.database.session import Database


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_database(request: Request) -> Database:
    """Database handle opened by the application lifespan"""
    return request.app.state.database


def get_bank_client(request: Request) -> BankClient:
    """Provide Bank API client instance"""
    return request.app.state.bank_client


def get_clock() -> Optional[Callable[[], datetime]]:
    """Time source for use cases; None selects each use case's default"""
    return None


def get_summary_repository(database: Database = Depends(get_database)) -> BillingSummaryRepository:
    return BillingSummaryRepository(database)


def get_status_repository(database: Database = Depends(get_database)) -> PaymentStatusRepository:
    return PaymentStatusRepository(database)


def get_reconciliation_repository(database: Database = Depends(get_database)) -> ReconciliationRepository:
    return ReconciliationRepository(database)


def get_reconcile_use_case(
    reconciliation_repo: ReconciliationRepository = Depends(get_reconciliation_repository),
    summary_repo: BillingSummaryRepository = Depends(get_summary_repository),
    bank_client: BankClient = Depends(get_bank_client),
    clock: Optional[Callable[[], datetime]] = Depends(get_clock),
) -> ReconcileCreditCardUseCase:
    return ReconcileCreditCardUseCase(reconciliation_repo, summary_repo, bank_client, clock=clock)


def get_update_status_use_case(
    status_repo: PaymentStatusRepository = Depends(get_status_repository),
    summary_repo: BillingSummaryRepository = Depends(get_summary_repository),
    clock: Optional[Callable[[], datetime]] = Depends(get_clock),
) -> UpdatePaymentStatusUseCase:
    return UpdatePaymentStatusUseCase(status_repo, summary_repo, clock=clock)


def get_status_query_service(
    status_repo: PaymentStatusRepository = Depends(get_status_repository),
    summary_repo: BillingSummaryRepository = Depends(get_summary_repository),
    clock: Optional[Callable[[], datetime]] = Depends(get_clock),
) -> PaymentStatusQueryService:
    return PaymentStatusQueryService(status_repo, summary_repo, clock=clock)


def get_scheduler(
    update_use_case: UpdatePaymentStatusUseCase = Depends(get_update_status_use_case),
    summary_repo: BillingSummaryRepository = Depends(get_summary_repository),
    status_repo: PaymentStatusRepository = Depends(get_status_repository),
    clock: Optional[Callable[[], datetime]] = Depends(get_clock),
) -> PaymentStatusUpdateScheduler:
    return PaymentStatusUpdateScheduler(update_use_case, summary_repo, status_repo, clock=clock)
