"""FastAPI application factory"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from card_reconciler.api.middleware import RequestIDMiddleware, MetricsMiddleware
from card_reconciler.api.v1 import payment_status, reconciliation
from card_reconciler.application.payment_status import UpdatePaymentStatusUseCase
from card_reconciler.application.scheduler import PaymentStatusUpdateScheduler, run_daily_schedule
from card_reconciler.infrastructure.clients.bank import BankClient
from card_reconciler.infrastructure.database.repositories import BillingSummaryRepository, PaymentStatusRepository
from card_reconciler.infrastructure.database.session import Database
from card_reconciler.infrastructure.observability.logging import setup_logging
from card_reconciler.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def _start_daily_batch(database: Database) -> asyncio.Task:
    summary_repo = BillingSummaryRepository(database)
    status_repo = PaymentStatusRepository(database)
    scheduler = PaymentStatusUpdateScheduler(
        UpdatePaymentStatusUseCase(status_repo, summary_repo),
        summary_repo,
        status_repo,
    )
    return asyncio.create_task(run_daily_schedule(scheduler), name="payment-status-daily-batch")


def create_app(database: Database | None = None, bank_client: BankClient | None = None) -> FastAPI:
    """Create and configure FastAPI application"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the database and clients on startup, release them on shutdown"""
        owns_database = database is None
        app.state.database = database or Database(settings.database_url)
        app.state.database.create_schema()
        app.state.bank_client = bank_client or BankClient()

        batch_task = None
        if settings.scheduler_enabled:
            batch_task = _start_daily_batch(app.state.database)
            logging.info("Daily payment status batch scheduled")

        yield

        if batch_task is not None:
            batch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await batch_task
        if owns_database:
            app.state.database.dispose()

    app = FastAPI(
        title="Card Payment Reconciler",
        description="Credit card payment reconciliation and payment status tracking",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(reconciliation.router, prefix="/v1", tags=["reconciliations"])
    app.include_router(payment_status.router, prefix="/v1", tags=["payment-status"])

    return app


app = create_app()
