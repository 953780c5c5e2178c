"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from card_reconciler.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_reconciliation(
    card_id: str,
    billing_month: str,
    status: str,
    confidence: int,
    duration_ms: float,
) -> None:
    """Log structured reconciliation outcome for analysis"""
    logging.info(
        "Reconciliation completed",
        extra={
            "card_id": card_id,
            "billing_month": billing_month,
            "step": "reconciliation_complete",
            "reconciliation_status": status,
            "confidence": confidence,
            "duration_ms": duration_ms,
        },
    )


def log_batch_result(
    from_status: str,
    to_status: str,
    success_count: int,
    failure_count: int,
    total_candidates: int,
) -> None:
    """Log the outcome of one payment status batch pass"""
    logging.info(
        f"{from_status} -> {to_status}: {success_count}/{total_candidates} updated ({failure_count} failed)",
        extra={
            "step": "status_batch_pass",
            "from_status": from_status,
            "to_status": to_status,
            "success_count": success_count,
            "failure_count": failure_count,
            "total_candidates": total_candidates,
        },
    )
