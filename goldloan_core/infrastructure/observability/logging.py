"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from goldloan_core.config import settings

logger = logging.getLogger("goldloan_core")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_transition(loan_id: str, actor: str, from_status: str, to_status: str, step: str) -> None:
    """Log a committed loan status change"""
    logger.info(
        "Loan status changed",
        extra={
            "loan_id": loan_id,
            "actor": actor,
            "step": step,
            "from_status": from_status,
            "to_status": to_status,
        },
    )


def log_payment(loan_id: str, actor: str, receipt_number: str, payment_type: str, amount: str) -> None:
    """Log a ledger append"""
    logger.info(
        "Payment recorded",
        extra={
            "loan_id": loan_id,
            "actor": actor,
            "step": "record_payment",
            "receipt_number": receipt_number,
            "payment_type": payment_type,
            "amount": amount,
        },
    )


def log_release(loan_id: str, actor: str, released_count: int) -> None:
    """Log collateral handed back to the borrower"""
    logger.info(
        "Collateral released",
        extra={
            "loan_id": loan_id,
            "actor": actor,
            "step": "release_collateral",
            "released_count": released_count,
        },
    )


def log_item_change(loan_id: str, item_id: str, actor: str, step: str) -> None:
    """Log an edit to a pledged item while its loan is still pending"""
    logger.info(
        "Gold item changed",
        extra={"loan_id": loan_id, "item_id": item_id, "actor": actor, "step": step},
    )
