"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from loan_ledger.config import settings


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


def log_ledger_event(step: str, application_id: int | None = None, **fields: Any) -> None:
    """Log a lifecycle or balance change with its identifiers"""
    logging.info(
        step.replace("_", " ").capitalize(),
        extra={"step": step, "application_id": application_id, **fields},
    )


def log_rejection(step: str, reason: str, application_id: int | None = None, **fields: Any) -> None:
    """Log an operation refused by a ledger invariant"""
    logging.warning(
        f"{step.replace('_', ' ').capitalize()} rejected: {reason}",
        extra={"step": step, "application_id": application_id, "outcome": "rejected", **fields},
    )
