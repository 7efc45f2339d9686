"""Structured JSON logging for scheduled runs"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from lifecycle_reconciler.domain.models import Outcome
from lifecycle_reconciler.utils.date_utils import format_timestamp

SERVICE_NAME = "lifecycle-reconciler"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def __init__(self, *args: Any, service_name: str = SERVICE_NAME, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = SERVICE_NAME) -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        service_name=service_name,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_outcome(run_id: str, outcome: Outcome) -> None:
    """Log one structured line per processed account"""
    logging.getLogger("lifecycle_reconciler.outcome").log(
        logging.ERROR if outcome.errors else logging.INFO,
        "Account processed",
        extra={
            "run_id": run_id,
            "account_id": outcome.account_id,
            "step": "account_complete",
            "category": outcome.category.value,
            "action": outcome.action.value,
            "status": outcome.status.value,
            "days_inactive": outcome.days_inactive,
            "days_until_deactivation": outcome.days_until_deactivation,
            "last_activity": format_timestamp(outcome.last_activity_at),
            "notified": outcome.notified,
            "deactivated": outcome.deactivated,
            "dry_run": outcome.dry_run,
            "errors": outcome.errors,
        },
    )
