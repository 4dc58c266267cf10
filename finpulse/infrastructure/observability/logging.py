"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "finpulse"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = SERVICE_NAME


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_aggregation(
    owner_id: str,
    kind: str,
    reporting_currency: str,
    entity_count: int,
    degraded_count: int,
    duration_ms: float,
) -> None:
    """Log structured aggregation outcome"""
    logging.info(
        "Aggregation completed",
        extra={
            "owner_id": owner_id,
            "step": "aggregation_complete",
            "kind": kind,
            "reporting_currency": reporting_currency,
            "entity_count": entity_count,
            "degraded_count": degraded_count,
            "duration_ms": duration_ms,
        },
    )


def log_rate_fallback(from_currency: str, to_currency: str, source: str, reason: str) -> None:
    """Log a degraded exchange rate path"""
    logging.warning(
        "Exchange rate degraded",
        extra={
            "step": "rate_fallback",
            "from_currency": from_currency,
            "to_currency": to_currency,
            "source": source,
            "reason": reason,
        },
    )
