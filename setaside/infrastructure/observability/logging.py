"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from setaside.config import settings


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

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_forecast(
    request_id: str,
    user_id: str,
    mode: str,
    obligation_count: int,
    stale_count: int,
    total_recommended_cents: int,
    over_cap: bool,
    duration_ms: float,
) -> None:
    """Log structured outcome of one engine run"""
    logging.info(
        "Forecast completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "forecast_complete",
            "mode": mode,
            "obligation_count": obligation_count,
            "stale_count": stale_count,
            "total_recommended_cents": total_recommended_cents,
            "over_cap": over_cap,
            "duration_ms": duration_ms,
        },
    )


def log_scenario_commit(
    request_id: str,
    user_id: str,
    paused_count: int,
    updated_count: int,
    created_count: int,
) -> None:
    """Log the mutations issued when a what-if scenario is applied for real"""
    logging.info(
        "Scenario committed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "scenario_commit",
            "paused_count": paused_count,
            "updated_count": updated_count,
            "created_count": created_count,
        },
    )
