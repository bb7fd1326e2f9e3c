"""Structured logging for RLS-scoped transactions."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the API process."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


class StructuredTransactionLogger:
    """Structured logger for scoped transaction outcomes.

    User ids are never logged; only the scope ("user" or "admin") is.
    """

    def log_outcome(
        self,
        scope: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a finished scoped transaction with structured data."""
        log_data: dict[str, Any] = {
            "scope": scope,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"RLS transaction: {scope} - {outcome}"

        if outcome == "committed":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
