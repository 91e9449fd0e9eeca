"""Structured logging for retrieval, language-model and quiz events."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at application startup."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class StructuredEventLogger:
    """Structured logger for the tutoring pipeline."""

    def log_retrieval(
        self,
        *,
        mode: str,
        candidates: int,
        returned: int,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log one retrieval pass with structured data."""
        log_data: dict[str, Any] = {
            "mode": mode,
            "candidates": candidates,
            "returned": returned,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason
            logger.warning(
                f"Retrieval failed closed ({mode}): {error_reason}",
                extra={"structured": log_data},
            )
            return

        logger.info(
            f"Retrieval ({mode}): {returned}/{candidates} chunks",
            extra={"structured": log_data},
        )

    def log_llm_call(
        self,
        *,
        model: str,
        purpose: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a chat-completion call."""
        log_data: dict[str, Any] = {
            "model": model,
            "purpose": purpose,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"LLM call: {purpose} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

    def log_quiz_attempt(
        self,
        *,
        session_id: str,
        attempt: int,
        outcome: str,
        temperature: float,
    ) -> None:
        """Log a single quiz-generation attempt."""
        log_data: dict[str, Any] = {
            "session_id": session_id,
            "attempt": attempt,
            "outcome": outcome,
            "temperature": round(temperature, 2),
        }

        log_msg = f"Quiz attempt {attempt}: {outcome}"

        if outcome == "accepted":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
