"""
Structured Logging & Observability
Human-readable in development, machine-parseable in production.
"""
import sys
from loguru import logger
from typing import Any
from lead_engine.config import get_settings


def configure_logging(sink: Any = sys.stderr) -> int:
    """
    Install the engine's log handler.

    The engine only emits records; the host application calls this once at
    startup to decide where they go. Scoring traces carry their breakdown
    and business events their lead_id in the bound extras, so the console
    format prints the extras and the structured format serializes them.

    Args:
        sink: Any loguru sink (stream, path or callable)

    Returns:
        The loguru handler id
    """
    settings = get_settings()
    logger.remove()

    if settings.enable_structured_logging:
        return logger.add(sink, level=settings.log_level, serialize=True)

    return logger.add(
        sink,
        level=settings.log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message} | {extra}",
        colorize=False,
    )


def log_score_calculation(
    score: int,
    tier: str,
    disqualified: bool,
    **breakdown: Any
):
    """
    Structured DEBUG record for a single scoring call.

    Args:
        score: Final score after clamping and disqualification
        tier: Resulting qualification tier
        disqualified: Whether a disqualifying factor was present
        **breakdown: Individual score components
    """
    log_data = {
        "event_type": "score_calculated",
        "score": score,
        "tier": tier,
        "disqualified": disqualified,
        **breakdown,
    }

    logger.bind(**log_data).debug(f"Score calculated: {score} ({tier})")


def log_business_event(
    event_type: str,
    lead_id: str | None,
    **details: Any
):
    """
    Log business-critical events for analytics.

    Examples:
        - Follow-up status transitions
        - Lead assignment changes
        - Lead rescored after new answers

    Args:
        event_type: Type of event (e.g., "status_transition")
        lead_id: The lead involved, when known
        **details: Event-specific data
    """
    log_data = {
        "event_type": event_type,
        "lead_id": lead_id,
        **details
    }

    logger.bind(**log_data).success(f"Business Event: {event_type}")
