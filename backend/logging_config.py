"""
HealthGuard Logging Configuration - Color-Coded Console Logs

Provides:
- ColorFormatter: ANSI color-coded log output
- Helper functions: log_message_in, log_message_out, log_llm, log_queue, log_triage
- setup_logging(): Configure application logging

Usage:
    from logging_config import setup_logging, log_message_in, log_llm
    setup_logging()
    logger = logging.getLogger(__name__)
    log_message_in(logger, "How much water should I drink?", mode="ai")
"""

import logging
import sys

# ANSI color codes
COLORS = {
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
    "DIM": "\033[2m",
    # Event colors
    "MSG_IN": "\033[96m",  # Cyan - incoming message
    "MSG_OUT": "\033[92m",  # Green - outgoing response
    "QUEUE": "\033[95m",  # Magenta - request queue
    "TRIAGE": "\033[93m",  # Yellow - triage verdicts
    "LLM": "\033[94m",  # Blue - LLM operations
    "ERROR": "\033[91m",  # Red - errors
    "WARN": "\033[33m",  # Orange/Yellow - warnings
    "DEBUG": "\033[90m",  # Gray - debug info
}


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    LEVEL_COLORS = {
        logging.DEBUG: COLORS["DEBUG"],
        logging.INFO: COLORS["RESET"],
        logging.WARNING: COLORS["WARN"],
        logging.ERROR: COLORS["ERROR"],
        logging.CRITICAL: COLORS["ERROR"] + COLORS["BOLD"],
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, COLORS["RESET"])

        # Format: timestamp [LEVEL] message (no module name for compactness)
        timestamp = self.formatTime(record, "%H:%M:%S")
        level = record.levelname[:4]

        formatted = (
            f"{COLORS['DIM']}{timestamp}{COLORS['RESET']} "
            f"[{color}{level}{COLORS['RESET']}] "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure colored logging for the application."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter())

    # Configure root logger
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# =============================================================================
# COLORED LOG HELPER FUNCTIONS
# =============================================================================


def log_message_in(logger: logging.Logger, message: str, **context) -> None:
    """Log incoming user message.

    Args:
        logger: Logger instance
        message: User message text
        **context: Additional context (mode, etc.)
    """
    message = message or ""
    preview = message[:80] + "..." if len(message) > 80 else message
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    logger.info(f"{COLORS['MSG_IN']}>>> MESSAGE{COLORS['RESET']} {preview} [{ctx}]")


def log_message_out(
    logger: logging.Logger,
    provenance: str,
    topic: str = None,
    rate_limited: bool = False,
) -> None:
    """Log outgoing chat reply.

    Args:
        logger: Logger instance
        provenance: Where the reply text came from
        topic: Knowledge base topic key, if any
        rate_limited: Whether the reply carries a rate-limit hint
    """
    logger.info(
        f"{COLORS['MSG_OUT']}<<< RESPONSE{COLORS['RESET']} "
        f"provenance={provenance} topic={topic or 'none'} rate_limited={rate_limited}"
    )


def log_llm(
    logger: logging.Logger,
    state: str,
    provider: str = "",
    model: str = "",
    duration: float = 0,
) -> None:
    """Log LLM call.

    Args:
        logger: Logger instance
        state: 'start' or 'end'
        provider: Provider name (OpenAI, Gemini)
        model: Model name
        duration: Call duration in seconds (for end state)
    """
    if state == "start":
        logger.info(f"{COLORS['LLM']}>>> LLM{COLORS['RESET']} calling {provider} {model}")
    else:
        logger.info(f"{COLORS['LLM']}<<< LLM{COLORS['RESET']} " f"{provider} {model} completed in {duration:.1f}s")


def log_queue(logger: logging.Logger, event: str, **context) -> None:
    """Log a request queue event (pacing, retry, settle).

    Args:
        logger: Logger instance
        event: Short event name
        **context: Additional context (delay, attempt, pending, etc.)
    """
    ctx = " ".join(f"{k}={v}" for k, v in context.items()) if context else ""
    logger.debug(f"{COLORS['QUEUE']}~~~ QUEUE{COLORS['RESET']} {event} {ctx}")


def log_triage(logger: logging.Logger, urgency: str, source: str) -> None:
    """Log a triage verdict.

    Args:
        logger: Logger instance
        urgency: HIGH, MEDIUM or LOW
        source: 'ai' or 'rules'
    """
    logger.info(f"{COLORS['TRIAGE']}<<< TRIAGE{COLORS['RESET']} urgency={urgency} source={source}")
