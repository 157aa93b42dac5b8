"""Logging configuration for icmpcheck."""

import logging
import os
import sys

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def resolve_log_level(name: str | None) -> int:
    """Map a level name to a logging constant, falling back to INFO."""
    if not name:
        return logging.INFO
    return LOG_LEVELS.get(name.strip().upper(), logging.INFO)


def configure_logging(level: str | None = None) -> int:
    """Configure process-wide logging for the receiver.

    Logs go to stderr so that stdout stays free for metric output.

    Args:
        level: Explicit level name. Overrides ICMPCHECK_LOG_LEVEL when given.

    Returns:
        The effective logging level

    Environment Variables:
        ICMPCHECK_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL
                             (case-insensitive, default INFO)

    Examples:
        # Per-packet detail
        $ ICMPCHECK_LOG_LEVEL=DEBUG python -m icmpcheck --config targets.json

        # Only skipped and failed targets
        $ python -m icmpcheck --config targets.json --log-level warning
    """
    if level is None:
        level = os.environ.get("ICMPCHECK_LOG_LEVEL")
    log_level = resolve_log_level(level)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.debug("Logging configured: level=%s", logging.getLevelName(log_level))
    return log_level
