"""
Process-wide logging: configured once at startup, shut down on exit.

Adds a TRACE level below DEBUG for very chatty diagnostics (tool results,
search result counts).
"""

import logging

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def trace(logger: logging.Logger, msg: str, *args) -> None:
    """Log at TRACE level."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, msg, *args)


def resolve_level(level: str | int) -> int:
    """Map a level name (TRACE, DEBUG, ...) or number to a logging level; unknown names -> WARNING."""
    if isinstance(level, int):
        return level
    name = (level or "").strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def configure_logging(level: str | int = "WARNING") -> None:
    logging.basicConfig(level=resolve_level(level), format=LOG_FORMAT)


def shutdown_logging() -> None:
    logging.shutdown()
