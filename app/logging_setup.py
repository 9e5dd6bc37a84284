"""
Structured JSON logging with structlog.
JSON logs are easier to filter in the hosting provider's log viewer.
"""

import logging
import structlog
from app.config import get_settings

_configured = False


def configure_logging():
    global _configured
    if _configured:
        return
    level = logging.getLevelName(get_settings().LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            # log.exception(...) -> full traceback under "exception" instead of exc_info=true
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
    _configured = True


def get_logger():
    return structlog.get_logger(get_settings().SERVICE_NAME)
