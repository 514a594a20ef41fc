"""structlog configuration for the budget tracker.

Log records flow through the standard library ``logging`` machinery so
Streamlit's own handlers and pytest's ``caplog`` both see them.  Call
:func:`configure_logging` once at application start; library modules
only ever call ``structlog.get_logger(__name__)``.
"""

from __future__ import annotations

import logging
from typing import Optional

import structlog

try:
    from .config import LOG_JSON, LOG_LEVEL
except ImportError:
    from config import LOG_JSON, LOG_LEVEL

_CONFIGURED = False


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Log level name, defaults to ``BUDGET_TRACKER_LOG_LEVEL``.
        json_logs: Render JSON lines instead of the console renderer.
            Defaults to ``BUDGET_TRACKER_LOG_JSON``.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    level_name = (level or LOG_LEVEL).upper()
    use_json = LOG_JSON if json_logs is None else json_logs

    logging.basicConfig(format="%(message)s", level=getattr(logging, level_name, logging.INFO))

    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True
