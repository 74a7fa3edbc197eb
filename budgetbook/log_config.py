"""
Structured Logging

Flows and storage backends log structured events through structlog.
Engines never log: they are pure functions.

configure_logging() is idempotent; get_logger() calls it on first use
so modules can simply do `logger = get_logger(__name__)`.
"""

import logging
import sys
from typing import Optional

import structlog

from budgetbook.config import get_settings

_CONFIGURED = False


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """Configure stdlib logging and structlog exactly once."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    log_settings = get_settings().logging
    level_name = (level or log_settings.level).upper()
    use_json = log_settings.json_output if json_output is None else json_output

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level_name, logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer()
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


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, configuring logging on first use."""
    configure_logging()
    return structlog.get_logger(name)
