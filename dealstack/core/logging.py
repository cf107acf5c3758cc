"""structlog setup for the API, CLI and client.

Events are rendered as JSON lines when ``LOG_FORMAT=json`` (or the legacy
``JSON_LOGS=true``) and as coloured console output otherwise. Every event is
stamped with the service name and deployment environment so that lines from
several DealStack processes can be told apart once aggregated.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog

from dealstack.config import get_config

SERVICE_NAME = "dealstack"

# Libraries that log every request/statement at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")

_configured = False


def add_service_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor: stamp ``service`` and ``environment`` on each event."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", get_config().environment)
    return event_dict


def _wants_json(log_format: str | None) -> bool:
    if os.getenv("JSON_LOGS", "").lower() == "true":
        return True
    return (log_format or get_config().log_format).lower() == "json"


def _handlers() -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file = Path(os.getenv("LOG_FILE", "logs/dealstack.log"))
    # Only when the directory has been provisioned
    if log_file.parent.exists():
        handlers.append(logging.FileHandler(log_file))
    return handlers


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and the stdlib root logger once per process.

    Args:
        level: Overrides LOG_LEVEL from the app config
        log_format: ``json`` or ``text``; overrides LOG_FORMAT
    """
    global _configured
    if _configured:
        return

    config = get_config()
    renderer = (
        structlog.processors.JSONRenderer()
        if _wants_json(log_format)
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_service_context,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        handlers=_handlers(),
        level=(level or config.log_level).upper(),
    )
    if not config.db.echo:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
