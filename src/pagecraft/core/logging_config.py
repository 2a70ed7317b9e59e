"""
Structured logging.

Every module logs through ``get_logger(__name__)`` with snake_case event
names and keyword fields (``node_id``, ``endpoint_id``, ``mode``). Editing
sessions bind their document and selection ids with ``LogContext`` so
engine, persistence and fetch events can be correlated.
"""

import logging
import sys
from typing import Any, TYPE_CHECKING

import structlog
from pythonjsonlogger import jsonlogger

if TYPE_CHECKING:
    from .config import Settings

SERVICE_NAME = "pagecraft"

# Per-request chatter from the HTTP stack
NOISY_LOGGERS = ("httpx", "httpcore")


def _add_service(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _stdlib_handler(json_logs: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if json_logs:
        handler.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s"))
    return handler


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Route structlog and stdlib logging to stdout.

    Args:
        level: Log level name; unknown names fall back to INFO
        json_logs: One JSON object per line instead of console rendering
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(level=log_level, handlers=[_stdlib_handler(json_logs)], force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            _add_service,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings: "Settings") -> None:
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """
    Bind fields to every log event inside a ``with`` block.

    Nested contexts may rebind a field; the outer value is restored on exit.
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
