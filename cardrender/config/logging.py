"""
Logging Configuration
=====================

structlog over the standard library handlers. Every event carries the
service name and environment, plus whatever per-request or per-export
context is bound through ``bind_log_context``: the API binds the request id
and path, the CLI binds the theme and output format. Development gets a
console renderer, production one JSON object per line (python-json-logger
with the event fields as top-level keys), and outside testing
events are also written to rotating files under ``storage_path/logs``.
"""

import logging
import logging.config
import sys
from typing import TYPE_CHECKING, Any, Dict, List

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from .settings import get_settings

if TYPE_CHECKING:
    from .settings import Settings

LOG_FILE = "cardrender.log"
ERROR_LOG_FILE = "cardrender-error.log"
MAX_LOG_BYTES = 10 * 1024 * 1024

# Third-party loggers that only get to speak at WARNING and above
QUIET_LOGGERS = ("aiohttp", "playwright", "PIL", "asyncio")


def add_service_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp the service name and environment onto an event."""
    settings = get_settings()
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def build_processors(settings: "Settings") -> List[Processor]:
    """structlog processor chain; the renderer depends on the environment."""
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.is_production:
        # Event fields travel as LogRecord extras for the JSON formatter
        processors.append(structlog.stdlib.render_to_log_kwargs)
    else:
        colors = settings.environment == "development" and sys.stdout.isatty()
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))
    return processors


def get_logging_config(settings: "Settings") -> Dict[str, Any]:
    """dictConfig for the standard library side."""
    log_dir = settings.storage_path / "logs"
    formatter = "json" if settings.is_production else "plain"
    root_handlers = ["console"] if settings.environment == "testing" else ["console", "file", "error_file"]

    loggers: Dict[str, Any] = {
        "": {"level": settings.log_level, "handlers": root_handlers, "propagate": False},
        "cardrender": {"level": settings.log_level, "handlers": root_handlers, "propagate": False},
        "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING", "handlers": ["console"], "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            # Development: structlog has already rendered the event into the message
            "plain": {"format": "%(message)s"},
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": settings.log_level,
                "formatter": formatter,
                "stream": sys.stdout,
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": settings.log_level,
                "formatter": formatter,
                "filename": str(log_dir / LOG_FILE),
                "maxBytes": MAX_LOG_BYTES,
                "backupCount": 5,
                "delay": True,
            },
            "error_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "ERROR",
                "formatter": formatter,
                "filename": str(log_dir / ERROR_LOG_FILE),
                "maxBytes": MAX_LOG_BYTES,
                "backupCount": 5,
                "delay": True,
            },
        },
        "loggers": loggers,
    }


def setup_logging() -> None:
    """Configure structlog and the standard library handlers from settings."""
    settings = get_settings()
    if settings.environment != "testing":
        (settings.storage_path / "logs").mkdir(parents=True, exist_ok=True)

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(get_logging_config(settings))


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_log_context(**fields: Any) -> None:
    """Attach fields to every event logged from the current task."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()


setup_logging()
