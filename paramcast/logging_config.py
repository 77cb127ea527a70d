"""
Structured logging for paramcast.

Library modules only ever call ``get_logger(__name__)``; nothing is configured
on import. Host applications opt in with ``setup_logging`` (explicit
arguments) or ``configure_from_settings`` (the ``logging`` and ``server``
sections of the active configuration), which route the ``paramcast`` logger
tree to JSON lines on stdout and, optionally, a rotating file.
"""

import json
import logging
import logging.config
import sys
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, Optional


ROOT_LOGGER = "paramcast"
DEFAULT_LOG_FILE = Path("logs") / "paramcast.log"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def __init__(self, service_name: str = ROOT_LOGGER, version: str = "0.1.0"):
        super().__init__()
        self.service_name = service_name
        self.version = version

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "version": self.version,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = record.stack_info
        return json.dumps(entry, default=str)


def build_logging_config(
    log_level: str = "INFO",
    service_name: str = ROOT_LOGGER,
    version: str = "0.1.0",
    enable_file_logging: bool = False,
    log_file_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the ``dictConfig`` mapping used by ``setup_logging``."""
    level = log_level.upper()
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "structured",
            "stream": sys.stdout,
        }
    }
    if enable_file_logging:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "structured",
            "filename": str(log_file_path or DEFAULT_LOG_FILE),
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "encoding": "utf8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": StructuredFormatter,
                "service_name": service_name,
                "version": version,
            }
        },
        "handlers": handlers,
        "loggers": {
            ROOT_LOGGER: {
                "level": level,
                "handlers": list(handlers),
                "propagate": False,
            }
        },
    }


def setup_logging(
    log_level: str = "INFO",
    service_name: str = ROOT_LOGGER,
    version: str = "0.1.0",
    enable_file_logging: bool = False,
    log_file_path: Optional[str] = None
) -> None:
    """
    Install structured handlers on the ``paramcast`` logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        service_name: Service name stamped on every entry
        version: Service version stamped on every entry
        enable_file_logging: Also write to a rotating log file
        log_file_path: Log file path (defaults to logs/paramcast.log)
    """
    config = build_logging_config(log_level, service_name, version, enable_file_logging, log_file_path)
    if enable_file_logging:
        Path(config["handlers"]["file"]["filename"]).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(config)


def configure_from_settings(manager=None) -> None:
    """Set up logging from a ConfigManager (the global one by default)."""
    # Imported here: config_manager itself logs through this module
    from .config_manager import get_config_manager

    manager = manager or get_config_manager()
    setup_logging(**manager.get_logging_kwargs())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context) -> None:
    """
    Log ``message`` with ``context`` attached as record attributes, so the
    structured formatter emits each one as its own JSON field.
    """
    log_level = getattr(logging, level.upper())
    if not logger.isEnabledFor(log_level):
        return
    record = logger.makeRecord(logger.name, log_level, "", 0, message, (), None, extra=context)
    logger.handle(record)
