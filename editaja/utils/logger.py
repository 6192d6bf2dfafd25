"""Logging configuration for the edit Aja backend."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable

# Keys whose values never reach the log output
SENSITIVE_KEYS = {"serverkey", "server_key", "apikey", "api_key", "token", "password", "authorization", "signature_key"}

# Chatty client libraries (httpx, midtransclient's requests) log at WARNING only
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "google.auth", "PIL")


def redact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``data`` with credential-like values replaced."""
    cleaned: Dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in SENSITIVE_KEYS:
            cleaned[key] = "***"
        elif isinstance(value, dict):
            cleaned[key] = redact(value)
        else:
            cleaned[key] = value
    return cleaned


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with request context passed as ``extra_data``."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, dict):
            log_data.update(redact(extra_data))

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line output for local development."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, dict) and extra_data:
            line += " " + json.dumps(redact(extra_data), default=str)
        return line


def configure_logging(debug: bool = False, json_logs: bool = True, quiet: Iterable[str] = QUIET_LOGGERS) -> logging.Logger:
    """
    Configure application logging.

    Args:
        debug: Enable debug logging.
        json_logs: Structured JSON lines; plain text otherwise.
        quiet: Third-party loggers raised to WARNING.

    Returns:
        The root ``editaja`` logger.
    """
    logger = logging.getLogger("editaja")
    logger.handlers.clear()

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)
    logger.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if json_logs else ConsoleFormatter())
    logger.addHandler(handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the ``editaja`` logger for a module (``__name__``)."""
    if name.startswith("editaja."):
        name = name[len("editaja."):]
    return logging.getLogger(f"editaja.{name}")
