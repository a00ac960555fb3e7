"""
Logging configuration for the tracker process.

Logs go to stdout so the container runtime collects them. Structured
context passed as ``extra={"json_fields": {...}}`` is appended to the
line as indented JSON.
"""

import json
import logging
import sys

# Flag to track if logging is already configured
_logging_configured = False

# Chatty third-party loggers kept at WARNING unless debugging
_NOISY_LOGGERS = ("discord", "asyncio", "uvicorn.access")


class LocalFormatter(logging.Formatter):
    """Custom formatter that displays json_fields from extra dict."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        json_fields = getattr(record, "json_fields", None)
        if json_fields:
            fields_str = json.dumps(json_fields, indent=2, default=str)
            message = f"{message}\n{fields_str}"

        return message


def setup_logging(service_name: str = "dropwatch", debug: bool = False):
    """
    Configure root logging once per process.

    Args:
        service_name: Name of the service for log identification
        debug: Lower the level to DEBUG (``DEBUG=1``)
    """
    global _logging_configured

    if _logging_configured:
        return

    level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        LocalFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    if not debug:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _logging_configured = True
    logging.getLogger(__name__).info(
        "Logging configured for service: %s (level=%s)",
        service_name,
        logging.getLevelName(level),
    )
