"""
Structured Logging Configuration.

Supports two modes:
- text: Human-readable format for development
- json: One JSON object per line, carrying the request tracing fields

Set LOG_FORMAT environment variable to "json" for production.
"""

import json
import logging
import os
import sys
from typing import Any, Dict

from submission_gateway.core.tracing import TracingContext


class JSONFormatter(logging.Formatter):
    """Formatter that outputs JSON strings with tracing context."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = TracingContext.get()

        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "line": record.lineno,
            "correlation_id": ctx.get("correlation_id", ""),
            "submission_id": ctx.get("submission_id", ""),
            "pr_number": ctx.get("pr_number", ""),
            "operation": ctx.get("operation", ""),
        }

        if hasattr(record, "upstream_status"):
            log_record["upstream_status"] = record.upstream_status

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record)


def setup_logging() -> None:
    """
    Setup logging for the application.

    Uses LOG_FORMAT env var to determine format:
    - "json": structured JSON
    - "text" (default): human-readable
    """
    root_logger = logging.getLogger()

    # Avoid adding multiple handlers
    if root_logger.handlers:
        return

    root_logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    handler = logging.StreamHandler(sys.stdout)

    log_format = os.getenv("LOG_FORMAT", "text").lower()

    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)

    root_logger.addHandler(handler)

    # Set lower level for noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
