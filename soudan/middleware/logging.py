"""
Structured Logging Middleware

One access-log line per request, tagged with the request ID, the requesting
Origin (which selects the tenant) and, for rejected requests, the fault
reason that was sent back to the widget.
"""

import json
import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

REQUEST_ID_HEADER = "X-Request-ID"

# Fields copied from `extra=` into JSON log lines
CONTEXT_FIELDS = ("origin", "method", "path", "status_code", "reason", "duration_ms")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def record_fault(request: Request, reason: str) -> None:
    """Remember the fault reason so the access log can report it."""
    request.state.fault_reason = reason


def level_for_status(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestIdFilter(logging.Filter):
    """Stamp every record with the current request ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("")
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", ""),
        }
        entry.update({key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)})

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Access logging for the comment endpoints.

    The request ID is taken from X-Request-ID when the caller sends one and
    echoed back on the response. Rejections are logged at WARNING and
    upstream failures at ERROR, each with the reason the widget received.
    """

    def __init__(self, app: ASGIApp, logger_name: str = "soudan.access"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request_id_var.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            self._log(request, 500, started, reason=type(e).__name__)
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        self._log(request, response.status_code, started, reason=getattr(request.state, "fault_reason", None))
        return response

    def _log(self, request: Request, status_code: int, started: float, reason: str | None = None) -> None:
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        origin = request.headers.get("origin", "")

        extra = {
            "origin": origin,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": duration_ms,
        }
        message = f"{request.method} {request.url.path} [{origin or 'no origin'}] {status_code} in {duration_ms}ms"
        if reason:
            extra["reason"] = reason
            message += f": {reason}"

        self.logger.log(level_for_status(status_code), message, extra=extra)


def setup_structured_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """
    Install a single root handler.

    Args:
        log_level: level for the root, soudan and soudan.access loggers
        json_format: StructuredFormatter when True, a plain text line otherwise
    """
    level = getattr(logging, log_level.upper())

    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in ("soudan", "soudan.access"):
        logging.getLogger(name).setLevel(level)
    # Library chatter stays out of the access log
    for name in ("uvicorn", "uvicorn.access", "sqlalchemy.engine", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
