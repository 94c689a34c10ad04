"""
Structured logging utilities for CloudWatch Logs Insights.

Every line is one JSON object. Besides the fields passed with extra=, each
line carries the request id and the badge service being served, so the
upstream calls made for one badge can be queried together:

    fields @timestamp, badge_service, host, status_code, latency_ms
    | filter request_id = "..."
"""

import json
import logging
import os
import uuid
from contextvars import ContextVar
from typing import Optional
from urllib.parse import urlsplit

# Context variables for request correlation
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
badge_service_var: ContextVar[str] = ContextVar("badge_service", default="")

# Attributes every LogRecord has; anything else came in through extra=
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

REQUEST_ID_HEADERS = ("x-request-id", "x-amzn-trace-id")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(),
            "function_name": os.environ.get("AWS_LAMBDA_FUNCTION_NAME", ""),
        }

        badge_service = badge_service_var.get()
        if badge_service:
            log_entry["badge_service"] = badge_service

        log_entry.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def configure_structured_logging(level: Optional[int] = None) -> logging.Logger:
    """
    Configure structured JSON logging for Lambda.

    Call this at the start of the handler. The level defaults to LOG_LEVEL
    (INFO when unset). Warm invocations reuse the handler installed by the
    first one.
    """
    if level is None:
        level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    structured = [h for h in root_logger.handlers if isinstance(h.formatter, StructuredFormatter)]
    if len(structured) == 1 and len(root_logger.handlers) == 1:
        return root_logger

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(handler)

    return root_logger


def set_request_id(event: dict) -> str:
    """
    Extract or generate request ID and set in context.

    Looks at the API Gateway request id first, then the X-Request-Id and
    X-Amzn-Trace-Id headers (any case), and generates one otherwise. Also
    clears the badge service left over from a previous warm invocation.

    Returns:
        Request ID string
    """
    request_id = (event.get("requestContext") or {}).get("requestId")

    if not request_id:
        headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
        request_id = next((headers[name] for name in REQUEST_ID_HEADERS if headers.get(name)), None)

    request_id = request_id or str(uuid.uuid4())
    request_id_var.set(request_id)
    badge_service_var.set("")
    return request_id


def set_badge_service(name: str) -> None:
    """Tag the remaining log lines of this request with the badge service name."""
    badge_service_var.set(name)


def log_badge_request(
    logger: logging.Logger,
    path: str,
    status_code: int,
    latency_ms: float,
    service: Optional[str] = None,
    outcome: Optional[str] = None,
) -> None:
    """Log one served badge: route, HTTP status and how the service ended."""
    logger.info(
        f"GET {path} -> {status_code}" + (f" ({outcome})" if outcome else ""),
        extra={
            "http_method": "GET",
            "path": path,
            "status_code": status_code,
            "latency_ms": round(latency_ms, 2),
            "service": service or "unknown",
            "outcome": outcome or "none",
        },
    )


def log_upstream_call(
    logger: logging.Logger,
    url: str,
    latency_ms: float,
    status_code: Optional[int] = None,
    error: Optional[str] = None,
) -> None:
    """
    Log one call to an upstream badge API.

    A call without a status code never got a response (error names the
    exception). Non-2xx answers and failures are logged at WARNING.
    """
    success = status_code is not None and 200 <= status_code < 300
    if error is None and status_code is not None and not success:
        error = f"http_{status_code}"

    host = urlsplit(url).netloc or url
    outcome = status_code if status_code is not None else "no response"
    logger.log(
        logging.INFO if success else logging.WARNING,
        f"Upstream {host} -> {outcome}",
        extra={
            "host": host,
            "status_code": status_code,
            "success": success,
            "latency_ms": round(latency_ms, 2),
            "error": error,
        },
    )
