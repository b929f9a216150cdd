"""Observability module for mailbridge.

Provides structured logging, request correlation and metrics.
"""

from .logging_config import configure_logging
from .metrics import (
    messages_scanned_total,
    passcode_requests_total,
    passcode_resolve_seconds,
    report_rows_total,
)
from .request_id import bound_request_id, get_request_id, request_id_from_header, request_id_var, set_request_id
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    # Metrics
    "messages_scanned_total",
    "passcode_requests_total",
    "passcode_resolve_seconds",
    "report_rows_total",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "bound_request_id",
    "request_id_from_header",
    # Middleware
    "RequestIDMiddleware",
]
