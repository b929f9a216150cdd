"""Observability API endpoints.

Provides the liveness summary and Prometheus metrics.
"""

import logging

from fastapi import APIRouter, Request, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    description="Exposes Prometheus metrics for monitoring and alerting",
    include_in_schema=False,  # Hide from OpenAPI docs
)
def metrics():
    """Expose Prometheus metrics.

    Returns:
        Response: Metrics in Prometheus text format
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Returns the configured provider, mailbox, subject keyword and windows",
    status_code=200,
)
def health_check(request: Request):
    """Report the bridge configuration.

    Does not contact the mail backend; a running process always answers 200.
    """
    settings = request.app.state.settings
    return {
        "ok": True,
        "provider": settings.MAIL_PROVIDER,
        "mailbox": settings.mailbox_label,
        "subjectKeyword": settings.SUBJECT_KEYWORD,
        "windowMinutes": {
            "code": settings.LAST_MINUTES,
            "query": settings.QUERY_MINUTES,
        },
    }
