"""Passcode bridge endpoints.

Endpoints are plain ``def`` so FastAPI runs them in its thread pool; each
request opens its own mailbox session through the resolver and concurrent
requests never share state.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query, Request

from domain.mail.clock import from_epoch_ms, to_epoch_ms, to_iso
from domain.mail.errors import MailBridgeError
from domain.passcode.resolver import PasscodeResolver
from observability.metrics import messages_scanned_total, passcode_requests_total, passcode_resolve_seconds

from .schemas import CodeResponse, ErrorResponse, RecentItem, RecentResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Passcode"])


def _resolver(request: Request) -> PasscodeResolver:
    return request.app.state.resolver


def _provider(request: Request) -> str:
    return request.app.state.settings.MAIL_PROVIDER


@router.get("/recent", response_model=RecentResponse, responses={500: {"model": ErrorResponse}})
def list_recent(
    request: Request,
    limit: int = Query(10, description="Max items; clamped to 1..50"),
):
    """List the newest passcode mails inside the query window."""
    envelopes = _resolver(request).list_recent(limit)
    items = [
        RecentItem(
            id=e.message_id,
            internal_date=to_iso(e.received_at),
            subject=e.subject,
            from_=e.sender,
            to=e.recipients,
        )
        for e in envelopes
    ]
    return RecentResponse(count=len(items), items=items)


@router.get(
    "/code",
    response_model=CodeResponse,
    response_model_exclude_unset=True,
    responses={500: {"model": ErrorResponse}},
)
def get_code(
    request: Request,
    to: Optional[str] = Query(None, max_length=320, description="Recipient address the mail must be sent to"),
    after: Optional[int] = Query(None, ge=0, description="Watermark, epoch milliseconds"),
):
    """Return the newest passcode newer than ``after`` and the freshness window.

    Not finding a code is a normal 200 response with ``found: false``.
    """
    provider = _provider(request)
    watermark: Optional[datetime] = from_epoch_ms(after) if after else None

    try:
        with passcode_resolve_seconds.labels(provider=provider).time():
            result = _resolver(request).resolve(recipient_filter=to, watermark=watermark)
    except MailBridgeError:
        passcode_requests_total.labels(provider=provider, outcome="error").inc()
        raise

    messages_scanned_total.labels(provider=provider).inc(result.scanned)
    passcode_requests_total.labels(provider=provider, outcome="found" if result.found else "not_found").inc()

    fields = {
        "ok": True,
        "found": result.found,
        "code": result.code,
        "min_ts": to_epoch_ms(result.min_time),
        "min_ts_iso": to_iso(result.min_time),
    }
    if result.found:
        fields["where"] = result.where
        fields["internal_date"] = to_iso(result.received_at)
    else:
        fields["reason"] = result.reason
        logger.info(f"No passcode found: {result.reason}", extra={"want": to or "(none)"})

    return CodeResponse(**fields)
