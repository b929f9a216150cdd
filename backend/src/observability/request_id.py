"""Request correlation IDs for bridge requests.

FastAPI runs the sync /code and /recent handlers in a worker thread with a
copy of the request context, so the ID bound by the middleware also shows up
in resolver and mailbox adapter logs.
"""

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Caller-supplied IDs end up in log lines and response headers
_ACCEPTED_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def generate_request_id() -> str:
    return str(uuid.uuid4())


def request_id_from_header(value: Optional[str]) -> str:
    """Reuse the caller's X-Request-ID when it is a plain token, else mint one.

    >>> request_id_from_header("ext-42")
    'ext-42'
    """
    value = (value or "").strip()
    return value if _ACCEPTED_ID.fullmatch(value) else generate_request_id()


def get_request_id() -> str:
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: Optional[str]):
    """Bind ``request_id`` to the current context; returns the reset token."""
    return request_id_var.set(request_id)


@contextmanager
def bound_request_id(request_id: str) -> Iterator[str]:
    """Bind ``request_id`` for the duration of the block."""
    token = set_request_id(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)
