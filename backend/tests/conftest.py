"""Pytest fixtures for mailbridge tests.

Provides reusable test fixtures for:
- A frozen clock
- An in-memory FakeMailbox implementing MailboxPort
- Message builders
- A FastAPI TestClient wired to the fake mailbox

Usage:
    def test_code_endpoint(client, fake_mailbox, make_message):
        fake_mailbox.add(make_message("1", body="【パスコード】123456"))
        response = client.get("/code")
        assert response.json()["code"] == "123456"
"""

import os
import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Sequence

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("MAIL_PROVIDER", "icloud")
os.environ.setdefault("ICLOUD_USER", "tester@icloud.com")
os.environ.setdefault("ICLOUD_APP_PASSWORD", "test-app-password")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from fastapi.testclient import TestClient

# Adjust imports based on your project structure
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from config import Settings
from domain.mail.errors import MailboxError
from domain.mail.models import CandidateMessage, MessageEnvelope
from domain.mail.ports import MailboxPort

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeMailbox(MailboxPort):
    """In-memory mailbox. Messages are kept newest first by receipt time.

    Records every search call and counts open sessions so tests can assert
    that sessions are always closed.
    """

    provider = "fake"

    def __init__(self, messages: Sequence[CandidateMessage] = ()):
        self.messages: List[CandidateMessage] = list(messages)
        self.search_calls = []
        self.fetched = []
        self.opened = 0
        self.closed = 0
        self.error: Optional[Exception] = None
        self._lock = threading.Lock()

    def add(self, *messages: CandidateMessage) -> "FakeMailbox":
        self.messages.extend(messages)
        return self

    def open(self) -> None:
        with self._lock:
            self.opened += 1

    def close(self) -> None:
        with self._lock:
            self.closed += 1

    def search(self, since, subjects=(), limit=None):
        with self._lock:
            self.search_calls.append({"since": since, "subjects": list(subjects), "limit": limit})
        if self.error:
            raise self.error
        found = [
            m.envelope
            for m in self.messages
            if m.received_at is None or m.received_at >= since
        ]
        found.sort(key=lambda e: e.received_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return found if limit is None else found[:limit]

    def fetch_message(self, envelope: MessageEnvelope) -> CandidateMessage:
        with self._lock:
            self.fetched.append(envelope.message_id)
        for message in self.messages:
            if message.message_id == envelope.message_id:
                return message
        raise MailboxError(f"no such message {envelope.message_id}")


def build_message(
    message_id: str,
    subject: str = "ログイン用パスコードのお知らせ",
    body: str = "",
    html: str = "",
    snippet: str = "",
    to=("me@example.com",),
    cc=(),
    bcc=(),
    delivered_to=(),
    x_original_to=(),
    sender: str = "no-reply@shop.example.jp",
    minutes_ago: Optional[float] = 1,
    received_at: Optional[datetime] = None,
    date_header: str = "",
) -> CandidateMessage:
    if received_at is None and minutes_ago is not None:
        received_at = NOW - timedelta(minutes=minutes_ago)
    envelope = MessageEnvelope(
        message_id=message_id,
        subject=subject,
        sender=sender,
        sender_address=sender.lower(),
        recipients=to[0] if to else "",
        to_addresses=tuple(to),
        received_at=received_at,
    )
    return CandidateMessage(
        envelope=envelope,
        to=tuple(to),
        cc=tuple(cc),
        bcc=tuple(bcc),
        delivered_to=tuple(delivered_to),
        x_original_to=tuple(x_original_to),
        date_header=date_header,
        snippet=snippet,
        text_body=body,
        html_body=html,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    """Frozen clock returning NOW."""
    return lambda: NOW


@pytest.fixture
def make_message():
    return build_message


@pytest.fixture
def fake_mailbox() -> FakeMailbox:
    return FakeMailbox()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        MAIL_PROVIDER="icloud",
        ICLOUD_USER="tester@icloud.com",
        ICLOUD_APP_PASSWORD="test-app-password",
        LOG_JSON=False,
    )


@pytest.fixture
def app(settings, fake_mailbox, clock):
    from main import create_app

    return create_app(settings=settings, mailbox_factory=lambda: fake_mailbox, clock=clock)


@pytest.fixture
def client(app):
    """TestClient with the lifespan running (resolver built on startup)."""
    with TestClient(app) as test_client:
        yield test_client
