"""Unit tests for MIME parsing into CandidateMessage"""

from email.message import EmailMessage

import pytest

from domain.mail.models import MessageEnvelope
from infrastructure.mail.mime_parser import build_candidate, decode_header_value, extract_bodies, parse_mime_message


def make_raw(text=None, html=None, attachment=False, **headers):
    msg = EmailMessage()
    msg["From"] = headers.get("from_", "Shop <no-reply@shop.example.jp>")
    msg["To"] = headers.get("to", "Me <ME@example.com>")
    if "cc" in headers:
        msg["Cc"] = headers["cc"]
    if "delivered_to" in headers:
        msg["Delivered-To"] = headers["delivered_to"]
    if "x_original_to" in headers:
        msg["X-Original-To"] = headers["x_original_to"]
    msg["Subject"] = headers.get("subject", "ログイン用パスコードのお知らせ")
    msg["Date"] = "Sun, 01 Jun 2025 20:59:00 +0900"
    msg.set_content(text or "")
    if html:
        msg.add_alternative(html, subtype="html")
    if attachment:
        msg.add_attachment(b"code 999999", maintype="application", subtype="octet-stream", filename="x.bin")
    return msg.as_bytes()


class TestParseMime:

    def test_plain_and_html_bodies(self):
        raw = make_raw(text="パスコード：123456", html="<p>パスコード：123456</p>")
        plain, html = extract_bodies(parse_mime_message(raw))
        assert plain == "パスコード：123456"
        assert "<p>" in html

    def test_attachments_ignored(self):
        raw = make_raw(text="本文", attachment=True)
        plain, html = extract_bodies(parse_mime_message(raw))
        assert plain == "本文"
        assert "999999" not in plain + html

    def test_decode_rfc2047_header(self):
        assert decode_header_value("=?UTF-8?B?44OR44K544Kz44O844OJ?=") == "パスコード"
        assert decode_header_value(b"plain subject") == "plain subject"
        assert decode_header_value(None) == ""


class TestBuildCandidate:

    def test_recipient_sources_lower_cased(self):
        raw = make_raw(
            text="x",
            cc="Other <Other@Example.com>",
            delivered_to="alias@icloud.com",
            x_original_to="orig@icloud.com",
        )
        msg = build_candidate(MessageEnvelope(message_id="1", subject="s", sender_address="a@b"), raw)
        assert msg.to == ("me@example.com",)
        assert msg.cc == ("other@example.com",)
        assert msg.delivered_to == ("alias@icloud.com",)
        assert msg.x_original_to == ("orig@icloud.com",)
        assert msg.date_header == "Sun, 01 Jun 2025 20:59:00 +0900"

    def test_empty_envelope_fields_filled_from_headers(self):
        raw = make_raw(text="x")
        msg = build_candidate(MessageEnvelope(message_id="9"), raw, snippet="snip")
        assert msg.envelope.to_addresses == ("me@example.com",)
        assert msg.envelope.sender_address == "no-reply@shop.example.jp"
        assert msg.subject == "ログイン用パスコードのお知らせ"
        assert msg.snippet == "snip"

    def test_envelope_kept_when_complete(self):
        envelope = MessageEnvelope(
            message_id="1",
            subject="from backend",
            sender_address="x@y.z",
            to_addresses=("to@y.z",),
        )
        msg = build_candidate(envelope, make_raw(text="x"))
        assert msg.envelope is envelope
