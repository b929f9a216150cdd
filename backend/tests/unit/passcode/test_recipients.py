"""Unit tests for recipient verification across header fallbacks"""

from domain.mail.models import CandidateMessage, MessageEnvelope
from domain.passcode.recipients import (
    RECIPIENT_EXTRACTORS,
    RecipientCheck,
    header_to,
    recipient_pool,
    verify_recipient,
)


class TestRecipientPool:

    def test_union_of_all_sources(self, make_message):
        msg = make_message(
            "1",
            to=("a@example.com",),
            cc=("b@example.com",),
            bcc=("c@example.com",),
            delivered_to=("d@example.com",),
            x_original_to=("e@example.com",),
        )
        assert recipient_pool(msg) == {
            "a@example.com",
            "b@example.com",
            "c@example.com",
            "d@example.com",
            "e@example.com",
        }

    def test_lower_cases_addresses(self, make_message):
        msg = make_message("1", to=("Me@Example.COM",))
        assert recipient_pool(msg) == {"me@example.com"}

    def test_custom_extractor_subset(self, make_message):
        msg = make_message("1", to=("a@example.com",), delivered_to=("d@example.com",))
        assert recipient_pool(msg, extractors=(header_to,)) == {"a@example.com"}

    def test_default_extractor_count(self):
        assert len(RECIPIENT_EXTRACTORS) == 6


class TestVerifyRecipient:

    def test_match_is_case_insensitive_and_trimmed(self, make_message):
        msg = make_message("1", to=("me@example.com",))
        verdict = verify_recipient(msg, "  ME@example.com ")
        assert verdict.check == RecipientCheck.MATCH
        assert verdict.accepted

    def test_match_via_delivered_to_fallback(self):
        # IMAP ENVELOPE with empty To; only Delivered-To names the mailbox
        msg = CandidateMessage(
            envelope=MessageEnvelope(message_id="7", subject="x"),
            delivered_to=("alias@icloud.com",),
        )
        assert verify_recipient(msg, "alias@icloud.com").accepted

    def test_mismatch(self, make_message):
        msg = make_message("1", to=("other@example.com",))
        verdict = verify_recipient(msg, "me@example.com")
        assert verdict.check == RecipientCheck.MISMATCH
        assert not verdict.accepted

    def test_empty_pool_is_unknown_and_rejected(self, make_message):
        msg = make_message("1", to=())
        verdict = verify_recipient(msg, "me@example.com")
        assert verdict.check == RecipientCheck.UNKNOWN
        assert not verdict.accepted
        assert verdict.pool == frozenset()
