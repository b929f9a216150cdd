"""Recipient verification over inconsistent header sources.

Each extractor reads one source from a CandidateMessage. The resolver unions
all of them; an empty union means the recipient cannot be verified.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, Set, Tuple

from domain.mail.models import CandidateMessage

RecipientExtractor = Callable[[CandidateMessage], Sequence[str]]


def envelope_to(msg: CandidateMessage) -> Sequence[str]:
    return msg.envelope.to_addresses


def header_to(msg: CandidateMessage) -> Sequence[str]:
    return msg.to


def header_cc(msg: CandidateMessage) -> Sequence[str]:
    return msg.cc


def header_bcc(msg: CandidateMessage) -> Sequence[str]:
    return msg.bcc


def delivered_to(msg: CandidateMessage) -> Sequence[str]:
    return msg.delivered_to


def x_original_to(msg: CandidateMessage) -> Sequence[str]:
    return msg.x_original_to


RECIPIENT_EXTRACTORS: Tuple[RecipientExtractor, ...] = (
    envelope_to,
    header_to,
    header_cc,
    header_bcc,
    delivered_to,
    x_original_to,
)


class RecipientCheck(str, Enum):
    """Outcome of checking a message against a recipient filter."""
    MATCH = "match"
    MISMATCH = "recipient_mismatch"
    UNKNOWN = "recipient_unknown"


@dataclass(frozen=True)
class RecipientVerdict:
    check: RecipientCheck
    pool: frozenset

    @property
    def accepted(self) -> bool:
        return self.check == RecipientCheck.MATCH


def normalize_recipient(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def recipient_pool(
    msg: CandidateMessage,
    extractors: Sequence[RecipientExtractor] = RECIPIENT_EXTRACTORS,
) -> Set[str]:
    """Union of lower-cased addresses from every extractor."""
    pool: Set[str] = set()
    for extractor in extractors:
        pool.update(normalize_recipient(a) for a in extractor(msg) if a)
    pool.discard("")
    return pool


def verify_recipient(
    msg: CandidateMessage,
    wanted: str,
    extractors: Sequence[RecipientExtractor] = RECIPIENT_EXTRACTORS,
) -> RecipientVerdict:
    """Check ``wanted`` against the message's recipient pool.

    An empty pool yields UNKNOWN, which callers treat as a rejection.
    """
    pool = recipient_pool(msg, extractors)
    if not pool:
        check = RecipientCheck.UNKNOWN
    elif normalize_recipient(wanted) in pool:
        check = RecipientCheck.MATCH
    else:
        check = RecipientCheck.MISMATCH
    return RecipientVerdict(check=check, pool=frozenset(pool))
