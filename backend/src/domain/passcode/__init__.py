"""Passcode domain: code extraction, recipient verification and the resolver."""

from .extraction import DEFAULT_MATCHERS, PasscodeMatcher, build_matchers, extract_passcode, match_passcode
from .recipients import RECIPIENT_EXTRACTORS, RecipientCheck, recipient_pool, verify_recipient
from .resolver import PasscodeResolver, ResolveResult, ResolverConfig

__all__ = [
    "DEFAULT_MATCHERS",
    "PasscodeMatcher",
    "build_matchers",
    "extract_passcode",
    "match_passcode",
    "RECIPIENT_EXTRACTORS",
    "RecipientCheck",
    "recipient_pool",
    "verify_recipient",
    "PasscodeResolver",
    "ResolveResult",
    "ResolverConfig",
]
