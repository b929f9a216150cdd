"""Address header parsing and report mapping-target selection."""

import re
from email.utils import getaddresses
from typing import Iterable, List, Optional, Sequence, Tuple, Union

# Senders on these domains forward from the mailbox owner's own account,
# so the sender (not the recipient) identifies the mailbox.
FORWARDING_SENDER_RE = re.compile(r"hotmail\.com|outlook\.com", re.IGNORECASE)


def parse_addresses(header_values: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    """Parse one or more address header values into bare lower-cased addresses.

    'Name <a@b.com>, "X" <c@d.com>' -> ('a@b.com', 'c@d.com')

    Args:
        header_values: A header string, a list of header strings, or None

    Returns:
        Tuple of addresses in header order, duplicates removed
    """
    if not header_values:
        return ()
    if isinstance(header_values, str):
        header_values = [header_values]

    seen = []
    for _, addr in getaddresses([str(v) for v in header_values if v]):
        addr = addr.strip().lower()
        if addr and addr not in seen:
            seen.append(addr)
    return tuple(seen)


def format_address(name: Optional[str], address: Optional[str]) -> str:
    """Display form used in listings: 'Name <addr>', or whichever part exists."""
    name = (name or "").strip()
    address = (address or "").strip()
    if name and address:
        return f"{name} <{address}>"
    return address or name


def is_forwarding_sender(sender_address: str) -> bool:
    return bool(sender_address and FORWARDING_SENDER_RE.search(sender_address))


def mapping_targets(sender_address: str, to_addresses: Sequence[str]) -> List[str]:
    """Pick the mailbox addresses a report row belongs to.

    Hotmail/Outlook senders map to the sender; everything else maps to
    the To recipients.
    """
    if is_forwarding_sender(sender_address):
        return [sender_address.lower()]
    return [a for a in to_addresses if a]
