"""MailboxPort interface for mail backends.

Defines the contract the Gmail and IMAP adapters implement. The resolver and
the report scanners only ever talk to this interface.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from .models import CandidateMessage, MessageEnvelope


class MailboxPort(ABC):
    """Port interface for a read-only mailbox session.

    A session is opened with ``open()`` (or by entering the context manager)
    and released with ``close()``. Implementations must never change mailbox
    state: no flag changes, no moves, no deletions.

    Example:
        with GmailMailbox(credentials) as mailbox:
            for envelope in mailbox.search(since, subjects=["注文完了"]):
                message = mailbox.fetch_message(envelope)
    """

    provider: str = "unknown"

    def open(self) -> None:
        """Establish the backend session. Default is a no-op."""
        pass

    def close(self) -> None:
        """Release the backend session. Must not raise."""
        pass

    def __enter__(self) -> "MailboxPort":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @abstractmethod
    def search(
        self,
        since: datetime,
        subjects: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[MessageEnvelope]:
        """List messages received at or after ``since``, newest first.

        Args:
            since: Coarse lower bound; backends may round it (IMAP SINCE is
                day-granular), callers re-check exact timestamps
            subjects: Subject substrings OR-ed together. Backends without
                server-side subject search may ignore them; callers always
                re-check subjects
            limit: Maximum number of envelopes to return (newest kept)

        Returns:
            Envelopes ordered newest first

        Raises:
            MailboxError: If the backend cannot be queried
        """
        pass

    @abstractmethod
    def fetch_message(self, envelope: MessageEnvelope) -> CandidateMessage:
        """Download headers and body for one message.

        Raises:
            MailboxError: If the message cannot be fetched
        """
        pass


MailboxFactory = Callable[[], MailboxPort]
