"""Lottery result tally per mailbox.

Subjects are classified as win (当選) or lose (抽選結果). Each mailbox address
ends up with "o" (won at least once) or "x" (only losses); a win is never
overwritten by a later loss.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from domain.mail.addresses import mapping_targets
from domain.mail.models import MessageEnvelope

WIN_KEYWORDS = ("当選",)
LOSE_KEYWORDS = ("抽選結果",)

LOTTERY_COLUMNS = (
    ("mail", "mail", 35),
    ("result", "result", 8),
)


class LotteryOutcome(str, Enum):
    WIN = "o"
    LOSE = "x"


@dataclass(frozen=True)
class LotteryRow:
    mail: str
    result: str


def classify_subject(
    subject: Optional[str],
    win_keywords: Sequence[str] = WIN_KEYWORDS,
    lose_keywords: Sequence[str] = LOSE_KEYWORDS,
) -> Optional[LotteryOutcome]:
    """Win keywords are checked first, so a subject matching both counts as a win."""
    subject = subject or ""
    if any(k in subject for k in win_keywords):
        return LotteryOutcome.WIN
    if any(k in subject for k in lose_keywords):
        return LotteryOutcome.LOSE
    return None


@dataclass
class LotteryTally:
    win_keywords: Sequence[str] = WIN_KEYWORDS
    lose_keywords: Sequence[str] = LOSE_KEYWORDS
    results: Dict[str, LotteryOutcome] = field(default_factory=dict)
    win_messages: int = 0
    lose_messages: int = 0

    @property
    def subjects(self) -> List[str]:
        return list(self.win_keywords) + list(self.lose_keywords)

    def classify(self, subject: Optional[str]) -> Optional[LotteryOutcome]:
        return classify_subject(subject, self.win_keywords, self.lose_keywords)

    def add(self, envelope: MessageEnvelope) -> Optional[LotteryOutcome]:
        outcome = self.classify(envelope.subject)
        if outcome is None:
            return None

        if outcome == LotteryOutcome.WIN:
            self.win_messages += 1
        else:
            self.lose_messages += 1

        for address in mapping_targets(envelope.sender_address, envelope.to_addresses):
            if outcome == LotteryOutcome.WIN:
                self.results[address] = LotteryOutcome.WIN
            elif self.results.get(address) != LotteryOutcome.WIN:
                self.results[address] = LotteryOutcome.LOSE
        return outcome

    def add_all(self, envelopes: Iterable[MessageEnvelope]) -> "LotteryTally":
        for envelope in envelopes:
            self.add(envelope)
        return self

    def rows(self) -> List[LotteryRow]:
        """Wins first, then losses; each group sorted by address."""
        wins = sorted(a for a, r in self.results.items() if r == LotteryOutcome.WIN)
        losses = sorted(a for a, r in self.results.items() if r == LotteryOutcome.LOSE)
        return [LotteryRow(a, LotteryOutcome.WIN.value) for a in wins] + [
            LotteryRow(a, LotteryOutcome.LOSE.value) for a in losses
        ]

    def summary(self) -> dict:
        unique_wins = sum(1 for r in self.results.values() if r == LotteryOutcome.WIN)
        return {
            "win_messages": self.win_messages,
            "lose_messages": self.lose_messages,
            "unique_wins": unique_wins,
            "unique_losses": len(self.results) - unique_wins,
            "unique_total": len(self.results),
        }
