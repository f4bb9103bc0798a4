"""
Betting domain models: windows, bets and their lifecycle enums.
"""

from dataclasses import dataclass, field
from enum import Enum


class BetKind(str, Enum):
    """The fixed set of predicates a bet can wager on."""

    WIN = "win"
    LOSS = "loss"
    KDA_OVER_3 = "kda>3"
    DEATHS_OVER_7 = "deaths>7"
    TIME_OVER_30 = "time>30"

    @classmethod
    def parse(cls, raw: str) -> "BetKind | None":
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None


class WindowStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    MATCHED = "matched"
    CANCELLED = "cancelled"


class BetResult(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    CANCELLED = "cancelled"


@dataclass
class BetWindow:
    """
    A time-bounded invitation to wager on one account's next match.

    Lifecycle: open -> closed -> matched | cancelled. The odds quoted when
    the window opened are stored with it so every bet on the window is
    placed at the same price.
    """

    id: int
    target_discord_id: int
    status: WindowStatus
    opened_at: float
    closed_at: float | None = None
    match_id: str | None = None
    total_bets: int = 0
    total_amount: int = 0
    odds: dict[str, float] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status == WindowStatus.OPEN or (
            self.status == WindowStatus.CLOSED and self.match_id is None
        )


@dataclass
class Bet:
    id: int
    bettor_discord_id: int
    target_discord_id: int
    window_id: int
    bet_kind: str
    amount: int
    odds: float
    opened_at: float
    result: BetResult = BetResult.PENDING
    payout: int = 0
    match_id: str | None = None
    placed_at: float | None = None
    settled_at: float | None = None
