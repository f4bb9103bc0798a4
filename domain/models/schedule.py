"""
Game lobby schedules: a creator posts a mode and a time, friends join until full.
"""

from dataclasses import dataclass, field
from enum import Enum


class ScheduleStatus(str, Enum):
    OPEN = "open"
    FULL = "full"
    STARTED = "started"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


@dataclass(frozen=True)
class GameMode:
    key: str
    name: str
    max_players: int
    emoji: str


GAME_MODES: dict[str, GameMode] = {
    "duo": GameMode("duo", "Duo Queue", 2, "👥"),
    "flex3": GameMode("flex3", "Flex 3", 3, "👨‍👩‍👦"),
    "flex5": GameMode("flex5", "Flex 5", 5, "👨‍👩‍👧‍👦"),
    "aram": GameMode("aram", "ARAM", 5, "🎲"),
    "custom": GameMode("custom", "Custom", 5, "🎮"),
}


@dataclass
class Schedule:
    """
    One lobby. The creator is always the first participant and cannot leave;
    cancelling is their way out.

    Lifecycle: open <-> full -> started | cancelled | expired.
    """

    schedule_id: str
    creator_id: int
    mode: str
    max_players: int
    scheduled_time: str
    created_at: float
    expires_at: float
    description: str = ""
    participants: list[int] = field(default_factory=list)
    status: ScheduleStatus = ScheduleStatus.OPEN
    channel_id: int | None = None
    message_id: int | None = None

    @property
    def game_mode(self) -> GameMode:
        return GAME_MODES.get(self.mode) or GameMode(self.mode, self.mode, self.max_players, "🎮")

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= self.max_players

    @property
    def is_joinable(self) -> bool:
        return self.status in (ScheduleStatus.OPEN, ScheduleStatus.FULL)

    @property
    def is_ended(self) -> bool:
        return self.status in (ScheduleStatus.STARTED, ScheduleStatus.CANCELLED, ScheduleStatus.EXPIRED)

    @property
    def open_slots(self) -> int:
        return max(0, self.max_players - len(self.participants))
