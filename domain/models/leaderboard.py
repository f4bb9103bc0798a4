"""
Weekly leaderboard aggregate.
"""

from dataclasses import dataclass
from datetime import datetime, timezone


def iso_week_key(timestamp: float) -> str:
    """ISO week label for a Unix timestamp, e.g. 2024-W52."""
    year, week, _ = datetime.fromtimestamp(timestamp, tz=timezone.utc).isocalendar()
    return f"{year}-W{week:02d}"


@dataclass
class LeaderboardEntry:
    discord_id: int
    week: str
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    games_played: int = 0
    games_won: int = 0
    highest_rank: str | None = None  # e.g. DIAMOND_II

    @property
    def win_rate(self) -> float:
        if self.games_played == 0:
            return 0.0
        return self.games_won / self.games_played * 100
