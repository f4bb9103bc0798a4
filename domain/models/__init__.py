"""
Domain models - pure data structures representing business entities.
"""

from domain.models.account import LinkedAccount, Rank
from domain.models.betting import Bet, BetKind, BetResult, BetWindow, WindowStatus
from domain.models.grant import ScopedGrant
from domain.models.leaderboard import LeaderboardEntry, iso_week_key
from domain.models.match import MatchOutcome, MatchRecord, ParticipantStats
from domain.models.schedule import GAME_MODES, GameMode, Schedule, ScheduleStatus

__all__ = [
    "Bet",
    "BetKind",
    "BetResult",
    "BetWindow",
    "GAME_MODES",
    "GameMode",
    "LeaderboardEntry",
    "LinkedAccount",
    "MatchOutcome",
    "MatchRecord",
    "ParticipantStats",
    "Rank",
    "Schedule",
    "ScheduleStatus",
    "ScopedGrant",
    "WindowStatus",
    "iso_week_key",
]
