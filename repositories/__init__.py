"""
Repository layer for data access abstraction.
"""

from repositories.account_repository import AccountRepository
from repositories.base_repository import BaseRepository
from repositories.bet_repository import BetRepository
from repositories.grant_repository import GrantRepository
from repositories.interfaces import (
    IAccountRepository,
    IBetRepository,
    IGrantRepository,
    ILeaderboardRepository,
    IMatchRepository,
    IScheduleRepository,
)
from repositories.leaderboard_repository import LeaderboardRepository
from repositories.match_repository import MatchRepository
from repositories.schedule_repository import ScheduleRepository

__all__ = [
    "BaseRepository",
    "AccountRepository",
    "MatchRepository",
    "BetRepository",
    "LeaderboardRepository",
    "GrantRepository",
    "ScheduleRepository",
    "IAccountRepository",
    "IMatchRepository",
    "IBetRepository",
    "ILeaderboardRepository",
    "IGrantRepository",
    "IScheduleRepository",
]
