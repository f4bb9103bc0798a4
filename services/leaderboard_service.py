"""
Weekly leaderboard and personal stats.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from functools import cmp_to_key

from domain.models.leaderboard import LeaderboardEntry, iso_week_key
from domain.services.scoring_service import compare_ranks, kda
from repositories.interfaces import IAccountRepository, ILeaderboardRepository

CATEGORY_HIGHEST_RANK = "highest_rank"
CATEGORY_MOST_DEATHS = "most_deaths"
CATEGORY_MOST_KILLS = "most_kills"
CATEGORY_MOST_GAMES = "most_games"
CATEGORY_WIN_RATE = "win_rate"
CATEGORY_RICHEST = "richest"

CATEGORY_ORDER = [
    CATEGORY_HIGHEST_RANK,
    CATEGORY_MOST_DEATHS,
    CATEGORY_MOST_KILLS,
    CATEGORY_MOST_GAMES,
    CATEGORY_WIN_RATE,
    CATEGORY_RICHEST,
]


@dataclass
class LeaderboardRow:
    discord_id: int
    summoner_name: str
    value: int | float | str
    wins: int = 0
    losses: int = 0


@dataclass
class WeeklyLeaderboard:
    week: str
    categories: dict[str, list[LeaderboardRow]] = field(default_factory=dict)


@dataclass
class UserStats:
    discord_id: int
    summoner_name: str
    rank: str | None
    balance: int
    weekly: LeaderboardEntry
    total_games: int = 0
    total_kills: int = 0
    total_deaths: int = 0
    total_assists: int = 0
    wins: int = 0
    avg_kda: float = 0.0

    @property
    def losses(self) -> int:
        return self.total_games - self.wins


class LeaderboardService:
    def __init__(
        self,
        leaderboard_repo: ILeaderboardRepository,
        account_repo: IAccountRepository,
        match_repo=None,
        min_games_for_winrate: int = 5,
        limit: int = 10,
        clock=time.time,
    ):
        self.leaderboard_repo = leaderboard_repo
        self.account_repo = account_repo
        self.match_repo = match_repo
        self.min_games_for_winrate = min_games_for_winrate
        self.limit = limit
        self._clock = clock

    def current_week(self) -> str:
        return iso_week_key(self._clock())

    def get_weekly_leaderboard(self, week: str | None = None) -> WeeklyLeaderboard | None:
        """
        Top players of a week in every category.

        Returns None when nobody played that week. Ties keep the store's order.
        """
        week = week or self.current_week()
        entries = self.leaderboard_repo.get_week(week)
        if not entries:
            return None

        active_ids = {e.discord_id for e in entries}
        accounts = self.account_repo.get_by_ids(list(active_ids))

        def name_of(discord_id: int) -> str:
            account = accounts.get(discord_id)
            return account.summoner_name if account else "Unknown"

        def row(entry: LeaderboardEntry, value) -> LeaderboardRow:
            return LeaderboardRow(
                discord_id=entry.discord_id,
                summoner_name=name_of(entry.discord_id),
                value=value,
                wins=entry.games_won,
                losses=entry.games_played - entry.games_won,
            )

        ranked = sorted(
            (e for e in entries if e.highest_rank),
            key=cmp_to_key(lambda a, b: compare_ranks(a.highest_rank, b.highest_rank)),
        )
        by_deaths = sorted(entries, key=lambda e: e.deaths, reverse=True)
        by_kills = sorted(entries, key=lambda e: e.kills, reverse=True)
        by_games = sorted(entries, key=lambda e: e.games_played, reverse=True)
        by_win_rate = sorted(
            (e for e in entries if e.games_played >= self.min_games_for_winrate),
            key=lambda e: e.win_rate,
            reverse=True,
        )
        richest = sorted(accounts.values(), key=lambda a: a.balance, reverse=True)

        categories = {
            CATEGORY_HIGHEST_RANK: [row(e, e.highest_rank) for e in ranked[: self.limit]],
            CATEGORY_MOST_DEATHS: [row(e, e.deaths) for e in by_deaths[: self.limit]],
            CATEGORY_MOST_KILLS: [row(e, e.kills) for e in by_kills[: self.limit]],
            CATEGORY_MOST_GAMES: [row(e, e.games_played) for e in by_games[: self.limit]],
            CATEGORY_WIN_RATE: [row(e, math.floor(e.win_rate + 0.5)) for e in by_win_rate[: self.limit]],
            CATEGORY_RICHEST: [
                LeaderboardRow(discord_id=a.discord_id, summoner_name=a.summoner_name, value=a.balance)
                for a in richest[: self.limit]
            ],
        }
        return WeeklyLeaderboard(week=week, categories=categories)

    def get_user_stats(self, discord_id: int) -> UserStats | None:
        """This week's aggregate plus all-time totals over processed matches."""
        account = self.account_repo.get_by_id(discord_id)
        if account is None:
            return None

        week = self.current_week()
        weekly = self.leaderboard_repo.get_entry(discord_id, week) or LeaderboardEntry(
            discord_id=discord_id, week=week
        )
        stats = UserStats(
            discord_id=discord_id,
            summoner_name=account.summoner_name,
            rank=account.rank.label if account.rank else None,
            balance=account.balance,
            weekly=weekly,
        )

        if self.match_repo is not None:
            for record in self.match_repo.get_recent_for_account(discord_id, limit=None):
                participant = record.participant(discord_id)
                if participant is None:
                    continue
                stats.total_games += 1
                stats.total_kills += participant.kills
                stats.total_deaths += participant.deaths
                stats.total_assists += participant.assists
                stats.wins += 1 if participant.win else 0
            stats.avg_kda = round(kda(stats.total_kills, stats.total_deaths, stats.total_assists), 2)
        return stats
