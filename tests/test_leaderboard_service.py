"""
Tests for the weekly leaderboard categories and personal stats.
"""

import pytest

from domain.models.match import ParticipantStats
from services.leaderboard_service import (
    CATEGORY_HIGHEST_RANK,
    CATEGORY_MOST_DEATHS,
    CATEGORY_MOST_GAMES,
    CATEGORY_MOST_KILLS,
    CATEGORY_ORDER,
    CATEGORY_RICHEST,
    CATEGORY_WIN_RATE,
    LeaderboardService,
)
from tests.conftest import BASE_TIME, TEST_WEEK

# discord_id -> (games, wins, kills, deaths, assists) per game
LINES = {
    1001: (5, 4, 10, 1, 5),
    1002: (2, 2, 2, 12, 0),
    1003: (6, 3, 1, 2, 1),
}
RANKS = {1001: "GOLD_II", 1002: "PLATINUM_IV", 1003: None}


def _play_week(match_repository):
    for game in range(6):
        participants = []
        for discord_id, (games, wins, kills, deaths, assists) in LINES.items():
            if game >= games:
                continue
            participants.append(
                ParticipantStats(
                    discord_id=discord_id,
                    puuid=f"puuid-{discord_id}",
                    summoner_name=f"Player{discord_id}#VN2",
                    champion_name="Ahri",
                    kills=kills,
                    deaths=deaths,
                    assists=assists,
                    win=game < wins,
                )
            )
        match_id = f"VN2_{game}"
        token = match_repository.try_claim(match_id, BASE_TIME)
        match_repository.complete_claim(
            match_id,
            token,
            participants,
            mvp_discord_id=None,
            feeder_discord_id=None,
            game_duration=1800,
            game_mode="CLASSIC",
            queue_id=420,
            game_start=BASE_TIME + game * 3600,
            solo_game=False,
            week=TEST_WEEK,
            ranks=RANKS,
            now=BASE_TIME + game * 3600 + 1800,
        )


@pytest.fixture
def leaderboard_service(leaderboard_repository, account_repository, match_repository):
    return LeaderboardService(
        leaderboard_repository, account_repository, match_repository, clock=lambda: BASE_TIME
    )


@pytest.fixture
def played_week(match_repository, account_repository, linked_accounts):
    _play_week(match_repository)
    account_repository.add_balance(1003, 500)


def _ids(rows):
    return [r.discord_id for r in rows]


class TestWeeklyLeaderboard:
    def test_empty_week_returns_none(self, leaderboard_service, linked_accounts):
        assert leaderboard_service.get_weekly_leaderboard("2020-W01") is None

    def test_defaults_to_current_week(self, leaderboard_service, played_week):
        board = leaderboard_service.get_weekly_leaderboard()
        assert board.week == TEST_WEEK
        assert list(board.categories) == CATEGORY_ORDER

    def test_counting_categories(self, leaderboard_service, played_week):
        board = leaderboard_service.get_weekly_leaderboard(TEST_WEEK)

        assert [(r.discord_id, r.value) for r in board.categories[CATEGORY_MOST_DEATHS]] == [
            (1002, 24),
            (1003, 12),
            (1001, 5),
        ]
        assert _ids(board.categories[CATEGORY_MOST_KILLS]) == [1001, 1003, 1002]
        assert [(r.discord_id, r.value) for r in board.categories[CATEGORY_MOST_GAMES]] == [
            (1003, 6),
            (1001, 5),
            (1002, 2),
        ]

    def test_win_rate_requires_minimum_games(self, leaderboard_service, played_week):
        board = leaderboard_service.get_weekly_leaderboard(TEST_WEEK)

        rows = board.categories[CATEGORY_WIN_RATE]
        # 1002 is 2-0 but below the five game minimum
        assert [(r.discord_id, r.value) for r in rows] == [(1001, 80), (1003, 50)]
        assert (rows[0].wins, rows[0].losses) == (4, 1)

    def test_highest_rank_skips_unranked(self, leaderboard_service, played_week):
        board = leaderboard_service.get_weekly_leaderboard(TEST_WEEK)
        rows = board.categories[CATEGORY_HIGHEST_RANK]
        assert [(r.discord_id, r.value) for r in rows] == [(1002, "PLATINUM_IV"), (1001, "GOLD_II")]

    def test_richest_covers_players_active_this_week(self, leaderboard_service, played_week):
        board = leaderboard_service.get_weekly_leaderboard(TEST_WEEK)
        rows = board.categories[CATEGORY_RICHEST]
        assert rows[0].discord_id == 1003
        assert rows[0].value == 1500
        assert sorted(_ids(rows)) == [1001, 1002, 1003]

    def test_limit_applies_per_category(self, leaderboard_repository, account_repository, played_week):
        service = LeaderboardService(leaderboard_repository, account_repository, limit=1, clock=lambda: BASE_TIME)
        board = service.get_weekly_leaderboard()
        assert all(len(rows) <= 1 for rows in board.categories.values())


class TestUserStats:
    def test_unlinked_user(self, leaderboard_service, linked_accounts):
        assert leaderboard_service.get_user_stats(9999) is None

    def test_weekly_and_all_time_totals(self, leaderboard_service, played_week):
        stats = leaderboard_service.get_user_stats(1001)

        assert stats.rank == "GOLD_II"
        assert stats.balance == 1000
        assert (stats.weekly.kills, stats.weekly.deaths, stats.weekly.games_played) == (50, 5, 5)
        assert stats.total_games == 5
        assert stats.wins == 4
        assert stats.losses == 1
        # (50 + 25) / 5
        assert stats.avg_kda == 15.0

    def test_player_without_games(self, leaderboard_service, played_week):
        stats = leaderboard_service.get_user_stats(1005)
        assert stats.weekly.games_played == 0
        assert stats.total_games == 0
        assert stats.avg_kda == 0.0
