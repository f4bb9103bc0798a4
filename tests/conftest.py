"""
Pytest fixtures for tests.

Performance optimization: uses a session-scoped schema template so the
migrations run once; each test copies the resulting database file instead
of re-initializing it.
"""

import shutil

import pytest

from domain.models.account import Rank
from infrastructure.schema_manager import SchemaManager
from repositories.account_repository import AccountRepository
from repositories.bet_repository import BetRepository
from repositories.grant_repository import GrantRepository
from repositories.leaderboard_repository import LeaderboardRepository
from repositories.match_repository import MatchRepository
from repositories.schedule_repository import ScheduleRepository

# A fixed instant (2024-06-12 12:00:00 UTC, ISO week 2024-W24) so week keys are stable
BASE_TIME = 1718193600.0
TEST_WEEK = "2024-W24"


@pytest.fixture(scope="session")
def _schema_template_path(tmp_path_factory):
    """Create a schema template database once per test session."""
    template_dir = tmp_path_factory.mktemp("schema_template")
    template_path = str(template_dir / "template.db")
    SchemaManager(template_path).initialize()
    yield template_path


@pytest.fixture
def repo_db_path(_schema_template_path, tmp_path):
    """
    Temporary database with initialized schema for repository tests.

    Fast: file copy instead of schema initialization.
    """
    test_db_path = str(tmp_path / "test.db")
    shutil.copy2(_schema_template_path, test_db_path)
    yield test_db_path


# =============================================================================
# REPOSITORY FIXTURES
# =============================================================================


@pytest.fixture
def account_repository(repo_db_path):
    return AccountRepository(repo_db_path)


@pytest.fixture
def match_repository(repo_db_path):
    return MatchRepository(repo_db_path)


@pytest.fixture
def bet_repository(repo_db_path):
    return BetRepository(repo_db_path)


@pytest.fixture
def leaderboard_repository(repo_db_path):
    return LeaderboardRepository(repo_db_path)


@pytest.fixture
def grant_repository(repo_db_path):
    return GrantRepository(repo_db_path)


@pytest.fixture
def schedule_repository(repo_db_path):
    return ScheduleRepository(repo_db_path)


# =============================================================================
# ACCOUNT FIXTURES
# =============================================================================


def link_account(repo, discord_id, balance=1000, rank=None):
    """Link a test account whose puuid is derived from the Discord id."""
    return repo.add(
        discord_id=discord_id,
        riot_puuid=f"puuid-{discord_id}",
        summoner_name=f"Player{discord_id}#VN2",
        region="vn2",
        initial_balance=balance,
        rank=rank,
        now=int(BASE_TIME),
    )


@pytest.fixture
def linked_accounts(account_repository):
    """Five linked accounts with 1000 coins each.

    Returns list of discord_ids: [1001, ..., 1005]
    """
    ids = [1001, 1002, 1003, 1004, 1005]
    for idx, discord_id in enumerate(ids):
        rank = Rank(tier="GOLD", division="II", lp=40, queue_type="RANKED_SOLO_5x5") if idx == 0 else None
        link_account(account_repository, discord_id, rank=rank)
    return ids


# =============================================================================
# MATCH PAYLOAD HELPERS
# =============================================================================


def make_participant(
    puuid,
    *,
    team_id=100,
    win=True,
    kills=5,
    deaths=3,
    assists=7,
    damage=20000,
    taken=20000,
    champion="Ahri",
    name=None,
):
    return {
        "puuid": puuid,
        "riotIdGameName": name or puuid,
        "championName": champion,
        "championId": 103,
        "teamId": team_id,
        "win": win,
        "kills": kills,
        "deaths": deaths,
        "assists": assists,
        "totalDamageDealtToChampions": damage,
        "totalDamageTaken": taken,
        "goldEarned": 12000,
        "visionScore": 25,
    }


def make_match(match_id, participants, *, game_start=BASE_TIME, duration=1800, queue_id=420):
    """A minimal match-v5 payload. game_start is in seconds; Riot reports milliseconds."""
    return {
        "metadata": {"matchId": match_id, "participants": [p["puuid"] for p in participants]},
        "info": {
            "gameCreation": int(game_start * 1000) - 60000,
            "gameStartTimestamp": int(game_start * 1000),
            "gameDuration": duration,
            "gameMode": "CLASSIC",
            "queueId": queue_id,
            "participants": participants,
        },
    }


def filler_team(prefix, team_id, win, count=5):
    """Unlinked players filling out a team."""
    return [
        make_participant(f"{prefix}-{i}", team_id=team_id, win=win, damage=15000, taken=15000)
        for i in range(count)
    ]
