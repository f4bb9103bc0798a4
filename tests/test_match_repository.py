"""
Tests for the match claim state machine in MatchRepository.
"""

import threading

import pytest

from domain.models.match import ParticipantStats
from repositories.match_repository import ClaimLostError
from tests.conftest import BASE_TIME, TEST_WEEK


def _participant(discord_id, kills=5, deaths=3, assists=7, win=True):
    return ParticipantStats(
        discord_id=discord_id,
        puuid=f"puuid-{discord_id}",
        summoner_name=f"P{discord_id}",
        champion_name="Ahri",
        kills=kills,
        deaths=deaths,
        assists=assists,
        win=win,
    )


def _complete(repo, match_id, token, participants, **overrides):
    kwargs = {
        "mvp_discord_id": None,
        "feeder_discord_id": None,
        "game_duration": 1800,
        "game_mode": "CLASSIC",
        "queue_id": 420,
        "game_start": BASE_TIME,
        "solo_game": False,
        "week": TEST_WEEK,
        "ranks": {},
        "now": BASE_TIME + 2000,
    }
    kwargs.update(overrides)
    repo.complete_claim(match_id, token, participants, **kwargs)


class TestClaim:
    def test_first_claim_wins(self, match_repository):
        token = match_repository.try_claim("VN2_1", BASE_TIME)
        assert token is not None
        assert match_repository.try_claim("VN2_1", BASE_TIME + 1) is None

        record = match_repository.get("VN2_1")
        assert record.processing is True
        assert record.claim_token == token
        assert not record.is_terminal

    def test_concurrent_claims_yield_exactly_one_owner(self, match_repository):
        tokens = []
        lock = threading.Lock()

        def claim():
            token = match_repository.try_claim("VN2_RACE", BASE_TIME)
            with lock:
                tokens.append(token)

        threads = [threading.Thread(target=claim) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len([t for t in tokens if t is not None]) == 1

    def test_release_only_by_owner(self, match_repository):
        token = match_repository.try_claim("VN2_1", BASE_TIME)
        assert match_repository.release_claim("VN2_1", "someone-else") is False
        assert match_repository.release_claim("VN2_1", token) is True
        assert match_repository.get("VN2_1") is None
        # Released matches can be claimed again
        assert match_repository.try_claim("VN2_1", BASE_TIME + 5) is not None


class TestStaleness:
    def test_stale_claim_is_deleted_and_reclaimable(self, match_repository):
        match_repository.try_claim("VN2_1", BASE_TIME)
        cutoff = BASE_TIME + 301 - 300

        assert match_repository.delete_stale_claim("VN2_1", cutoff) is True
        assert match_repository.try_claim("VN2_1", BASE_TIME + 301) is not None

    def test_fresh_claim_is_not_stale(self, match_repository):
        match_repository.try_claim("VN2_1", BASE_TIME)
        assert match_repository.delete_stale_claim("VN2_1", BASE_TIME - 1) is False

    def test_cleanup_skips_terminal_records(self, match_repository):
        old = match_repository.try_claim("VN2_OLD", BASE_TIME)
        match_repository.try_claim("VN2_STALE", BASE_TIME)
        _complete(match_repository, "VN2_OLD", old, [_participant(1)])

        removed = match_repository.cleanup_stale_claims(BASE_TIME + 10)

        assert removed == 1
        assert match_repository.get("VN2_STALE") is None
        assert match_repository.get("VN2_OLD").is_terminal


class TestCompletion:
    def test_complete_marks_terminal(self, match_repository):
        token = match_repository.try_claim("VN2_1", BASE_TIME)
        _complete(match_repository, "VN2_1", token, [_participant(1), _participant(2)], mvp_discord_id=2)

        record = match_repository.get("VN2_1")
        assert record.is_terminal
        assert record.processing is False
        assert record.mvp_discord_id == 2
        assert [p.discord_id for p in record.participants] == [1, 2]
        assert record.game_start == BASE_TIME

    def test_terminal_record_cannot_be_released_or_completed_again(self, match_repository):
        token = match_repository.try_claim("VN2_1", BASE_TIME)
        _complete(match_repository, "VN2_1", token, [_participant(1)])

        assert match_repository.release_claim("VN2_1", token) is False
        with pytest.raises(ClaimLostError):
            _complete(match_repository, "VN2_1", token, [_participant(1)])

    def test_lost_claim_raises(self, match_repository):
        token = match_repository.try_claim("VN2_1", BASE_TIME)
        match_repository.delete_stale_claim("VN2_1", BASE_TIME)
        other = match_repository.try_claim("VN2_1", BASE_TIME + 400)

        with pytest.raises(ClaimLostError):
            _complete(match_repository, "VN2_1", token, [_participant(1)])
        # The new owner is untouched
        assert match_repository.get("VN2_1").claim_token == other

    def test_requires_participants(self, match_repository):
        token = match_repository.try_claim("VN2_1", BASE_TIME)
        with pytest.raises(ValueError):
            _complete(match_repository, "VN2_1", token, [])

    def test_completion_folds_into_weekly_leaderboard(self, match_repository, leaderboard_repository):
        token = match_repository.try_claim("VN2_1", BASE_TIME)
        _complete(
            match_repository,
            "VN2_1",
            token,
            [_participant(1, kills=4, deaths=2, assists=9, win=True)],
            ranks={1: "GOLD_II"},
        )
        token = match_repository.try_claim("VN2_2", BASE_TIME)
        _complete(
            match_repository,
            "VN2_2",
            token,
            [_participant(1, kills=1, deaths=8, assists=2, win=False)],
            ranks={1: "GOLD_III"},
        )

        entry = leaderboard_repository.get_entry(1, TEST_WEEK)
        assert (entry.kills, entry.deaths, entry.assists) == (5, 10, 11)
        assert entry.games_played == 2
        assert entry.games_won == 1
        assert entry.highest_rank == "GOLD_II"

    def test_recent_for_account(self, match_repository):
        for i, start in enumerate([BASE_TIME, BASE_TIME + 3600, BASE_TIME + 7200]):
            token = match_repository.try_claim(f"VN2_{i}", start)
            _complete(match_repository, f"VN2_{i}", token, [_participant(1), _participant(2)], game_start=start)
        token = match_repository.try_claim("VN2_OTHER", BASE_TIME)
        _complete(match_repository, "VN2_OTHER", token, [_participant(3)])

        recent = match_repository.get_recent_for_account(1, limit=2)
        assert [r.match_id for r in recent] == ["VN2_2", "VN2_1"]
        assert len(match_repository.get_recent_for_account(1, limit=None)) == 3
        assert match_repository.get_recent_for_account(4) == []
