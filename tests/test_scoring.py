"""
Tests for the odds and scoring engine.
"""

import pytest

from domain.models.betting import BetKind
from domain.models.match import MatchOutcome, ParticipantStats
from domain.services import scoring_service
from domain.services.scoring_service import (
    TeamAggregate,
    betting_odds,
    compare_ranks,
    evaluate_bet,
    kda,
    mvp_score,
    payout,
    select_feeder,
    select_mvp,
    team_aggregates,
)


def _stats(discord_id, kills, deaths, assists, win=True, damage=0, taken=0, team_id=100, score=0.0):
    return ParticipantStats(
        discord_id=discord_id,
        puuid=f"p{discord_id}",
        summoner_name=f"P{discord_id}",
        champion_name="Ahri",
        kills=kills,
        deaths=deaths,
        assists=assists,
        win=win,
        team_id=team_id,
        damage_dealt=damage,
        damage_taken=taken,
        kda=kda(kills, deaths, assists),
        mvp_score=score,
    )


class TestKda:
    def test_deathless_game_counts_kills_plus_assists(self):
        assert kda(5, 0, 3) == 8

    def test_regular_ratio(self):
        assert kda(4, 2, 6) == 5.0

    def test_all_zero(self):
        assert kda(0, 0, 0) == 0


class TestMvpScore:
    def test_shares_are_relative_to_own_team(self):
        raw = [
            {"teamId": 100, "totalDamageDealtToChampions": 30000, "totalDamageTaken": 10000},
            {"teamId": 100, "totalDamageDealtToChampions": 30000, "totalDamageTaken": 40000},
            # The enemy team's numbers must not dilute the shares
            {"teamId": 200, "totalDamageDealtToChampions": 500000, "totalDamageTaken": 500000},
        ]
        teams = team_aggregates(raw)
        assert teams[100] == TeamAggregate(damage_dealt=60000, damage_taken=50000)

        player = _stats(1, kills=10, deaths=2, assists=10, win=True, damage=30000, taken=10000)
        # kda 10 * (0.5*0.6 + 0.2*0.4) * 1.2 * 10
        assert mvp_score(player, teams[100]) == 45.6

    def test_loss_has_no_win_bonus(self):
        team = TeamAggregate(damage_dealt=60000, damage_taken=50000)
        player = _stats(1, kills=10, deaths=2, assists=10, win=False, damage=30000, taken=10000)
        assert mvp_score(player, team) == 38.0

    def test_capped_at_100(self):
        team = TeamAggregate(damage_dealt=10000, damage_taken=10000)
        player = _stats(1, kills=20, deaths=0, assists=10, win=True, damage=10000, taken=10000)
        assert mvp_score(player, team) == 100

    def test_empty_team_totals_do_not_divide_by_zero(self):
        player = _stats(1, kills=3, deaths=1, assists=0)
        assert mvp_score(player, TeamAggregate()) == 0


class TestSelection:
    def test_mvp_is_highest_score(self):
        players = [_stats(1, 1, 1, 1, score=20), _stats(2, 1, 1, 1, score=55.5), _stats(3, 1, 1, 1, score=40)]
        assert select_mvp(players).discord_id == 2

    def test_mvp_tie_goes_to_first(self):
        players = [_stats(1, 1, 1, 1, score=50), _stats(2, 1, 1, 1, score=50)]
        assert select_mvp(players).discord_id == 1

    def test_feeder_death_threshold_beats_lower_kda(self):
        heavy_deaths = _stats(1, kills=15, deaths=10, assists=10)  # kda 2.5
        low_kda = _stats(2, kills=0, deaths=2, assists=1)  # kda 0.5
        assert select_feeder([low_kda, heavy_deaths]).discord_id == 1
        assert select_feeder([heavy_deaths, low_kda]).discord_id == 1

    def test_feeder_lowest_kda_below_threshold(self):
        players = [_stats(1, 5, 2, 5), _stats(2, 1, 4, 1), _stats(3, 3, 3, 3)]
        assert select_feeder(players).discord_id == 2

    def test_feeder_tie_goes_to_first(self):
        players = [_stats(1, 1, 2, 1), _stats(2, 1, 2, 1)]
        assert select_feeder(players).discord_id == 1

    def test_empty_candidates(self):
        assert select_mvp([]) is None
        assert select_feeder([]) is None


class TestBettingOdds:
    def test_even_form_without_house_edge(self):
        odds = betting_odds(50, 3.0, 7.0, house_edge=1.0)
        assert odds == {
            BetKind.WIN.value: 2.0,
            BetKind.LOSS.value: 2.5,
            BetKind.KDA_OVER_3.value: 2.2,
            BetKind.DEATHS_OVER_7.value: 2.5,
            BetKind.TIME_OVER_30.value: 1.8,
        }

    def test_house_edge_applied_to_every_quote(self):
        odds = betting_odds(50, 3.0, 7.0)
        assert odds[BetKind.WIN.value] == 1.9
        assert odds[BetKind.LOSS.value] == 2.4
        assert odds[BetKind.KDA_OVER_3.value] == 2.1
        assert odds[BetKind.TIME_OVER_30.value] == 1.7

    def test_strong_form_shortens_win_odds(self):
        odds = betting_odds(80, 5.0, 10.0, house_edge=1.0)
        assert odds[BetKind.WIN.value] == 1.9
        assert odds[BetKind.LOSS.value] == 3.2
        assert odds[BetKind.KDA_OVER_3.value] == 1.6
        assert odds[BetKind.DEATHS_OVER_7.value] == 2.8

    def test_default_edge(self):
        assert scoring_service.DEFAULT_HOUSE_EDGE == 0.95


class TestEvaluateBet:
    @pytest.fixture
    def outcome(self):
        return MatchOutcome(win=True, kda=3.0, deaths=8, game_duration=1800)

    def test_win_and_loss(self, outcome):
        assert evaluate_bet("win", outcome) is True
        assert evaluate_bet("loss", outcome) is False

    def test_thresholds_are_strict(self, outcome):
        assert evaluate_bet("kda>3", outcome) is False
        assert evaluate_bet("deaths>7", outcome) is True
        assert evaluate_bet("time>30", outcome) is False
        longer = MatchOutcome(win=True, kda=3.01, deaths=7, game_duration=1801)
        assert evaluate_bet("kda>3", longer) is True
        assert evaluate_bet("deaths>7", longer) is False
        assert evaluate_bet("time>30", longer) is True

    def test_unknown_kind_loses(self, outcome):
        assert evaluate_bet("first_blood", outcome) is False


class TestPayout:
    def test_payout_floors_product(self):
        assert payout(100, 2.27) == 227

    def test_payout_never_rounds_up(self):
        assert payout(100, 1.999) == 199

    def test_payout_includes_principal(self):
        assert payout(50, 2.0) == 100


class TestRanks:
    def test_division_ordering(self):
        assert compare_ranks("DIAMOND_I", "DIAMOND_II") < 0
        assert compare_ranks("GOLD_IV", "GOLD_I") > 0

    def test_tier_ordering_includes_emerald(self):
        assert compare_ranks("EMERALD_IV", "PLATINUM_I") < 0
        assert compare_ranks("MASTER", "DIAMOND_I") < 0

    def test_unranked_is_lowest(self):
        assert compare_ranks(None, "IRON_IV") > 0
        assert compare_ranks(None, None) == 0
