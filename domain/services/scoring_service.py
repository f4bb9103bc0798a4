"""
Odds and scoring engine.

Pure functions over match statistics: KDA, MVP score, MVP/feeder
selection, betting odds, bet evaluation and payouts. No I/O.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

from domain.models.betting import BetKind
from domain.models.match import MatchOutcome, ParticipantStats

DEFAULT_HOUSE_EDGE = 0.95
FEEDER_DEATH_THRESHOLD = 10
KDA_THRESHOLD = 3.0
DEATH_THRESHOLD = 7
LONG_GAME_SECONDS = 30 * 60

TIER_ORDER = {
    "CHALLENGER": 10,
    "GRANDMASTER": 9,
    "MASTER": 8,
    "DIAMOND": 7,
    "EMERALD": 6,
    "PLATINUM": 5,
    "GOLD": 4,
    "SILVER": 3,
    "BRONZE": 2,
    "IRON": 1,
    "UNRANKED": 0,
}
DIVISION_ORDER = {"I": 4, "II": 3, "III": 2, "IV": 1}


@dataclass(frozen=True)
class TeamAggregate:
    damage_dealt: int = 0
    damage_taken: int = 0


def _round1(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def kda(kills: int, deaths: int, assists: int) -> float:
    """(K+A)/D, or K+A for a deathless game."""
    if deaths == 0:
        return float(kills + assists)
    return (kills + assists) / deaths


def team_aggregates(participants: Iterable[dict]) -> dict[int, TeamAggregate]:
    """
    Sum champion damage and damage taken per team.

    Takes raw Riot participant dicts for every player in the match, not
    only linked accounts, so shares are relative to the whole team.
    """
    dealt: dict[int, int] = {}
    taken: dict[int, int] = {}
    for p in participants:
        team_id = p.get("teamId", 0)
        dealt[team_id] = dealt.get(team_id, 0) + (p.get("totalDamageDealtToChampions") or 0)
        taken[team_id] = taken.get(team_id, 0) + (p.get("totalDamageTaken") or 0)
    return {
        team_id: TeamAggregate(damage_dealt=dealt[team_id], damage_taken=taken[team_id])
        for team_id in dealt
    }


def mvp_score(player: ParticipantStats, team: TeamAggregate) -> float:
    """
    MVP score on a 0-100 scale.

    kda * (damage_share*0.6 + tank_share*0.4), times 1.2 on a win, scaled by 10
    and capped at 100. Shares are against the player's own team only.
    """
    player_kda = kda(player.kills, player.deaths, player.assists)
    damage_share = player.damage_dealt / team.damage_dealt if team.damage_dealt > 0 else 0
    tank_share = player.damage_taken / team.damage_taken if team.damage_taken > 0 else 0

    score = player_kda * (damage_share * 0.6 + tank_share * 0.4)
    if player.win:
        score *= 1.2
    return _round1(min(score * 10, 100))


def select_mvp(candidates: Sequence[ParticipantStats]) -> ParticipantStats | None:
    """Highest mvp_score; the first one encountered wins a tie."""
    best = None
    for p in candidates:
        if best is None or p.mvp_score > best.mvp_score:
            best = p
    return best


def select_feeder(candidates: Sequence[ParticipantStats]) -> ParticipantStats | None:
    """
    The worst performer.

    Anyone at or above the death threshold beats anyone below it; otherwise
    the lowest KDA. The first one encountered wins a tie.
    """
    worst = None
    for p in candidates:
        if worst is None:
            worst = p
            continue
        p_fed = p.deaths >= FEEDER_DEATH_THRESHOLD
        worst_fed = worst.deaths >= FEEDER_DEATH_THRESHOLD
        if p_fed and not worst_fed:
            worst = p
        elif worst_fed and not p_fed:
            continue
        elif p.kda < worst.kda:
            worst = p
    return worst


def betting_odds(
    win_rate: float,
    avg_kda: float,
    avg_deaths: float,
    house_edge: float = DEFAULT_HOUSE_EDGE,
) -> dict[str, float]:
    """
    Quote odds for every bet kind from recent form.

    Args:
        win_rate: Recent win rate as a percentage (0-100)
        avg_kda: Average KDA over the sample
        avg_deaths: Average deaths per game over the sample
        house_edge: Multiplier applied to every quote

    Returns:
        Mapping of BetKind value to decimal odds, one decimal place
    """
    if win_rate > 50:
        win_odds = 1.5 + (100 - win_rate) / 50
        loss_odds = 2.0 + (win_rate - 50) / 25
    else:
        win_odds = 2.0 + (50 - win_rate) / 25
        loss_odds = 1.5 + win_rate / 50

    if avg_kda > KDA_THRESHOLD:
        kda_odds = 1.6 + (5.0 - avg_kda) / 2
    else:
        kda_odds = 2.2 + (KDA_THRESHOLD - avg_kda) / 2

    if avg_deaths > DEATH_THRESHOLD:
        death_odds = 1.8 + (avg_deaths - DEATH_THRESHOLD) / 3
    else:
        death_odds = 2.5 + (DEATH_THRESHOLD - avg_deaths) / 3

    time_odds = 1.8

    raw = {
        BetKind.WIN.value: win_odds,
        BetKind.LOSS.value: loss_odds,
        BetKind.KDA_OVER_3.value: kda_odds,
        BetKind.DEATHS_OVER_7.value: death_odds,
        BetKind.TIME_OVER_30.value: time_odds,
    }
    return {kind: _round1(value * house_edge) for kind, value in raw.items()}


def evaluate_bet(kind: str, outcome: MatchOutcome) -> bool:
    """Whether a bet of this kind won. Unknown kinds lose."""
    if kind == BetKind.WIN.value:
        return outcome.win is True
    if kind == BetKind.LOSS.value:
        return outcome.win is False
    if kind == BetKind.KDA_OVER_3.value:
        return outcome.kda > KDA_THRESHOLD
    if kind == BetKind.DEATHS_OVER_7.value:
        return outcome.deaths > DEATH_THRESHOLD
    if kind == BetKind.TIME_OVER_30.value:
        return outcome.game_duration > LONG_GAME_SECONDS
    return False


def payout(amount: int, odds: float) -> int:
    """floor(amount * odds), principal included. Decimal keeps 100 * 2.27 at 227."""
    value = Decimal(amount) * Decimal(str(odds))
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def rank_value(rank: str | None) -> tuple[int, int]:
    """Sortable value for a rank label such as DIAMOND_II or 'GOLD I'."""
    if not rank:
        return (0, 0)
    parts = rank.replace("_", " ").split()
    tier = TIER_ORDER.get(parts[0].upper(), 0)
    division = DIVISION_ORDER.get(parts[1].upper(), 0) if len(parts) > 1 else 0
    return (tier, division)


def compare_ranks(rank_a: str | None, rank_b: str | None) -> int:
    """Negative when rank_a is higher, positive when rank_b is higher."""
    a = rank_value(rank_a)
    b = rank_value(rank_b)
    if a == b:
        return 0
    return -1 if a > b else 1
