"""
Turns a raw match-v5 payload into per-linked-account stats, MVP and feeder.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from domain.models.account import LinkedAccount
from domain.models.match import ParticipantStats
from domain.services import scoring_service


@dataclass
class MatchAnalysis:
    """Everything a post-game notification needs, with no formatting applied."""

    match_id: str
    participants: list[ParticipantStats]
    mvp: ParticipantStats | None
    feeder: ParticipantStats | None
    game_duration: int
    result: str  # "win" or "loss", from the first linked participant
    game_mode: str | None = None
    queue_id: int | None = None
    trash_talks: list[dict] = field(default_factory=list)


def game_start_seconds(detail: dict) -> float | None:
    """Game start as Unix seconds (Riot reports milliseconds)."""
    info = detail.get("info", {})
    millis = info.get("gameStartTimestamp") or info.get("gameCreation")
    if not millis:
        return None
    return millis / 1000


def linked_participants(detail: dict, linked: dict[str, LinkedAccount]) -> list[dict]:
    """Raw participant dicts belonging to linked accounts, in Riot order."""
    return [p for p in detail.get("info", {}).get("participants", []) if p.get("puuid") in linked]


def build_stats(raw: dict, account: LinkedAccount) -> ParticipantStats:
    kills = raw.get("kills", 0)
    deaths = raw.get("deaths", 0)
    assists = raw.get("assists", 0)
    return ParticipantStats(
        discord_id=account.discord_id,
        puuid=raw["puuid"],
        summoner_name=raw.get("riotIdGameName") or raw.get("summonerName") or account.summoner_name,
        champion_name=raw.get("championName", "Unknown"),
        kills=kills,
        deaths=deaths,
        assists=assists,
        win=bool(raw.get("win")),
        team_id=raw.get("teamId", 0),
        champion_id=raw.get("championId"),
        damage_dealt=raw.get("totalDamageDealtToChampions") or 0,
        damage_taken=raw.get("totalDamageTaken") or 0,
        gold_earned=raw.get("goldEarned") or 0,
        vision_score=raw.get("visionScore") or 0,
        kda=round(scoring_service.kda(kills, deaths, assists), 2),
    )


def build_solo_stats(raw: dict, account: LinkedAccount) -> ParticipantStats:
    """Reduced projection kept for solo games: identity, champion, K/D/A and win."""
    full = build_stats(raw, account)
    return ParticipantStats(
        discord_id=full.discord_id,
        puuid=full.puuid,
        summoner_name=full.summoner_name,
        champion_name=full.champion_name,
        kills=full.kills,
        deaths=full.deaths,
        assists=full.assists,
        win=full.win,
        team_id=full.team_id,
    )


class MatchAnalysisService:
    """Scores linked participants against their own team's totals."""

    def analyze(self, match_id: str, detail: dict, linked: dict[str, LinkedAccount]) -> MatchAnalysis:
        """
        Full analysis for a match with enough linked players.

        Args:
            match_id: Riot match id
            detail: match-v5 payload
            linked: Active linked accounts keyed by puuid

        Raises:
            ValueError: If no participant of the match is linked
        """
        info = detail.get("info", {})
        raws = linked_participants(detail, linked)
        if not raws:
            raise ValueError(f"Match {match_id} has no linked participants")

        teams = scoring_service.team_aggregates(info.get("participants", []))
        participants = []
        for raw in raws:
            stats = build_stats(raw, linked[raw["puuid"]])
            team = teams.get(stats.team_id, scoring_service.TeamAggregate())
            stats.mvp_score = scoring_service.mvp_score(stats, team)
            participants.append(stats)

        return MatchAnalysis(
            match_id=match_id,
            participants=participants,
            mvp=scoring_service.select_mvp(participants),
            feeder=scoring_service.select_feeder(participants),
            game_duration=int(info.get("gameDuration") or 0),
            result="win" if participants[0].win else "loss",
            game_mode=info.get("gameMode"),
            queue_id=info.get("queueId"),
        )

    def solo_projection(self, detail: dict, linked: dict[str, LinkedAccount]) -> list[ParticipantStats]:
        return [build_solo_stats(raw, linked[raw["puuid"]]) for raw in linked_participants(detail, linked)]
