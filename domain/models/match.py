"""
Match domain models.

A MatchRecord doubles as the claim marker used to keep concurrent sweeps
from processing the same Riot match twice.
"""

from dataclasses import asdict, dataclass, field


@dataclass
class ParticipantStats:
    """Per linked-account performance in one match."""

    discord_id: int
    puuid: str
    summoner_name: str
    champion_name: str
    kills: int
    deaths: int
    assists: int
    win: bool
    team_id: int = 0
    champion_id: int | None = None
    damage_dealt: int = 0  # totalDamageDealtToChampions
    damage_taken: int = 0  # totalDamageTaken
    gold_earned: int = 0
    vision_score: int = 0
    kda: float = 0.0
    mvp_score: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ParticipantStats":
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class MatchOutcome:
    """The facts a bet is evaluated against: one participant's view of a match."""

    win: bool
    kda: float
    deaths: int
    game_duration: int  # seconds


@dataclass
class MatchRecord:
    """
    Persistent match state.

    States:
        claimed:  processing=True, participants empty
        terminal: participants non-empty, processing=False
    """

    match_id: str
    processing: bool = False
    claimed_at: float | None = None
    claim_token: str | None = None
    participants: list[ParticipantStats] = field(default_factory=list)
    mvp_discord_id: int | None = None
    feeder_discord_id: int | None = None
    game_duration: int = 0
    game_mode: str | None = None
    queue_id: int | None = None
    game_start: float | None = None  # Unix seconds
    processed_at: float | None = None
    solo_game: bool = False
    settled_at: float | None = None  # set once settlement ran; None on a team game means pending

    @property
    def is_terminal(self) -> bool:
        return len(self.participants) > 0

    def claim_age(self, now: float) -> float:
        return now - (self.claimed_at or 0)

    def participant(self, discord_id: int) -> ParticipantStats | None:
        for p in self.participants:
            if p.discord_id == discord_id:
                return p
        return None
