"""
Linked account domain model.
"""

from dataclasses import dataclass


@dataclass
class Rank:
    """A ranked-queue standing as reported by Riot."""

    tier: str  # IRON ... CHALLENGER
    division: str | None = None  # I, II, III, IV (None for apex tiers)
    lp: int = 0
    queue_type: str | None = None  # RANKED_SOLO_5x5 or RANKED_FLEX_SR

    @property
    def label(self) -> str:
        """Leaderboard key, e.g. DIAMOND_II."""
        if self.division:
            return f"{self.tier}_{self.division}"
        return self.tier


@dataclass
class LinkedAccount:
    """
    Maps a Discord user to a Riot account.

    Soft-removed accounts keep their row (unlinked_at is set) so bets and
    matches referencing them stay reportable.
    """

    discord_id: int
    riot_puuid: str
    summoner_name: str
    region: str = "vn2"
    balance: int = 0
    rank: Rank | None = None
    last_rank_sync: int | None = None
    linked_at: int | None = None
    unlinked_at: int | None = None

    @property
    def is_active(self) -> bool:
        return self.unlinked_at is None
