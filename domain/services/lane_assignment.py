"""
Random lane roulette for a group of up to five players.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass

LANES: tuple[tuple[str, str], ...] = (
    ("Top", "🔝"),
    ("Jungle", "🌲"),
    ("Mid", "⚔️"),
    ("ADC", "🏹"),
    ("Support", "🛡️"),
)
MAX_PLAYERS = len(LANES)


@dataclass(frozen=True)
class LaneAssignment:
    player_id: int
    lane: str
    emoji: str


@dataclass
class LaneRoll:
    assignments: list[LaneAssignment]
    unassigned: list[tuple[str, str]]


def assign_lanes(player_ids: Sequence[int], rng: random.Random | None = None) -> LaneRoll:
    """
    Give each player a distinct lane at random.

    Raises:
        ValueError: With no players or more players than lanes
    """
    if not player_ids:
        raise ValueError("No players to assign")
    if len(player_ids) > MAX_PLAYERS:
        raise ValueError(f"At most {MAX_PLAYERS} players can be assigned lanes")

    rng = rng or random.Random()
    players = list(player_ids)
    lanes = list(LANES)
    rng.shuffle(players)
    rng.shuffle(lanes)

    assignments = [
        LaneAssignment(player_id=player, lane=lane, emoji=emoji)
        for player, (lane, emoji) in zip(players, lanes)
    ]
    # Leftover lanes keep the canonical order for display
    taken = {a.lane for a in assignments}
    unassigned = [lane for lane in LANES if lane[0] not in taken]
    return LaneRoll(assignments=assignments, unassigned=unassigned)
