"""
Post-game trash talk and bet-window announcements.

Text comes from the AI service when it is configured and answers; otherwise
from local templates keyed by outcome (win / loss / feeder). Commentary never
raises into the caller.
"""

from __future__ import annotations

import logging
import random
from enum import Enum
from typing import TYPE_CHECKING

from domain.services.scoring_service import FEEDER_DEATH_THRESHOLD

if TYPE_CHECKING:
    from domain.models.match import ParticipantStats
    from services.ai_service import AIService

logger = logging.getLogger("rift_bot.services.commentary")


class CommentaryCategory(Enum):
    WIN = "win"
    LOSS = "loss"
    FEEDER = "feeder"


TRASH_TALK_SYSTEM_PROMPT = (
    "You are a humorous Vietnamese League of Legends commentator with a toxic but playful style. "
    "Generate ONE short sentence (max 30 words) in Vietnamese that roasts the player based on "
    "their match performance. Be creative and funny, not genuinely mean. "
    "Use Vietnamese slang and emojis appropriately."
)

FALLBACK_TEMPLATES: dict[CommentaryCategory, list[str]] = {
    CommentaryCategory.WIN: [
        "{name} {champion} {kda} thắng trận! Cuối cùng cũng carry được 1 ván! 🎉",
        "{name} {champion} {kda} WIN! Lucky game, tiếp tục phát huy! 💪",
        "GG {name}! {champion} {kda} thắng rồi, team cảm ơn đã không ghost! 🙏",
    ],
    CommentaryCategory.LOSS: [
        "{name} {champion} {kda} thua trận! Next game nhé bro! 😢",
        "{name} {champion} {kda} LOSE! Unlucky, blame team đi! 🤡",
        "{champion} {kda} thua rồi {name} ơi! Đừng buồn, còn nhiều game nữa mà! 💔",
    ],
    CommentaryCategory.FEEDER: [
        "{name} cho {champion} ăn buffet {deaths} mạng! Địch cảm ơn! 🎁",
        "{name} {champion} feed {deaths} deaths! Reported! 🤡",
        "{champion} {kda}? {name} nghĩ mình đang chơi ARAM à? {deaths} mạng! 💀",
    ],
}

ANNOUNCEMENT_FALLBACK = "🎲 {name} vừa mở cược! Win rate {win_rate}%, ae vào đặt cược đi! 💰"


def categorize(deaths: int, win: bool) -> CommentaryCategory:
    if deaths >= FEEDER_DEATH_THRESHOLD:
        return CommentaryCategory.FEEDER
    return CommentaryCategory.WIN if win else CommentaryCategory.LOSS


class CommentaryService:
    def __init__(self, ai_service: AIService | None = None, rng: random.Random | None = None):
        self.ai_service = ai_service
        self._rng = rng or random.Random()

    def fallback_trash_talk(self, player: ParticipantStats) -> str:
        category = categorize(player.deaths, player.win)
        template = self._rng.choice(FALLBACK_TEMPLATES[category])
        return template.format(
            name=player.summoner_name,
            champion=player.champion_name,
            kda=f"{player.kills}/{player.deaths}/{player.assists}",
            deaths=player.deaths,
        )

    async def generate_trash_talk(self, player: ParticipantStats, rank: str | None = None) -> str:
        if self.ai_service is None:
            return self.fallback_trash_talk(player)

        outcome = "WON" if player.win else "LOST"
        prompt = (
            f"Player '{player.summoner_name}' played {player.champion_name} and {outcome}. "
            f"KDA: {player.kills}/{player.deaths}/{player.assists}. "
            f"Damage dealt: {player.damage_dealt}. Rank: {rank or 'Unranked'}."
        )
        try:
            text = await self.ai_service.complete(prompt, system_prompt=TRASH_TALK_SYSTEM_PROMPT)
        except Exception as e:
            logger.error(f"Trash talk generation failed for {player.summoner_name}: {e}")
            text = None

        if not text:
            logger.warning(f"AI returned nothing for {player.summoner_name}, using fallback template")
            return self.fallback_trash_talk(player)
        return text

    async def generate_trash_talks(
        self, players: list[ParticipantStats], ranks: dict[int, str | None] | None = None
    ) -> list[dict]:
        """One line per player, in input order: [{discord_id, name, text}]."""
        ranks = ranks or {}
        results = []
        for player in players:
            text = await self.generate_trash_talk(player, ranks.get(player.discord_id))
            results.append(
                {"discord_id": player.discord_id, "name": player.summoner_name, "text": text}
            )
        return results

    async def generate_betting_announcement(
        self, name: str, rank: str | None, win_rate: float, record: str, avg_kda: float
    ) -> str:
        fallback = ANNOUNCEMENT_FALLBACK.format(name=name, win_rate=win_rate)
        if self.ai_service is None:
            return fallback

        prompt = (
            f"Player '{name}' is about to start a game. Rank: {rank or 'Unranked'}. "
            f"Win rate: {win_rate}%. Recent record: {record}. Average KDA: {avg_kda}. "
            "Generate a short, funny Vietnamese announcement to encourage betting."
        )
        try:
            text = await self.ai_service.complete(prompt, system_prompt=TRASH_TALK_SYSTEM_PROMPT)
        except Exception as e:
            logger.error(f"Betting announcement generation failed: {e}")
            text = None
        return text or fallback
