"""
Account and betting commands: /link, /unlink, /openbet, /bet, /balance, /leaderboard, /stats.
"""

from __future__ import annotations

import asyncio
import logging

import discord
from discord import app_commands
from discord.ext import commands

from config import BETTING_WINDOW_MINUTES, TRACKED_CHANNEL_ID
from domain.models.betting import BetKind
from services import error_codes
from utils.embeds import (
    create_account_linked_embed,
    create_balance_embed,
    create_betting_window_embed,
    create_error_embed,
    create_info_embed,
    create_leaderboard_embed,
    create_stats_embed,
    create_success_embed,
)
from utils.formatting import COIN_EMOTE, format_bet_kind
from utils.interaction_safety import safe_defer
from utils.rate_limiter import GLOBAL_RATE_LIMITER

logger = logging.getLogger("rift_bot.commands.betting")

BET_KIND_CHOICES = [
    app_commands.Choice(name="Thắng", value=BetKind.WIN.value),
    app_commands.Choice(name="Thua", value=BetKind.LOSS.value),
    app_commands.Choice(name="KDA > 3.0", value=BetKind.KDA_OVER_3.value),
    app_commands.Choice(name="Chết > 7 lần", value=BetKind.DEATHS_OVER_7.value),
    app_commands.Choice(name="Game > 30 phút", value=BetKind.TIME_OVER_30.value),
]


class BettingCommands(commands.Cog):
    def __init__(
        self,
        bot: commands.Bot,
        account_service,
        betting_service,
        leaderboard_service,
        account_repo,
    ):
        self.bot = bot
        self.account_service = account_service
        self.betting_service = betting_service
        self.leaderboard_service = leaderboard_service
        self.account_repo = account_repo

    async def _rate_limited(self, interaction: discord.Interaction, scope: str, limit: int, per_seconds: int) -> bool:
        rl = GLOBAL_RATE_LIMITER.check(
            scope=scope,
            user_id=interaction.user.id,
            limit=limit,
            per_seconds=per_seconds,
        )
        if rl.allowed:
            return False
        await interaction.response.send_message(
            f"⏳ Please wait {rl.retry_after_seconds:.0f}s before using `/{scope}` again.",
            ephemeral=True,
        )
        return True

    @app_commands.command(name="link", description="Link your Riot account (GameName#TagLine)")
    @app_commands.describe(riot_id="Your Riot ID, e.g. Faker#KR1")
    async def link(self, interaction: discord.Interaction, riot_id: str):
        if await self._rate_limited(interaction, "link", limit=3, per_seconds=60):
            return
        if not await safe_defer(interaction, ephemeral=True):
            return

        result = await self.account_service.link(interaction.user.id, riot_id)
        if not result.success:
            await interaction.followup.send(embed=create_error_embed("Lỗi", result.error), ephemeral=True)
            return
        await interaction.followup.send(embed=create_account_linked_embed(result.value), ephemeral=True)

    @app_commands.command(name="unlink", description="Unlink your Riot account")
    async def unlink(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return
        result = await self.account_service.unlink(interaction.user.id)
        if not result.success:
            await interaction.followup.send(embed=create_error_embed("Lỗi", result.error), ephemeral=True)
            return
        await interaction.followup.send(
            embed=create_success_embed("Đã hủy liên kết", f"Đã hủy liên kết **{result.value.summoner_name}**."),
            ephemeral=True,
        )

    @app_commands.command(name="openbet", description="Open a betting window on your next game")
    async def openbet(self, interaction: discord.Interaction):
        if await self._rate_limited(interaction, "openbet", limit=1, per_seconds=30):
            return
        if not await safe_defer(interaction):
            return

        result = await self.betting_service.open_window(interaction.user.id)
        if not result.success:
            await interaction.followup.send(embed=create_error_embed("Không thể mở cược", result.error))
            return

        account = await asyncio.to_thread(self.account_repo.get_by_id, interaction.user.id)
        rank = account.rank.label if account and account.rank else None
        embed = create_betting_window_embed(result.value, BETTING_WINDOW_MINUTES, rank=rank)
        await interaction.followup.send(embed=embed)

        # Also announce in the tracked channel when the command ran elsewhere
        if TRACKED_CHANNEL_ID is not None and interaction.channel_id != TRACKED_CHANNEL_ID:
            channel = self.bot.get_channel(TRACKED_CHANNEL_ID)
            if channel is not None:
                try:
                    await channel.send(embed=embed)
                except discord.HTTPException as e:
                    logger.warning(f"Failed to announce window in tracked channel: {e}")

    @app_commands.command(name="bet", description="Bet on a player's next game")
    @app_commands.describe(
        bet_type="What to bet on",
        amount="Coins to wager",
        player="Whose game (needed when several windows are open)",
    )
    @app_commands.choices(bet_type=BET_KIND_CHOICES)
    async def bet(
        self,
        interaction: discord.Interaction,
        bet_type: app_commands.Choice[str],
        amount: app_commands.Range[int, 1],
        player: discord.Member | None = None,
    ):
        if await self._rate_limited(interaction, "bet", limit=5, per_seconds=30):
            return
        if not await safe_defer(interaction, ephemeral=True):
            return

        result = await asyncio.to_thread(
            self.betting_service.place_bet,
            interaction.user.id,
            bet_type.value,
            amount,
            player.id if player else None,
        )
        if not result.success:
            title = "Không đủ tiền" if result.is_error(error_codes.INSUFFICIENT_FUNDS) else "Lỗi"
            await interaction.followup.send(embed=create_error_embed(title, result.error), ephemeral=True)
            return

        placed = result.value
        await interaction.followup.send(
            embed=create_success_embed(
                "Đặt cược thành công!",
                f"Cược **{amount}** {COIN_EMOTE} vào **{format_bet_kind(placed.bet_kind)}** "
                f"của <@{placed.target_discord_id}> (x{placed.odds}).",
            ),
            ephemeral=True,
        )

    @app_commands.command(name="balance", description="Check your coins and betting record")
    async def balance(self, interaction: discord.Interaction):
        if await self._rate_limited(interaction, "balance", limit=3, per_seconds=10):
            return
        result = await asyncio.to_thread(self.betting_service.get_balance_summary, interaction.user.id)
        if not result.success:
            await interaction.response.send_message(embed=create_error_embed("Lỗi", result.error), ephemeral=True)
            return
        await interaction.response.send_message(
            embed=create_balance_embed(interaction.user.id, result.value), ephemeral=True
        )

    @app_commands.command(name="leaderboard", description="This week's leaderboard")
    async def leaderboard(self, interaction: discord.Interaction):
        if await self._rate_limited(interaction, "leaderboard", limit=2, per_seconds=30):
            return
        if not await safe_defer(interaction):
            return

        board = await asyncio.to_thread(self.leaderboard_service.get_weekly_leaderboard)
        if board is None:
            await interaction.followup.send(
                embed=create_info_embed("📊 BẢNG XẾP HẠNG", "Chưa có dữ liệu cho tuần này...")
            )
            return
        await interaction.followup.send(embed=create_leaderboard_embed(board))

    @app_commands.command(name="stats", description="View a linked player's stats")
    @app_commands.describe(player="Player to view (defaults to you)")
    async def stats(self, interaction: discord.Interaction, player: discord.Member | None = None):
        if await self._rate_limited(interaction, "stats", limit=3, per_seconds=30):
            return
        if not await safe_defer(interaction):
            return

        target = player or interaction.user
        stats = await asyncio.to_thread(self.leaderboard_service.get_user_stats, target.id)
        if stats is None:
            await interaction.followup.send(
                embed=create_error_embed("Lỗi", f"{target.mention} chưa liên kết tài khoản. Dùng /link!")
            )
            return
        await interaction.followup.send(embed=create_stats_embed(stats))


async def setup(bot: commands.Bot):
    account_service = getattr(bot, "account_service", None)
    if account_service is None:
        raise RuntimeError("Account service not registered on bot.")
    betting_service = getattr(bot, "betting_service", None)
    if betting_service is None:
        raise RuntimeError("Betting service not registered on bot.")
    leaderboard_service = getattr(bot, "leaderboard_service", None)
    if leaderboard_service is None:
        raise RuntimeError("Leaderboard service not registered on bot.")
    account_repo = getattr(bot, "account_repo", None)

    await bot.add_cog(BettingCommands(bot, account_service, betting_service, leaderboard_service, account_repo))
