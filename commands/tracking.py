"""
Match tracking: scheduled sweeps, window housekeeping, roles and /refresh.
"""

from __future__ import annotations

import asyncio
import logging
import time

import discord
from discord import app_commands
from discord.ext import commands, tasks

from config import (
    CLAIM_CLEANUP_INTERVAL_MINUTES,
    GUILD_ID,
    MATCH_SWEEP_INTERVAL_MINUTES,
    RANK_SYNC_INTERVAL_HOURS,
    ROLE_EXPIRY_INTERVAL_MINUTES,
    TRACKED_CHANNEL_ID,
    WINDOW_CHECK_INTERVAL_SECONDS,
)
from services.match_ingestion_service import IngestionResult
from services.settlement_service import SettlementResult
from utils.embeds import (
    create_cancellation_embed,
    create_info_embed,
    create_ingestion_summary_embed,
    create_match_analysis_embed,
    create_rank_changes_embed,
    create_settlement_embed,
)
from utils.interaction_safety import safe_defer
from utils.rate_limiter import GLOBAL_RATE_LIMITER

logger = logging.getLogger("rift_bot.commands.tracking")


class TrackingCommands(commands.Cog):
    """Background loops that turn Riot matches into posts, payouts and roles."""

    def __init__(
        self,
        bot: commands.Bot,
        ingestion_service,
        betting_service,
        settlement_service,
        role_grant_service,
        rank_sync_service,
        bet_repo,
    ):
        self.bot = bot
        self.ingestion_service = ingestion_service
        self.betting_service = betting_service
        self.settlement_service = settlement_service
        self.role_grant_service = role_grant_service
        self.rank_sync_service = rank_sync_service
        self.bet_repo = bet_repo
        # One sweep at a time inside this process; /refresh waits behind the loop
        self._sweep_lock = asyncio.Lock()

        self.match_sweep.start()
        self.window_check.start()
        self.claim_cleanup.start()
        self.grant_expiry.start()
        self.rank_sync.start()

    def cog_unload(self):
        self.match_sweep.cancel()
        self.window_check.cancel()
        self.claim_cleanup.cancel()
        self.grant_expiry.cancel()
        self.rank_sync.cancel()

    # --- Discord helpers ---

    def _get_channel(self) -> discord.abc.Messageable | None:
        if TRACKED_CHANNEL_ID is None:
            return None
        return self.bot.get_channel(TRACKED_CHANNEL_ID)

    def _get_guild(self) -> discord.Guild | None:
        if GUILD_ID is not None:
            return self.bot.get_guild(GUILD_ID)
        return self.bot.guilds[0] if self.bot.guilds else None

    async def _post(self, embed: discord.Embed) -> bool:
        channel = self._get_channel()
        if channel is None:
            logger.warning("No tracked channel configured or visible; dropping post")
            return False
        try:
            await channel.send(embed=embed)
            return True
        except discord.HTTPException as e:
            logger.error(f"Failed to post to tracked channel: {e}")
            return False

    async def _get_member(self, guild: discord.Guild, discord_id: int) -> discord.Member | None:
        member = guild.get_member(discord_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(discord_id)
        except discord.NotFound:
            return None
        except discord.HTTPException as e:
            logger.warning(f"Could not fetch member {discord_id}: {e}")
            return None

    async def _set_roles(self, discord_id: int, add: list[str], remove: list[str]) -> None:
        """Add and remove roles by name. Missing roles and members are skipped."""
        guild = self._get_guild()
        if guild is None:
            return
        member = await self._get_member(guild, discord_id)
        if member is None:
            return

        to_add = [r for name in add if (r := discord.utils.get(guild.roles, name=name)) and r not in member.roles]
        to_remove = [r for name in remove if (r := discord.utils.get(guild.roles, name=name)) and r in member.roles]
        try:
            if to_remove:
                await member.remove_roles(*to_remove, reason="Rift bot role sync")
            if to_add:
                await member.add_roles(*to_add, reason="Rift bot role sync")
        except discord.Forbidden:
            logger.warning(f"Missing permission to manage roles for {discord_id}")
        except discord.HTTPException as e:
            logger.error(f"Failed to update roles for {discord_id}: {e}")

    # --- Publishing ---

    async def _publish(self, result: IngestionResult) -> None:
        for analysis in result.analyses:
            await self._post(create_match_analysis_embed(analysis))
        for grant in result.grants:
            await self._set_roles(grant.discord_id, add=[grant.capability], remove=[])
        await self._deliver_settlements()

    async def _deliver_settlements(self) -> None:
        """Post stored settlement notifications; undelivered ones are retried next run."""
        if self._get_channel() is None:
            return
        notifications = await asyncio.to_thread(self.bet_repo.get_undelivered_notifications)
        for notification in notifications:
            # Another sweep, /refresh or bot process may be posting the same row
            claimed = await asyncio.to_thread(
                self.bet_repo.claim_notification, notification["id"], time.time()
            )
            if not claimed:
                continue
            settlement = SettlementResult(
                match_id=notification["match_id"],
                window_id=notification["window_id"],
                target_discord_id=notification["target_discord_id"],
                winners=notification["winners"],
                losers=notification["losers"],
            )
            if await self._post(create_settlement_embed(settlement)):
                await asyncio.to_thread(
                    self.bet_repo.mark_notification_delivered, notification["id"], time.time()
                )
            else:
                await asyncio.to_thread(self.bet_repo.release_notification, notification["id"])

    async def _sweep(self) -> IngestionResult:
        async with self._sweep_lock:
            result = await self.ingestion_service.sweep_all_accounts()
        await self._publish(result)
        return result

    # --- Loops ---

    @tasks.loop(minutes=MATCH_SWEEP_INTERVAL_MINUTES)
    async def match_sweep(self):
        try:
            result = await self._sweep()
            if result.halted:
                logger.error("Riot API key rejected; sweeps will keep failing until it is replaced")
        except Exception as e:
            logger.error(f"Match sweep failed: {e}", exc_info=True)

    @match_sweep.before_loop
    async def before_match_sweep(self):
        await self.bot.wait_until_ready()
        logger.info(f"Match sweep running every {MATCH_SWEEP_INTERVAL_MINUTES}m")

    @tasks.loop(seconds=WINDOW_CHECK_INTERVAL_SECONDS)
    async def window_check(self):
        """Close windows whose betting time ran out and cancel ones that never saw a match."""
        try:
            closed = await asyncio.to_thread(self.betting_service.close_due_windows)
            for window in closed:
                await self._post(
                    create_info_embed(
                        "Cược đã đóng",
                        f"Cửa sổ cược của <@{window.target_discord_id}> đã đóng: "
                        f"{window.total_bets} cược, {window.total_amount} coins.",
                    )
                )
            # A match whose settlement failed earlier must bind before its window can expire
            retried = await self.ingestion_service.retry_pending_settlements()
            if retried.settlements:
                await self._deliver_settlements()
            cancellations = await asyncio.to_thread(self.settlement_service.cancel_expired_windows)
            for cancellation in cancellations:
                await self._post(create_cancellation_embed(cancellation))
        except Exception as e:
            logger.error(f"Window check failed: {e}", exc_info=True)

    @window_check.before_loop
    async def before_window_check(self):
        await self.bot.wait_until_ready()

    @tasks.loop(minutes=CLAIM_CLEANUP_INTERVAL_MINUTES)
    async def claim_cleanup(self):
        try:
            await self.ingestion_service.cleanup_stale_claims()
        except Exception as e:
            logger.error(f"Stale claim cleanup failed: {e}", exc_info=True)

    @claim_cleanup.before_loop
    async def before_claim_cleanup(self):
        await self.bot.wait_until_ready()

    @tasks.loop(minutes=ROLE_EXPIRY_INTERVAL_MINUTES)
    async def grant_expiry(self):
        try:
            expired = await asyncio.to_thread(self.role_grant_service.sweep_expired)
            for grant in expired:
                await self._set_roles(grant.discord_id, add=[], remove=[grant.capability])
                logger.info(f"Removed expired role {grant.capability} from {grant.discord_id}")
        except Exception as e:
            logger.error(f"Grant expiry failed: {e}", exc_info=True)

    @grant_expiry.before_loop
    async def before_grant_expiry(self):
        await self.bot.wait_until_ready()

    @tasks.loop(hours=RANK_SYNC_INTERVAL_HOURS)
    async def rank_sync(self):
        try:
            result = await self.rank_sync_service.sync_all()
            for change in result.changes:
                add = [change.role_to_grant] if change.role_to_grant else []
                await self._set_roles(change.discord_id, add=add, remove=change.roles_to_revoke)
            if result.changes:
                await self._post(create_rank_changes_embed(result.changes))
            logger.info(
                f"Rank sync: {result.synced} synced, {len(result.changes)} changed, {len(result.errors)} errors"
            )
        except Exception as e:
            logger.error(f"Rank sync failed: {e}", exc_info=True)

    @rank_sync.before_loop
    async def before_rank_sync(self):
        await self.bot.wait_until_ready()
        logger.info(f"Rank sync running every {RANK_SYNC_INTERVAL_HOURS}h")

    # --- Commands ---

    @app_commands.command(name="refresh", description="Check your latest matches now")
    async def refresh(self, interaction: discord.Interaction):
        rl = GLOBAL_RATE_LIMITER.check(
            scope="refresh",
            user_id=interaction.user.id,
            limit=1,
            per_seconds=60,
        )
        if not rl.allowed:
            await interaction.response.send_message(
                f"⏳ Please wait {rl.retry_after_seconds:.0f}s before using `/refresh` again.",
                ephemeral=True,
            )
            return

        if not await safe_defer(interaction, ephemeral=True):
            return

        async with self._sweep_lock:
            result = await self.ingestion_service.check_account(interaction.user.id)
        await self._publish(result)
        await interaction.followup.send(embed=create_ingestion_summary_embed(result), ephemeral=True)


async def setup(bot: commands.Bot):
    ingestion_service = getattr(bot, "match_ingestion_service", None)
    if ingestion_service is None:
        raise RuntimeError("Match ingestion service not registered on bot.")
    betting_service = getattr(bot, "betting_service", None)
    if betting_service is None:
        raise RuntimeError("Betting service not registered on bot.")
    settlement_service = getattr(bot, "settlement_service", None)
    if settlement_service is None:
        raise RuntimeError("Settlement service not registered on bot.")
    role_grant_service = getattr(bot, "role_grant_service", None)
    rank_sync_service = getattr(bot, "rank_sync_service", None)
    bet_repo = getattr(bot, "bet_repo", None)
    if role_grant_service is None or rank_sync_service is None or bet_repo is None:
        raise RuntimeError("Role, rank or bet services not registered on bot.")

    await bot.add_cog(
        TrackingCommands(
            bot,
            ingestion_service,
            betting_service,
            settlement_service,
            role_grant_service,
            rank_sync_service,
            bet_repo,
        )
    )
