"""
Party tools: /random lane roulette and /schedule game lobbies.
"""

from __future__ import annotations

import asyncio
import logging
import re

import discord
from discord import app_commands
from discord.ext import commands, tasks

from config import SCHEDULE_EXPIRY_INTERVAL_MINUTES
from domain.models.schedule import GAME_MODES, Schedule
from domain.services.lane_assignment import MAX_PLAYERS, assign_lanes
from utils.embeds import (
    create_error_embed,
    create_lane_roll_embed,
    create_schedule_embed,
    create_schedule_list_embed,
)
from utils.interaction_safety import safe_defer
from utils.rate_limiter import GLOBAL_RATE_LIMITER

logger = logging.getLogger("rift_bot.commands.party")

SCHEDULE_ID_PATTERN = re.compile(r"ID:\s*([A-Z0-9]{6})")

MODE_CHOICES = [
    app_commands.Choice(name=f"{mode.emoji} {mode.name} ({mode.max_players} người)", value=key)
    for key, mode in GAME_MODES.items()
]


def schedule_id_from_message(message: discord.Message | None) -> str | None:
    """Read the schedule id back from a lobby card's footer."""
    if message is None or not message.embeds:
        return None
    footer = message.embeds[0].footer
    match = SCHEDULE_ID_PATTERN.search(footer.text or "") if footer else None
    return match.group(1) if match else None


class ScheduleView(discord.ui.View):
    """
    Join, leave, start and cancel buttons for every lobby card.

    Registered once on startup with fixed custom ids, so the buttons keep
    working across restarts; the schedule is resolved from the card itself.
    """

    def __init__(self, cog: "PartyCommands"):
        super().__init__(timeout=None)
        self.cog = cog

    @discord.ui.button(label="Tham gia", emoji="✅", style=discord.ButtonStyle.success, custom_id="schedule:join")
    async def join_game(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_button(interaction, "join")

    @discord.ui.button(label="Rời đi", emoji="🚪", style=discord.ButtonStyle.secondary, custom_id="schedule:leave")
    async def leave_game(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_button(interaction, "leave")

    @discord.ui.button(label="Bắt đầu", emoji="🎮", style=discord.ButtonStyle.primary, custom_id="schedule:start")
    async def start_game(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_button(interaction, "start")

    @discord.ui.button(label="Hủy", emoji="❌", style=discord.ButtonStyle.danger, custom_id="schedule:cancel")
    async def cancel_game(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_button(interaction, "cancel")


class PartyCommands(commands.Cog):
    schedule = app_commands.Group(name="schedule", description="Plan a game and gather a party")

    def __init__(self, bot: commands.Bot, schedule_service):
        self.bot = bot
        self.schedule_service = schedule_service
        self.view = ScheduleView(self)
        self.schedule_expiry.start()

    def cog_unload(self):
        self.schedule_expiry.cancel()

    async def _rate_limited(self, interaction: discord.Interaction, scope: str, limit: int, per_seconds: int) -> bool:
        rl = GLOBAL_RATE_LIMITER.check(
            scope=scope,
            user_id=interaction.user.id,
            limit=limit,
            per_seconds=per_seconds,
        )
        if not rl.allowed:
            await interaction.response.send_message(
                f"⏳ Please wait {rl.retry_after_seconds:.0f}s before using this command again.",
                ephemeral=True,
            )
            return True
        return False

    # --- /random ---

    @app_commands.command(name="random", description="Randomly assign LoL roles to players in your voice channel")
    async def random_roles(self, interaction: discord.Interaction):
        if await self._rate_limited(interaction, "random", limit=3, per_seconds=30):
            return

        voice = getattr(interaction.user, "voice", None)
        channel = voice.channel if voice else None
        if channel is None:
            await interaction.response.send_message(
                embed=create_error_embed("Not in voice", "You need to be in a voice channel to use this command."),
                ephemeral=True,
            )
            return

        players = [m.id for m in channel.members if not m.bot]
        if not players or len(players) > MAX_PLAYERS:
            await interaction.response.send_message(
                embed=create_error_embed(
                    "Wrong player count",
                    f"Found {len(players)} players in {channel.name}. Roles need 1 to {MAX_PLAYERS} players.",
                ),
                ephemeral=True,
            )
            return

        roll = assign_lanes(players)
        await interaction.response.send_message(embed=create_lane_roll_embed(roll, channel.name))
        logger.info(f"Assigned lanes to {len(players)} players in {channel.name} ({channel.id})")

    # --- /schedule ---

    @schedule.command(name="create", description="Create a game lobby")
    @app_commands.describe(
        mode="Game mode",
        time="When to play, e.g. 21:00 or 'tối nay'",
        description="Optional note for the party",
    )
    @app_commands.choices(mode=MODE_CHOICES)
    async def schedule_create(
        self,
        interaction: discord.Interaction,
        mode: app_commands.Choice[str],
        time: str,
        description: str | None = None,
    ):
        if await self._rate_limited(interaction, "schedule_create", limit=2, per_seconds=60):
            return
        if not await safe_defer(interaction):
            return

        result = await asyncio.to_thread(
            self.schedule_service.create, interaction.user.id, mode.value, time, description or ""
        )
        if not result:
            await interaction.followup.send(embed=create_error_embed("Không thể tạo lịch", result.error), ephemeral=True)
            return

        schedule = result.value
        message = await interaction.followup.send(
            content=f"📅 <@{interaction.user.id}> đang tìm đồng đội!",
            embed=create_schedule_embed(schedule),
            view=self.view,
            wait=True,
        )
        await asyncio.to_thread(
            self.schedule_service.attach_message, schedule.schedule_id, message.channel.id, message.id
        )

    @schedule.command(name="list", description="Show open game lobbies")
    async def schedule_list(self, interaction: discord.Interaction):
        if not await safe_defer(interaction):
            return
        schedules = await asyncio.to_thread(self.schedule_service.list_open)
        if not schedules:
            await interaction.followup.send(
                embed=create_error_embed(
                    "Không có lịch",
                    "Hiện không có lịch nào đang mở.\nDùng `/schedule create` để tạo lịch mới!",
                )
            )
            return
        await interaction.followup.send(embed=create_schedule_list_embed(schedules))

    @schedule.command(name="my", description="Show lobbies you created or joined")
    async def schedule_my(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return
        schedules = await asyncio.to_thread(self.schedule_service.list_for_user, interaction.user.id)
        if not schedules:
            await interaction.followup.send(
                embed=create_error_embed(
                    "Không có lịch",
                    "Bạn chưa tạo hoặc tham gia lịch nào.\nDùng `/schedule create` để tạo lịch mới!",
                ),
                ephemeral=True,
            )
            return
        await interaction.followup.send(
            embed=create_schedule_list_embed(schedules, user_id=interaction.user.id), ephemeral=True
        )

    # --- Buttons ---

    async def handle_button(self, interaction: discord.Interaction, action: str) -> None:
        schedule_id = schedule_id_from_message(interaction.message)
        if schedule_id is None:
            await interaction.response.send_message("Could not find this game.", ephemeral=True)
            return

        handler = {
            "join": self.schedule_service.join,
            "leave": self.schedule_service.leave,
            "start": self.schedule_service.start,
            "cancel": self.schedule_service.cancel,
        }[action]
        result = await asyncio.to_thread(handler, schedule_id, interaction.user.id)
        if not result:
            await interaction.response.send_message(f"❌ {result.error}", ephemeral=True)
            return

        schedule: Schedule = result.value
        await interaction.response.edit_message(
            embed=create_schedule_embed(schedule),
            view=None if schedule.is_ended else self.view,
        )
        if action == "start":
            mentions = " ".join(f"<@{uid}>" for uid in schedule.participants)
            await interaction.followup.send(f"🎮 **{schedule.game_mode.name}** bắt đầu! {mentions}")

    # --- Expiry ---

    async def _close_card(self, schedule: Schedule) -> None:
        if schedule.channel_id is None or schedule.message_id is None:
            return
        channel = self.bot.get_channel(schedule.channel_id)
        if channel is None:
            return
        try:
            message = await channel.fetch_message(schedule.message_id)
            await message.edit(embed=create_schedule_embed(schedule), view=None)
        except discord.NotFound:
            logger.debug(f"Card for schedule {schedule.schedule_id} is gone")
        except discord.HTTPException as e:
            logger.warning(f"Could not close card for schedule {schedule.schedule_id}: {e}")

    @tasks.loop(minutes=SCHEDULE_EXPIRY_INTERVAL_MINUTES)
    async def schedule_expiry(self):
        try:
            expired = await asyncio.to_thread(self.schedule_service.expire_stale)
            for schedule in expired:
                await self._close_card(schedule)
        except Exception as e:
            logger.error(f"Schedule expiry failed: {e}", exc_info=True)

    @schedule_expiry.before_loop
    async def before_schedule_expiry(self):
        await self.bot.wait_until_ready()


async def setup(bot: commands.Bot):
    schedule_service = getattr(bot, "schedule_service", None)
    if schedule_service is None:
        raise RuntimeError("Schedule service not registered on bot.")

    cog = PartyCommands(bot, schedule_service)
    await bot.add_cog(cog)
    bot.add_view(cog.view)
