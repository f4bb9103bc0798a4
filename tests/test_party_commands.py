"""
Tests for the /random and /schedule cog.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from commands.party import PartyCommands, schedule_id_from_message
from domain.models.schedule import Schedule, ScheduleStatus
from services import error_codes
from services.result import Result
from tests.conftest import BASE_TIME
from utils.embeds import create_schedule_embed


def _schedule(status=ScheduleStatus.OPEN, participants=(2001,)):
    return Schedule(
        schedule_id="AB12CD",
        creator_id=2001,
        mode="duo",
        max_players=2,
        scheduled_time="21:00",
        created_at=BASE_TIME,
        expires_at=BASE_TIME + 3600,
        participants=list(participants),
        status=status,
        channel_id=10,
        message_id=20,
    )


def _interaction(user_id=2002, message=None):
    interaction = MagicMock()
    interaction.user.id = user_id
    interaction.message = message
    interaction.response.send_message = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


def _card_message(schedule):
    message = MagicMock()
    message.embeds = [create_schedule_embed(schedule)]
    return message


def _make_cog():
    # Views need a running event loop, so cogs are built inside async tests
    service = MagicMock()
    with patch("discord.ext.tasks.Loop.start"):
        cog = PartyCommands(MagicMock(), service)
    cog._rate_limited = AsyncMock(return_value=False)
    return cog


def test_schedule_id_read_from_card_footer():
    assert schedule_id_from_message(_card_message(_schedule())) == "AB12CD"

    bare = MagicMock()
    bare.embeds = [discord.Embed(title="no footer")]
    assert schedule_id_from_message(bare) is None
    assert schedule_id_from_message(None) is None


class TestButtons:
    @pytest.mark.asyncio
    async def test_join_updates_card_and_keeps_buttons(self):
        cog = _make_cog()
        full = _schedule(ScheduleStatus.FULL, participants=(2001, 2002))
        cog.schedule_service.join.return_value = Result.ok(full)
        interaction = _interaction(message=_card_message(_schedule()))

        await cog.handle_button(interaction, "join")

        cog.schedule_service.join.assert_called_once_with("AB12CD", 2002)
        kwargs = interaction.response.edit_message.await_args.kwargs
        assert kwargs["view"] is cog.view
        assert "2/2" in kwargs["embed"].fields[0].name

    @pytest.mark.asyncio
    async def test_start_removes_buttons_and_pings_party(self):
        cog = _make_cog()
        started = _schedule(ScheduleStatus.STARTED, participants=(2001, 2002))
        cog.schedule_service.start.return_value = Result.ok(started)
        interaction = _interaction(user_id=2001, message=_card_message(_schedule()))

        await cog.handle_button(interaction, "start")

        assert interaction.response.edit_message.await_args.kwargs["view"] is None
        ping = interaction.followup.send.await_args.args[0]
        assert "<@2001>" in ping and "<@2002>" in ping

    @pytest.mark.asyncio
    async def test_rejected_action_answers_privately(self):
        cog = _make_cog()
        cog.schedule_service.leave.return_value = Result.fail(
            "The creator cannot leave. Cancel the game instead.", code=error_codes.CREATOR_CANNOT_LEAVE
        )
        interaction = _interaction(user_id=2001, message=_card_message(_schedule()))

        await cog.handle_button(interaction, "leave")

        interaction.response.edit_message.assert_not_awaited()
        assert interaction.response.send_message.await_args.kwargs["ephemeral"] is True

    @pytest.mark.asyncio
    async def test_card_without_id(self):
        cog = _make_cog()
        message = MagicMock()
        message.embeds = []
        interaction = _interaction(message=message)

        await cog.handle_button(interaction, "join")

        cog.schedule_service.join.assert_not_called()
        interaction.response.send_message.assert_awaited_once()


class TestRandom:
    @staticmethod
    def _member(member_id, bot=False):
        member = MagicMock()
        member.id = member_id
        member.bot = bot
        return member

    @pytest.mark.asyncio
    async def test_requires_voice_channel(self):
        cog = _make_cog()
        interaction = _interaction()
        interaction.user.voice = None

        await cog.random_roles.callback(cog, interaction)

        kwargs = interaction.response.send_message.await_args.kwargs
        assert kwargs["ephemeral"] is True

    @pytest.mark.asyncio
    async def test_bots_are_not_assigned(self):
        cog = _make_cog()
        interaction = _interaction()
        channel = MagicMock()
        channel.name = "Rift"
        channel.members = [self._member(1), self._member(2), self._member(99, bot=True)]
        interaction.user.voice.channel = channel

        await cog.random_roles.callback(cog, interaction)

        embed = interaction.response.send_message.await_args.kwargs["embed"]
        assert "<@1>" in embed.description and "<@2>" in embed.description
        assert "<@99>" not in embed.description
        assert "Unassigned roles" in embed.description
        assert embed.footer.text == "Voice Channel: Rift"

    @pytest.mark.asyncio
    async def test_more_than_five_players_rejected(self):
        cog = _make_cog()
        interaction = _interaction()
        channel = MagicMock()
        channel.name = "Rift"
        channel.members = [self._member(i) for i in range(6)]
        interaction.user.voice.channel = channel

        await cog.random_roles.callback(cog, interaction)

        assert interaction.response.send_message.await_args.kwargs["ephemeral"] is True


@pytest.mark.asyncio
async def test_expiry_loop_closes_cards():
    cog = _make_cog()
    expired = _schedule(ScheduleStatus.EXPIRED)
    cog.schedule_service.expire_stale.return_value = [expired]
    message = MagicMock()
    message.edit = AsyncMock()
    channel = MagicMock()
    channel.fetch_message = AsyncMock(return_value=message)
    cog.bot.get_channel.return_value = channel

    await cog.schedule_expiry.coro(cog)

    channel.fetch_message.assert_awaited_once_with(20)
    assert message.edit.await_args.kwargs["view"] is None
