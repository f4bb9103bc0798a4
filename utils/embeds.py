"""
Reusable Discord embed builders.

Every builder takes a service result object and returns a discord.Embed;
no builder touches the database or the network.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord

from domain.models.betting import BetKind
from utils.formatting import (
    COIN_EMOTE,
    LEADERBOARD_TITLES,
    format_bet_kind,
    format_game_duration,
    format_kda,
    format_number,
    format_rank,
    medal,
    percentage,
)

if TYPE_CHECKING:
    from domain.models.account import LinkedAccount
    from domain.models.schedule import Schedule
    from domain.services.lane_assignment import LaneRoll
    from services.betting_service import BalanceSummary, OpenedWindow
    from services.leaderboard_service import UserStats, WeeklyLeaderboard
    from services.match_analysis_service import MatchAnalysis
    from services.match_ingestion_service import IngestionResult
    from services.rank_sync_service import RankChange
    from services.settlement_service import CancellationResult, SettlementResult

COLOR_SUCCESS = 0x00FF00
COLOR_ERROR = 0xFF0000
COLOR_WARNING = 0xFFAA00
COLOR_INFO = 0x0099FF
COLOR_WIN = 0x00AA00
COLOR_LOSS = 0xAA0000

FIELD_VALUE_LIMIT = 1024


def truncate_field(text: str, max_len: int = FIELD_VALUE_LIMIT) -> str:
    """Truncate text to fit a Discord field value."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def create_error_embed(title: str, description: str) -> discord.Embed:
    return discord.Embed(title=f"❌ {title}", description=description, color=COLOR_ERROR)


def create_success_embed(title: str, description: str) -> discord.Embed:
    return discord.Embed(title=f"✅ {title}", description=description, color=COLOR_SUCCESS)


def create_info_embed(title: str, description: str) -> discord.Embed:
    return discord.Embed(title=f"ℹ️ {title}", description=description, color=COLOR_INFO)


def create_match_analysis_embed(analysis: MatchAnalysis) -> discord.Embed:
    """Post-game breakdown: every linked player, MVP, feeder and trash talk."""
    won = analysis.result == "win"
    embed = discord.Embed(
        title="🏆 TÒA ÁN TỐI CAO - PHÂN TÍCH TRẬN ĐẤU",
        description=(
            f"**Match ID**: {analysis.match_id}\n"
            f"**Kết quả**: {'✅ THẮNG' if won else '❌ THUA'}\n"
            f"**Thời gian**: {format_game_duration(analysis.game_duration)}"
        ),
        color=COLOR_WIN if won else COLOR_LOSS,
    )

    talk_by_player = {t["discord_id"]: t["text"] for t in analysis.trash_talks}
    lines = []
    for index, p in enumerate(analysis.participants, 1):
        lines.append(f"**{index}. <@{p.discord_id}>** - {p.champion_name}")
        lines.append(f"   KDA: {format_kda(p.kills, p.deaths, p.assists)} ({p.kda:.2f})")
        lines.append(f"   💥 Damage: {format_number(p.damage_dealt)}")
        if p.discord_id in talk_by_player:
            lines.append(f"   🤖 {talk_by_player[p.discord_id]}")
    embed.add_field(
        name="👥 THÀNH VIÊN", value=truncate_field("\n".join(lines) or "Không có dữ liệu"), inline=False
    )

    if analysis.mvp is not None:
        mvp = analysis.mvp
        embed.add_field(
            name="👑 MVP",
            value=(
                f"🎉 <@{mvp.discord_id}> ({mvp.champion_name})\n"
                f"KDA: {format_kda(mvp.kills, mvp.deaths, mvp.assists)}\n"
                f"MVP Score: {mvp.mvp_score}/100"
            ),
            inline=True,
        )
    if analysis.feeder is not None:
        feeder = analysis.feeder
        embed.add_field(
            name="🤡 TẠ TẤN",
            value=(
                f"💀 <@{feeder.discord_id}> ({feeder.champion_name})\n"
                f"KDA: {format_kda(feeder.kills, feeder.deaths, feeder.assists)}\n"
                f"{feeder.deaths} deaths!"
            ),
            inline=True,
        )
    return embed


def create_betting_window_embed(opened: OpenedWindow, window_minutes: int, rank: str | None = None) -> discord.Embed:
    perf = opened.performance
    embed = discord.Embed(
        title="🎲 CƯỢC MỞ RỒI! 🎲",
        description=(
            f"<@{opened.window.target_discord_id}> vừa mở cửa sổ cược!\n"
            f"⏰ Thời gian: **{window_minutes} phút**"
        ),
        color=COLOR_WARNING,
    )
    embed.add_field(
        name="📊 Stats gần đây",
        value=(
            f"- Win rate: **{perf.win_rate}%** ({perf.wins}W-{perf.losses}L)\n"
            f"- KDA trung bình: **{perf.avg_kda}**\n"
            f"- Rank: **{format_rank(rank)}**"
        ),
        inline=False,
    )
    odds_lines = [f"**{format_bet_kind(kind.value)}**: x{opened.odds.get(kind.value)}" for kind in BetKind]
    embed.add_field(name="🎰 Tỷ lệ cược", value="\n".join(odds_lines), inline=False)
    if opened.announcement:
        embed.add_field(name="📢 Lời nhận xét", value=truncate_field(opened.announcement), inline=False)
    embed.add_field(
        name="❓ Cách đặt cược",
        value="Dùng lệnh: `/bet [tùy chọn] [số tiền]`\nVí dụ: `/bet win 100`",
        inline=False,
    )
    return embed


def create_settlement_embed(settlement: SettlementResult) -> discord.Embed:
    total = len(settlement.winners) + len(settlement.losers)
    embed = discord.Embed(
        title="💰 KẾT QUẢ CƯỢC",
        description=(
            f"**Match ID**: {settlement.match_id}\n"
            f"**Người chơi**: <@{settlement.target_discord_id}>\n"
            f"**Tổng số cược**: {total}"
        ),
        color=COLOR_INFO,
    )
    if settlement.winners:
        text = "\n".join(
            f"✅ <@{w['discord_id']}> cược **{w['bet_kind']}** → +{w['payout']} coins"
            for w in settlement.winners
        )
        embed.add_field(name="🎉 Người thắng cược", value=truncate_field(text), inline=False)
    if settlement.losers:
        text = "\n".join(
            f"❌ <@{l['discord_id']}> cược **{l['bet_kind']}** → -{l['amount']} coins"
            for l in settlement.losers
        )
        embed.add_field(name="😢 Người thua cược", value=truncate_field(text), inline=False)
    return embed


def create_cancellation_embed(cancellation: CancellationResult) -> discord.Embed:
    embed = discord.Embed(
        title="🚫 CƯỢC BỊ HỦY",
        description=(
            f"<@{cancellation.target_discord_id}> không vào game kịp giờ.\n"
            f"Phạt **{cancellation.penalty}** coins. Tiền cược đã được hoàn lại."
        ),
        color=COLOR_WARNING,
    )
    if cancellation.refunds:
        text = "\n".join(f"↩️ <@{uid}> +{amount} coins" for uid, amount in cancellation.refunds.items())
        embed.add_field(name="Hoàn tiền", value=truncate_field(text), inline=False)
    return embed


def _leaderboard_value(category: str, row) -> str:
    if category == "highest_rank":
        return format_rank(row.value)
    if category == "most_deaths":
        return f"{row.value} deaths"
    if category == "most_kills":
        return f"{row.value} kills"
    if category == "most_games":
        return f"{row.value} games"
    if category == "win_rate":
        return f"{row.value}% ({row.wins}W-{row.losses}L)"
    return f"{row.value} coins"


def create_leaderboard_embed(board: WeeklyLeaderboard, per_category: int = 5) -> discord.Embed:
    embed = discord.Embed(title="📊 BẢNG XẾP HẠNG", description=f"**Tuần**: {board.week}", color=COLOR_INFO)
    for category, rows in board.categories.items():
        if not rows:
            continue
        text = "\n".join(
            f"{medal(i)} <@{row.discord_id}> - {_leaderboard_value(category, row)}"
            for i, row in enumerate(rows[:per_category])
        )
        embed.add_field(name=LEADERBOARD_TITLES.get(category, category), value=truncate_field(text), inline=True)
    return embed


def create_account_linked_embed(account: LinkedAccount) -> discord.Embed:
    embed = discord.Embed(
        title="✅ Liên kết thành công!",
        description=f"<@{account.discord_id}> đã liên kết tài khoản Riot!",
        color=COLOR_SUCCESS,
    )
    embed.add_field(name="Summoner Name", value=account.summoner_name, inline=True)
    embed.add_field(name="Rank", value=format_rank(account.rank.label if account.rank else None), inline=True)
    embed.add_field(name="Coins", value=f"{account.balance} {COIN_EMOTE}", inline=True)
    return embed


def create_balance_embed(discord_id: int, summary: BalanceSummary) -> discord.Embed:
    embed = discord.Embed(title="💰 Số dư", description=f"<@{discord_id}>", color=COLOR_INFO)
    embed.add_field(name="Coins", value=f"{summary.balance} {COIN_EMOTE}", inline=True)
    embed.add_field(
        name="Cược",
        value=f"{summary.total_bets} ({summary.won}W-{summary.lost}L, {summary.pending} pending)",
        inline=True,
    )
    embed.add_field(name="Tỷ lệ thắng", value=f"{summary.win_rate}%", inline=True)
    embed.add_field(name="Đã cược", value=f"{summary.wagered}", inline=True)
    embed.add_field(name="Đã nhận", value=f"{summary.paid_out}", inline=True)
    return embed


def create_stats_embed(stats: UserStats) -> discord.Embed:
    embed = discord.Embed(
        title=f"📊 Stats - {stats.summoner_name}", description=f"<@{stats.discord_id}>", color=COLOR_INFO
    )
    embed.add_field(name="Rank", value=format_rank(stats.rank), inline=True)
    embed.add_field(name="Coins", value=f"{stats.balance} {COIN_EMOTE}", inline=True)
    embed.add_field(name="​", value="​", inline=True)
    embed.add_field(name="Games", value=f"{stats.total_games} ({stats.wins}W-{stats.losses}L)", inline=True)
    embed.add_field(name="Win Rate", value=f"{percentage(stats.wins, stats.total_games)}%", inline=True)
    embed.add_field(name="KDA", value=f"{stats.avg_kda}", inline=True)
    weekly = stats.weekly
    embed.add_field(
        name=f"Tuần {weekly.week}",
        value=(
            f"{weekly.games_played} games ({weekly.games_won}W)\n"
            f"{format_kda(weekly.kills, weekly.deaths, weekly.assists)}"
        ),
        inline=False,
    )
    return embed


def create_ingestion_summary_embed(result: IngestionResult) -> discord.Embed:
    embed = discord.Embed(
        title="🔄 Kiểm tra trận đấu",
        description=(
            f"Đã kiểm tra: **{result.checked}**\n"
            f"Trận mới: **{result.new_matches}**\n"
            f"Đã xử lý trước đó: **{result.skipped_already_processed}**\n"
            f"Không có thành viên: **{result.skipped_not_enough_players}**"
        ),
        color=COLOR_ERROR if result.errors else COLOR_SUCCESS,
    )
    if result.errors:
        text = "\n".join(
            f"• {e['match_id'] or '-'}: {e['error']}" for e in result.errors[:10]
        )
        embed.add_field(name="Lỗi", value=truncate_field(text), inline=False)
    return embed


def create_rank_changes_embed(changes: list[RankChange]) -> discord.Embed:
    text = "\n".join(
        f"<@{c.discord_id}>: {format_rank(c.old_rank)} → **{format_rank(c.new_rank)}**" for c in changes
    )
    return discord.Embed(title="📈 Cập nhật Rank", description=text[:4096], color=COLOR_INFO)


SCHEDULE_STATUS_TEXT = {
    "open": ("🟢", "ĐANG MỞ"),
    "full": ("🔴", "ĐẦY"),
    "started": ("🎮", "ĐÃ BẮT ĐẦU"),
    "cancelled": ("❌", "ĐÃ HỦY"),
    "expired": ("⌛", "HẾT HẠN"),
}


def create_schedule_embed(schedule: Schedule) -> discord.Embed:
    """
    Lobby card. The footer carries the schedule id; the persistent buttons
    read it back from there.
    """
    mode = schedule.game_mode
    status = schedule.status.value
    emoji, label = SCHEDULE_STATUS_TEXT.get(status, ("🟢", status))

    lines = [f"{'👑' if i == 0 else '✅'} <@{uid}>" for i, uid in enumerate(schedule.participants)]
    lines.extend(["⬜ *Trống*"] * schedule.open_slots)

    if status == "open":
        color = COLOR_SUCCESS
    elif status in ("full", "cancelled"):
        color = COLOR_ERROR
    else:
        color = COLOR_INFO
    embed = discord.Embed(
        title=f"{mode.emoji} {mode.name} - {schedule.scheduled_time}",
        description=schedule.description or "*Không có mô tả*",
        color=color,
    )
    embed.add_field(
        name=f"👥 Người chơi ({len(schedule.participants)}/{schedule.max_players})",
        value=truncate_field("\n".join(lines) or "*Chưa có ai tham gia*"),
        inline=False,
    )
    embed.add_field(name="📊 Trạng thái", value=f"{emoji} {label}", inline=True)
    embed.add_field(name="👤 Người tạo", value=f"<@{schedule.creator_id}>", inline=True)
    embed.set_footer(text=f"ID: {schedule.schedule_id}")
    return embed


def create_schedule_list_embed(schedules: list[Schedule], user_id: int | None = None) -> discord.Embed:
    """Open lobbies, or with user_id the caller's own lobbies tagged by role."""
    embed = discord.Embed(
        title="📅 Lịch của bạn" if user_id is not None else "📅 Danh sách lịch đang mở",
        color=COLOR_INFO,
    )
    for schedule in schedules[:25]:
        mode = schedule.game_mode
        count = f"{len(schedule.participants)}/{schedule.max_players} người"
        name = f"{mode.emoji} {mode.name} - {schedule.scheduled_time}"
        if user_id is not None:
            name += " (Người tạo)" if schedule.creator_id == user_id else " (Tham gia)"
            value = f"{count}\nID: `{schedule.schedule_id}`"
        else:
            dot = "🔴" if schedule.is_full else "🟢"
            value = f"{dot} {count} | Tạo bởi <@{schedule.creator_id}>\nID: `{schedule.schedule_id}`"
        embed.add_field(name=name[:256], value=value, inline=False)
    return embed


def create_lane_roll_embed(roll: LaneRoll, channel_name: str) -> discord.Embed:
    lines = [f"{a.emoji} **{a.lane}**: <@{a.player_id}>" for a in roll.assignments]
    if roll.unassigned:
        lines.append("\n**Unassigned roles:**")
        lines.extend(f"{emoji} {lane}" for lane, emoji in roll.unassigned)
    embed = discord.Embed(title="Random Role Assignment", description="\n".join(lines), color=COLOR_SUCCESS)
    embed.set_footer(text=f"Voice Channel: {channel_name}")
    return embed
