"""
Shared formatting helpers and display constants.
"""

from domain.models.betting import BetKind

COIN_EMOTE = "💰"

BET_KIND_LABELS = {
    BetKind.WIN.value: "🟢 THẮNG",
    BetKind.LOSS.value: "🔴 THUA",
    BetKind.KDA_OVER_3.value: "⚡ KDA > 3.0",
    BetKind.DEATHS_OVER_7.value: "💀 Chết > 7 lần",
    BetKind.TIME_OVER_30.value: "⏱️ Game > 30 phút",
}

LEADERBOARD_TITLES = {
    "highest_rank": '🏆 Top "Thần Đồng"',
    "most_deaths": '💀 Top "Máy Đếm Số"',
    "most_kills": '⚔️ Top "Sát Thủ"',
    "most_games": '🚜 Top "Cày Cuốc"',
    "win_rate": "📈 Top Win Rate",
    "richest": "💰 Top Giàu",
}

MEDALS = ["🥇", "🥈", "🥉"]


def format_kda(kills: int, deaths: int, assists: int) -> str:
    return f"{kills}/{deaths}/{assists}"


def format_game_duration(seconds: int) -> str:
    """mm:ss, e.g. 1865 -> '31:05'."""
    minutes, secs = divmod(int(seconds or 0), 60)
    return f"{minutes}:{secs:02d}"


def format_number(value: int) -> str:
    return f"{int(value):,}"


def format_rank(label: str | None) -> str:
    """DIAMOND_II -> 'DIAMOND II'; None -> 'Unranked'."""
    if not label:
        return "Unranked"
    return label.replace("_", " ")


def format_bet_kind(kind: str) -> str:
    return BET_KIND_LABELS.get(kind, kind)


def medal(index: int) -> str:
    return MEDALS[index] if index < len(MEDALS) else f"{index + 1}."


def percentage(part: int, whole: int) -> int:
    if not whole:
        return 0
    return int(part / whole * 100 + 0.5)
