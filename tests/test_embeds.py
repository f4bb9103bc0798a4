"""
Tests for embed builders.
"""

from domain.models.match import ParticipantStats
from services.betting_service import OpenedWindow
from services.leaderboard_service import LeaderboardRow, WeeklyLeaderboard
from services.match_analysis_service import MatchAnalysis
from services.match_ingestion_service import IngestionResult
from services.riot_api_client import RecentPerformance
from services.settlement_service import CancellationResult, SettlementResult
from domain.models.betting import BetWindow, WindowStatus
from domain.models.schedule import Schedule, ScheduleStatus
from utils.embeds import (
    COLOR_ERROR,
    COLOR_LOSS,
    COLOR_SUCCESS,
    COLOR_WIN,
    FIELD_VALUE_LIMIT,
    create_betting_window_embed,
    create_cancellation_embed,
    create_ingestion_summary_embed,
    create_leaderboard_embed,
    create_match_analysis_embed,
    create_schedule_embed,
    create_schedule_list_embed,
    create_settlement_embed,
    truncate_field,
)


def _player(discord_id, deaths=2, win=True):
    return ParticipantStats(
        discord_id=discord_id,
        puuid=f"puuid-{discord_id}",
        summoner_name=f"P{discord_id}",
        champion_name="Lux",
        kills=6,
        deaths=deaths,
        assists=9,
        win=win,
        damage_dealt=25000,
        kda=7.5,
        mvp_score=64.2,
    )


def _fields(embed):
    return {f.name: f.value for f in embed.fields}


class TestTruncateField:
    def test_short_text_untouched(self):
        assert truncate_field("abc") == "abc"

    def test_long_text_cut_with_ellipsis(self):
        text = truncate_field("x" * 2000)
        assert len(text) == FIELD_VALUE_LIMIT
        assert text.endswith("...")


class TestMatchAnalysisEmbed:
    def test_win_lists_members_mvp_and_feeder(self):
        mvp, feeder = _player(1), _player(2, deaths=11)
        analysis = MatchAnalysis(
            match_id="VN2_1",
            participants=[mvp, feeder],
            mvp=mvp,
            feeder=feeder,
            game_duration=1865,
            result="win",
            trash_talks=[{"discord_id": 2, "name": "P2", "text": "11 mạng luôn"}],
        )

        embed = create_match_analysis_embed(analysis)

        assert embed.color.value == COLOR_WIN
        assert "31:05" in embed.description
        fields = _fields(embed)
        assert "<@1>" in fields["👥 THÀNH VIÊN"]
        assert "11 mạng luôn" in fields["👥 THÀNH VIÊN"]
        assert "64.2/100" in fields["👑 MVP"]
        assert "11 deaths!" in fields["🤡 TẠ TẤN"]

    def test_loss_without_feeder(self):
        analysis = MatchAnalysis(
            match_id="VN2_2", participants=[_player(1, win=False)], mvp=None, feeder=None,
            game_duration=1200, result="loss",
        )
        embed = create_match_analysis_embed(analysis)
        assert embed.color.value == COLOR_LOSS
        assert "🤡 TẠ TẤN" not in _fields(embed)


class TestBettingEmbeds:
    def test_window_embed_lists_every_bet_kind(self):
        window = BetWindow(
            id=1, target_discord_id=1001, status=WindowStatus.OPEN, opened_at=0,
            odds={"win": 1.9, "loss": 2.4, "kda>3": 2.1, "deaths>7": 2.4, "time>30": 1.7},
        )
        opened = OpenedWindow(
            window=window,
            summoner_name="P1001",
            performance=RecentPerformance(win_rate=50.0, avg_kda=3.0, avg_deaths=7.0, wins=10, losses=10, games=20),
        )

        embed = create_betting_window_embed(opened, 5, rank="GOLD_II")

        fields = _fields(embed)
        assert "5 phút" in embed.description
        assert "GOLD II" in fields["📊 Stats gần đây"]
        assert fields["🎰 Tỷ lệ cược"].count("\n") == 4
        assert "x2.4" in fields["🎰 Tỷ lệ cược"]

    def test_settlement_embed(self):
        settlement = SettlementResult(
            match_id="VN2_1",
            window_id=1,
            target_discord_id=1001,
            winners=[{"discord_id": 1002, "bet_kind": "win", "payout": 200, "amount": 100}],
            losers=[{"discord_id": 1003, "bet_kind": "loss", "payout": 0, "amount": 50}],
        )
        fields = _fields(create_settlement_embed(settlement))
        assert "+200 coins" in fields["🎉 Người thắng cược"]
        assert "-50 coins" in fields["😢 Người thua cược"]

    def test_cancellation_embed(self):
        embed = create_cancellation_embed(
            CancellationResult(window_id=1, target_discord_id=1001, refunds={1002: 130}, penalty=50)
        )
        assert "**50**" in embed.description
        assert "+130 coins" in _fields(embed)["Hoàn tiền"]


class TestLeaderboardAndSummaryEmbeds:
    def test_leaderboard_skips_empty_categories(self):
        board = WeeklyLeaderboard(
            week="2024-W24",
            categories={
                "most_kills": [LeaderboardRow(discord_id=1, summoner_name="P1", value=42)],
                "win_rate": [],
            },
        )
        embed = create_leaderboard_embed(board)
        assert [f.name for f in embed.fields] == ['⚔️ Top "Sát Thủ"']
        assert "🥇 <@1> - 42 kills" in embed.fields[0].value

    def test_ingestion_summary_color_tracks_errors(self):
        clean = IngestionResult(checked=3, new_matches=1)
        assert create_ingestion_summary_embed(clean).color.value == COLOR_SUCCESS

        failed = IngestionResult(checked=1)
        failed.add_error("boom", match_id="VN2_9")
        embed = create_ingestion_summary_embed(failed)
        assert embed.color.value == COLOR_ERROR
        assert "VN2_9: boom" in _fields(embed)["Lỗi"]


def _lobby(status="open", participants=(2001,)):
    return Schedule(
        schedule_id="QW12ER",
        creator_id=2001,
        mode="flex3",
        max_players=3,
        scheduled_time="21:00",
        created_at=0,
        expires_at=3600,
        participants=list(participants),
        status=ScheduleStatus(status),
    )


def test_schedule_embed_shows_roster_and_empty_slots():
    embed = create_schedule_embed(_lobby(participants=(2001, 2002)))

    roster = embed.fields[0]
    assert roster.name == "👥 Người chơi (2/3)"
    assert roster.value.splitlines() == ["👑 <@2001>", "✅ <@2002>", "⬜ *Trống*"]
    assert embed.fields[1].value == "🟢 ĐANG MỞ"
    assert embed.footer.text == "ID: QW12ER"
    assert embed.color.value == COLOR_SUCCESS


def test_full_schedule_embed():
    embed = create_schedule_embed(_lobby(status="full", participants=(2001, 2002, 2003)))
    assert embed.fields[1].value == "🔴 ĐẦY"
    assert embed.color.value == COLOR_ERROR


def test_my_schedules_tag_role():
    mine = _lobby()
    joined = _lobby(participants=(2001, 2005))
    joined.creator_id = 2009

    embed = create_schedule_list_embed([mine, joined], user_id=2001)

    assert embed.fields[0].name.endswith("(Người tạo)")
    assert embed.fields[1].name.endswith("(Tham gia)")
