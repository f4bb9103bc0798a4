"""
Tests for BettingService: opening windows and validating bets.
"""

from unittest.mock import AsyncMock

import pytest

from domain.models.betting import WindowStatus
from services import error_codes
from services.betting_service import BettingService
from services.riot_api_client import RecentPerformance, RiotServerError
from tests.conftest import BASE_TIME

EVEN_FORM = RecentPerformance(win_rate=50.0, avg_kda=3.0, avg_deaths=7.0, wins=10, losses=10, games=20)


@pytest.fixture
def riot_client():
    client = AsyncMock()
    client.get_recent_performance.return_value = EVEN_FORM
    return client


@pytest.fixture
def betting_service(bet_repository, account_repository, riot_client):
    return BettingService(
        bet_repository,
        account_repository,
        riot_client,
        house_edge=1.0,
        clock=lambda: BASE_TIME,
    )


class TestOpenWindow:
    @pytest.mark.asyncio
    async def test_requires_linked_account(self, betting_service, riot_client):
        result = await betting_service.open_window(9999)
        assert not result.success
        assert result.error_code == error_codes.ACCOUNT_NOT_LINKED
        riot_client.get_recent_performance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_snapshots_odds_from_recent_form(self, betting_service, bet_repository, linked_accounts):
        result = await betting_service.open_window(1001)

        assert result.success
        opened = result.value
        assert opened.odds == {"win": 2.0, "loss": 2.5, "kda>3": 2.2, "deaths>7": 2.5, "time>30": 1.8}
        assert opened.announcement is None
        stored = bet_repository.get_window(opened.window.id)
        assert stored.odds == opened.odds
        assert stored.opened_at == BASE_TIME
        assert stored.status == WindowStatus.OPEN

    @pytest.mark.asyncio
    async def test_rejects_second_active_window(self, betting_service, linked_accounts):
        await betting_service.open_window(1001)
        result = await betting_service.open_window(1001)
        assert result.error_code == error_codes.WINDOW_ALREADY_ACTIVE

    @pytest.mark.asyncio
    async def test_riot_failure_opens_nothing(self, betting_service, riot_client, bet_repository, linked_accounts):
        riot_client.get_recent_performance.side_effect = RiotServerError("Riot API server error: 500", status=500)

        result = await betting_service.open_window(1001)

        assert result.error_code == error_codes.EXTERNAL_SERVICE_ERROR
        assert bet_repository.get_active_window(1001) is None

    @pytest.mark.asyncio
    async def test_announcement_from_commentary(self, bet_repository, account_repository, riot_client, linked_accounts):
        commentary = AsyncMock()
        commentary.generate_betting_announcement.return_value = "Vào cược đi!"
        service = BettingService(
            bet_repository, account_repository, riot_client, commentary, clock=lambda: BASE_TIME
        )

        result = await service.open_window(1001)

        assert result.value.announcement == "Vào cược đi!"
        args = commentary.generate_betting_announcement.await_args.args
        assert args[1] == "GOLD_II"
        assert args[3] == "10W-10L"


class TestPlaceBet:
    @pytest.fixture
    def open_on_1001(self, betting_service, bet_repository, linked_accounts):
        return bet_repository.create_window(
            1001, BASE_TIME, {"win": 2.0, "loss": 1.8, "kda>3": 2.2, "deaths>7": 2.0, "time>30": 1.7}
        )

    def test_invalid_kind(self, betting_service, open_on_1001):
        result = betting_service.place_bet(1002, "firstblood", 10)
        assert result.error_code == error_codes.INVALID_BET_KIND

    def test_kind_is_case_insensitive(self, betting_service, open_on_1001):
        result = betting_service.place_bet(1002, " KDA>3 ", 10)
        assert result.success
        assert result.value.bet_kind == "kda>3"

    @pytest.mark.parametrize("amount", [0, -5])
    def test_amount_below_minimum(self, betting_service, open_on_1001, amount):
        result = betting_service.place_bet(1002, "win", amount)
        assert result.error_code == error_codes.VALIDATION_ERROR

    def test_bettor_must_be_linked(self, betting_service, open_on_1001):
        result = betting_service.place_bet(4242, "win", 10)
        assert result.error_code == error_codes.ACCOUNT_NOT_LINKED

    def test_no_open_window(self, betting_service, linked_accounts):
        result = betting_service.place_bet(1002, "win", 10)
        assert result.error_code == error_codes.NO_OPEN_WINDOW

    def test_target_without_open_window(self, betting_service, open_on_1001):
        result = betting_service.place_bet(1002, "win", 10, target_discord_id=1003)
        assert result.error_code == error_codes.NO_OPEN_WINDOW

    def test_multiple_windows_need_a_target(self, betting_service, bet_repository, open_on_1001):
        bet_repository.create_window(1003, BASE_TIME, {"win": 1.5})

        result = betting_service.place_bet(1002, "win", 10)
        assert result.error_code == error_codes.MULTIPLE_OPEN_WINDOWS

        targeted = betting_service.place_bet(1002, "win", 10, target_discord_id=1003)
        assert targeted.success
        assert targeted.value.odds == 1.5

    def test_cannot_bet_on_self(self, betting_service, open_on_1001):
        result = betting_service.place_bet(1001, "loss", 10)
        assert result.error_code == error_codes.SELF_BET

    def test_insufficient_funds(self, betting_service, account_repository, open_on_1001):
        result = betting_service.place_bet(1002, "win", 5000)
        assert result.error_code == error_codes.INSUFFICIENT_FUNDS
        assert account_repository.get_balance(1002) == 1000

    def test_success_debits_at_window_odds(self, betting_service, account_repository, open_on_1001):
        result = betting_service.place_bet(1002, "loss", 250)

        assert result.success
        bet = result.value
        assert bet.odds == 1.8
        assert bet.target_discord_id == 1001
        assert account_repository.get_balance(1002) == 750

    def test_closed_window_rejects(self, betting_service, bet_repository, open_on_1001):
        bet_repository.close_due_windows(300, BASE_TIME + 300)
        result = betting_service.place_bet(1002, "win", 10, target_discord_id=1001)
        assert result.error_code == error_codes.NO_OPEN_WINDOW


class TestWindowClosingAndBalance:
    def test_close_due_windows_uses_configured_length(self, bet_repository, account_repository, riot_client, linked_accounts):
        service = BettingService(bet_repository, account_repository, riot_client, window_minutes=5)
        window = bet_repository.create_window(1001, BASE_TIME, {"win": 2.0})

        assert service.close_due_windows(now=BASE_TIME + 299) == []
        closed = service.close_due_windows(now=BASE_TIME + 300)
        assert [w.id for w in closed] == [window.id]

    def test_balance_summary(self, betting_service, bet_repository, linked_accounts):
        bet_repository.create_window(1001, BASE_TIME, {"win": 2.0, "loss": 1.8})
        betting_service.place_bet(1002, "win", 100)
        betting_service.place_bet(1002, "loss", 50)

        summary = betting_service.get_balance_summary(1002).value

        assert summary.balance == 850
        assert summary.total_bets == 2
        assert summary.pending == 2
        assert summary.wagered == 150
        assert summary.win_rate == 0

    def test_balance_summary_requires_link(self, betting_service):
        assert betting_service.get_balance_summary(4242).error_code == error_codes.ACCOUNT_NOT_LINKED
