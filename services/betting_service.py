"""
Betting service: opening windows, placing bets and closing windows on time.

Settlement and cancellation live in SettlementService.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from domain.models.betting import Bet, BetKind, BetWindow, WindowStatus
from domain.services import scoring_service
from repositories.bet_repository import BetPlacementError, WindowConflictError
from repositories.interfaces import IAccountRepository, IBetRepository
from services import error_codes
from services.commentary_service import CommentaryService
from services.result import Result
from services.riot_api_client import RecentPerformance, RiotApiClient, RiotApiError

logger = logging.getLogger("rift_bot.services.betting")


@dataclass
class OpenedWindow:
    window: BetWindow
    summoner_name: str
    performance: RecentPerformance
    announcement: str | None = None

    @property
    def odds(self) -> dict[str, float]:
        return self.window.odds


@dataclass
class BalanceSummary:
    balance: int
    total_bets: int
    won: int
    lost: int
    pending: int
    wagered: int
    paid_out: int

    @property
    def win_rate(self) -> int:
        """Percentage of all bets that won, half-up rounded."""
        if self.total_bets == 0:
            return 0
        return int(self.won / self.total_bets * 100 + 0.5)


class BettingService:
    def __init__(
        self,
        bet_repo: IBetRepository,
        account_repo: IAccountRepository,
        riot_client: RiotApiClient,
        commentary_service: CommentaryService | None = None,
        *,
        window_minutes: int = 5,
        house_edge: float = scoring_service.DEFAULT_HOUSE_EDGE,
        sample_games: int = 20,
        min_bet: int = 1,
        clock=time.time,
    ):
        self.bet_repo = bet_repo
        self.account_repo = account_repo
        self.riot_client = riot_client
        self.commentary_service = commentary_service
        self.window_minutes = window_minutes
        self.house_edge = house_edge
        self.sample_games = sample_games
        self.min_bet = min_bet
        self._clock = clock

    async def open_window(self, discord_id: int) -> Result[OpenedWindow]:
        """
        Open a betting window on the caller's next game.

        Odds are quoted once from recent form and frozen on the window.
        """
        account = await asyncio.to_thread(self.account_repo.get_by_id, discord_id)
        if account is None:
            return Result.fail("Account not linked. Use /link first!", code=error_codes.ACCOUNT_NOT_LINKED)

        active = await asyncio.to_thread(self.bet_repo.get_active_window, discord_id)
        if active is not None:
            return Result.fail(
                "You already have an active betting window!", code=error_codes.WINDOW_ALREADY_ACTIVE
            )

        try:
            performance = await self.riot_client.get_recent_performance(
                account.riot_puuid, games=self.sample_games
            )
        except RiotApiError as e:
            logger.error(f"Could not fetch recent form for {discord_id}: {e}")
            return Result.fail(
                "Could not fetch your recent games from Riot. Try again later.",
                code=error_codes.EXTERNAL_SERVICE_ERROR,
            )

        odds = scoring_service.betting_odds(
            performance.win_rate, performance.avg_kda, performance.avg_deaths, self.house_edge
        )
        try:
            window = await asyncio.to_thread(self.bet_repo.create_window, discord_id, self._clock(), odds)
        except WindowConflictError as e:
            return Result.fail(str(e), code=error_codes.WINDOW_ALREADY_ACTIVE)

        logger.info(f"Opened bet window {window.id} for {discord_id} with odds {odds}")
        opened = OpenedWindow(window=window, summoner_name=account.summoner_name, performance=performance)

        if self.commentary_service is not None:
            opened.announcement = await self.commentary_service.generate_betting_announcement(
                account.summoner_name,
                account.rank.label if account.rank else None,
                performance.win_rate,
                f"{performance.wins}W-{performance.losses}L",
                performance.avg_kda,
            )
        return Result.ok(opened)

    def close_due_windows(self, now: float | None = None) -> list[BetWindow]:
        now = self._clock() if now is None else now
        closed = self.bet_repo.close_due_windows(self.window_minutes * 60, now)
        for window in closed:
            logger.info(
                f"Closed bet window {window.id} for {window.target_discord_id}: "
                f"{window.total_bets} bets, {window.total_amount} coins"
            )
        return closed

    def place_bet(
        self, bettor_discord_id: int, bet_kind: str, amount: int, target_discord_id: int | None = None
    ) -> Result[Bet]:
        """
        Place a bet on an open window.

        With no target, the single open window is used; several open windows
        make the target mandatory.
        """
        kind = BetKind.parse(bet_kind or "")
        if kind is None:
            valid = ", ".join(k.value for k in BetKind)
            return Result.fail(f"Invalid bet type. Choose one of: {valid}", code=error_codes.INVALID_BET_KIND)
        if amount is None or amount < self.min_bet:
            return Result.fail(f"Minimum bet is {self.min_bet} coin(s).", code=error_codes.VALIDATION_ERROR)

        if self.account_repo.get_by_id(bettor_discord_id) is None:
            return Result.fail("Account not linked. Use /link first!", code=error_codes.ACCOUNT_NOT_LINKED)

        if target_discord_id is not None:
            window = self.bet_repo.get_active_window(target_discord_id)
            if window is None or window.status != WindowStatus.OPEN:
                return Result.fail(
                    "That player doesn't have an open betting window.", code=error_codes.NO_OPEN_WINDOW
                )
        else:
            open_windows = self.bet_repo.get_open_windows()
            if not open_windows:
                return Result.fail(
                    "There are no open betting windows right now.", code=error_codes.NO_OPEN_WINDOW
                )
            if len(open_windows) > 1:
                return Result.fail(
                    "There are multiple open betting windows. Please pick a player.",
                    code=error_codes.MULTIPLE_OPEN_WINDOWS,
                )
            window = open_windows[0]

        if window.target_discord_id == bettor_discord_id:
            return Result.fail("You cannot place bets on your own games!", code=error_codes.SELF_BET)

        try:
            bet = self.bet_repo.place_bet_atomic(
                window_id=window.id,
                bettor_discord_id=bettor_discord_id,
                bet_kind=kind.value,
                amount=amount,
                now=self._clock(),
            )
        except BetPlacementError as e:
            return Result.fail(str(e), code=e.code)

        logger.info(
            f"Bet {bet.id}: {bettor_discord_id} staked {amount} on {kind.value} "
            f"for {window.target_discord_id} at {bet.odds}"
        )
        return Result.ok(bet)

    def get_balance_summary(self, discord_id: int) -> Result[BalanceSummary]:
        account = self.account_repo.get_by_id(discord_id)
        if account is None:
            return Result.fail("Account not linked. Use /link first!", code=error_codes.ACCOUNT_NOT_LINKED)
        stats = self.bet_repo.get_bettor_summary(discord_id)
        return Result.ok(BalanceSummary(balance=account.balance, **stats))
