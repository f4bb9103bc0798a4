"""
Settlement correlator: binds processed matches to closed bet windows and pays out.

A window is bound to a match only when the game started between the moment
the window opened and MAX_GAME_START_WINDOW_MINUTES later. Windows that never
find a match are cancelled after MAX_MATCH_WAIT_MINUTES with stakes refunded
and a no-show penalty charged to the target.
"""

import logging
import time
from dataclasses import dataclass, field

from domain.models.match import MatchOutcome, MatchRecord
from domain.services import scoring_service
from repositories.interfaces import IBetRepository

logger = logging.getLogger("rift_bot.services.settlement")


@dataclass
class SettlementResult:
    match_id: str
    window_id: int
    target_discord_id: int
    winners: list[dict] = field(default_factory=list)
    losers: list[dict] = field(default_factory=list)

    @property
    def total_paid(self) -> int:
        return sum(w["payout"] for w in self.winners)


@dataclass
class CancellationResult:
    window_id: int
    target_discord_id: int
    refunds: dict[int, int] = field(default_factory=dict)
    penalty: int = 0


class SettlementService:
    def __init__(
        self,
        bet_repo: IBetRepository,
        max_game_start_minutes: int = 40,
        max_match_wait_minutes: int = 90,
        cancellation_penalty: int = 50,
        clock=time.time,
    ):
        self.bet_repo = bet_repo
        self.max_game_start_minutes = max_game_start_minutes
        self.max_match_wait_minutes = max_match_wait_minutes
        self.cancellation_penalty = cancellation_penalty
        self._clock = clock

    def settle_match(self, record: MatchRecord) -> list[SettlementResult]:
        """
        Settle every closed window that this match resolves.

        Each linked participant's most recent unresolved closed window is
        considered; bets are evaluated against that participant's own stats.
        Solo games and records without a game start are ignored.
        """
        if not record.is_terminal or record.solo_game:
            return []
        if record.game_start is None:
            logger.warning(f"Match {record.match_id} has no game start; skipping settlement")
            return []

        settlements = []
        for participant in record.participants:
            window = self.bet_repo.get_latest_unresolved_closed_window(participant.discord_id)
            if window is None:
                continue

            elapsed_minutes = (record.game_start - window.opened_at) / 60
            if elapsed_minutes < 0:
                logger.info(
                    f"Match {record.match_id} started {abs(elapsed_minutes):.1f}m before window "
                    f"{window.id} opened; leaving window unresolved"
                )
                continue
            if elapsed_minutes > self.max_game_start_minutes:
                logger.info(
                    f"Match {record.match_id} started {elapsed_minutes:.1f}m after window "
                    f"{window.id} opened (limit {self.max_game_start_minutes}m); leaving window unresolved"
                )
                continue

            outcome = MatchOutcome(
                win=participant.win,
                kda=scoring_service.kda(participant.kills, participant.deaths, participant.assists),
                deaths=participant.deaths,
                game_duration=record.game_duration,
            )
            bets = self.bet_repo.get_pending_bets_for_window(window)
            results = {bet.id: scoring_service.evaluate_bet(bet.bet_kind, outcome) for bet in bets}
            payouts = {
                bet.id: scoring_service.payout(bet.amount, bet.odds) for bet in bets if results[bet.id]
            }

            distributions = self.bet_repo.settle_window_atomic(
                window_id=window.id,
                match_id=record.match_id,
                results=results,
                payouts=payouts,
                now=self._clock(),
            )
            if distributions is None:
                logger.info(f"Window {window.id} was resolved concurrently; skipping")
                continue

            result = SettlementResult(
                match_id=record.match_id,
                window_id=window.id,
                target_discord_id=participant.discord_id,
                winners=distributions["winners"],
                losers=distributions["losers"],
            )
            logger.info(
                f"Settled window {window.id} on match {record.match_id}: "
                f"{len(result.winners)} won, {len(result.losers)} lost, {result.total_paid} paid"
            )
            settlements.append(result)
        return settlements

    def cancel_expired_windows(self, now: float | None = None) -> list[CancellationResult]:
        """Cancel closed windows that waited too long for a match."""
        now = self._clock() if now is None else now
        cutoff = now - self.max_match_wait_minutes * 60
        cancelled = []
        for window in self.bet_repo.get_expired_windows(cutoff):
            outcome = self.bet_repo.cancel_window_atomic(
                window_id=window.id, penalty=self.cancellation_penalty, now=now
            )
            if outcome is None:
                continue
            logger.info(
                f"Cancelled window {window.id} for {window.target_discord_id}: "
                f"{len(outcome['refunds'])} refunds, penalty {outcome['penalty']}"
            )
            cancelled.append(
                CancellationResult(
                    window_id=window.id,
                    target_discord_id=outcome["target_discord_id"],
                    refunds=outcome["refunds"],
                    penalty=outcome["penalty"],
                )
            )
        return cancelled
