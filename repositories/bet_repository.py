"""
Repository for bet windows, bets and settlement notifications.
"""

import json
import logging
import sqlite3

from domain.models.betting import Bet, BetResult, BetWindow, WindowStatus
from repositories.base_repository import BaseRepository
from repositories.interfaces import IBetRepository

logger = logging.getLogger("rift_bot.repositories.bet")


class BetPlacementError(ValueError):
    """A bet was rejected inside the placement transaction."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


class WindowConflictError(ValueError):
    """The target already has an active window."""


class BetRepository(BaseRepository, IBetRepository):
    # --- Windows ---

    def create_window(self, target_discord_id: int, opened_at: float, odds: dict[str, float]) -> BetWindow:
        """
        Open a window for a target.

        Raises:
            WindowConflictError: If the target already has an open or unresolved window
        """
        with self.connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    """
                    INSERT INTO bet_windows (target_discord_id, status, opened_at, odds)
                    VALUES (?, 'open', ?, ?)
                    """,
                    (target_discord_id, opened_at, json.dumps(odds)),
                )
            except sqlite3.IntegrityError as exc:
                raise WindowConflictError("An active bet window already exists for this player.") from exc
            window_id = cursor.lastrowid
        return BetWindow(
            id=window_id,
            target_discord_id=target_discord_id,
            status=WindowStatus.OPEN,
            opened_at=opened_at,
            odds=dict(odds),
        )

    def get_window(self, window_id: int) -> BetWindow | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM bet_windows WHERE id = ?", (window_id,))
            row = cursor.fetchone()
            return self._row_to_window(row) if row else None

    def get_active_window(self, target_discord_id: int) -> BetWindow | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM bet_windows
                WHERE target_discord_id = ? AND status IN ('open', 'closed')
                ORDER BY opened_at DESC LIMIT 1
                """,
                (target_discord_id,),
            )
            row = cursor.fetchone()
            return self._row_to_window(row) if row else None

    def get_open_windows(self) -> list[BetWindow]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM bet_windows WHERE status = 'open' ORDER BY opened_at")
            return [self._row_to_window(row) for row in cursor.fetchall()]

    def close_due_windows(self, duration_seconds: float, now: float) -> list[BetWindow]:
        """Move every open window whose countdown has elapsed to closed."""
        cutoff = now - duration_seconds
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM bet_windows WHERE status = 'open' AND opened_at <= ?",
                (cutoff,),
            )
            rows = cursor.fetchall()
            closed = []
            for row in rows:
                closed_at = row["opened_at"] + duration_seconds
                cursor.execute(
                    "UPDATE bet_windows SET status = 'closed', closed_at = ? WHERE id = ? AND status = 'open'",
                    (closed_at, row["id"]),
                )
                if cursor.rowcount == 1:
                    window = self._row_to_window(row)
                    window.status = WindowStatus.CLOSED
                    window.closed_at = closed_at
                    closed.append(window)
            return closed

    def get_latest_unresolved_closed_window(self, target_discord_id: int) -> BetWindow | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM bet_windows
                WHERE target_discord_id = ? AND status = 'closed' AND match_id IS NULL
                ORDER BY opened_at DESC LIMIT 1
                """,
                (target_discord_id,),
            )
            row = cursor.fetchone()
            return self._row_to_window(row) if row else None

    def get_expired_windows(self, cutoff: float) -> list[BetWindow]:
        """Closed, unresolved windows with closed_at at or before cutoff."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM bet_windows
                WHERE status = 'closed' AND match_id IS NULL AND closed_at <= ?
                ORDER BY closed_at
                """,
                (cutoff,),
            )
            return [self._row_to_window(row) for row in cursor.fetchall()]

    # --- Bets ---

    def place_bet_atomic(
        self, *, window_id: int, bettor_discord_id: int, bet_kind: str, amount: int, now: float
    ) -> Bet:
        """
        Atomically place a bet:
        - ensure the window is still open
        - ensure the bettor has sufficient balance
        - debit the stake
        - insert the bet at the window's quoted odds
        - bump window totals

        Raises:
            BetPlacementError: With an error code; nothing is written
        """
        if amount <= 0:
            raise BetPlacementError("Bet amount must be positive.", "validation_error")

        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM bet_windows WHERE id = ?", (window_id,))
            window_row = cursor.fetchone()
            if not window_row or window_row["status"] != WindowStatus.OPEN.value:
                raise BetPlacementError("Betting is closed for this player.", "betting_closed")

            odds = json.loads(window_row["odds"] or "{}").get(bet_kind)
            if odds is None:
                raise BetPlacementError(f"No odds quoted for bet type {bet_kind}.", "invalid_bet_kind")

            cursor.execute(
                """
                SELECT COALESCE(balance, 0) AS balance FROM linked_accounts
                WHERE discord_id = ? AND unlinked_at IS NULL
                """,
                (bettor_discord_id,),
            )
            row = cursor.fetchone()
            if not row:
                raise BetPlacementError("Link your Riot account before betting.", "account_not_linked")
            if int(row["balance"]) < amount:
                raise BetPlacementError(
                    f"Insufficient balance: you have {int(row['balance'])} coins.",
                    "insufficient_funds",
                )

            cursor.execute(
                "UPDATE linked_accounts SET balance = balance - ? WHERE discord_id = ?",
                (amount, bettor_discord_id),
            )
            cursor.execute(
                """
                INSERT INTO bets (
                    window_id, bettor_discord_id, target_discord_id, bet_kind, amount,
                    odds, opened_at, result, placed_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, 'pending', ?)
                """,
                (
                    window_id,
                    bettor_discord_id,
                    window_row["target_discord_id"],
                    bet_kind,
                    amount,
                    odds,
                    window_row["opened_at"],
                    now,
                ),
            )
            bet_id = cursor.lastrowid
            cursor.execute(
                """
                UPDATE bet_windows
                SET total_bets = total_bets + 1, total_amount = total_amount + ?
                WHERE id = ?
                """,
                (amount, window_id),
            )

        return Bet(
            id=bet_id,
            bettor_discord_id=bettor_discord_id,
            target_discord_id=window_row["target_discord_id"],
            window_id=window_id,
            bet_kind=bet_kind,
            amount=amount,
            odds=odds,
            opened_at=window_row["opened_at"],
            placed_at=now,
        )

    def get_pending_bets_for_window(self, window: BetWindow) -> list[Bet]:
        """Pending bets correlated to a window by (opened_at, target)."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM bets
                WHERE target_discord_id = ? AND opened_at = ? AND result = 'pending'
                ORDER BY id
                """,
                (window.target_discord_id, window.opened_at),
            )
            return [self._row_to_bet(row) for row in cursor.fetchall()]

    def get_bets_for_window(self, window_id: int) -> list[Bet]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM bets WHERE window_id = ? ORDER BY id", (window_id,))
            return [self._row_to_bet(row) for row in cursor.fetchall()]

    def settle_window_atomic(
        self, *, window_id: int, match_id: str, results: dict[int, bool], payouts: dict[int, int], now: float
    ) -> dict[str, list[dict]] | None:
        """
        Atomically bind a window to a match and settle its bets:
        - transition closed -> matched (only if still closed and unresolved)
        - mark each pending bet won/lost and credit winners
        - record one settlement notification for the window

        Args:
            results: bet id -> won
            payouts: bet id -> payout for won bets

        Returns:
            {"winners": [...], "losers": [...]}, or None if the window was already resolved
        """
        distributions: dict[str, list[dict]] = {"winners": [], "losers": []}

        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE bet_windows SET status = 'matched', match_id = ?
                WHERE id = ? AND status = 'closed' AND match_id IS NULL
                """,
                (match_id, window_id),
            )
            if cursor.rowcount != 1:
                return None

            cursor.execute("SELECT * FROM bet_windows WHERE id = ?", (window_id,))
            window_row = cursor.fetchone()
            cursor.execute(
                """
                SELECT * FROM bets
                WHERE target_discord_id = ? AND opened_at = ? AND result = 'pending'
                ORDER BY id
                """,
                (window_row["target_discord_id"], window_row["opened_at"]),
            )
            rows = cursor.fetchall()

            balance_deltas: dict[int, int] = {}
            bet_updates = []
            for row in rows:
                won = results.get(row["id"], False)
                paid = payouts.get(row["id"], 0) if won else 0
                entry = {
                    "bet_id": row["id"],
                    "discord_id": row["bettor_discord_id"],
                    "bet_kind": row["bet_kind"],
                    "amount": row["amount"],
                    "odds": row["odds"],
                    "payout": paid,
                }
                if won:
                    distributions["winners"].append(entry)
                    balance_deltas[row["bettor_discord_id"]] = (
                        balance_deltas.get(row["bettor_discord_id"], 0) + paid
                    )
                else:
                    distributions["losers"].append(entry)
                bet_updates.append(
                    (
                        BetResult.WON.value if won else BetResult.LOST.value,
                        paid,
                        match_id,
                        now,
                        row["id"],
                    )
                )

            if bet_updates:
                cursor.executemany(
                    """
                    UPDATE bets SET result = ?, payout = ?, match_id = ?, settled_at = ?
                    WHERE id = ? AND result = 'pending'
                    """,
                    bet_updates,
                )
            if balance_deltas:
                cursor.executemany(
                    "UPDATE linked_accounts SET balance = COALESCE(balance, 0) + ? WHERE discord_id = ?",
                    [(delta, discord_id) for discord_id, delta in balance_deltas.items()],
                )

            cursor.execute(
                """
                INSERT INTO settlement_notifications (
                    window_id, match_id, target_discord_id, winners, losers, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    window_id,
                    match_id,
                    window_row["target_discord_id"],
                    json.dumps(distributions["winners"]),
                    json.dumps(distributions["losers"]),
                    now,
                ),
            )

        return distributions

    def cancel_window_atomic(self, *, window_id: int, penalty: int, now: float) -> dict | None:
        """
        Atomically cancel an unresolved closed window:
        - refund every pending bet's stake
        - mark those bets cancelled
        - charge the target the no-show penalty
        - transition closed -> cancelled

        Returns:
            {"target_discord_id", "refunds": {discord_id: amount}, "penalty"}, or
            None if the window was no longer closed and unresolved
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE bet_windows SET status = 'cancelled'
                WHERE id = ? AND status = 'closed' AND match_id IS NULL
                """,
                (window_id,),
            )
            if cursor.rowcount != 1:
                return None

            cursor.execute("SELECT * FROM bet_windows WHERE id = ?", (window_id,))
            window_row = cursor.fetchone()
            cursor.execute(
                """
                SELECT id, bettor_discord_id, amount FROM bets
                WHERE target_discord_id = ? AND opened_at = ? AND result = 'pending'
                """,
                (window_row["target_discord_id"], window_row["opened_at"]),
            )
            rows = cursor.fetchall()

            refunds: dict[int, int] = {}
            for row in rows:
                refunds[row["bettor_discord_id"]] = refunds.get(row["bettor_discord_id"], 0) + int(row["amount"])

            if refunds:
                cursor.executemany(
                    "UPDATE linked_accounts SET balance = COALESCE(balance, 0) + ? WHERE discord_id = ?",
                    [(amount, discord_id) for discord_id, amount in refunds.items()],
                )
                cursor.executemany(
                    "UPDATE bets SET result = 'cancelled', payout = 0, settled_at = ? WHERE id = ?",
                    [(now, row["id"]) for row in rows],
                )

            cursor.execute(
                "UPDATE linked_accounts SET balance = COALESCE(balance, 0) - ? WHERE discord_id = ?",
                (penalty, window_row["target_discord_id"]),
            )

        return {
            "target_discord_id": window_row["target_discord_id"],
            "refunds": refunds,
            "penalty": penalty,
        }

    # --- Notifications ---

    def get_undelivered_notifications(self) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM settlement_notifications WHERE delivered_at IS NULL ORDER BY id"
            )
            return [
                {
                    "id": row["id"],
                    "window_id": row["window_id"],
                    "match_id": row["match_id"],
                    "target_discord_id": row["target_discord_id"],
                    "winners": json.loads(row["winners"] or "[]"),
                    "losers": json.loads(row["losers"] or "[]"),
                    "created_at": row["created_at"],
                }
                for row in cursor.fetchall()
            ]

    def claim_notification(self, notification_id: int, now: float, lease_seconds: float = 300) -> bool:
        """
        Take the delivery lease on one undelivered notification.

        Only one caller wins; a lease older than lease_seconds (a poster that
        died mid-send) can be taken over.
        """
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE settlement_notifications SET delivering_at = ?
                WHERE id = ? AND delivered_at IS NULL
                      AND (delivering_at IS NULL OR delivering_at <= ?)
                """,
                (now, notification_id, now - lease_seconds),
            )
            return cursor.rowcount == 1

    def release_notification(self, notification_id: int) -> None:
        """Drop the lease after a failed post so the next run retries it."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE settlement_notifications SET delivering_at = NULL
                WHERE id = ? AND delivered_at IS NULL
                """,
                (notification_id,),
            )

    def mark_notification_delivered(self, notification_id: int, now: float) -> None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE settlement_notifications SET delivered_at = ? WHERE id = ?",
                (now, notification_id),
            )

    # --- Stats ---

    def get_bettor_summary(self, discord_id: int) -> dict:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT
                    COUNT(*) AS total_bets,
                    COALESCE(SUM(CASE WHEN result = 'won' THEN 1 ELSE 0 END), 0) AS won,
                    COALESCE(SUM(CASE WHEN result = 'lost' THEN 1 ELSE 0 END), 0) AS lost,
                    COALESCE(SUM(CASE WHEN result = 'pending' THEN 1 ELSE 0 END), 0) AS pending,
                    COALESCE(SUM(CASE WHEN result != 'cancelled' THEN amount ELSE 0 END), 0) AS wagered,
                    COALESCE(SUM(CASE WHEN result = 'won' THEN payout ELSE 0 END), 0) AS paid_out
                FROM bets
                WHERE bettor_discord_id = ?
                """,
                (discord_id,),
            )
            row = cursor.fetchone()
            return {key: int(row[key]) for key in row.keys()}

    @staticmethod
    def _row_to_window(row) -> BetWindow:
        return BetWindow(
            id=row["id"],
            target_discord_id=row["target_discord_id"],
            status=WindowStatus(row["status"]),
            opened_at=row["opened_at"],
            closed_at=row["closed_at"],
            match_id=row["match_id"],
            total_bets=row["total_bets"] or 0,
            total_amount=row["total_amount"] or 0,
            odds=json.loads(row["odds"] or "{}"),
        )

    @staticmethod
    def _row_to_bet(row) -> Bet:
        return Bet(
            id=row["id"],
            bettor_discord_id=row["bettor_discord_id"],
            target_discord_id=row["target_discord_id"],
            window_id=row["window_id"],
            bet_kind=row["bet_kind"],
            amount=row["amount"],
            odds=row["odds"],
            opened_at=row["opened_at"],
            result=BetResult(row["result"]),
            payout=row["payout"] or 0,
            match_id=row["match_id"],
            placed_at=row["placed_at"],
            settled_at=row["settled_at"],
        )
