"""
Repository for linked Discord <-> Riot accounts.
"""

import sqlite3
import time

from domain.models.account import LinkedAccount, Rank
from repositories.base_repository import BaseRepository
from repositories.interfaces import IAccountRepository


class AccountAlreadyLinkedError(ValueError):
    """Either the Discord user or the Riot account is already linked."""


class AccountRepository(BaseRepository, IAccountRepository):
    def add(
        self,
        discord_id: int,
        riot_puuid: str,
        summoner_name: str,
        region: str,
        initial_balance: int,
        game_name: str | None = None,
        tag_line: str | None = None,
        rank: Rank | None = None,
        now: int | None = None,
    ) -> LinkedAccount:
        """
        Link an account.

        A Discord user who unlinked earlier is re-activated in place and keeps
        their balance; initial_balance only applies to first-time links.

        Raises:
            AccountAlreadyLinkedError: If either identity is already actively linked
        """
        linked_at = int(now if now is not None else time.time())
        rank_fields = (
            (rank.tier, rank.division, rank.lp, rank.queue_type, linked_at)
            if rank
            else (None, None, None, None, None)
        )
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT unlinked_at FROM linked_accounts WHERE discord_id = ?",
                (discord_id,),
            )
            existing = cursor.fetchone()
            if existing and existing["unlinked_at"] is None:
                raise AccountAlreadyLinkedError("This Discord account is already linked.")

            cursor.execute(
                "SELECT discord_id FROM linked_accounts WHERE riot_puuid = ? AND unlinked_at IS NULL",
                (riot_puuid,),
            )
            if cursor.fetchone():
                raise AccountAlreadyLinkedError("This Riot account is already linked to another user.")

            try:
                if existing:
                    cursor.execute(
                        """
                        UPDATE linked_accounts
                        SET riot_puuid = ?, summoner_name = ?, game_name = ?, tag_line = ?,
                            region = ?, rank_tier = ?, rank_division = ?, rank_lp = ?, rank_queue = ?,
                            last_rank_sync = ?, linked_at = ?, unlinked_at = NULL
                        WHERE discord_id = ?
                        """,
                        (
                            riot_puuid, summoner_name, game_name, tag_line, region,
                            *rank_fields, linked_at, discord_id,
                        ),
                    )
                else:
                    cursor.execute(
                        """
                        INSERT INTO linked_accounts (
                            discord_id, riot_puuid, summoner_name, game_name, tag_line, region,
                            balance, rank_tier, rank_division, rank_lp, rank_queue,
                            last_rank_sync, linked_at
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            discord_id, riot_puuid, summoner_name, game_name, tag_line, region,
                            initial_balance, *rank_fields, linked_at,
                        ),
                    )
            except sqlite3.IntegrityError as exc:
                # Lost a race with a concurrent link of the same identity
                raise AccountAlreadyLinkedError("This account was linked concurrently.") from exc

            cursor.execute("SELECT * FROM linked_accounts WHERE discord_id = ?", (discord_id,))
            return self._row_to_account(cursor.fetchone())

    def get_by_id(self, discord_id: int, include_unlinked: bool = False) -> LinkedAccount | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            query = "SELECT * FROM linked_accounts WHERE discord_id = ?"
            if not include_unlinked:
                query += " AND unlinked_at IS NULL"
            cursor.execute(query, (discord_id,))
            row = cursor.fetchone()
            return self._row_to_account(row) if row else None

    def get_by_puuid(self, riot_puuid: str) -> LinkedAccount | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM linked_accounts WHERE riot_puuid = ? AND unlinked_at IS NULL",
                (riot_puuid,),
            )
            row = cursor.fetchone()
            return self._row_to_account(row) if row else None

    def get_by_puuids(self, puuids: list[str]) -> dict[str, LinkedAccount]:
        """Batch lookup of active accounts, keyed by puuid."""
        if not puuids:
            return {}
        unique = list(dict.fromkeys(puuids))
        placeholders = ",".join("?" * len(unique))
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT * FROM linked_accounts
                WHERE riot_puuid IN ({placeholders}) AND unlinked_at IS NULL
                """,
                unique,
            )
            return {row["riot_puuid"]: self._row_to_account(row) for row in cursor.fetchall()}

    def get_by_ids(self, discord_ids: list[int]) -> dict[int, LinkedAccount]:
        """Batch lookup including unlinked accounts, for display names."""
        if not discord_ids:
            return {}
        unique = list(dict.fromkeys(discord_ids))
        placeholders = ",".join("?" * len(unique))
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM linked_accounts WHERE discord_id IN ({placeholders})",
                unique,
            )
            return {row["discord_id"]: self._row_to_account(row) for row in cursor.fetchall()}

    def get_all_active(self) -> list[LinkedAccount]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM linked_accounts WHERE unlinked_at IS NULL ORDER BY linked_at, discord_id"
            )
            return [self._row_to_account(row) for row in cursor.fetchall()]

    def soft_delete(self, discord_id: int, now: int | None = None) -> bool:
        unlinked_at = int(now if now is not None else time.time())
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE linked_accounts SET unlinked_at = ? WHERE discord_id = ? AND unlinked_at IS NULL",
                (unlinked_at, discord_id),
            )
            return cursor.rowcount > 0

    def get_balance(self, discord_id: int) -> int:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT COALESCE(balance, 0) AS balance FROM linked_accounts WHERE discord_id = ?",
                (discord_id,),
            )
            row = cursor.fetchone()
            return int(row["balance"]) if row else 0

    def add_balance(self, discord_id: int, amount: int) -> int:
        """Apply a balance delta and return the new balance."""
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE linked_accounts SET balance = COALESCE(balance, 0) + ? WHERE discord_id = ?",
                (amount, discord_id),
            )
            cursor.execute(
                "SELECT COALESCE(balance, 0) AS balance FROM linked_accounts WHERE discord_id = ?",
                (discord_id,),
            )
            row = cursor.fetchone()
            return int(row["balance"]) if row else 0

    def get_total_currency(self) -> int:
        """Sum of every balance, unlinked accounts included."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COALESCE(SUM(balance), 0) AS total FROM linked_accounts")
            return int(cursor.fetchone()["total"])

    def update_rank(self, discord_id: int, rank: Rank | None, synced_at: int) -> None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE linked_accounts
                SET rank_tier = ?, rank_division = ?, rank_lp = ?, rank_queue = ?, last_rank_sync = ?
                WHERE discord_id = ?
                """,
                (
                    rank.tier if rank else None,
                    rank.division if rank else None,
                    rank.lp if rank else None,
                    rank.queue_type if rank else None,
                    synced_at,
                    discord_id,
                ),
            )

    @staticmethod
    def _row_to_account(row) -> LinkedAccount:
        rank = None
        if row["rank_tier"]:
            rank = Rank(
                tier=row["rank_tier"],
                division=row["rank_division"],
                lp=row["rank_lp"] or 0,
                queue_type=row["rank_queue"],
            )
        return LinkedAccount(
            discord_id=row["discord_id"],
            riot_puuid=row["riot_puuid"],
            summoner_name=row["summoner_name"],
            region=row["region"],
            balance=int(row["balance"] or 0),
            rank=rank,
            last_rank_sync=row["last_rank_sync"],
            linked_at=row["linked_at"],
            unlinked_at=row["unlinked_at"],
        )
