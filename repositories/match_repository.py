"""
Repository for processed matches and match claims.

The matches primary key is the mutual-exclusion primitive: a worker owns a
match only if its INSERT OR IGNORE actually inserted the row.
"""

import json
import logging
import uuid

from domain.models.match import MatchRecord, ParticipantStats
from repositories.base_repository import BaseRepository
from repositories.interfaces import IMatchRepository
from repositories.leaderboard_repository import upsert_participant

logger = logging.getLogger("rift_bot.repositories.match")


class ClaimLostError(RuntimeError):
    """The claim token no longer matches: the claim expired and someone else took it."""


class MatchRepository(BaseRepository, IMatchRepository):
    def get(self, match_id: str) -> MatchRecord | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM matches WHERE match_id = ?", (match_id,))
            row = cursor.fetchone()
            return self._row_to_record(row) if row else None

    def get_many(self, match_ids: list[str]) -> dict[str, MatchRecord]:
        if not match_ids:
            return {}
        placeholders = ",".join("?" * len(match_ids))
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM matches WHERE match_id IN ({placeholders})",
                list(match_ids),
            )
            return {row["match_id"]: self._row_to_record(row) for row in cursor.fetchall()}

    def try_claim(self, match_id: str, now: float, game_start: float | None = None) -> str | None:
        """
        Atomically insert a claim row if none exists.

        Returns:
            The claim token if this caller won the claim, None if a row already existed
        """
        token = uuid.uuid4().hex
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO matches (match_id, processing, claimed_at, claim_token, game_start)
                VALUES (?, 1, ?, ?, ?)
                """,
                (match_id, now, token, game_start),
            )
            return token if cursor.rowcount == 1 else None

    def release_claim(self, match_id: str, claim_token: str) -> bool:
        """Delete an in-progress claim we own so a later sweep can retry the match."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                DELETE FROM matches
                WHERE match_id = ? AND claim_token = ? AND processing = 1 AND participants IS NULL
                """,
                (match_id, claim_token),
            )
            return cursor.rowcount > 0

    def delete_stale_claim(self, match_id: str, cutoff: float) -> bool:
        """Delete one claim whose claimed_at is at or before cutoff."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                DELETE FROM matches
                WHERE match_id = ? AND processing = 1 AND participants IS NULL
                      AND claimed_at <= ?
                """,
                (match_id, cutoff),
            )
            return cursor.rowcount > 0

    def cleanup_stale_claims(self, cutoff: float) -> int:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                DELETE FROM matches
                WHERE processing = 1 AND participants IS NULL AND claimed_at <= ?
                """,
                (cutoff,),
            )
            return cursor.rowcount

    def complete_claim(
        self,
        match_id: str,
        claim_token: str,
        participants: list[ParticipantStats],
        *,
        mvp_discord_id: int | None,
        feeder_discord_id: int | None,
        game_duration: int,
        game_mode: str | None,
        queue_id: int | None,
        game_start: float | None,
        solo_game: bool,
        week: str,
        ranks: dict[int, str | None],
        now: float,
    ) -> None:
        """
        Mark a claimed match terminal and fold it into the weekly leaderboard.

        Both writes share one transaction, so the leaderboard is incremented
        exactly once per match.

        Raises:
            ClaimLostError: If the claim is gone or now belongs to another worker
        """
        if not participants:
            raise ValueError("A terminal match needs at least one participant.")

        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE matches
                SET participants = ?, mvp_discord_id = ?, feeder_discord_id = ?,
                    game_duration = ?, game_mode = ?, queue_id = ?, game_start = ?,
                    processed_at = ?, solo_game = ?, processing = 0
                WHERE match_id = ? AND claim_token = ? AND processing = 1
                """,
                (
                    json.dumps([p.to_dict() for p in participants]),
                    mvp_discord_id,
                    feeder_discord_id,
                    game_duration,
                    game_mode,
                    queue_id,
                    game_start,
                    now,
                    1 if solo_game else 0,
                    match_id,
                    claim_token,
                ),
            )
            if cursor.rowcount != 1:
                raise ClaimLostError(f"Claim on {match_id} was lost before completion")

            for participant in participants:
                upsert_participant(
                    cursor, participant, week, ranks.get(participant.discord_id), now
                )

    def mark_settled(self, match_id: str, now: float) -> None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE matches SET settled_at = ? WHERE match_id = ? AND settled_at IS NULL",
                (now, match_id),
            )

    def get_unsettled(self, limit: int = 50) -> list[MatchRecord]:
        """Terminal team games whose settlement has not completed yet, oldest first."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM matches
                WHERE participants IS NOT NULL AND solo_game = 0 AND settled_at IS NULL
                ORDER BY processed_at
                LIMIT ?
                """,
                (limit,),
            )
            return [self._row_to_record(row) for row in cursor.fetchall()]

    def get_recent_for_account(self, discord_id: int, limit: int | None = 10) -> list[MatchRecord]:
        """Terminal matches a linked account appeared in, newest first. limit=None returns all."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT m.* FROM matches m, json_each(m.participants) p
                WHERE m.participants IS NOT NULL
                      AND json_extract(p.value, '$.discord_id') = ?
                ORDER BY m.game_start DESC
                LIMIT ?
                """,
                (discord_id, -1 if limit is None else limit),
            )
            return [self._row_to_record(row) for row in cursor.fetchall()]

    @staticmethod
    def _row_to_record(row) -> MatchRecord:
        participants = []
        if row["participants"]:
            participants = [ParticipantStats.from_dict(p) for p in json.loads(row["participants"])]
        return MatchRecord(
            match_id=row["match_id"],
            processing=bool(row["processing"]),
            claimed_at=row["claimed_at"],
            claim_token=row["claim_token"],
            participants=participants,
            mvp_discord_id=row["mvp_discord_id"],
            feeder_discord_id=row["feeder_discord_id"],
            game_duration=row["game_duration"] or 0,
            game_mode=row["game_mode"],
            queue_id=row["queue_id"],
            game_start=row["game_start"],
            processed_at=row["processed_at"],
            solo_game=bool(row["solo_game"]),
            settled_at=row["settled_at"],
        )
