"""
Repository for weekly leaderboard aggregates.
"""

from domain.models.leaderboard import LeaderboardEntry
from domain.models.match import ParticipantStats
from domain.services.scoring_service import rank_value
from repositories.base_repository import BaseRepository
from repositories.interfaces import ILeaderboardRepository


def upsert_participant(cursor, participant: ParticipantStats, week: str, rank: str | None, now: float) -> None:
    """
    Fold one match's stats into the (discord_id, week) aggregate.

    Runs on the caller's cursor so it commits together with the match record.
    """
    cursor.execute(
        "SELECT highest_rank FROM leaderboard WHERE discord_id = ? AND week = ?",
        (participant.discord_id, week),
    )
    row = cursor.fetchone()
    highest = row["highest_rank"] if row else None
    if rank and rank_value(rank) > rank_value(highest):
        highest = rank

    cursor.execute(
        """
        INSERT INTO leaderboard (
            discord_id, week, kills, deaths, assists, games_played, games_won,
            highest_rank, updated_at
        )
        VALUES (?, ?, ?, ?, ?, 1, ?, ?, ?)
        ON CONFLICT(discord_id, week) DO UPDATE SET
            kills = kills + excluded.kills,
            deaths = deaths + excluded.deaths,
            assists = assists + excluded.assists,
            games_played = games_played + 1,
            games_won = games_won + excluded.games_won,
            highest_rank = excluded.highest_rank,
            updated_at = excluded.updated_at
        """,
        (
            participant.discord_id,
            week,
            participant.kills,
            participant.deaths,
            participant.assists,
            1 if participant.win else 0,
            highest,
            now,
        ),
    )


class LeaderboardRepository(BaseRepository, ILeaderboardRepository):
    def get_week(self, week: str) -> list[LeaderboardEntry]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM leaderboard WHERE week = ? ORDER BY discord_id",
                (week,),
            )
            return [self._row_to_entry(row) for row in cursor.fetchall()]

    def get_entry(self, discord_id: int, week: str) -> LeaderboardEntry | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM leaderboard WHERE discord_id = ? AND week = ?",
                (discord_id, week),
            )
            row = cursor.fetchone()
            return self._row_to_entry(row) if row else None

    @staticmethod
    def _row_to_entry(row) -> LeaderboardEntry:
        return LeaderboardEntry(
            discord_id=row["discord_id"],
            week=row["week"],
            kills=row["kills"],
            deaths=row["deaths"],
            assists=row["assists"],
            games_played=row["games_played"],
            games_won=row["games_won"],
            highest_rank=row["highest_rank"],
        )
