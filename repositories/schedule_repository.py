"""
Repository for game lobby schedules.
"""

import json

from domain.models.schedule import Schedule, ScheduleStatus
from repositories.base_repository import BaseRepository
from repositories.interfaces import IScheduleRepository


ACTIVE_STATUSES = (ScheduleStatus.OPEN.value, ScheduleStatus.FULL.value)


class ScheduleUpdateError(ValueError):
    """A join, leave or status change was rejected inside its transaction."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


class ScheduleRepository(BaseRepository, IScheduleRepository):
    def create(self, schedule: Schedule) -> bool:
        """
        Insert a schedule unless its creator already runs an unexpired one.

        Returns:
            False if the creator has an active schedule or the id is taken
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT 1 FROM schedules
                WHERE creator_id = ? AND status IN (?, ?) AND expires_at > ?
                """,
                (schedule.creator_id, *ACTIVE_STATUSES, schedule.created_at),
            )
            if cursor.fetchone():
                return False
            cursor.execute(
                """
                INSERT OR IGNORE INTO schedules (
                    schedule_id, creator_id, mode, max_players, scheduled_time, description,
                    participants, status, channel_id, message_id, created_at, expires_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    schedule.schedule_id,
                    schedule.creator_id,
                    schedule.mode,
                    schedule.max_players,
                    schedule.scheduled_time,
                    schedule.description,
                    json.dumps(schedule.participants),
                    schedule.status.value,
                    schedule.channel_id,
                    schedule.message_id,
                    schedule.created_at,
                    schedule.expires_at,
                ),
            )
            return cursor.rowcount == 1

    def get(self, schedule_id: str) -> Schedule | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM schedules WHERE schedule_id = ?", (schedule_id,))
            row = cursor.fetchone()
            return self._row_to_schedule(row) if row else None

    def get_active_for_creator(self, creator_id: int, now: float) -> Schedule | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM schedules
                WHERE creator_id = ? AND status IN (?, ?) AND expires_at > ?
                ORDER BY created_at DESC LIMIT 1
                """,
                (creator_id, *ACTIVE_STATUSES, now),
            )
            row = cursor.fetchone()
            return self._row_to_schedule(row) if row else None

    def join(self, schedule_id: str, user_id: int, now: float) -> Schedule:
        """
        Atomically add a participant; the schedule turns full at capacity.

        Raises:
            ScheduleUpdateError: With an error code; nothing is written
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            schedule = self._get_active(cursor, schedule_id, now)
            if user_id in schedule.participants:
                raise ScheduleUpdateError("You already joined this game.", "already_joined")
            if schedule.is_full:
                raise ScheduleUpdateError("This game is full.", "schedule_full")

            schedule.participants.append(user_id)
            schedule.status = ScheduleStatus.FULL if schedule.is_full else ScheduleStatus.OPEN
            self._save_roster(cursor, schedule)
            return schedule

    def leave(self, schedule_id: str, user_id: int, now: float) -> Schedule:
        """
        Atomically remove a participant and reopen the schedule.

        Raises:
            ScheduleUpdateError: With an error code; nothing is written
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            schedule = self._get_active(cursor, schedule_id, now)
            if user_id == schedule.creator_id:
                raise ScheduleUpdateError(
                    "The creator cannot leave. Cancel the game instead.", "creator_cannot_leave"
                )
            if user_id not in schedule.participants:
                raise ScheduleUpdateError("You have not joined this game.", "not_joined")

            schedule.participants.remove(user_id)
            schedule.status = ScheduleStatus.OPEN
            self._save_roster(cursor, schedule)
            return schedule

    def finish(self, schedule_id: str, actor_id: int, status: ScheduleStatus, now: float) -> Schedule:
        """
        Move an active schedule to started or cancelled. Only its creator may.

        Raises:
            ScheduleUpdateError: With an error code; nothing is written
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            schedule = self._get_active(cursor, schedule_id, now)
            if actor_id != schedule.creator_id:
                raise ScheduleUpdateError(
                    "Only the creator can start or cancel this game.", "not_schedule_creator"
                )
            cursor.execute(
                "UPDATE schedules SET status = ? WHERE schedule_id = ?",
                (status.value, schedule_id),
            )
            schedule.status = status
            return schedule

    def set_message(self, schedule_id: str, channel_id: int, message_id: int) -> None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE schedules SET channel_id = ?, message_id = ? WHERE schedule_id = ?",
                (channel_id, message_id, schedule_id),
            )

    def list_open(self, now: float, limit: int = 10) -> list[Schedule]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM schedules
                WHERE status = ? AND expires_at > ?
                ORDER BY created_at DESC LIMIT ?
                """,
                (ScheduleStatus.OPEN.value, now, limit),
            )
            return [self._row_to_schedule(row) for row in cursor.fetchall()]

    def list_for_user(self, user_id: int, now: float, limit: int = 5) -> list[Schedule]:
        """Active schedules the user created or joined, newest first."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM schedules
                WHERE status IN (?, ?) AND expires_at > ?
                ORDER BY created_at DESC
                """,
                (*ACTIVE_STATUSES, now),
            )
            schedules = [self._row_to_schedule(row) for row in cursor.fetchall()]
        mine = [s for s in schedules if s.creator_id == user_id or user_id in s.participants]
        return mine[:limit]

    def expire_stale(self, now: float) -> list[Schedule]:
        """Mark and return every active schedule past its expiry."""
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM schedules WHERE status IN (?, ?) AND expires_at <= ?",
                (*ACTIVE_STATUSES, now),
            )
            expired = [self._row_to_schedule(row) for row in cursor.fetchall()]
            if expired:
                cursor.executemany(
                    "UPDATE schedules SET status = ? WHERE schedule_id = ?",
                    [(ScheduleStatus.EXPIRED.value, s.schedule_id) for s in expired],
                )
            for schedule in expired:
                schedule.status = ScheduleStatus.EXPIRED
            return expired

    def _get_active(self, cursor, schedule_id: str, now: float) -> Schedule:
        cursor.execute("SELECT * FROM schedules WHERE schedule_id = ?", (schedule_id,))
        row = cursor.fetchone()
        if not row:
            raise ScheduleUpdateError("Game not found.", "schedule_not_found")
        schedule = self._row_to_schedule(row)
        if not schedule.is_joinable or schedule.expires_at <= now:
            raise ScheduleUpdateError("This game is no longer open.", "schedule_closed")
        return schedule

    @staticmethod
    def _save_roster(cursor, schedule: Schedule) -> None:
        cursor.execute(
            "UPDATE schedules SET participants = ?, status = ? WHERE schedule_id = ?",
            (json.dumps(schedule.participants), schedule.status.value, schedule.schedule_id),
        )

    @staticmethod
    def _row_to_schedule(row) -> Schedule:
        return Schedule(
            schedule_id=row["schedule_id"],
            creator_id=row["creator_id"],
            mode=row["mode"],
            max_players=row["max_players"],
            scheduled_time=row["scheduled_time"],
            description=row["description"] or "",
            participants=json.loads(row["participants"] or "[]"),
            status=ScheduleStatus(row["status"]),
            channel_id=row["channel_id"],
            message_id=row["message_id"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )
