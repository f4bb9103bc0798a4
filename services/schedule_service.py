"""
Game lobby scheduling: create, join, leave, start and cancel.
"""

from __future__ import annotations

import logging
import random
import string
import time

from domain.models.schedule import GAME_MODES, Schedule, ScheduleStatus
from repositories.interfaces import IScheduleRepository
from repositories.schedule_repository import ScheduleUpdateError
from services import error_codes
from services.result import Result

logger = logging.getLogger("rift_bot.services.schedule")

SCHEDULE_ID_LENGTH = 6
SCHEDULE_ID_ALPHABET = string.ascii_uppercase + string.digits
MAX_DESCRIPTION_LENGTH = 200
MAX_TIME_LENGTH = 50


class ScheduleService:
    def __init__(
        self,
        schedule_repo: IScheduleRepository,
        *,
        expiry_hours: float = 6,
        list_limit: int = 10,
        user_list_limit: int = 5,
        clock=time.time,
        rng: random.Random | None = None,
    ):
        self.schedule_repo = schedule_repo
        self.expiry_hours = expiry_hours
        self.list_limit = list_limit
        self.user_list_limit = user_list_limit
        self._clock = clock
        self._rng = rng or random.Random()

    def _new_id(self) -> str:
        return "".join(self._rng.choice(SCHEDULE_ID_ALPHABET) for _ in range(SCHEDULE_ID_LENGTH))

    def create(self, creator_id: int, mode: str, scheduled_time: str, description: str = "") -> Result[Schedule]:
        """
        Open a lobby with the creator as its first player.

        A creator runs at most one open or full lobby at a time.
        """
        game_mode = GAME_MODES.get(mode)
        if game_mode is None:
            valid = ", ".join(GAME_MODES)
            return Result.fail(f"Invalid game mode. Choose one of: {valid}", code=error_codes.INVALID_MODE)
        scheduled_time = (scheduled_time or "").strip()
        if not scheduled_time:
            return Result.fail("Please give a start time.", code=error_codes.VALIDATION_ERROR)

        now = self._clock()
        if self.schedule_repo.get_active_for_creator(creator_id, now) is not None:
            return Result.fail(
                "You already have an open game. Cancel it before creating another.",
                code=error_codes.ACTIVE_SCHEDULE_EXISTS,
            )

        # False means an id collision or a concurrent create by the same creator
        for _ in range(3):
            schedule = Schedule(
                schedule_id=self._new_id(),
                creator_id=creator_id,
                mode=game_mode.key,
                max_players=game_mode.max_players,
                scheduled_time=scheduled_time[:MAX_TIME_LENGTH],
                description=(description or "").strip()[:MAX_DESCRIPTION_LENGTH],
                participants=[creator_id],
                created_at=now,
                expires_at=now + self.expiry_hours * 3600,
            )
            if self.schedule_repo.create(schedule):
                logger.info(f"Schedule {schedule.schedule_id} created by {creator_id} ({game_mode.key})")
                return Result.ok(schedule)
            if self.schedule_repo.get_active_for_creator(creator_id, now) is not None:
                return Result.fail(
                    "You already have an open game. Cancel it before creating another.",
                    code=error_codes.ACTIVE_SCHEDULE_EXISTS,
                )
        return Result.fail("Could not create the game. Try again.", code=error_codes.STATE_ERROR)

    def get(self, schedule_id: str) -> Result[Schedule]:
        schedule = self.schedule_repo.get(schedule_id)
        if schedule is None:
            return Result.fail("Game not found.", code=error_codes.SCHEDULE_NOT_FOUND)
        return Result.ok(schedule)

    def join(self, schedule_id: str, user_id: int) -> Result[Schedule]:
        return self._update(
            "joined", schedule_id, user_id, lambda now: self.schedule_repo.join(schedule_id, user_id, now)
        )

    def leave(self, schedule_id: str, user_id: int) -> Result[Schedule]:
        return self._update(
            "left", schedule_id, user_id, lambda now: self.schedule_repo.leave(schedule_id, user_id, now)
        )

    def start(self, schedule_id: str, user_id: int) -> Result[Schedule]:
        return self._update(
            "started",
            schedule_id,
            user_id,
            lambda now: self.schedule_repo.finish(schedule_id, user_id, ScheduleStatus.STARTED, now),
        )

    def cancel(self, schedule_id: str, user_id: int) -> Result[Schedule]:
        return self._update(
            "cancelled",
            schedule_id,
            user_id,
            lambda now: self.schedule_repo.finish(schedule_id, user_id, ScheduleStatus.CANCELLED, now),
        )

    def _update(self, verb: str, schedule_id: str, user_id: int, action) -> Result[Schedule]:
        try:
            schedule = action(self._clock())
        except ScheduleUpdateError as e:
            return Result.fail(str(e), code=e.code)
        logger.info(f"{user_id} {verb} schedule {schedule_id} ({len(schedule.participants)}/{schedule.max_players})")
        return Result.ok(schedule)

    def attach_message(self, schedule_id: str, channel_id: int, message_id: int) -> None:
        self.schedule_repo.set_message(schedule_id, channel_id, message_id)

    def list_open(self) -> list[Schedule]:
        return self.schedule_repo.list_open(self._clock(), self.list_limit)

    def list_for_user(self, user_id: int) -> list[Schedule]:
        return self.schedule_repo.list_for_user(user_id, self._clock(), self.user_list_limit)

    def expire_stale(self) -> list[Schedule]:
        expired = self.schedule_repo.expire_stale(self._clock())
        if expired:
            logger.info(f"Expired {len(expired)} schedules")
        return expired
