"""
Tests for ScheduleService and ScheduleRepository lobby lifecycle.
"""

import random

import pytest

from domain.models.schedule import ScheduleStatus
from services import error_codes
from services.schedule_service import SCHEDULE_ID_ALPHABET, ScheduleService
from tests.conftest import BASE_TIME

CREATOR = 2001


class FakeClock:
    def __init__(self, now=BASE_TIME):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(schedule_repository, clock):
    return ScheduleService(schedule_repository, expiry_hours=6, clock=clock, rng=random.Random(7))


def _create(service, mode="flex3", creator=CREATOR):
    result = service.create(creator, mode, "21:00", "leo rank")
    assert result, result.error
    return result.value


class TestCreate:
    def test_creator_is_first_participant(self, service, schedule_repository):
        schedule = _create(service)

        assert schedule.participants == [CREATOR]
        assert schedule.max_players == 3
        assert schedule.status == ScheduleStatus.OPEN
        assert schedule.expires_at == BASE_TIME + 6 * 3600
        assert len(schedule.schedule_id) == 6
        assert all(c in SCHEDULE_ID_ALPHABET for c in schedule.schedule_id)
        stored = schedule_repository.get(schedule.schedule_id)
        assert stored.description == "leo rank"
        assert stored.participants == [CREATOR]

    def test_unknown_mode_rejected(self, service):
        result = service.create(CREATOR, "ranked9", "21:00")
        assert result.is_error(error_codes.INVALID_MODE)

    def test_blank_time_rejected(self, service):
        result = service.create(CREATOR, "duo", "   ")
        assert result.is_error(error_codes.VALIDATION_ERROR)

    def test_one_active_schedule_per_creator(self, service):
        _create(service)
        result = service.create(CREATOR, "duo", "22:00")
        assert result.is_error(error_codes.ACTIVE_SCHEDULE_EXISTS)
        # Someone else can still create one
        _create(service, creator=2002)

    def test_new_schedule_allowed_after_cancel_or_expiry(self, service, clock):
        first = _create(service)
        assert service.cancel(first.schedule_id, CREATOR)
        second = _create(service)

        clock.now += 6 * 3600
        third = _create(service)
        assert len({first.schedule_id, second.schedule_id, third.schedule_id}) == 3


class TestRoster:
    def test_join_until_full(self, service):
        schedule = _create(service, mode="flex3")

        after_first = service.join(schedule.schedule_id, 2002).value
        assert after_first.status == ScheduleStatus.OPEN
        after_second = service.join(schedule.schedule_id, 2003).value
        assert after_second.status == ScheduleStatus.FULL
        assert after_second.participants == [CREATOR, 2002, 2003]

        result = service.join(schedule.schedule_id, 2004)
        assert result.is_error(error_codes.SCHEDULE_FULL)

    def test_join_twice_rejected(self, service):
        schedule = _create(service)
        service.join(schedule.schedule_id, 2002)
        assert service.join(schedule.schedule_id, 2002).is_error(error_codes.ALREADY_JOINED)
        assert service.join(schedule.schedule_id, CREATOR).is_error(error_codes.ALREADY_JOINED)

    def test_leave_reopens_full_schedule(self, service):
        schedule = _create(service, mode="duo")
        assert service.join(schedule.schedule_id, 2002).value.status == ScheduleStatus.FULL

        left = service.leave(schedule.schedule_id, 2002).value

        assert left.status == ScheduleStatus.OPEN
        assert left.participants == [CREATOR]

    def test_creator_cannot_leave(self, service):
        schedule = _create(service)
        assert service.leave(schedule.schedule_id, CREATOR).is_error(error_codes.CREATOR_CANNOT_LEAVE)

    def test_leave_without_joining(self, service):
        schedule = _create(service)
        assert service.leave(schedule.schedule_id, 2002).is_error(error_codes.NOT_JOINED)

    def test_unknown_schedule(self, service):
        assert service.join("ZZZZZZ", 2002).is_error(error_codes.SCHEDULE_NOT_FOUND)
        assert service.get("ZZZZZZ").is_error(error_codes.SCHEDULE_NOT_FOUND)

    def test_expired_schedule_rejects_joins(self, service, clock):
        schedule = _create(service)
        clock.now += 6 * 3600 + 1
        assert service.join(schedule.schedule_id, 2002).is_error(error_codes.SCHEDULE_CLOSED)


class TestStartAndCancel:
    def test_only_creator_can_start(self, service):
        schedule = _create(service)
        service.join(schedule.schedule_id, 2002)

        assert service.start(schedule.schedule_id, 2002).is_error(error_codes.NOT_SCHEDULE_CREATOR)
        started = service.start(schedule.schedule_id, CREATOR).value
        assert started.status == ScheduleStatus.STARTED
        assert started.is_ended

    def test_started_schedule_is_closed_to_changes(self, service):
        schedule = _create(service)
        service.start(schedule.schedule_id, CREATOR)

        assert service.join(schedule.schedule_id, 2002).is_error(error_codes.SCHEDULE_CLOSED)
        assert service.cancel(schedule.schedule_id, CREATOR).is_error(error_codes.SCHEDULE_CLOSED)

    def test_only_creator_can_cancel(self, service, schedule_repository):
        schedule = _create(service)
        assert service.cancel(schedule.schedule_id, 2002).is_error(error_codes.NOT_SCHEDULE_CREATOR)
        assert service.cancel(schedule.schedule_id, CREATOR)
        assert schedule_repository.get(schedule.schedule_id).status == ScheduleStatus.CANCELLED


class TestListing:
    def test_list_open_excludes_full_and_ended(self, service):
        open_one = _create(service, mode="flex5", creator=2001)
        full = _create(service, mode="duo", creator=2002)
        service.join(full.schedule_id, 2003)
        cancelled = _create(service, creator=2004)
        service.cancel(cancelled.schedule_id, 2004)

        assert [s.schedule_id for s in service.list_open()] == [open_one.schedule_id]

    def test_list_open_is_newest_first(self, service, clock):
        older = _create(service, creator=2001)
        clock.now += 60
        newer = _create(service, creator=2002)

        assert [s.schedule_id for s in service.list_open()] == [newer.schedule_id, older.schedule_id]

    def test_list_for_user_covers_created_and_joined(self, service):
        mine = _create(service, creator=2001)
        other = _create(service, creator=2002)
        service.join(other.schedule_id, 2001)
        _create(service, creator=2003)

        listed = {s.schedule_id for s in service.list_for_user(2001)}
        assert listed == {mine.schedule_id, other.schedule_id}

    def test_expire_stale(self, service, schedule_repository, clock):
        schedule = _create(service)
        assert service.expire_stale() == []

        clock.now += 6 * 3600
        expired = service.expire_stale()

        assert [s.schedule_id for s in expired] == [schedule.schedule_id]
        assert expired[0].status == ScheduleStatus.EXPIRED
        assert schedule_repository.get(schedule.schedule_id).status == ScheduleStatus.EXPIRED
        assert service.expire_stale() == []

    def test_attach_message(self, service, schedule_repository):
        schedule = _create(service)
        service.attach_message(schedule.schedule_id, 10, 20)
        stored = schedule_repository.get(schedule.schedule_id)
        assert (stored.channel_id, stored.message_id) == (10, 20)
