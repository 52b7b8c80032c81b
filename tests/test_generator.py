"""Timeslot generator: counts, idempotence, and per-day failure isolation."""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from models.timeslot import Timeslot
from reservations import generator
from reservations.errors import InvalidRequest
from reservations.generator import generate_rolling_horizon, generate_timeslots
from tests.conftest import make_staff

_BASE = date(2030, 1, 1)
MONDAY = _BASE + timedelta(days=(7 - _BASE.weekday()) % 7)
SATURDAY = MONDAY + timedelta(days=5)


def _slots(staff_id):
    return Timeslot.query.filter_by(staff_id=staff_id).order_by(Timeslot.start_time).all()


class TestGenerateTimeslots:

    def test_full_working_day(self, app):
        staff = make_staff()
        result = generate_timeslots(staff.id, MONDAY, MONDAY, tz=timezone.utc)

        slots = _slots(staff.id)
        assert result.created == 16
        assert result.skipped == 0
        assert result.failed_days == []
        assert len(slots) == 16
        assert slots[0].start_time == datetime.combine(MONDAY, time(9, 0))
        assert slots[-1].end_time == datetime.combine(MONDAY, time(17, 0))
        for s in slots:
            assert s.end_time - s.start_time == timedelta(minutes=30)
            assert s.is_blocked is False

    def test_partial_last_interval_is_dropped(self, app):
        staff = make_staff()
        result = generate_timeslots(staff.id, MONDAY, MONDAY, slot_minutes=45, tz=timezone.utc)

        slots = _slots(staff.id)
        assert result.created == 10
        assert slots[-1].end_time <= datetime.combine(MONDAY, time(17, 0))

    def test_excluded_weekdays_get_no_slots(self, app):
        staff = make_staff()
        result = generate_timeslots(staff.id, MONDAY, MONDAY + timedelta(days=6), tz=timezone.utc)

        assert result.created == 5 * 16
        weekdays = {s.start_time.weekday() for s in _slots(staff.id)}
        assert weekdays == {0, 1, 2, 3, 4}

    def test_custom_excluded_weekdays(self, app):
        staff = make_staff()
        generate_timeslots(staff.id, MONDAY, SATURDAY, excluded_weekdays="0", tz=timezone.utc)

        weekdays = {s.start_time.weekday() for s in _slots(staff.id)}
        assert 0 not in weekdays
        assert 5 in weekdays

    def test_rerun_over_overlapping_range_adds_nothing_twice(self, app):
        staff = make_staff()
        generate_timeslots(staff.id, MONDAY, MONDAY + timedelta(days=1), tz=timezone.utc)
        second = generate_timeslots(staff.id, MONDAY + timedelta(days=1), MONDAY + timedelta(days=2), tz=timezone.utc)

        assert second.skipped == 16
        assert second.created == 16
        starts = [s.start_time for s in _slots(staff.id)]
        assert len(starts) == len(set(starts)) == 3 * 16

    def test_staff_members_are_independent(self, app):
        mike = make_staff("Mike Johnson")
        sarah = make_staff("Sarah Chen")
        generate_timeslots(mike.id, MONDAY, MONDAY, tz=timezone.utc)
        result = generate_timeslots(sarah.id, MONDAY, MONDAY, tz=timezone.utc)

        assert result.created == 16
        assert len(_slots(mike.id)) == len(_slots(sarah.id)) == 16

    @pytest.mark.parametrize("kwargs, field", [
        ({"slot_minutes": 0}, "slot_minutes"),
        ({"day_start": "17:00", "day_end": "09:00"}, "day_end"),
    ])
    def test_invalid_parameters(self, app, kwargs, field):
        staff = make_staff()
        with pytest.raises(InvalidRequest) as exc:
            generate_timeslots(staff.id, MONDAY, MONDAY, tz=timezone.utc, **kwargs)
        assert field in exc.value.details
        assert Timeslot.query.count() == 0

    def test_end_before_start_rejected(self, app):
        staff = make_staff()
        with pytest.raises(InvalidRequest) as exc:
            generate_timeslots(staff.id, MONDAY, MONDAY - timedelta(days=1), tz=timezone.utc)
        assert "end_date" in exc.value.details

    def test_failed_day_is_reported_and_others_still_generated(self, app, monkeypatch):
        staff = make_staff()
        tuesday = MONDAY + timedelta(days=1)
        # Tuesday already generated by "another run" we cannot see
        generate_timeslots(staff.id, tuesday, tuesday, tz=timezone.utc)

        real_existing = generator._existing_starts

        def blind_on_tuesday(staff_id, day, tz):
            if day == tuesday:
                return set()
            return real_existing(staff_id, day, tz)

        monkeypatch.setattr(generator, "_existing_starts", blind_on_tuesday)
        result = generate_timeslots(staff.id, MONDAY, MONDAY + timedelta(days=2), tz=timezone.utc)

        assert result.failed_days == [tuesday]
        assert result.created == 2 * 16
        starts = [s.start_time for s in _slots(staff.id)]
        assert len(starts) == len(set(starts)) == 3 * 16

        # a later clean run has nothing left to repair
        monkeypatch.setattr(generator, "_existing_starts", real_existing)
        rerun = generate_timeslots(staff.id, MONDAY, MONDAY + timedelta(days=2), tz=timezone.utc)
        assert rerun.failed_days == []
        assert rerun.created == 0

    def test_shop_timezone_is_converted_to_utc(self, app):
        zoneinfo = pytest.importorskip("zoneinfo")
        try:
            tz = zoneinfo.ZoneInfo("America/New_York")
        except zoneinfo.ZoneInfoNotFoundError:
            pytest.skip("tz database not installed")

        staff = make_staff()
        # January: EST, UTC-5
        generate_timeslots(staff.id, MONDAY, MONDAY, tz=tz)
        first = _slots(staff.id)[0]
        assert first.start_time == datetime.combine(MONDAY, time(14, 0))


class TestRollingHorizon:

    def test_covers_active_staff_only(self, app):
        active = make_staff("Mike Johnson")
        inactive = make_staff("Sarah Chen", active=False)

        result = generate_rolling_horizon(days=7, start_date=MONDAY)

        assert result.created == 5 * 16
        assert len(_slots(active.id)) == 80
        assert _slots(inactive.id) == []

    def test_uses_configured_window(self, app):
        app.config.update(SLOT_DAY_START="10:00", SLOT_DAY_END="12:00", SLOT_MINUTES=60)
        staff = make_staff()

        generate_rolling_horizon(days=1, start_date=MONDAY)

        starts = [s.start_time.time() for s in _slots(staff.id)]
        assert starts == [time(10, 0), time(11, 0)]

    def test_single_staff_member(self, app):
        mike = make_staff("Mike Johnson")
        sarah = make_staff("Sarah Chen")

        generate_rolling_horizon(days=1, start_date=MONDAY, staff_id=sarah.id)

        assert _slots(mike.id) == []
        assert len(_slots(sarah.id)) == 16

    def test_unknown_staff_rejected(self, app):
        with pytest.raises(InvalidRequest) as exc:
            generate_rolling_horizon(days=1, start_date=MONDAY, staff_id=999)
        assert "staff_id" in exc.value.details

    def test_negative_horizon_rejected(self, app):
        make_staff()
        with pytest.raises(InvalidRequest):
            generate_rolling_horizon(days=-3, start_date=MONDAY)

    def test_default_horizon_starts_today(self, app):
        staff = make_staff()
        result = generate_rolling_horizon(days=7)

        assert result.created > 0
        first = _slots(staff.id)[0]
        assert first.start_time.date() >= datetime.utcnow().date()
