"""Timeslot generator.

Materialises the bookable calendar ahead of time: one fixed-width slot per
interval of the working window, per staff member, per open day. It is a
maintenance job (CLI / admin endpoint) and never runs inside a booking request.

Re-running over an already generated range is harmless: starts that exist are
skipped, and if a concurrent run wins the race for a day the
``uq_timeslots_staff_start`` constraint rejects our copy, we log the day and move
on. The next run fills whatever is still missing.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError

from models import db
from models.staff import Staff
from models.timeslot import Timeslot
from reservations.shop_time import (
    day_bounds_utc,
    local_today,
    parse_hhmm,
    parse_weekdays,
    shop_tz,
    to_utc_naive,
)
from reservations.errors import InvalidRequest

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    created: int = 0
    skipped: int = 0
    failed_days: list = field(default_factory=list)

    def merge(self, other: "GenerationResult") -> "GenerationResult":
        self.created += other.created
        self.skipped += other.skipped
        self.failed_days.extend(other.failed_days)
        return self

    def to_dict(self):
        return {
            "created": self.created,
            "skipped": self.skipped,
            "failed_days": [d.isoformat() for d in self.failed_days],
        }


def _day_starts(day: date, day_start, day_end, slot_minutes: int, tz):
    step = timedelta(minutes=slot_minutes)
    start = datetime.combine(day, day_start)
    close = datetime.combine(day, day_end)
    out = []
    while start + step <= close:
        out.append((to_utc_naive(day, start.time(), tz), to_utc_naive(day, (start + step).time(), tz)))
        start += step
    return out


def _existing_starts(staff_id: int, day: date, tz) -> set:
    lo, hi = day_bounds_utc(day, tz)
    rows = (
        db.session.query(Timeslot.start_time)
        .filter(Timeslot.staff_id == staff_id, Timeslot.start_time >= lo, Timeslot.start_time < hi)
        .all()
    )
    return {r.start_time for r in rows}


def generate_timeslots(
    staff_id: int,
    start_date: date,
    end_date: date,
    day_start="09:00",
    day_end="17:00",
    slot_minutes: int = 30,
    excluded_weekdays=(5, 6),
    tz=None,
) -> GenerationResult:
    """Create missing slots for one staff member over [start_date, end_date]."""
    day_start = parse_hhmm(day_start)
    day_end = parse_hhmm(day_end)
    excluded = parse_weekdays(excluded_weekdays)
    tz = tz or shop_tz()

    errors = {}
    if slot_minutes is None or int(slot_minutes) <= 0:
        errors["slot_minutes"] = "must be a positive number of minutes"
    if day_end <= day_start:
        errors["day_end"] = "must be after day_start"
    if end_date < start_date:
        errors["end_date"] = "must not be before start_date"
    if errors:
        raise InvalidRequest(details=errors)

    result = GenerationResult()
    day = start_date
    while day <= end_date:
        if day.weekday() in excluded:
            day += timedelta(days=1)
            continue

        wanted = _day_starts(day, day_start, day_end, int(slot_minutes), tz)
        try:
            existing = _existing_starts(staff_id, day, tz)
            fresh = [(st, et) for st, et in wanted if st not in existing]
            for st, et in fresh:
                db.session.add(Timeslot(staff_id=staff_id, start_time=st, end_time=et))
            db.session.commit()
        except (IntegrityError, OperationalError):
            db.session.rollback()
            logger.warning("Timeslot generation failed for staff %s on %s; skipping day", staff_id, day, exc_info=True)
            result.failed_days.append(day)
        else:
            result.created += len(fresh)
            result.skipped += len(wanted) - len(fresh)
        day += timedelta(days=1)

    return result


def generate_rolling_horizon(days=None, start_date=None, staff_id=None) -> GenerationResult:
    """Keep the next ``days`` days populated for every active staff member."""
    cfg = current_app.config
    tz = shop_tz()
    days = int(days or cfg.get("SLOT_HORIZON_DAYS", 30))
    if days <= 0:
        raise InvalidRequest(details={"days": "must be positive"})
    start_date = start_date or local_today(tz)
    end_date = start_date + timedelta(days=days - 1)

    q = Staff.query.filter_by(is_active=True)
    if staff_id is not None:
        q = q.filter_by(id=staff_id)
    staff_ids = [s.id for s in q.order_by(Staff.id.asc()).all()]
    if staff_id is not None and not staff_ids:
        raise InvalidRequest(details={"staff_id": "Unknown or inactive staff member"})

    total = GenerationResult()
    for sid in staff_ids:
        res = generate_timeslots(
            sid,
            start_date,
            end_date,
            day_start=cfg.get("SLOT_DAY_START", "09:00"),
            day_end=cfg.get("SLOT_DAY_END", "17:00"),
            slot_minutes=cfg.get("SLOT_MINUTES", 30),
            excluded_weekdays=cfg.get("SLOT_EXCLUDED_WEEKDAYS", "5,6"),
            tz=tz,
        )
        logger.info(
            "Generated timeslots for staff %s: created=%s skipped=%s failed_days=%s",
            sid, res.created, res.skipped, len(res.failed_days),
        )
        total.merge(res)
    return total
