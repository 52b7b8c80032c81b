"""Shop-local wall time <-> stored naive UTC instants."""
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from flask import current_app


def shop_tz(name=None):
    name = name or current_app.config.get("SHOP_TIMEZONE", "UTC")
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def parse_hhmm(value) -> time:
    if isinstance(value, time):
        return value
    hours, minutes = str(value).strip().split(":")
    return time(int(hours), int(minutes))


def parse_weekdays(value) -> frozenset:
    """'5,6' or an iterable of ints -> frozenset of weekday numbers (Monday=0)."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        parts = [p.strip() for p in value.split(",") if p.strip()]
        return frozenset(int(p) for p in parts)
    return frozenset(int(v) for v in value)


def to_utc_naive(day: date, at: time, tz) -> datetime:
    local = datetime.combine(day, at).replace(tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(instant: datetime, tz) -> datetime:
    return instant.replace(tzinfo=timezone.utc).astimezone(tz)


def local_today(tz, now=None) -> date:
    now = now or datetime.utcnow()
    return to_local(now, tz).date()


def day_bounds_utc(day: date, tz):
    """[start, end) of a shop-local calendar day as naive UTC."""
    start = to_utc_naive(day, time(0, 0), tz)
    end = to_utc_naive(day + timedelta(days=1), time(0, 0), tz)
    return start, end
