"""Business-cycle window arithmetic.

A merchant's business day ends at its configured local report time. The
most recently completed cycle ends at today's report time if the local
clock has already passed it, otherwise at yesterday's, and always spans
exactly 24 hours.

UTC offsets come from a ``TimezoneOffsetProvider``. The default
``FixedOffsetTable`` knows a handful of US zones and a simplified DST window
(second Sunday of March through the first Sunday of November). It does not
consult a timezone database and is off by an hour on the transition days
themselves.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from barberboost.utils.datetime_utils import as_utc

DEFAULT_ZONE = "US/Eastern"

STANDARD_OFFSETS = {
    "US/Eastern": -5,
    "US/Central": -6,
    "US/Mountain": -7,
    "US/Pacific": -8,
    "US/Alaska": -9,
    "US/Hawaii": -10,
}

NO_DST_ZONES = {"US/Hawaii"}

CYCLE_LENGTH = timedelta(hours=24)


@dataclass(frozen=True)
class Period:
    start: datetime
    end: datetime

    def to_dict(self):
        return {
            "start": self.start.isoformat().replace("+00:00", "Z"),
            "end": self.end.isoformat().replace("+00:00", "Z"),
        }


class TimezoneOffsetProvider(ABC):
    @abstractmethod
    def utc_offset(self, zone: str, instant: datetime) -> timedelta:
        """
        Return the offset of local wall-clock time from UTC for ``zone`` at
        the given UTC ``instant`` (local = utc + offset).
        """
        pass


def _nth_sunday(year: int, month: int, n: int) -> date:
    first = date(year, month, 1)
    days_until_sunday = (6 - first.weekday()) % 7
    return first + timedelta(days=days_until_sunday + 7 * (n - 1))


def is_dst_date(local_date: date) -> bool:
    dst_start = _nth_sunday(local_date.year, 3, 2)
    dst_end = _nth_sunday(local_date.year, 11, 1)
    return dst_start <= local_date < dst_end


class FixedOffsetTable(TimezoneOffsetProvider):
    def __init__(self, offsets=None, default_zone=DEFAULT_ZONE):
        self.offsets = dict(offsets or STANDARD_OFFSETS)
        self.default_zone = default_zone

    def standard_offset(self, zone: str) -> timedelta:
        hours = self.offsets.get(zone)
        if hours is None:
            hours = self.offsets[self.default_zone]
        return timedelta(hours=hours)

    def utc_offset(self, zone: str, instant: datetime) -> timedelta:
        standard = self.standard_offset(zone)
        if zone in NO_DST_ZONES:
            return standard
        local_standard = as_utc(instant) + standard
        if is_dst_date(local_standard.date()):
            return standard + timedelta(hours=1)
        return standard


class ZoneInfoOffsetProvider(TimezoneOffsetProvider):
    """Offsets from the IANA timezone database."""

    def __init__(self, default_zone=DEFAULT_ZONE):
        self.default_zone = default_zone

    def utc_offset(self, zone: str, instant: datetime) -> timedelta:
        try:
            tz = ZoneInfo(zone)
        except (ZoneInfoNotFoundError, ValueError):
            tz = ZoneInfo(self.default_zone)
        return as_utc(instant).astimezone(tz).utcoffset()


def build_offset_provider(name: str) -> TimezoneOffsetProvider:
    if name == "zoneinfo":
        return ZoneInfoOffsetProvider()
    if name in (None, "", "fixed"):
        return FixedOffsetTable()
    raise ValueError(f"Unknown timezone offset provider: {name}")


def parse_report_time(value) -> time:
    """Accept ``HH:MM``, ``HH:MM:SS`` or a ``datetime.time``."""
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    if not isinstance(value, str):
        raise ValueError(f"Invalid report time: {value!r}")

    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid report time: {value!r}")
    try:
        numbers = [int(part) for part in parts]
    except ValueError:
        raise ValueError(f"Invalid report time: {value!r}")
    if len(numbers) == 2:
        numbers.append(0)
    hour, minute, second = numbers
    return time(hour, minute, second)


def local_now(zone: str, now: datetime, offset_provider: TimezoneOffsetProvider) -> datetime:
    """Merchant wall-clock time as a naive datetime."""
    now = as_utc(now)
    return (now + offset_provider.utc_offset(zone, now)).replace(tzinfo=None)


def local_to_utc(local: datetime, zone: str, offset_provider: TimezoneOffsetProvider) -> datetime:
    # First guess with the offset at the naive instant, then settle on the
    # offset in effect at the resulting UTC instant.
    guess = local.replace(tzinfo=timezone.utc)
    offset = offset_provider.utc_offset(zone, guess)
    candidate = guess - offset
    settled = offset_provider.utc_offset(zone, candidate)
    if settled != offset:
        candidate = guess - settled
    return candidate


def compute_period(report_time_of_day, timezone_label: str, now: datetime,
                   offset_provider: TimezoneOffsetProvider = None) -> Period:
    """Return the UTC window of the most recently completed business cycle."""
    offset_provider = offset_provider or FixedOffsetTable()
    report_time = parse_report_time(report_time_of_day)
    local_current = local_now(timezone_label, now, offset_provider)

    today_cycle_end = datetime.combine(local_current.date(), report_time)
    if local_current >= today_cycle_end:
        end_local = today_cycle_end
    else:
        end_local = today_cycle_end - timedelta(days=1)

    end = local_to_utc(end_local, timezone_label, offset_provider)
    return Period(start=end - CYCLE_LENGTH, end=end)


def period_local_dates(period: Period, timezone_label: str, offset_provider: TimezoneOffsetProvider):
    """First and last merchant-local calendar dates touched by the half-open ``period``."""
    last_instant = period.end - timedelta(microseconds=1)
    start_local = period.start + offset_provider.utc_offset(timezone_label, period.start)
    end_local = last_instant + offset_provider.utc_offset(timezone_label, last_instant)
    return start_local.date(), end_local.date()
