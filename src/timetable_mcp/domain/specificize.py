"""Turning recurring timetable entries into calendar-dated services.

Service IDs only carry a week number in a 36-week cycle, so the actual date
of a service is recovered relative to "now": the nearest week with that
number, preferring the future when it is at most 18 weeks away.
"""
from __future__ import annotations

from datetime import datetime, timezone, tzinfo

from timetable_mcp.domain.calendar import LocalDate
from timetable_mcp.domain.entities import Network, Service, ServiceStop
from timetable_mcp.domain.platforms import PlatformClues, guesstimate_platform
from timetable_mcp.domain.service_id import WEEKS_IN_CYCLE, compose
from timetable_mcp.domain.services import is_set_down_only
from timetable_mcp.domain.timetable import FullTimetableEntry

WEEK_CYCLE_BASIS = LocalDate(2022, 1, 3)  # First Monday of 2022
MAX_FORWARD_WEEKS = 18


def week_number(day: LocalDate, basis: LocalDate = WEEK_CYCLE_BASIS) -> int:
    """Position of the week containing day within the 36-week cycle."""
    return (basis.days_until(day) // 7) % WEEKS_IN_CYCLE


def current_week_number(
    now: datetime, tz: tzinfo, basis: LocalDate = WEEK_CYCLE_BASIS
) -> int:
    return week_number(LocalDate.from_datetime(now, tz), basis)


def monday_date(
    week: int, now: datetime, tz: tzinfo, basis: LocalDate = WEEK_CYCLE_BASIS
) -> LocalDate:
    """Monday of the week numbered week that lies closest to now.

    Raises ValueError when week is outside the cycle.
    """
    if not 0 <= week < WEEKS_IN_CYCLE:
        raise ValueError(f"{week!r} is not a valid week number.")

    today = LocalDate.from_datetime(now, tz)
    difference = week - week_number(today, basis)
    next_offset = difference % WEEKS_IN_CYCLE
    prev_offset = next_offset - WEEKS_IN_CYCLE
    offset = next_offset if next_offset <= MAX_FORWARD_WEEKS else prev_offset

    this_monday = today.add_days(-today.day_of_week.days_since_monday)
    return this_monday.add_days(offset * 7)


def specificize(
    entry: FullTimetableEntry, week: int, network: Network, now: datetime, tz: tzinfo
) -> Service:
    """Pin entry to the calendar, guessing platforms and set-down-only flags.

    Stop times are wall-clock minutes past local midnight of the timetabled
    date, so a time past 24:00 lands on the following date.
    """
    service_id = compose(entry.timetable, entry.index, week)
    day = monday_date(week, now, tz).add_days(entry.day_of_week.days_since_monday)
    stopping_pattern = tuple(t.stop for t in entry.times)

    stops: list[ServiceStop] = []
    for t in entry.times:
        time_utc = day.to_datetime(tz, t.time.minute_of_day).astimezone(timezone.utc)
        clues = PlatformClues(
            line=entry.line,
            direction=entry.direction,
            stopping_pattern=stopping_pattern,
            timetabled_day_of_week=entry.day_of_week,
            time_utc=time_utc,
        )
        stops.append(
            ServiceStop(
                stop=t.stop,
                time_utc=time_utc,
                platform=guesstimate_platform(network, t.stop, clues),
                set_down_only=is_set_down_only(network, t.stop, entry.line, entry.direction),
            )
        )

    return Service(
        id=service_id,
        line=entry.line,
        direction=entry.direction,
        day_of_week=entry.day_of_week,
        stops=tuple(stops),
    )
