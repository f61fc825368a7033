"""Day-by-day departure search over the recurring timetables."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo

from timetable_mcp.domain.calendar import DayOfWeek, LocalDate, LocalTime
from timetable_mcp.domain.entities import Departure, Network, Service
from timetable_mcp.domain.exceptions import ServiceNotFoundError
from timetable_mcp.domain.filters import apply_filter, parse_filter
from timetable_mcp.domain.service_id import decompose, encode
from timetable_mcp.domain.specificize import specificize, week_number
from timetable_mcp.domain.timetable import Timetable, Timetables
from timetable_mcp.infrastructure.time_utils import MELBOURNE_TZ

logger = logging.getLogger(__name__)

MAX_DAYS_SEARCHED = 15


@dataclass(frozen=True)
class _Occurrence:
    timetable: int
    index: int
    time: LocalTime  # Relative to the day being searched, always < 24:00
    timetabled_on: LocalDate


def _within_bound(time: LocalTime, bound: LocalTime | None, reverse: bool) -> bool:
    if bound is None:
        return True
    return time.is_before_or_equal(bound) if reverse else time.is_after_or_equal(bound)


def _occurrences(
    timetables: list[Timetable],
    stop: int,
    day: LocalDate,
    next_day: bool,
) -> list[tuple[int, int, LocalTime]]:
    """Entries timetabled on day that stop at stop, as (timetable, index, time).

    With next_day, only times past midnight are returned, else only times
    before it.
    """
    dow: DayOfWeek = day.day_of_week
    found: list[tuple[int, int, LocalTime]] = []
    for timetable in timetables:
        for section in timetable.sections:
            if not section.wdr.includes(dow):
                continue
            for entry in section.entries:
                time = entry.time_at(stop)
                if time is None or time.is_next_day() != next_day:
                    continue
                found.append((timetable.id, section.global_index(entry, dow), time))
    return found


def _occurrences_for_day(
    timetables: Timetables,
    lines: list[int],
    stop: int,
    day: LocalDate,
    bound: LocalTime | None,
    reverse: bool,
) -> list[_Occurrence]:
    yesterday = day.yesterday()
    spillover = [
        _Occurrence(t, i, time.yesterday(), yesterday)
        for t, i, time in _occurrences(timetables.for_day(yesterday, lines), stop, yesterday, True)
        if _within_bound(time.yesterday(), bound, reverse)
    ]
    same_day = [
        _Occurrence(t, i, time, day)
        for t, i, time in _occurrences(timetables.for_day(day, lines), stop, day, False)
        if _within_bound(time, bound, reverse)
    ]
    return sorted(spillover + same_day, key=lambda o: o.time.minute_of_day, reverse=reverse)


def query_departures(
    network: Network,
    timetables: Timetables,
    stop_id: int,
    anchor: datetime,
    count: int,
    reverse: bool = False,
    filter: str = "",
    tz: tzinfo = MELBOURNE_TZ,
) -> list[Departure]:
    """Return up to count departures from stop_id, nearest to anchor first.

    Forward searches return departures at or after anchor in ascending order;
    reverse searches return those at or before it in descending order.
    Raises ValueError for a non-positive count and StopNotFoundError for an
    unknown stop.
    """
    if count <= 0:
        raise ValueError(f"Count must be positive, got {count}.")
    network.get_stop(stop_id)

    lines = [line.id for line in network.lines_at(stop_id)]
    departure_filter = parse_filter(filter, network)
    anchor_day = LocalDate.from_datetime(anchor, tz)
    anchor_time = LocalTime.from_datetime(anchor.astimezone(tz))
    step = -1 if reverse else 1

    departures: list[Departure] = []
    for offset in range(MAX_DAYS_SEARCHED):
        day = anchor_day.add_days(offset * step)
        bound = anchor_time if offset == 0 else None

        found: list[Departure] = []
        for occurrence in _occurrences_for_day(timetables, lines, stop_id, day, bound, reverse):
            entry = timetables.get_entry_by_index(occurrence.timetable, occurrence.index)
            if entry is None:
                raise ValueError(
                    f"Couldn't find entry for timetable={occurrence.timetable}, "
                    f"index={occurrence.index}."
                )
            week = week_number(occurrence.timetabled_on)
            service = specificize(entry, week, network, anchor, tz)
            found.append(Departure(stop=stop_id, service=service))

        departures.extend(apply_filter(found, departure_filter))

        if len(departures) >= count:
            break

    logger.debug(
        "Found %d departures from stop %d (anchor=%s, reverse=%s, filter=%r)",
        len(departures), stop_id, anchor.isoformat(), reverse, filter,
    )
    return departures[:count]


def resolve_service(
    network: Network,
    timetables: Timetables,
    service_id: int,
    now: datetime,
    tz: tzinfo = MELBOURNE_TZ,
) -> Service:
    """Look up a service by ID, dated to the nearest week with its week number.

    Raises InvalidServiceIDError for an out-of-range ID and ServiceNotFoundError
    when no timetable entry has that index.
    """
    components = decompose(service_id)
    entry = timetables.get_entry_by_index(components.timetable, components.index)
    if entry is None:
        raise ServiceNotFoundError(f"No service with ID {encode(service_id)!r} found.")
    return specificize(entry, components.week, network, now, tz)
