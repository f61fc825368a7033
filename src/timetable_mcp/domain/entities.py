from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

from timetable_mcp.domain.calendar import DayOfWeek
from timetable_mcp.domain.exceptions import LineNotFoundError, StopNotFoundError
from timetable_mcp.domain.platforms import Rule, parse_rule
from timetable_mcp.domain.routes import Direction, Route, create_directions
from timetable_mcp.domain.value_objects import LineColor, LineService


@dataclass(frozen=True)
class Platform:
    """A platform at a stop, with the rules that decide which trains use it."""

    id: str  # Unique within its stop only, e.g. "1" or "15a"
    name: str  # e.g. "Platform 1"
    rules: tuple[str, ...] = ()  # Empty = any service may use it
    parsed_rules: tuple[Rule, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parsed_rules", tuple(parse_rule(r) for r in self.rules))


@dataclass(frozen=True)
class Stop:
    """A stop in the network."""

    id: int
    name: str
    platforms: tuple[Platform, ...]
    url_name: str  # Lowercase slug, e.g. "flindersstreet"
    adjacent: tuple[int, ...]  # Neighbours on any line, ignoring express running
    ptv_id: int  # Stop ID in the PTV API
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class Line:
    """A train line, e.g. the "Pakenham" line. Directions are derived from the route."""

    id: int
    name: str
    color: LineColor
    service: LineService
    route: Route
    ptv_routes: tuple[int, ...] = ()
    tags: tuple[str, ...] = ()
    description: str = ""
    directions: tuple[Direction, ...] = field(init=False, compare=False)
    all_stops: tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        directions = create_directions(self.route)
        all_stops: dict[int, None] = {}
        for d in directions:
            if len(set(d.stops)) != len(d.stops):
                raise ValueError(
                    f"Direction {d.id!r} on line id={self.id} visits a stop more than once."
                )
            all_stops.update(dict.fromkeys(d.stops))
        object.__setattr__(self, "directions", directions)
        object.__setattr__(self, "all_stops", tuple(all_stops))

    def get_direction(self, direction_id: str) -> Direction | None:
        return next((d for d in self.directions if d.id == direction_id), None)


class Network:
    """Every stop and line on the network, without any timetable information.

    Treat as read-only once built; use NetworkBuilder to assemble one.
    """

    def __init__(self, hash: str, stops: Mapping[int, Stop], lines: Mapping[int, Line]) -> None:
        self.hash = hash  # Data release name, e.g. "2022-04-30"
        self.stops: Mapping[int, Stop] = MappingProxyType(dict(stops))
        self.lines: Mapping[int, Line] = MappingProxyType(dict(lines))

        lines_at: dict[int, list[Line]] = {}
        for line in self.lines.values():
            for stop in line.all_stops:
                lines_at.setdefault(stop, []).append(line)
        self._lines_at = {stop: tuple(ls) for stop, ls in lines_at.items()}

    def find_stop(self, stop_id: int) -> Stop | None:
        return self.stops.get(stop_id)

    def get_stop(self, stop_id: int) -> Stop:
        stop = self.stops.get(stop_id)
        if stop is None:
            raise StopNotFoundError(f"No stop with ID {stop_id} found.")
        return stop

    def get_line(self, line_id: int) -> Line:
        line = self.lines.get(line_id)
        if line is None:
            raise LineNotFoundError(f"No line with ID {line_id} found.")
        return line

    def lines_at(self, stop_id: int) -> list[Line]:
        """Lines that stop at stop_id in any direction, in line insertion order."""
        return list(self._lines_at.get(stop_id, ()))

    def directions_of(self, line_id: int) -> tuple[Direction, ...]:
        return self.get_line(line_id).directions

    def stops_served_by(self, line_id: int, direction_id: str) -> tuple[int, ...]:
        line = self.get_line(line_id)
        direction = line.get_direction(direction_id)
        if direction is None:
            raise ValueError(f"Direction {direction_id!r} is invalid for line id={line_id}.")
        return direction.stops


class NetworkBuilder:
    """Collects stops and lines, then freezes them into a Network."""

    def __init__(self, hash: str) -> None:
        self._hash = hash
        self._stops: dict[int, Stop] = {}
        self._lines: dict[int, Line] = {}

    def add_stop(self, stop: Stop) -> NetworkBuilder:
        if stop.id in self._stops:
            raise ValueError(f"Duplicate stop ID {stop.id}.")
        self._stops[stop.id] = stop
        return self

    def add_line(self, line: Line) -> NetworkBuilder:
        if line.id in self._lines:
            raise ValueError(f"Duplicate line ID {line.id}.")
        self._lines[line.id] = line
        return self

    def build(self) -> Network:
        for line in self._lines.values():
            missing = [s for s in line.all_stops if s not in self._stops]
            if missing:
                raise ValueError(f"Line id={line.id} references unknown stops {missing}.")
        return Network(self._hash, self._stops, self._lines)


@dataclass(frozen=True)
class ServiceStop:
    """One call of a service at a stop."""

    stop: int
    time_utc: datetime
    platform: str | None  # None when the platform could not be narrowed to one
    set_down_only: bool


@dataclass(frozen=True)
class Service:
    """A timetable entry pinned to a specific calendar day, e.g. the 4:17pm
    Traralgon train from Southern Cross on 22 July 2022."""

    id: int
    line: int
    direction: str
    day_of_week: DayOfWeek  # The weekday it is timetabled on, even past midnight
    stops: tuple[ServiceStop, ...]

    def stop_at(self, stop: int) -> ServiceStop | None:
        return next((s for s in self.stops if s.stop == stop), None)


@dataclass(frozen=True)
class Departure:
    """A service as seen from the stop it was queried at."""

    stop: int
    service: Service

    @property
    def call(self) -> ServiceStop:
        result = self.service.stop_at(self.stop)
        if result is None:
            raise ValueError(f"Service {self.service.id} does not stop at stop {self.stop}.")
        return result

    @property
    def time_utc(self) -> datetime:
        return self.call.time_utc

    @property
    def platform(self) -> str | None:
        return self.call.platform

    @property
    def set_down_only(self) -> bool:
        return self.call.set_down_only

    @property
    def is_arrival(self) -> bool:
        """True when the queried stop is the last stop of the service."""
        return self.service.stops[-1].stop == self.stop
