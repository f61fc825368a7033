"""The departure filter language.

A filter string is a space separated list of tokens, all of which must hold:

    narr                exclude arrivals (services terminating at the stop)
    nsdo                exclude set-down-only departures
    up / down           generalised direction
    direction-<id>      exact direction ID
    line-<id>           line ID
    service-<class>     any line of that service class, e.g. service-regional
    platform-<id>       guessed platform ID

Unrecognised tokens are ignored.
"""
from __future__ import annotations

from dataclasses import dataclass

from timetable_mcp.domain.entities import Departure, Network
from timetable_mcp.domain.routes import direction_is_down, direction_is_up


@dataclass(frozen=True)
class DepartureFilter:
    """A parsed filter. Every populated field narrows the results further."""

    no_arrivals: bool = False
    no_set_down_only: bool = False
    up: bool = False
    down: bool = False
    directions: frozenset[str] = frozenset()
    lines: frozenset[int] = frozenset()
    # One set of line IDs per service-<class> token
    service_lines: tuple[frozenset[int], ...] = ()
    platforms: frozenset[str] = frozenset()

    def matches(self, departure: Departure) -> bool:
        service = departure.service
        if self.no_arrivals and departure.is_arrival:
            return False
        if self.no_set_down_only and departure.set_down_only:
            return False
        if self.up and not direction_is_up(service.direction):
            return False
        if self.down and not direction_is_down(service.direction):
            return False
        if any(service.direction != d for d in self.directions):
            return False
        if any(service.line != line for line in self.lines):
            return False
        if any(service.line not in lines for lines in self.service_lines):
            return False
        if any(departure.platform != p for p in self.platforms):
            return False
        return True


def parse_filter(value: str, network: Network) -> DepartureFilter:
    no_arrivals = no_set_down_only = up = down = False
    directions: set[str] = set()
    lines: set[int] = set()
    service_lines: list[frozenset[int]] = []
    platforms: set[str] = set()

    for token in value.split():
        if token == "narr":
            no_arrivals = True
        elif token == "nsdo":
            no_set_down_only = True
        elif token == "up":
            up = True
        elif token == "down":
            down = True
        elif token.startswith("direction-") and len(token) > len("direction-"):
            directions.add(token[len("direction-"):])
        elif token.startswith("line-"):
            try:
                lines.add(int(token[len("line-"):]))
            except ValueError:
                continue
        elif token.startswith("service-"):
            service_class = token[len("service-"):]
            service_lines.append(
                frozenset(
                    line.id for line in network.lines.values()
                    if line.service.value == service_class
                )
            )
        elif token.startswith("platform-") and len(token) > len("platform-"):
            platforms.add(token[len("platform-"):])

    return DepartureFilter(
        no_arrivals=no_arrivals,
        no_set_down_only=no_set_down_only,
        up=up,
        down=down,
        directions=frozenset(directions),
        lines=frozenset(lines),
        service_lines=tuple(service_lines),
        platforms=frozenset(platforms),
    )


def apply_filter(departures: list[Departure], departure_filter: DepartureFilter) -> list[Departure]:
    return [d for d in departures if departure_filter.matches(d)]
