"""Route shapes and the directions each one derives.

A route only knows its own shape data. Directions (named, ordered stop
sequences) are derived from it once, when the owning Line is constructed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from timetable_mcp.domain.value_objects import CityLoopPortal

PARLIAMENT = 1155
MELBOURNE_CENTRAL = 1120
FLAGSTAFF = 1068
SOUTHERN_CROSS = 1181
FLINDERS_STREET = 1071
RICHMOND = 1162
JOLIMONT = 1104
NORTH_MELBOURNE = 1144

FLINDERS_STREET_NAME = "Flinders Street"

# Stops after the portal, travelling "up" towards Flinders Street.
_DIRECT_FROM_PORTAL: dict[CityLoopPortal, tuple[int, ...]] = {
    CityLoopPortal.RICHMOND: (FLINDERS_STREET,),
    CityLoopPortal.JOLIMONT: (FLINDERS_STREET,),
    CityLoopPortal.NORTH_MELBOURNE: (SOUTHERN_CROSS, FLINDERS_STREET),
}
_VIA_LOOP_FROM_PORTAL: dict[CityLoopPortal, tuple[int, ...]] = {
    CityLoopPortal.RICHMOND: (
        PARLIAMENT, MELBOURNE_CENTRAL, FLAGSTAFF, SOUTHERN_CROSS, FLINDERS_STREET,
    ),
    CityLoopPortal.JOLIMONT: (
        PARLIAMENT, MELBOURNE_CENTRAL, FLAGSTAFF, SOUTHERN_CROSS, FLINDERS_STREET,
    ),
    CityLoopPortal.NORTH_MELBOURNE: (
        FLAGSTAFF, MELBOURNE_CENTRAL, PARLIAMENT, FLINDERS_STREET,
    ),
}


def stops_to_flinders_direct(portal: CityLoopPortal) -> tuple[int, ...]:
    return _DIRECT_FROM_PORTAL[portal]


def stops_to_flinders_via_loop(portal: CityLoopPortal) -> tuple[int, ...]:
    return _VIA_LOOP_FROM_PORTAL[portal]


@dataclass(frozen=True)
class Direction:
    """A named, ordered sequence of stops a line can run in.

    IDs are only unique within their line, e.g. "up", "down-via-loop",
    "echuca-up".
    """

    id: str
    name: str
    stops: tuple[int, ...]


@dataclass(frozen=True)
class LinearRoute:
    """A line with no loops or branches: just "up" and "down".

    stops runs from the down terminus (e.g. Pakenham) to the up terminus.
    """

    stops: tuple[int, ...]
    up_terminus_name: str
    down_terminus_name: str


@dataclass(frozen=True)
class CityLoopRoute:
    """A linear line that finishes by entering the city loop at a portal.

    stops runs from the down terminus to (and including) the portal; the loop
    stops themselves come from the fixed portal table.
    """

    stops: tuple[int, ...]
    portal: CityLoopPortal
    terminus_name: str


@dataclass(frozen=True)
class Branch:
    """One branch of a BranchRoute, listing every stop it serves, down terminus first."""

    id: str
    stops: tuple[int, ...]
    up_terminus_name: str
    down_terminus_name: str


@dataclass(frozen=True)
class BranchRoute:
    """Independent linear branches that may share stops, e.g. Bendigo to Swan Hill or Echuca."""

    branches: tuple[Branch, ...]

    def __post_init__(self) -> None:
        for i, first in enumerate(self.branches):
            for second in self.branches[i + 1:]:
                shared = set(first.stops) & set(second.stops)
                first_order = [s for s in first.stops if s in shared]
                second_order = [s for s in second.stops if s in shared]
                if first_order != second_order:
                    raise ValueError(
                        f"Branches {first.id!r} and {second.id!r} share stops in a different order."
                    )


Route = Union[LinearRoute, CityLoopRoute, BranchRoute]


def route_type_name(route: Route) -> str:
    match route:
        case LinearRoute():
            return "linear"
        case CityLoopRoute():
            return "city-loop"
        case BranchRoute():
            return "branch"
    raise TypeError(f"Unknown route type: {type(route).__name__}")


def create_directions(route: Route) -> tuple[Direction, ...]:
    """Derive every direction a route can run in."""
    match route:
        case LinearRoute(stops=stops):
            return (
                Direction("up", route.up_terminus_name, tuple(stops)),
                Direction("down", route.down_terminus_name, tuple(reversed(stops))),
            )
        case CityLoopRoute(stops=stops, portal=portal):
            direct = tuple(stops) + stops_to_flinders_direct(portal)
            via_loop = tuple(stops) + stops_to_flinders_via_loop(portal)
            return (
                Direction("up-direct", FLINDERS_STREET_NAME, direct),
                Direction("up-via-loop", f"{FLINDERS_STREET_NAME} via City Loop", via_loop),
                Direction("down-direct", route.terminus_name, tuple(reversed(direct))),
                Direction(
                    "down-via-loop", f"{route.terminus_name} via City Loop", tuple(reversed(via_loop))
                ),
            )
        case BranchRoute(branches=branches):
            directions: list[Direction] = []
            for b in branches:
                directions.append(Direction(f"{b.id}-up", b.up_terminus_name, tuple(b.stops)))
                directions.append(
                    Direction(f"{b.id}-down", b.down_terminus_name, tuple(reversed(b.stops)))
                )
            return tuple(directions)
    raise TypeError(f"Unknown route type: {type(route).__name__}")


def direction_is_up(direction: str) -> bool:
    """True for "up" and any direction generalising to it ("up-via-loop", "echuca-up")."""
    return direction == "up" or direction.startswith("up-") or direction.endswith("-up")


def direction_is_down(direction: str) -> bool:
    return direction == "down" or direction.startswith("down-") or direction.endswith("-down")
