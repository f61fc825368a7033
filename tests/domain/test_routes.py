"""Tests for route shapes and the directions they derive."""
from __future__ import annotations

import pytest

from timetable_mcp.domain.routes import (
    FLAGSTAFF,
    FLINDERS_STREET,
    MELBOURNE_CENTRAL,
    PARLIAMENT,
    SOUTHERN_CROSS,
    Branch,
    BranchRoute,
    CityLoopRoute,
    LinearRoute,
    create_directions,
    direction_is_down,
    direction_is_up,
    route_type_name,
)
from timetable_mcp.domain.value_objects import CityLoopPortal

RICHMOND = 1162
NORTH_MELBOURNE = 1144


def by_id(route) -> dict:  # type: ignore[no-untyped-def, type-arg]
    return {d.id: d for d in create_directions(route)}


def test_linear_route_directions() -> None:
    directions = by_id(LinearRoute(stops=(1, 2, 3), up_terminus_name="City", down_terminus_name="Outer"))
    assert directions["up"].stops == (1, 2, 3)
    assert directions["up"].name == "City"
    assert directions["down"].stops == (3, 2, 1)
    assert directions["down"].name == "Outer"


@pytest.mark.parametrize("portal", list(CityLoopPortal))
def test_city_loop_down_is_reverse_of_up(portal: CityLoopPortal) -> None:
    portal_stop = NORTH_MELBOURNE if portal is CityLoopPortal.NORTH_MELBOURNE else RICHMOND
    directions = by_id(CityLoopRoute(stops=(10, 11, portal_stop), portal=portal, terminus_name="Outer"))
    assert set(directions) == {"up-direct", "up-via-loop", "down-direct", "down-via-loop"}
    assert directions["down-direct"].stops == tuple(reversed(directions["up-direct"].stops))
    assert directions["down-via-loop"].stops == tuple(reversed(directions["up-via-loop"].stops))
    assert directions["up-direct"].stops[-1] == FLINDERS_STREET
    assert directions["up-via-loop"].stops[-1] == FLINDERS_STREET


def test_city_loop_richmond_traverses_loop_from_parliament() -> None:
    directions = by_id(
        CityLoopRoute(stops=(10, RICHMOND), portal=CityLoopPortal.RICHMOND, terminus_name="Outer")
    )
    assert directions["up-direct"].stops == (10, RICHMOND, FLINDERS_STREET)
    assert directions["up-via-loop"].stops == (
        10, RICHMOND, PARLIAMENT, MELBOURNE_CENTRAL, FLAGSTAFF, SOUTHERN_CROSS, FLINDERS_STREET,
    )
    assert directions["down-via-loop"].name == "Outer via City Loop"


def test_city_loop_north_melbourne_runs_direct_via_southern_cross() -> None:
    directions = by_id(
        CityLoopRoute(
            stops=(10, NORTH_MELBOURNE),
            portal=CityLoopPortal.NORTH_MELBOURNE,
            terminus_name="Outer",
        )
    )
    assert directions["up-direct"].stops == (10, NORTH_MELBOURNE, SOUTHERN_CROSS, FLINDERS_STREET)
    assert directions["up-via-loop"].stops[2] == FLAGSTAFF


def test_branch_route_directions() -> None:
    route = BranchRoute(
        branches=(
            Branch("echuca", (1, 2, 3, 4), "Southern Cross", "Echuca"),
            Branch("swan-hill", (1, 2, 3, 5), "Southern Cross", "Swan Hill"),
        )
    )
    directions = by_id(route)
    assert set(directions) == {"echuca-up", "echuca-down", "swan-hill-up", "swan-hill-down"}
    assert directions["swan-hill-down"].stops == (5, 3, 2, 1)
    assert directions["echuca-down"].name == "Echuca"


def test_branch_route_rejects_shared_stops_out_of_order() -> None:
    with pytest.raises(ValueError, match="different order"):
        BranchRoute(
            branches=(
                Branch("a", (1, 2, 3), "City", "A"),
                Branch("b", (2, 1, 4), "City", "B"),
            )
        )


def test_route_type_name() -> None:
    assert route_type_name(LinearRoute((1, 2), "a", "b")) == "linear"
    assert route_type_name(CityLoopRoute((1, RICHMOND), CityLoopPortal.RICHMOND, "a")) == "city-loop"
    assert route_type_name(BranchRoute(())) == "branch"


@pytest.mark.parametrize(
    "direction, up, down",
    [
        ("up", True, False),
        ("down", False, True),
        ("up-via-loop", True, False),
        ("down-direct", False, True),
        ("echuca-up", True, False),
        ("swan-hill-down", False, True),
        ("upfield", False, False),
    ],
)
def test_direction_generalisation(direction: str, up: bool, down: bool) -> None:
    assert direction_is_up(direction) is up
    assert direction_is_down(direction) is down
