from __future__ import annotations

from timetable_mcp.domain.entities import Network
from timetable_mcp.domain.routes import direction_is_up
from timetable_mcp.domain.value_objects import LineService

PAKENHAM = 214
SUNBURY = 262

# Suburban passengers may board city-bound regional trains here.
SET_DOWN_ONLY_EXCEPTIONS: frozenset[int] = frozenset({PAKENHAM, SUNBURY})


def is_set_down_only(network: Network, stop: int, line: int, direction: str) -> bool:
    """Return True when a regional service only lets passengers alight at stop.

    A city-bound ("up") regional train is set down only at any stop that
    suburban trains also serve, apart from the exception stops above.
    Raises LineNotFoundError when line is not in the network.
    """
    line_data = network.get_line(line)
    if line_data.service is not LineService.REGIONAL:
        return False
    if not direction_is_up(direction):
        return False
    if stop in SET_DOWN_ONLY_EXCEPTIONS:
        return False
    return any(other.service is LineService.SUBURBAN for other in network.lines_at(stop))
