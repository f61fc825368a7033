from __future__ import annotations

from enum import Enum


class LineColor(str, Enum):
    """Colour associated with a line on the network map.

    Using (str, Enum) for Python 3.10 compatibility (StrEnum requires 3.11+).
    """

    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    CYAN = "cyan"
    BLUE = "blue"
    PURPLE = "purple"
    PINK = "pink"


class LineService(str, Enum):
    """The class of train that runs on a line."""

    SUBURBAN = "suburban"
    REGIONAL = "regional"


class LineRouteType(str, Enum):
    """Shape of a line's route, as named in lines.json."""

    LINEAR = "linear"
    CITY_LOOP = "city-loop"
    BRANCH = "branch"


class CityLoopPortal(str, Enum):
    """Last stop before a city loop line enters the loop in the "up" direction."""

    RICHMOND = "richmond"
    JOLIMONT = "jolimont"
    NORTH_MELBOURNE = "north-melbourne"


class TimetableType(str, Enum):
    """A temporary timetable overrides the main one on the days it is in effect."""

    MAIN = "main"
    TEMPORARY = "temporary"
