"""Shared pytest fixtures for the Train Timetable MCP Server test suite.

The fixture network is a cut-down Pakenham corridor:

    Traralgon (300) - Pakenham (214) - Dandenong (101) - Flinders Street (1071)

Line 1 (suburban) runs Pakenham to Flinders Street; line 2 (regional) runs
from Traralgon. All dates are in July 2022, when Melbourne is on UTC+10.
"""
from __future__ import annotations

import io
import json
import zipfile
from datetime import datetime
from typing import Any, Mapping

import pytest

from timetable_mcp.domain.calendar import LocalDate, LocalTime, WeekDayRange
from timetable_mcp.domain.entities import Line, Network, NetworkBuilder, Platform, Stop
from timetable_mcp.domain.routes import LinearRoute
from timetable_mcp.domain.timetable import (
    EntryStop,
    Timetable,
    TimetableEntry,
    Timetables,
    TimetableSection,
)
from timetable_mcp.domain.value_objects import LineColor, LineService, TimetableType
from timetable_mcp.infrastructure.data_store import DataSnapshot, DataStore
from timetable_mcp.infrastructure.time_utils import MELBOURNE_TZ

TRARALGON = 300
PAKENHAM = 214
DANDENONG = 101
FLINDERS_STREET = 1071

SUBURBAN_LINE = 1
REGIONAL_LINE = 2

SUBURBAN_TIMETABLE = 1
REGIONAL_TIMETABLE = 2

# Index layout of the suburban timetable: 3 "up" entries on 5 weekdays take
# indices 0-14, then the single Tuesday-only "down" entry takes 15.
DOWN_ENTRY_INDEX = 15


def t(value: str) -> LocalTime:
    """Parse a grid-style time, e.g. "8:15" or ">0:20"."""
    if value.startswith(">"):
        return LocalTime.parse(value[1:], next_day=True)
    return LocalTime.parse(value)


def entry(index: int, *times: tuple[int, str]) -> TimetableEntry:
    return TimetableEntry(index, tuple(EntryStop(stop, t(time)) for stop, time in times))


def build_network(hash: str = "2022-07-01") -> Network:
    builder = NetworkBuilder(hash)
    builder.add_stop(
        Stop(
            id=TRARALGON,
            name="Traralgon",
            platforms=(Platform("1", "Platform 1"),),
            url_name="traralgon",
            adjacent=(PAKENHAM,),
            ptv_id=1194,
        )
    )
    builder.add_stop(
        Stop(
            id=PAKENHAM,
            name="Pakenham",
            platforms=(
                Platform("1", "Platform 1", ("up",)),
                Platform("2", "Platform 2", ("down",)),
            ),
            url_name="pakenham",
            adjacent=(TRARALGON, DANDENONG),
            ptv_id=1153,
        )
    )
    builder.add_stop(
        Stop(
            id=DANDENONG,
            name="Dandenong",
            platforms=(
                Platform("1", "Platform 1", ("up",)),
                Platform("2", "Platform 2", ("down",)),
                Platform("3", "Platform 3", ("regional",)),
            ),
            url_name="dandenong",
            adjacent=(PAKENHAM, FLINDERS_STREET),
            ptv_id=1049,
        )
    )
    builder.add_stop(
        Stop(
            id=FLINDERS_STREET,
            name="Flinders Street",
            platforms=(Platform("1", "Platform 1"), Platform("2", "Platform 2")),
            url_name="flindersstreet",
            adjacent=(DANDENONG,),
            ptv_id=1071,
        )
    )
    builder.add_line(
        Line(
            id=SUBURBAN_LINE,
            name="Pakenham",
            color=LineColor.CYAN,
            service=LineService.SUBURBAN,
            route=LinearRoute(
                stops=(PAKENHAM, DANDENONG, FLINDERS_STREET),
                up_terminus_name="Flinders Street",
                down_terminus_name="Pakenham",
            ),
        )
    )
    builder.add_line(
        Line(
            id=REGIONAL_LINE,
            name="Gippsland",
            color=LineColor.PURPLE,
            service=LineService.REGIONAL,
            route=LinearRoute(
                stops=(TRARALGON, PAKENHAM, DANDENONG, FLINDERS_STREET),
                up_terminus_name="Flinders Street",
                down_terminus_name="Traralgon",
            ),
        )
    )
    return builder.build()


def build_timetables() -> Timetables:
    suburban = Timetable(
        id=SUBURBAN_TIMETABLE,
        line=SUBURBAN_LINE,
        created=LocalDate(2022, 7, 1),
        type=TimetableType.MAIN,
        begins=None,
        ends=None,
        sections=(
            TimetableSection(
                direction="up",
                wdr=WeekDayRange.parse("MTWTF__"),
                start_index=0,
                entries=(
                    entry(0, (PAKENHAM, "7:45"), (DANDENONG, "8:00"), (FLINDERS_STREET, "8:40")),
                    entry(1, (PAKENHAM, "8:00"), (DANDENONG, "8:15"), (FLINDERS_STREET, "8:55")),
                    entry(2, (PAKENHAM, "8:15"), (DANDENONG, "8:30"), (FLINDERS_STREET, "9:10")),
                ),
            ),
            TimetableSection(
                direction="down",
                wdr=WeekDayRange.parse("_T_____"),
                start_index=DOWN_ENTRY_INDEX,
                entries=(
                    entry(
                        DOWN_ENTRY_INDEX,
                        (FLINDERS_STREET, "23:30"),
                        (DANDENONG, ">0:05"),
                        (PAKENHAM, ">0:20"),
                    ),
                ),
            ),
        ),
    )
    regional = Timetable(
        id=REGIONAL_TIMETABLE,
        line=REGIONAL_LINE,
        created=LocalDate(2022, 7, 1),
        type=TimetableType.MAIN,
        begins=None,
        ends=None,
        sections=(
            TimetableSection(
                direction="up",
                wdr=WeekDayRange.parse("MTWTFSS"),
                start_index=0,
                entries=(
                    entry(
                        0,
                        (TRARALGON, "6:00"),
                        (PAKENHAM, "7:00"),
                        (DANDENONG, "7:20"),
                        (FLINDERS_STREET, "8:00"),
                    ),
                ),
            ),
        ),
    )
    return Timetables([suburban, regional])


@pytest.fixture
def network() -> Network:
    return build_network()


@pytest.fixture
def timetables() -> Timetables:
    return build_timetables()


@pytest.fixture
def snapshot(network: Network, timetables: Timetables) -> DataSnapshot:
    return DataSnapshot(network=network, timetables=timetables, hash=network.hash)


@pytest.fixture
def loaded_store(snapshot: DataSnapshot) -> DataStore:
    store = DataStore()
    store.replace(snapshot)
    return store


@pytest.fixture
def tuesday_morning() -> datetime:
    """Tuesday 19 July 2022, 08:05 in Melbourne (week 28 of the cycle)."""
    return datetime(2022, 7, 19, 8, 5, tzinfo=MELBOURNE_TZ)


# ---------------------------------------------------------------------------
# The same data as a bundle, as the data server would publish it
# ---------------------------------------------------------------------------

STOPS_JSON: dict[str, Any] = {
    "stops": [
        {
            "id": TRARALGON,
            "name": "Traralgon",
            "platforms": [{"id": "1", "name": "Platform 1"}],
            "urlName": "traralgon",
            "adjacent": [PAKENHAM],
            "ptvID": 1194,
        },
        {
            "id": PAKENHAM,
            "name": "Pakenham",
            "platforms": [
                {"id": "1", "name": "Platform 1", "rules": ["up"]},
                {"id": "2", "name": "Platform 2", "rules": ["down"]},
            ],
            "urlName": "pakenham",
            "adjacent": [TRARALGON, DANDENONG],
            "ptvID": 1153,
        },
        {
            "id": DANDENONG,
            "name": "Dandenong",
            "platforms": [
                {"id": "1", "name": "Platform 1", "rules": ["up"]},
                {"id": "2", "name": "Platform 2", "rules": ["down"]},
                {"id": "3", "name": "Platform 3", "rules": ["regional"]},
            ],
            "urlName": "dandenong",
            "adjacent": [PAKENHAM, FLINDERS_STREET],
            "ptvID": 1049,
        },
        {
            "id": FLINDERS_STREET,
            "name": "Flinders Street",
            "platforms": [{"id": "1", "name": "Platform 1"}, {"id": "2", "name": "Platform 2"}],
            "urlName": "flindersstreet",
            "adjacent": [DANDENONG],
            "ptvID": 1071,
        },
    ]
}

LINES_JSON: dict[str, Any] = {
    "lines": [
        {
            "id": SUBURBAN_LINE,
            "name": "Pakenham",
            "color": "cyan",
            "service": "suburban",
            "routeType": "linear",
            "stops": [PAKENHAM, DANDENONG, FLINDERS_STREET],
            "upTerminusName": "Flinders Street",
            "downTerminusName": "Pakenham",
        },
        {
            "id": REGIONAL_LINE,
            "name": "Gippsland",
            "color": "purple",
            "service": "regional",
            "routeType": "linear",
            "stops": [TRARALGON, PAKENHAM, DANDENONG, FLINDERS_STREET],
            "upTerminusName": "Flinders Street",
            "downTerminusName": "Traralgon",
        },
    ]
}

SUBURBAN_TTBL = """\
[timetable]
version: 2
created: 2022-07-01
id: 1
line: 1
type: main
begins: *
ends: *

[up, MTWTF__]
214  Pakenham         7:45  8:00  8:15
101  Dandenong        8:00  8:15  8:30
1071 Flinders-Street  8:40  8:55  9:10

[down, _T_____]
1071 Flinders-Street  23:30
101  Dandenong        >0:05
214  Pakenham         >0:20
"""

REGIONAL_TTBL = """\
[timetable]
version: 2
created: 2022-07-01
id: 2
line: 2
type: main
begins: *
ends: *

[up, MTWTFSS]
300  Traralgon        6:00
214  Pakenham         7:00
101  Dandenong        7:20
1071 Flinders-Street  8:00
"""


def bundle_files() -> dict[str, str]:
    """File name to contents for a complete bundle."""
    return {
        "stops.json": json.dumps(STOPS_JSON),
        "lines.json": json.dumps(LINES_JSON),
        "timetables/1.ttbl": SUBURBAN_TTBL,
        "timetables/2.ttbl": REGIONAL_TTBL,
    }


def make_zip(files: Mapping[str, str | bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()
