"""Reader for .ttbl timetable files.

A file starts with a "[timetable]" metadata section, then one section per
direction and week day range:

    [timetable]
    version: 2
    created: 2022-04-30
    id: 10
    line: 1
    type: main
    begins: *
    ends: *

    [up, MTWTF__]
    19842 Pakenham     5:01  5:31
    19843 Cardinia-Rd  5:04  -
    ...
    19854 Flinders-St  6:14  >0:14

Each grid row is a stop ID, a label, then one cell per entry: "H:MM", ">H:MM"
for a time past midnight, or "-" where the entry skips the stop.
"""
from __future__ import annotations

from dataclasses import dataclass

from timetable_mcp.domain.calendar import LocalDate, LocalTime, WeekDayRange
from timetable_mcp.domain.entities import Network
from timetable_mcp.domain.exceptions import DataFormatError
from timetable_mcp.domain.timetable import EntryStop, Timetable, TimetableEntry, TimetableSection
from timetable_mcp.domain.value_objects import TimetableType

TTBL_VERSION = "2"
METADATA_HEADER = "timetable"


@dataclass(frozen=True)
class TtblSection:
    header: str  # Without the surrounding brackets
    content: list[str]


@dataclass(frozen=True)
class TtblMetadata:
    created: LocalDate
    id: int
    line: int
    type: TimetableType
    begins: LocalDate | None
    ends: LocalDate | None


def split_sections(text: str) -> list[TtblSection]:
    """Split a .ttbl file into its bracketed sections, dropping blank lines."""
    lines = [s.strip() for s in text.splitlines()]
    lines = [s for s in lines if s]

    if (
        len(lines) < 2
        or lines[0] != f"[{METADATA_HEADER}]"
        or lines[1] != f"version: {TTBL_VERSION}"
    ):
        raise DataFormatError("Timetable file (.ttbl) in unrecognized format.")

    sections: list[TtblSection] = []
    header: str | None = None
    content: list[str] = []
    for line in lines:
        if line.startswith("[") and line.endswith("]"):
            if header is not None:
                sections.append(TtblSection(header, content))
            header, content = line[1:-1], []
        else:
            content.append(line)
    if header is not None:
        sections.append(TtblSection(header, content))
    return sections


def _get_param(name: str, section: TtblSection) -> str:
    prefix = f"{name}: "
    values = [line[len(prefix):] for line in section.content if line.startswith(prefix)]
    if not values:
        raise DataFormatError(f"Timetable metadata missing {name!r} param.")
    if len(values) > 1:
        raise DataFormatError(f"Timetable metadata has duplicated {name!r} param.")
    return values[0]


def _parse_int(value: str, for_what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise DataFormatError(f"{value!r} is not a valid integer for {for_what}.")


def _parse_date(value: str, for_what: str) -> LocalDate:
    try:
        return LocalDate.from_iso(value)
    except ValueError:
        raise DataFormatError(f"{value!r} is not a valid date for {for_what}.")


def _parse_nullable_date(value: str, for_what: str) -> LocalDate | None:
    """Like _parse_date, but "*" is a wildcard and gives None."""
    if value == "*":
        return None
    return _parse_date(value, for_what)


def read_metadata(section: TtblSection) -> TtblMetadata:
    if section.header != METADATA_HEADER:
        raise DataFormatError(f"Cannot read metadata from section with header {section.header!r}.")

    created = _parse_date(_get_param("created", section), "created")
    type_str = _get_param("type", section)
    try:
        timetable_type = TimetableType(type_str)
    except ValueError:
        raise DataFormatError(f"{type_str!r} is not a valid timetable type.")

    return TtblMetadata(
        created=created,
        id=_parse_int(_get_param("id", section), "id"),
        line=_parse_int(_get_param("line", section), "line"),
        type=timetable_type,
        begins=_parse_nullable_date(_get_param("begins", section), "begins"),
        ends=_parse_nullable_date(_get_param("ends", section), "ends"),
    )


def _parse_cell(cell: str) -> LocalTime | None:
    if cell == "-":
        return None
    next_day = cell.startswith(">")
    try:
        return LocalTime.parse(cell[1:] if next_day else cell, next_day)
    except ValueError as exc:
        raise DataFormatError(str(exc)) from exc


def _gridify(content: list[str]) -> list[tuple[int, list[LocalTime | None]]]:
    if not content:
        raise DataFormatError("The timetable grid was missing.")

    rows: list[tuple[int, list[LocalTime | None]]] = []
    for line in content:
        cells = line.split()
        if len(cells) < 2:
            raise DataFormatError(f"Timetable row {line!r} is missing its stop ID or label.")
        stop = _parse_int(cells[0], "timetable row stop ID")
        rows.append((stop, [_parse_cell(c) for c in cells[2:]]))

    if any(len(times) != len(rows[0][1]) for _, times in rows):
        raise DataFormatError(
            "Not all rows in this timetable grid had consistent lengths "
            "(i.e. the grid was not rectangular)."
        )
    return rows


def read_section(
    section: TtblSection, line_id: int, start_index: int, network: Network
) -> TimetableSection:
    line = network.lines.get(line_id)
    if line is None:
        raise DataFormatError(f"Cannot find line with ID {line_id}.")

    components = section.header.split(", ")
    if len(components) != 2:
        raise DataFormatError(
            "The header of each section with timetable content must contain the "
            "direction and week day range."
        )
    direction_id, wdr_str = components

    direction = line.get_direction(direction_id)
    if direction is None:
        raise DataFormatError(f"Direction {direction_id!r} is invalid for line id={line_id}.")
    try:
        wdr = WeekDayRange.parse(wdr_str)
    except ValueError as exc:
        raise DataFormatError(str(exc)) from exc

    grid = _gridify(section.content)
    if tuple(stop for stop, _ in grid) != direction.stops:
        raise DataFormatError(
            f"Timetable had incorrect stops for direction {direction_id!r} on line id={line_id}."
        )

    entries: list[TimetableEntry] = []
    for column in range(len(grid[0][1])):
        times = tuple(
            EntryStop(stop, row[column]) for stop, row in grid if row[column] is not None
        )
        try:
            entries.append(TimetableEntry(start_index + column, times))
        except ValueError as exc:
            raise DataFormatError(str(exc)) from exc

    return TimetableSection(direction_id, wdr, start_index, tuple(entries))


def read_ttbl(text: str, network: Network) -> Timetable:
    """Parse the contents of a .ttbl file against the lines in network."""
    sections = split_sections(text)
    if len(sections) < 2:
        raise DataFormatError(
            "Timetable file (.ttbl) didn't have enough sections. Expected metadata and "
            "one section with timetable content as a minimum."
        )

    metadata = read_metadata(sections[0])

    # Indices are shared across the whole file; each entry takes one per day it runs.
    current_index = 0
    parsed: list[TimetableSection] = []
    for s in sections[1:]:
        section = read_section(s, metadata.line, current_index, network)
        current_index += section.index_count
        parsed.append(section)

    try:
        return Timetable(
            id=metadata.id,
            line=metadata.line,
            created=metadata.created,
            type=metadata.type,
            begins=metadata.begins,
            ends=metadata.ends,
            sections=tuple(parsed),
        )
    except ValueError as exc:
        raise DataFormatError(str(exc)) from exc
