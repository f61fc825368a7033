from __future__ import annotations

from dataclasses import dataclass

from timetable_mcp.domain.calendar import DayOfWeek, LocalDate, LocalTime, WeekDayRange
from timetable_mcp.domain.value_objects import TimetableType

MAX_TIMETABLE_ID = 36 * 36  # Must fit in 2 base-36 digits
MAX_ENTRIES_PER_TIMETABLE = 36 * 36 * 36  # Must fit in 3 base-36 digits


@dataclass(frozen=True)
class EntryStop:
    stop: int
    time: LocalTime


@dataclass(frozen=True)
class TimetableEntry:
    """A repeating trip pattern in a timetable section."""

    index: int  # Unique within the owning timetable
    times: tuple[EntryStop, ...]

    def __post_init__(self) -> None:
        if not 0 <= self.index < MAX_ENTRIES_PER_TIMETABLE:
            raise ValueError(
                f"Timetable entry index must be 0-{MAX_ENTRIES_PER_TIMETABLE - 1} inclusive, "
                f"so index={self.index} is invalid."
            )
        if len(self.times) < 2:
            raise ValueError(
                f"Attempted to create timetable entry with less than 2 stops (index={self.index})."
            )

    def time_at(self, stop: int) -> LocalTime | None:
        return next((t.time for t in self.times if t.stop == stop), None)


@dataclass(frozen=True)
class TimetableSection:
    """Entries that run in the same direction on the same days of the week.

    Each entry takes one global index per day in wdr: the block for the
    n-th included day starts at start_index + n * len(entries).
    """

    direction: str
    wdr: WeekDayRange
    start_index: int
    entries: tuple[TimetableEntry, ...]

    def __post_init__(self) -> None:
        for i, entry in enumerate(self.entries):
            if entry.index != self.start_index + i:
                raise ValueError(
                    f"Entry index {entry.index} does not follow section start index "
                    f"{self.start_index} at position {i}."
                )

    @property
    def index_count(self) -> int:
        return len(self.entries) * self.wdr.num_of_days()

    def has_index(self, index: int) -> bool:
        return self.start_index <= index < self.start_index + self.index_count

    def global_index(self, entry: TimetableEntry, dow: DayOfWeek) -> int:
        return entry.index + self.wdr.index_of(dow) * len(self.entries)

    def get_entry_by_index(self, index: int) -> tuple[TimetableEntry, DayOfWeek] | None:
        if not self.has_index(index):
            return None
        day_ordinal, position = divmod(index - self.start_index, len(self.entries))
        return self.entries[position], self.wdr.day_of_week_by_index(day_ordinal)


@dataclass(frozen=True)
class FullTimetableEntry:
    """An entry occurrence with its timetable, line, direction and weekday attached.

    index is the global index of the occurrence, so it already encodes the
    weekday.
    """

    timetable: int
    line: int
    direction: str
    day_of_week: DayOfWeek
    index: int
    times: tuple[EntryStop, ...]


@dataclass(frozen=True)
class Timetable:
    """One .ttbl file: a main or temporary timetable for a single line."""

    id: int  # 0-1295; by convention the first base-36 digit matches the line
    line: int
    created: LocalDate
    type: TimetableType
    begins: LocalDate | None  # None = in effect for every earlier day
    ends: LocalDate | None  # None = no known end
    sections: tuple[TimetableSection, ...]

    def __post_init__(self) -> None:
        if not 0 <= self.id < MAX_TIMETABLE_ID:
            raise ValueError(
                f"Timetable ID must be 0-{MAX_TIMETABLE_ID - 1} inclusive, so id={self.id} is invalid."
            )

    def is_in_effect(self, day: LocalDate) -> bool:
        if self.begins is not None and day.is_before(self.begins):
            return False
        if self.ends is not None and day.is_after(self.ends):
            return False
        return True

    def get_entry_by_index(self, index: int) -> FullTimetableEntry | None:
        """Resolve a global index, or None if no section uses it."""
        section = next((s for s in self.sections if s.has_index(index)), None)
        if section is None:
            return None
        found = section.get_entry_by_index(index)
        if found is None:
            return None
        entry, dow = found
        return FullTimetableEntry(
            timetable=self.id,
            line=self.line,
            direction=section.direction,
            day_of_week=dow,
            index=index,
            times=entry.times,
        )


class Timetables:
    """The complete collection of timetables, indexed by ID and by line."""

    def __init__(self, timetables: list[Timetable] | tuple[Timetable, ...]) -> None:
        self.timetables: tuple[Timetable, ...] = tuple(timetables)
        self._by_id: dict[int, Timetable] = {}
        self._by_line: dict[int, list[Timetable]] = {}
        for t in self.timetables:
            if t.id in self._by_id:
                raise ValueError(f"Duplicate timetable ID {t.id}.")
            self._by_id[t.id] = t
            self._by_line.setdefault(t.line, []).append(t)

    def __len__(self) -> int:
        return len(self.timetables)

    def get(self, timetable_id: int) -> Timetable | None:
        return self._by_id.get(timetable_id)

    def for_line(self, line: int) -> list[Timetable]:
        return list(self._by_line.get(line, ()))

    def get_entry_by_index(self, timetable_id: int, index: int) -> FullTimetableEntry | None:
        timetable = self._by_id.get(timetable_id)
        if timetable is None:
            return None
        return timetable.get_entry_by_index(index)

    def for_day(self, day: LocalDate, lines: list[int]) -> list[Timetable]:
        """Timetables in operation on day for the given lines.

        A temporary timetable replaces the main one while it is in effect. If
        several are in effect for the same line they are all used.
        """
        result: list[Timetable] = []
        for line in lines:
            current = [t for t in self.for_line(line) if t.is_in_effect(day)]
            temporary = [t for t in current if t.type is TimetableType.TEMPORARY]
            result.extend(temporary or current)
        return result
