from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

MINUTES_PER_DAY = 60 * 24

_TIME_PATTERN = re.compile(r"[0-9]{1,2}:[0-9]{2}")
_ISO_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

_DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_DAY_CODES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
_WDR_LETTERS = "MTWTFSS"


@dataclass(frozen=True, order=True)
class LocalTime:
    """A time of day as used by a timetable, independent of any time zone.

    minute_of_day may exceed 1440 to represent a time on the following day
    (e.g. 1460 is 12:20am the next morning), but never by more than a day.
    """

    minute_of_day: int

    def __post_init__(self) -> None:
        if not 0 <= self.minute_of_day < MINUTES_PER_DAY * 2:
            raise ValueError(
                f"Minute of day {self.minute_of_day!r} is out of range for a LocalTime."
            )

    @classmethod
    def parse(cls, value: str, next_day: bool = False) -> LocalTime:
        """Parse "H:MM" or "HH:MM" (24-hour clock).

        A time on the following day is signalled with next_day, never by a
        prefix character in the string.
        """
        if not _TIME_PATTERN.fullmatch(value):
            raise ValueError(f"String {value!r} cannot be interpreted as a LocalTime.")
        hour_str, minute_str = value.split(":")
        hour, minute = int(hour_str), int(minute_str)
        if hour >= 24 or minute >= 60:
            raise ValueError(f"String {value!r} cannot be interpreted as a LocalTime.")
        if next_day:
            hour += 24
        return cls(hour * 60 + minute)

    @classmethod
    def from_datetime(cls, dt: datetime) -> LocalTime:
        """Wall-clock time of dt, truncated to the minute."""
        return cls(dt.hour * 60 + dt.minute)

    @classmethod
    def start_of_tomorrow(cls) -> LocalTime:
        return cls(MINUTES_PER_DAY)

    def is_before(self, other: LocalTime) -> bool:
        return self.minute_of_day < other.minute_of_day

    def is_after(self, other: LocalTime) -> bool:
        return self.minute_of_day > other.minute_of_day

    def is_before_or_equal(self, other: LocalTime) -> bool:
        return self.minute_of_day <= other.minute_of_day

    def is_after_or_equal(self, other: LocalTime) -> bool:
        return self.minute_of_day >= other.minute_of_day

    def is_next_day(self) -> bool:
        return self.minute_of_day >= MINUTES_PER_DAY

    def yesterday(self) -> LocalTime:
        """The same moment expressed relative to the following day's timetable."""
        return LocalTime(self.minute_of_day - MINUTES_PER_DAY)

    def tomorrow(self) -> LocalTime:
        """The same moment expressed relative to the previous day's timetable."""
        return LocalTime(self.minute_of_day + MINUTES_PER_DAY)

    def __str__(self) -> str:
        hour, minute = divmod(self.minute_of_day, 60)
        if hour >= 24:
            return f">{hour - 24:02d}:{minute:02d}"
        return f"{hour:02d}:{minute:02d}"


@dataclass(frozen=True)
class DayOfWeek:
    """A day of the week, counted from Monday (0) to Sunday (6)."""

    days_since_monday: int

    def __post_init__(self) -> None:
        if not 0 <= self.days_since_monday < 7:
            raise ValueError(
                f"{self.days_since_monday!r} is not a valid days since Monday number "
                "for a day of week."
            )

    @classmethod
    def from_date(cls, d: date) -> DayOfWeek:
        return cls(d.weekday())

    @property
    def name(self) -> str:
        return _DAY_NAMES[self.days_since_monday]

    @property
    def code_name(self) -> str:
        """Three-letter lowercase code, e.g. "thu"."""
        return _DAY_CODES[self.days_since_monday]

    def is_weekday(self) -> bool:
        return self.days_since_monday < 5

    def is_weekend(self) -> bool:
        return self.days_since_monday >= 5

    def yesterday(self) -> DayOfWeek:
        return DayOfWeek((self.days_since_monday - 1) % 7)

    def tomorrow(self) -> DayOfWeek:
        return DayOfWeek((self.days_since_monday + 1) % 7)


@dataclass(frozen=True, order=True)
class LocalDate:
    """A calendar date with no time zone attached."""

    year: int
    month: int
    day: int

    def __post_init__(self) -> None:
        try:
            date(self.year, self.month, self.day)
        except (TypeError, ValueError):
            raise ValueError(
                f"Date with year={self.year}, month={self.month}, and day={self.day} is invalid."
            )

    @classmethod
    def from_date(cls, d: date) -> LocalDate:
        return cls(d.year, d.month, d.day)

    @classmethod
    def from_iso(cls, iso: str) -> LocalDate:
        """Parse a date-only ISO 8601 string, e.g. "2022-07-21"."""
        if not _ISO_DATE_PATTERN.fullmatch(iso):
            raise ValueError(f"{iso!r} is an invalid date string.")
        try:
            return cls.from_date(date.fromisoformat(iso))
        except ValueError:
            raise ValueError(f"{iso!r} is an invalid date string.")

    @classmethod
    def from_datetime(cls, dt: datetime, tz: tzinfo) -> LocalDate:
        """The civil date of the instant dt in time zone tz."""
        return cls.from_date(dt.astimezone(tz).date())

    def to_date(self) -> date:
        return date(self.year, self.month, self.day)

    def to_iso(self) -> str:
        return self.to_date().isoformat()

    def to_datetime(self, tz: tzinfo, minutes: int = 0) -> datetime:
        """Local midnight of this date in tz, advanced by minutes of wall-clock time.

        Minutes beyond a day roll over into the following dates.
        """
        midnight = datetime.combine(self.to_date(), time())
        return (midnight + timedelta(minutes=minutes)).replace(tzinfo=tz)

    @property
    def day_of_week(self) -> DayOfWeek:
        return DayOfWeek.from_date(self.to_date())

    def add_days(self, days: int) -> LocalDate:
        return LocalDate.from_date(self.to_date() + timedelta(days=days))

    def yesterday(self) -> LocalDate:
        return self.add_days(-1)

    def tomorrow(self) -> LocalDate:
        return self.add_days(1)

    def days_until(self, other: LocalDate) -> int:
        return (other.to_date() - self.to_date()).days

    def is_before(self, other: LocalDate) -> bool:
        return self < other

    def is_after(self, other: LocalDate) -> bool:
        return self > other

    def __str__(self) -> str:
        return self.to_iso()


@dataclass(frozen=True)
class WeekDayRange:
    """The days of the week a timetable section runs on."""

    mon: bool
    tue: bool
    wed: bool
    thu: bool
    fri: bool
    sat: bool
    sun: bool

    @classmethod
    def parse(cls, value: str) -> WeekDayRange:
        """Parse a 7-character mask such as "MTWT___"."""
        if len(value) != 7:
            raise ValueError(f"{value!r} is not a valid week day range.")
        flags: list[bool] = []
        for char, letter in zip(value, _WDR_LETTERS):
            if char == letter:
                flags.append(True)
            elif char == "_":
                flags.append(False)
            else:
                raise ValueError(f"{value!r} is not a valid week day range.")
        return cls(*flags)

    def _flags(self) -> tuple[bool, ...]:
        return (self.mon, self.tue, self.wed, self.thu, self.fri, self.sat, self.sun)

    def num_of_days(self) -> int:
        return sum(self._flags())

    def includes(self, dow: DayOfWeek) -> bool:
        return self._flags()[dow.days_since_monday]

    def index_of(self, dow: DayOfWeek) -> int:
        """Ordinal position of dow among the included days.

        Raises ValueError if dow is not part of the range.
        """
        if not self.includes(dow):
            raise ValueError(f"{dow.name} is not included in {self}.")
        return sum(self._flags()[: dow.days_since_monday])

    def day_of_week_by_index(self, index: int) -> DayOfWeek:
        """Inverse of index_of."""
        included = [i for i, flag in enumerate(self._flags()) if flag]
        if not 0 <= index < len(included):
            raise ValueError(f"Index {index!r} is out of range for {self}.")
        return DayOfWeek(included[index])

    def __str__(self) -> str:
        return "".join(
            letter if flag else "_" for flag, letter in zip(self._flags(), _WDR_LETTERS)
        )
