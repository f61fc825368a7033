"""Compact service IDs.

A service ID is a 6-digit base-36 number: 2 digits of timetable ID, 3 digits
of entry index (which already encodes the weekday) and 1 digit of week number
in the 36-week cycle. As a string it is lowercase and zero-padded, e.g.
"1a03fk".
"""
from __future__ import annotations

import re
from typing import NamedTuple

from timetable_mcp.domain.exceptions import InvalidServiceIDError

BASE = 36
WEEKS_IN_CYCLE = 36
MAX_TIMETABLE = BASE**2
MAX_INDEX = BASE**3
MAX_SERVICE_ID = BASE**6

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_ENCODED_PATTERN = re.compile(r"[0-9a-z]{6}")


class ServiceIDComponents(NamedTuple):
    timetable: int
    index: int
    week: int


def compose(timetable: int, index: int, week: int) -> int:
    if not 0 <= timetable < MAX_TIMETABLE:
        raise InvalidServiceIDError(f"Timetable ID {timetable} is out of range.")
    if not 0 <= index < MAX_INDEX:
        raise InvalidServiceIDError(f"Entry index {index} is out of range.")
    if not 0 <= week < WEEKS_IN_CYCLE:
        raise InvalidServiceIDError(f"Week number {week} is out of range.")
    return timetable * BASE**4 + index * BASE + week


def decompose(service_id: int) -> ServiceIDComponents:
    if not 0 <= service_id < MAX_SERVICE_ID:
        raise InvalidServiceIDError(f"Service ID {service_id} is out of range.")
    return ServiceIDComponents(
        timetable=service_id // BASE**4,
        index=(service_id // BASE) % MAX_INDEX,
        week=service_id % BASE,
    )


def encode(service_id: int) -> str:
    if not 0 <= service_id < MAX_SERVICE_ID:
        raise InvalidServiceIDError(f"Service ID {service_id} is out of range.")
    chars = []
    for _ in range(6):
        service_id, digit = divmod(service_id, BASE)
        chars.append(_DIGITS[digit])
    return "".join(reversed(chars))


def decode(value: str) -> int:
    if not _ENCODED_PATTERN.fullmatch(value):
        raise InvalidServiceIDError(f"{value!r} is not a valid service ID.")
    return int(value, BASE)
