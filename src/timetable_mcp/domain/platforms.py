"""Platform guessing from per-platform rule strings.

Timetables carry no platform information, so each platform lists rules such
as "up purple" or "!weekend stops-at-1071". A rule is a space separated
conjunction of clauses; a leading "!" negates a clause. Recognised clauses:

    up / down / <direction-id>
    <colour> / suburban / regional / line-<id>
    stops-at-<stop> / originates-at-<stop> / terminates-at-<stop>
    weekday / weekend / mon..sun

Anything else never matches.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from timetable_mcp.domain.calendar import DayOfWeek
from timetable_mcp.domain.routes import direction_is_down, direction_is_up

if TYPE_CHECKING:
    from timetable_mcp.domain.entities import Line, Network

_ID_PREFIXES = ("line", "stops-at", "originates-at", "terminates-at")


@dataclass(frozen=True)
class Clause:
    """A parsed clause. prefix is set for the "<prefix>-<id>" forms, else None."""

    text: str
    negated: bool = False
    prefix: str | None = None
    number: int | None = None


@dataclass(frozen=True)
class Rule:
    clauses: tuple[Clause, ...]


@dataclass(frozen=True)
class PlatformClues:
    """What is known about a service that might hint at its platform."""

    line: int
    direction: str
    stopping_pattern: tuple[int, ...]
    timetabled_day_of_week: DayOfWeek
    time_utc: datetime


def parse_clause(raw: str) -> Clause:
    negated = raw.startswith("!")
    text = raw[1:] if negated else raw
    for prefix in _ID_PREFIXES:
        if text.startswith(f"{prefix}-"):
            number = _parse_int(text[len(prefix) + 1:])
            if number is not None:
                return Clause(text=text, negated=negated, prefix=prefix, number=number)
    return Clause(text=text, negated=negated)


def parse_rule(raw: str) -> Rule:
    return Rule(tuple(parse_clause(c) for c in raw.split(" ")))


def _parse_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def clause_matches(clause: Clause, line: Line, clues: PlatformClues) -> bool:
    """Evaluate a clause before negation is applied."""
    text = clause.text

    # Direction based: "up", "down", "up-via-loop", etc.
    if text == "up" and direction_is_up(clues.direction):
        return True
    if text == "down" and direction_is_down(clues.direction):
        return True
    if text == clues.direction:
        return True

    # Line based: "cyan", "regional", "line-10", etc.
    if text == line.color.value or text == line.service.value:
        return True

    stops = clues.stopping_pattern
    if clause.prefix == "line":
        return clause.number == line.id
    if clause.prefix == "stops-at":
        return clause.number in stops
    if clause.prefix == "originates-at":
        return bool(stops) and clause.number == stops[0]
    if clause.prefix == "terminates-at":
        return bool(stops) and clause.number == stops[-1]

    dow = clues.timetabled_day_of_week
    if text == "weekend" and dow.is_weekend():
        return True
    if text == "weekday" and dow.is_weekday():
        return True
    return text == dow.code_name


def rule_matches(rule: Rule, line: Line, clues: PlatformClues) -> bool:
    return all(clause_matches(c, line, clues) != c.negated for c in rule.clauses)


def guesstimate_platform(network: Network, stop: int, clues: PlatformClues) -> str | None:
    """Return the platform ID the service most likely uses at stop, or None if unsure.

    Raises StopNotFoundError / LineNotFoundError when the stop or the clue's
    line is not in the network.
    """
    stop_data = network.get_stop(stop)
    line = network.get_line(clues.line)

    if len(stop_data.platforms) == 1:
        return stop_data.platforms[0].id

    matches = [
        p for p in stop_data.platforms
        if not p.parsed_rules or any(rule_matches(r, line, clues) for r in p.parsed_rules)
    ]
    if len(matches) == 1:
        return matches[0].id
    return None
