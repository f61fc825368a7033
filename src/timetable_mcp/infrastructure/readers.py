"""Readers for the data bundle: stops.json, lines.json and the .ttbl files.

They do very little validation beyond types and shapes; the model
constructors check their own invariants.
"""
from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path
from typing import Any

from timetable_mcp.domain.entities import Line, Network, NetworkBuilder, Platform, Stop
from timetable_mcp.domain.exceptions import DataFormatError
from timetable_mcp.domain.routes import Branch, BranchRoute, CityLoopRoute, LinearRoute, Route
from timetable_mcp.domain.timetable import Timetables
from timetable_mcp.domain.value_objects import CityLoopPortal, LineColor, LineRouteType, LineService
from timetable_mcp.infrastructure.data_store import DataSnapshot
from timetable_mcp.infrastructure.ttbl_reader import read_ttbl

logger = logging.getLogger(__name__)

STOPS_FILE = "stops.json"
LINES_FILE = "lines.json"
TTBL_SUFFIX = ".ttbl"


# ---------------------------------------------------------------------------
# Type checks
# ---------------------------------------------------------------------------


def ensure_int(value: Any, for_what: str) -> int:
    # bool is an int subclass but never a valid ID
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise DataFormatError(f"Expecting an integer, not {value!r}, for {for_what}.")


def ensure_str(value: Any, for_what: str) -> str:
    if isinstance(value, str):
        return value
    raise DataFormatError(f"Expecting a string, not {value!r}, for {for_what}.")


def ensure_list(value: Any, for_what: str) -> list[Any]:
    if isinstance(value, list):
        return value
    raise DataFormatError(f"Expecting an array, not {value!r}, for {for_what}.")


def ensure_dict(value: Any, for_what: str) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    raise DataFormatError(f"Expecting an object, not {value!r}, for {for_what}.")


def ensure_int_list(value: Any, for_what: str) -> tuple[int, ...]:
    return tuple(ensure_int(x, for_what) for x in ensure_list(value, for_what))


def ensure_str_list(value: Any, for_what: str) -> tuple[str, ...]:
    return tuple(ensure_str(x, for_what) for x in ensure_list(value, for_what))


def _ensure_enum(enum_type: Any, value: Any, for_what: str) -> Any:
    raw = ensure_str(value, for_what)
    try:
        return enum_type(raw)
    except ValueError:
        raise DataFormatError(f"{raw!r} is not a valid value for {for_what}.")


# ---------------------------------------------------------------------------
# stops.json
# ---------------------------------------------------------------------------


def read_stops_json(obj: Any) -> list[Stop]:
    stops: list[Stop] = []
    for raw in ensure_list(ensure_dict(obj, "stops.json").get("stops"), "stops in stops.json"):
        raw = ensure_dict(raw, "stop in stops.json")
        stop_id = ensure_int(raw.get("id"), "stop ID")
        stops.append(
            Stop(
                id=stop_id,
                name=ensure_str(raw.get("name"), f"stop name (id={stop_id})"),
                platforms=_read_platforms(raw.get("platforms"), stop_id),
                url_name=ensure_str(raw.get("urlName"), f"stop URL name (id={stop_id})"),
                adjacent=ensure_int_list(raw.get("adjacent"), f"adjacent stops (stop={stop_id})"),
                ptv_id=ensure_int(raw.get("ptvID"), f"stop PTV ID (id={stop_id})"),
                tags=ensure_str_list(raw.get("tags", []), f"stop tags (id={stop_id})"),
            )
        )
    return stops


def _read_platforms(value: Any, stop_id: int) -> tuple[Platform, ...]:
    platforms: list[Platform] = []
    for raw in ensure_list(value, f"platforms (id={stop_id})"):
        raw = ensure_dict(raw, f"platform (stop={stop_id})")
        platform_id = ensure_str(raw.get("id"), f"platform ID (stop={stop_id})")
        for_platform = f"(stop={stop_id}, platform={platform_id})"
        platforms.append(
            Platform(
                id=platform_id,
                name=ensure_str(raw.get("name"), f"platform name {for_platform}"),
                rules=ensure_str_list(raw.get("rules", []), f"platform rules {for_platform}"),
            )
        )
    return tuple(platforms)


# ---------------------------------------------------------------------------
# lines.json
# ---------------------------------------------------------------------------


def read_lines_json(obj: Any) -> list[Line]:
    lines: list[Line] = []
    for raw in ensure_list(ensure_dict(obj, "lines.json").get("lines"), "lines in lines.json"):
        raw = ensure_dict(raw, "line in lines.json")
        line_id = ensure_int(raw.get("id"), "line ID")
        try:
            line = Line(
                id=line_id,
                name=ensure_str(raw.get("name"), f"line name (id={line_id})"),
                color=_ensure_enum(LineColor, raw.get("color"), f"line color (id={line_id})"),
                service=_ensure_enum(
                    LineService, raw.get("service"), f"line service (id={line_id})"
                ),
                route=_read_route(raw, line_id),
                ptv_routes=ensure_int_list(
                    raw.get("ptvRoutes", []), f"line PTV routes (id={line_id})"
                ),
                tags=ensure_str_list(raw.get("tags", []), f"line tags (id={line_id})"),
                description=ensure_str(
                    raw.get("description", ""), f"line description (id={line_id})"
                ),
            )
        except ValueError as exc:
            raise DataFormatError(f"Invalid line (id={line_id}): {exc}") from exc
        lines.append(line)
    return lines


def _read_route(raw: dict[str, Any], line_id: int) -> Route:
    route_type = _ensure_enum(LineRouteType, raw.get("routeType"), f"route type (line={line_id})")
    match route_type:
        case LineRouteType.LINEAR:
            return LinearRoute(
                stops=ensure_int_list(raw.get("stops"), f"stops (line={line_id})"),
                up_terminus_name=ensure_str(
                    raw.get("upTerminusName"), f"up terminus name (line={line_id})"
                ),
                down_terminus_name=ensure_str(
                    raw.get("downTerminusName"), f"down terminus name (line={line_id})"
                ),
            )
        case LineRouteType.CITY_LOOP:
            return CityLoopRoute(
                stops=ensure_int_list(raw.get("stops"), f"stops (line={line_id})"),
                portal=_ensure_enum(
                    CityLoopPortal, raw.get("portal"), f"city loop portal (line={line_id})"
                ),
                terminus_name=ensure_str(
                    raw.get("terminusName"), f"terminus name (line={line_id})"
                ),
            )
        case LineRouteType.BRANCH:
            branches = []
            for b in ensure_list(raw.get("branches"), f"branches (line={line_id})"):
                b = ensure_dict(b, f"branch (line={line_id})")
                branch_id = ensure_str(b.get("id"), f"branch ID (line={line_id})")
                for_branch = f"(line={line_id}, branch={branch_id})"
                branches.append(
                    Branch(
                        id=branch_id,
                        stops=ensure_int_list(b.get("stops"), f"stops {for_branch}"),
                        up_terminus_name=ensure_str(
                            b.get("upTerminusName"), f"up terminus name {for_branch}"
                        ),
                        down_terminus_name=ensure_str(
                            b.get("downTerminusName"), f"down terminus name {for_branch}"
                        ),
                    )
                )
            return BranchRoute(branches=tuple(branches))
    raise DataFormatError(f"Unsupported route type {route_type!r} (line={line_id}).")


# ---------------------------------------------------------------------------
# Whole bundle
# ---------------------------------------------------------------------------


def build_network(stops_obj: Any, lines_obj: Any, hash: str) -> Network:
    builder = NetworkBuilder(hash)
    try:
        for stop in read_stops_json(stops_obj):
            builder.add_stop(stop)
        for line in read_lines_json(lines_obj):
            builder.add_line(line)
        return builder.build()
    except ValueError as exc:
        raise DataFormatError(str(exc)) from exc


def build_snapshot(
    stops_obj: Any, lines_obj: Any, ttbl_texts: dict[str, str], hash: str
) -> DataSnapshot:
    """Assemble a snapshot from parsed JSON and the .ttbl texts keyed by file name."""
    network = build_network(stops_obj, lines_obj, hash)
    timetables = []
    for name in sorted(ttbl_texts):
        try:
            timetables.append(read_ttbl(ttbl_texts[name], network))
        except DataFormatError as exc:
            raise DataFormatError(f"{name}: {exc}") from exc
    try:
        collection = Timetables(timetables)
    except ValueError as exc:
        raise DataFormatError(str(exc)) from exc

    logger.info(
        "Loaded data %s: %d stops, %d lines, %d timetables",
        hash, len(network.stops), len(network.lines), len(collection),
    )
    return DataSnapshot(network=network, timetables=collection, hash=hash)


def _parse_json(text: str, name: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DataFormatError(f"{name} is not valid JSON: {exc}") from exc


def _read_member(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> str:
    try:
        return archive.read(info).decode("utf-8")
    except zipfile.BadZipFile as exc:
        raise DataFormatError(f"Data bundle member {info.filename} is damaged: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise DataFormatError(f"{info.filename} is not valid UTF-8: {exc}") from exc


def _read_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise DataFormatError(f"{path} is not valid UTF-8: {exc}") from exc


def read_data_zip(content: bytes, hash: str) -> DataSnapshot:
    """Read a bundle zip. Files are matched by base name wherever they sit in the archive."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(content))
    except zipfile.BadZipFile as exc:
        raise DataFormatError(f"Data bundle is not a valid zip file: {exc}") from exc

    json_files: dict[str, str] = {}
    ttbl_texts: dict[str, str] = {}
    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            name = Path(info.filename).name
            if name in (STOPS_FILE, LINES_FILE):
                json_files[name] = _read_member(archive, info)
            elif name.endswith(TTBL_SUFFIX):
                ttbl_texts[info.filename] = _read_member(archive, info)

    for required in (STOPS_FILE, LINES_FILE):
        if required not in json_files:
            raise DataFormatError(f"Data bundle is missing {required}.")

    stops_obj = _parse_json(json_files[STOPS_FILE], STOPS_FILE)
    lines_obj = _parse_json(json_files[LINES_FILE], LINES_FILE)
    return build_snapshot(stops_obj, lines_obj, ttbl_texts, hash)


def read_data_dir(path: str | Path, hash: str) -> DataSnapshot:
    """Read an extracted bundle. .ttbl files may be in any subdirectory."""
    root = Path(path)
    for required in (STOPS_FILE, LINES_FILE):
        if not (root / required).is_file():
            raise DataFormatError(f"{root} is missing {required}.")

    stops_obj = _parse_json(_read_file(root / STOPS_FILE), STOPS_FILE)
    lines_obj = _parse_json(_read_file(root / LINES_FILE), LINES_FILE)
    ttbl_texts = {
        str(p.relative_to(root)): _read_file(p)
        for p in root.rglob(f"*{TTBL_SUFFIX}")
    }
    return build_snapshot(stops_obj, lines_obj, ttbl_texts, hash)
