from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta

from mcp import types
from mcp.server.fastmcp import FastMCP

from timetable_mcp.application.departure_service import DepartureService
from timetable_mcp.domain.exceptions import (
    DataFetchError,
    DataUnavailableError,
    InvalidServiceIDError,
    NotFoundError,
    ValidationError,
)
from timetable_mcp.infrastructure.time_utils import now_melbourne, parse_iso_datetime

logger = logging.getLogger(__name__)

# Service IDs only repeat every 36 weeks, so results further out are unreliable.
MAX_DAYS_FROM_PRESENT = 100
MAX_COUNT = 50

_RESULT_URI = "mcp://timetable-mcp/result"


def _as_resource(json_str: str) -> list[types.EmbeddedResource]:
    """Wrap a JSON string as an embedded resource so the LLM does not narrate it."""
    return [
        types.EmbeddedResource(
            type="resource",
            resource=types.TextResourceContents(
                uri=_RESULT_URI,  # type: ignore[arg-type]
                mimeType="application/json",
                text=json_str,
            ),
        )
    ]


def _error_json(message: str) -> str:
    return json.dumps({"error": message}, ensure_ascii=False)


def _handle_exception(exc: Exception) -> list[types.EmbeddedResource]:
    if isinstance(
        exc, (ValidationError, InvalidServiceIDError, NotFoundError, DataUnavailableError)
    ):
        return _as_resource(_error_json(str(exc)))
    if isinstance(exc, DataFetchError):
        return _as_resource(
            _error_json("Timetable data server error. Please try again later.")
        )
    if isinstance(exc, ValueError):
        return _as_resource(_error_json(str(exc)))
    logger.exception("Unexpected error in MCP tool: %s", exc)
    return _as_resource(_error_json("An unexpected error occurred."))


def _parse_datetime_str(datetime_str: str | None, now: datetime) -> datetime:
    if datetime_str is None or not datetime_str.strip():
        return now
    try:
        dt = parse_iso_datetime(datetime_str)
    except ValueError:
        raise ValidationError(
            f"{datetime_str!r} is not a valid ISO 8601 time, e.g. \"2022-07-21T16:17:00\""
        )
    if abs(dt - now) > timedelta(days=MAX_DAYS_FROM_PRESENT):
        raise ValidationError(
            f"Cannot get departures over {MAX_DAYS_FROM_PRESENT} days in the past/future."
        )
    return dt


def _validate_count(count: int) -> int:
    if count < 1:
        raise ValidationError(f"{count!r} is not a positive integer.")
    if count > MAX_COUNT:
        raise ValidationError(f"{MAX_COUNT} is the limit for count, so {count} is not allowed.")
    return count


def register_tools(mcp: FastMCP, departure_svc: DepartureService) -> None:
    """Bind all @mcp.tool decorators. Called once during server setup."""

    @mcp.tool()
    async def get_departures(
        stop: str,
        datetime_str: str | None = None,
        count: int = 10,
        reverse: bool = False,
        filter: str = "",
    ) -> list[types.EmbeddedResource]:
        """Get scheduled train departures from a stop.

        Args:
            stop: Stop ID, URL name (e.g. "flindersstreet") or exact stop name.
            datetime_str: Board time as ISO 8601, e.g. "2022-07-21T16:17:00". Times
                          without an offset are Australia/Melbourne. Defaults to now.
            count: Number of departures to return, 1-50 (default 10).
            reverse: Return departures before the board time instead, latest first.
            filter: Space separated filter tokens, all of which must match:
                    "narr" (no arrivals), "nsdo" (no set-down-only), "up", "down",
                    "direction-<id>", "line-<id>", "service-<suburban|regional>",
                    "platform-<id>".
        """
        try:
            if not stop.strip():
                return _as_resource(_error_json("Stop cannot be empty"))
            dt = _parse_datetime_str(datetime_str, now_melbourne())
            result = departure_svc.get_departures(
                stop_query=stop.strip(),
                dt=dt,
                count=_validate_count(count),
                reverse=reverse,
                filter=filter,
            )
            return _as_resource(json.dumps(result, default=str, ensure_ascii=False))
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_service(
        service_id: str,
    ) -> list[types.EmbeddedResource]:
        """Get every stop of a service, with times and guessed platforms.

        Args:
            service_id: 6-character service ID obtained from a departure entry.
        """
        try:
            if not service_id.strip():
                return _as_resource(_error_json("service_id cannot be empty"))
            result = departure_svc.get_service(service_id)
            return _as_resource(json.dumps(result, default=str, ensure_ascii=False))
        except Exception as exc:
            return _handle_exception(exc)
