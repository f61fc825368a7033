from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from timetable_mcp.application.departure_search import query_departures, resolve_service
from timetable_mcp.domain.entities import Departure, Network, Service, Stop
from timetable_mcp.domain.exceptions import StopNotFoundError
from timetable_mcp.domain.routes import route_type_name
from timetable_mcp.domain.service_id import decode, encode
from timetable_mcp.infrastructure.data_store import DataStore
from timetable_mcp.infrastructure.time_utils import MELBOURNE_TZ, format_utc, now_melbourne

logger = logging.getLogger(__name__)


class DepartureService:
    """Answers departure, service and network queries against the active snapshot.

    Each call reads the store's snapshot once, so a refresh never mixes two
    releases into one answer.
    """

    def __init__(self, store: DataStore) -> None:
        self._store = store

    def resolve_stop(self, network: Network, query: str) -> Stop:
        """Find a stop by ID, URL name or name (case-insensitive).

        Raises StopNotFoundError when nothing matches.
        """
        query = query.strip()
        if query.isdigit():
            stop = network.find_stop(int(query))
            if stop is not None:
                return stop
            raise StopNotFoundError(f"No stop with ID {query} found.")

        folded = query.casefold()
        for stop in network.stops.values():
            if stop.url_name == folded:
                return stop
        for stop in network.stops.values():
            if stop.name.casefold() == folded:
                return stop
        raise StopNotFoundError(f"Stop not found: {query}")

    def get_departures(
        self,
        stop_query: str,
        dt: datetime | None = None,  # None → use now_melbourne()
        count: int = 10,
        reverse: bool = False,
        filter: str = "",
    ) -> dict[str, Any]:
        snapshot = self._store.current
        network = snapshot.network
        stop = self.resolve_stop(network, stop_query)
        logger.debug("Resolved %r to stop %d (%s)", stop_query, stop.id, stop.name)
        anchor = dt if dt is not None else now_melbourne()

        departures = query_departures(
            network,
            snapshot.timetables,
            stop.id,
            anchor,
            count,
            reverse=reverse,
            filter=filter,
            tz=MELBOURNE_TZ,
        )
        return {
            "hash": snapshot.hash,
            "stop": self._map_stop(stop),
            "boardTime": anchor.astimezone(MELBOURNE_TZ).isoformat(),
            "reverse": reverse,
            "filter": filter,
            "departures": [self._map_departure(network, d) for d in departures],
            "count": len(departures),
        }

    def get_service(self, encoded_id: str, now: datetime | None = None) -> dict[str, Any]:
        """Look up a service by its 6-character ID.

        Raises InvalidServiceIDError or ServiceNotFoundError.
        """
        snapshot = self._store.current
        service_id = decode(encoded_id.strip().lower())
        service = resolve_service(
            snapshot.network,
            snapshot.timetables,
            service_id,
            now if now is not None else now_melbourne(),
            tz=MELBOURNE_TZ,
        )
        return {"hash": snapshot.hash, "service": self._map_service(snapshot.network, service)}

    def network_summary(self) -> dict[str, Any]:
        snapshot = self._store.current
        network = snapshot.network
        return {
            "hash": snapshot.hash,
            "stops": [self._map_stop(s) for s in network.stops.values()],
            "lines": [
                {
                    "id": line.id,
                    "name": line.name,
                    "color": line.color.value,
                    "service": line.service.value,
                    "routeType": route_type_name(line.route),
                    "directions": [
                        {"id": d.id, "name": d.name, "stops": list(d.stops)}
                        for d in line.directions
                    ],
                }
                for line in network.lines.values()
            ],
        }

    def _map_stop(self, stop: Stop) -> dict[str, Any]:
        return {
            "id": stop.id,
            "name": stop.name,
            "urlName": stop.url_name,
            "platforms": [{"id": p.id, "name": p.name} for p in stop.platforms],
        }

    def _map_departure(self, network: Network, departure: Departure) -> dict[str, Any]:
        service = departure.service
        line = network.get_line(service.line)
        direction = line.get_direction(service.direction)
        return {
            "stop": departure.stop,
            "timeUTC": format_utc(departure.time_utc),
            "timeLocal": departure.time_utc.astimezone(MELBOURNE_TZ).isoformat(),
            "service": encode(service.id),
            "line": line.id,
            "lineName": line.name,
            "direction": service.direction,
            "directionName": direction.name if direction is not None else service.direction,
            "platform": departure.platform,
            "setDownOnly": departure.set_down_only,
            "isArrival": departure.is_arrival,
            "stops": [
                {
                    "stop": s.stop,
                    "name": network.get_stop(s.stop).name,
                    "timeUTC": format_utc(s.time_utc),
                }
                for s in service.stops
            ],
        }

    def _map_service(self, network: Network, service: Service) -> dict[str, Any]:
        line = network.get_line(service.line)
        direction = line.get_direction(service.direction)
        return {
            "id": encode(service.id),
            "line": line.id,
            "lineName": line.name,
            "direction": service.direction,
            "directionName": direction.name if direction is not None else service.direction,
            "dayOfWeek": service.day_of_week.name,
            "stops": [
                {
                    "stop": s.stop,
                    "name": network.get_stop(s.stop).name,
                    "timeUTC": format_utc(s.time_utc),
                    "platform": s.platform,
                    "setDownOnly": s.set_down_only,
                }
                for s in service.stops
            ],
        }
