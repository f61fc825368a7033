from __future__ import annotations

import json

from mcp.server.fastmcp import FastMCP

from timetable_mcp.application.departure_service import DepartureService


def register_resources(mcp: FastMCP, departure_svc: DepartureService) -> None:
    """Register all resources. Called once during server setup."""

    @mcp.resource("network://summary", mime_type="application/json")
    def network_summary() -> str:
        """Stops (with platforms and URL names) and lines (with directions) in the loaded data."""
        return json.dumps(departure_svc.network_summary(), ensure_ascii=False)
