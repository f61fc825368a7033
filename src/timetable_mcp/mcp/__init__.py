from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import partial
from typing import AsyncIterator

import httpx
from mcp.server.fastmcp import FastMCP

from timetable_mcp.application.departure_service import DepartureService
from timetable_mcp.infrastructure.data_client import (
    DEFAULT_MANIFEST_URL,
    DEFAULT_TIMEOUT,
    DataClient,
    load_snapshot_from_dir,
)
from timetable_mcp.infrastructure.data_store import (
    DEFAULT_REFRESH_INTERVAL,
    DataStore,
    SnapshotLoader,
)
from timetable_mcp.mcp.resources import register_resources
from timetable_mcp.mcp.tools import register_tools


@dataclass
class DataRuntime:
    """The store, its loader and the HTTP client, for the life of the process."""

    store: DataStore
    client: DataClient
    loader: SnapshotLoader
    refresh_interval_sec: float = DEFAULT_REFRESH_INTERVAL

    async def start(self) -> None:
        await self.store.start(self.loader, self.refresh_interval_sec)

    async def close(self) -> None:
        await self.store.stop()
        await self.client.close()

    @asynccontextmanager
    async def running(self) -> AsyncIterator[None]:
        await self.start()
        try:
            yield
        finally:
            await self.close()


def create_data_runtime(
    manifest_url: str = DEFAULT_MANIFEST_URL,
    data_dir: str | None = None,
    refresh_interval_sec: float = DEFAULT_REFRESH_INTERVAL,
) -> DataRuntime:
    """Data comes from data_dir when given, otherwise from the data server."""
    http_client = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT, follow_redirects=True)
    data_client = DataClient(http_client=http_client, manifest_url=manifest_url)
    loader: SnapshotLoader = (
        partial(load_snapshot_from_dir, data_dir) if data_dir else data_client.fetch_snapshot
    )
    return DataRuntime(
        store=DataStore(),
        client=data_client,
        loader=loader,
        refresh_interval_sec=refresh_interval_sec,
    )


def create_mcp_app(runtime: DataRuntime) -> FastMCP:
    """Create and configure the FastMCP application with all services wired.

    Shutdown belongs to whoever owns runtime, usually via runtime.running().
    """

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:
        # Entered per session (per request in stateless HTTP); start() runs once.
        await runtime.start()
        yield

    departure_svc = DepartureService(runtime.store)

    mcp = FastMCP("Train Timetable MCP", stateless_http=True, lifespan=lifespan)
    register_tools(mcp, departure_svc)
    register_resources(mcp, departure_svc)
    return mcp
