#!/usr/bin/env python3
"""Train Timetable MCP Server entry point.

Usage:
    uv run server.py           # streamable HTTP on HOST:PORT/mcp
    uv run server.py --stdio   # stdio transport for desktop MCP clients

Environment:
    HOST, PORT                  HTTP bind address (default 0.0.0.0:3001)
    LOG_LEVEL                   DEBUG, INFO (default), WARNING, ...
    DATA_MANIFEST_URL           Where to find the latest timetable bundle
    DATA_DIR                    Serve an extracted bundle from disk instead
    DATA_REFRESH_INTERVAL_SEC   Seconds between data refreshes (default 3600)
"""
from __future__ import annotations

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import uvicorn
from mcp.server.fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware

from timetable_mcp.infrastructure.data_client import DEFAULT_MANIFEST_URL
from timetable_mcp.infrastructure.data_store import DEFAULT_REFRESH_INTERVAL
from timetable_mcp.mcp import DataRuntime, create_data_runtime, create_mcp_app

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3001"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
DATA_MANIFEST_URL = os.environ.get("DATA_MANIFEST_URL", DEFAULT_MANIFEST_URL)
DATA_DIR = os.environ.get("DATA_DIR") or None
DATA_REFRESH_INTERVAL_SEC = float(
    os.environ.get("DATA_REFRESH_INTERVAL_SEC", str(DEFAULT_REFRESH_INTERVAL))
)

logger = logging.getLogger("timetable_mcp.server")


def build_http_app(mcp: FastMCP, runtime: DataRuntime) -> Starlette:
    """Streamable HTTP app with permissive CORS for browser-based clients.

    The runtime starts with the app and is closed when the server shuts down.
    """
    app = mcp.streamable_http_app()
    session_lifespan = app.router.lifespan_context

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[Any]:
        async with runtime.running(), session_lifespan(app) as state:
            yield state

    app.router.lifespan_context = lifespan
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Mcp-Session-Id"],
    )
    return app


async def run_stdio(mcp: FastMCP, runtime: DataRuntime) -> None:
    async with runtime.running():
        await mcp.run_stdio_async()


def main(argv: list[str]) -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    runtime = create_data_runtime(
        manifest_url=DATA_MANIFEST_URL,
        data_dir=DATA_DIR,
        refresh_interval_sec=DATA_REFRESH_INTERVAL_SEC,
    )
    mcp = create_mcp_app(runtime)
    if "--stdio" in argv:
        asyncio.run(run_stdio(mcp, runtime))
        return

    source = DATA_DIR or DATA_MANIFEST_URL
    logger.info("Serving timetables from %s on http://%s:%d/mcp", source, HOST, PORT)
    uvicorn.run(build_http_app(mcp, runtime), host=HOST, port=PORT)


if __name__ == "__main__":
    main(sys.argv[1:])
