"""Tests for DataStore snapshot handling and the refresh loop."""
from __future__ import annotations

import asyncio
import logging

import pytest

from timetable_mcp.domain.exceptions import DataFetchError, DataUnavailableError
from timetable_mcp.infrastructure.data_store import DataSnapshot, DataStore


class CountingLoader:
    """Returns the given snapshot, or raises if it is an exception."""

    def __init__(self, result: DataSnapshot | Exception) -> None:
        self.result = result
        self.calls = 0

    async def __call__(self) -> DataSnapshot:
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def test_current_before_load_raises() -> None:
    store = DataStore()
    assert not store.is_loaded
    with pytest.raises(DataUnavailableError):
        store.current


def test_replace(snapshot: DataSnapshot) -> None:
    store = DataStore()
    store.replace(snapshot)
    assert store.is_loaded
    assert store.current is snapshot


async def test_refresh_replaces_snapshot(snapshot: DataSnapshot) -> None:
    store = DataStore()
    assert await store.refresh(CountingLoader(snapshot)) is True
    assert store.current is snapshot


async def test_failed_refresh_keeps_previous_snapshot(
    loaded_store: DataStore, snapshot: DataSnapshot, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.ERROR):
        replaced = await loaded_store.refresh(CountingLoader(DataFetchError("boom")))
    assert replaced is False
    assert loaded_store.current is snapshot
    assert "Failed to refresh" in caplog.text


async def test_start_is_idempotent(snapshot: DataSnapshot) -> None:
    store = DataStore()
    loader = CountingLoader(snapshot)
    await store.start(loader, interval_sec=3600)
    await store.start(loader, interval_sec=3600)
    assert loader.calls == 1
    assert store.current is snapshot
    await store.stop()


async def test_start_survives_failed_first_load() -> None:
    store = DataStore()
    await store.start(CountingLoader(DataFetchError("offline")), interval_sec=3600)
    assert not store.is_loaded
    await store.stop()


async def test_refresh_loop_reloads(snapshot: DataSnapshot) -> None:
    store = DataStore()
    loader = CountingLoader(snapshot)
    await store.start(loader, interval_sec=0)
    for _ in range(5):
        await asyncio.sleep(0)
    assert loader.calls >= 2
    await store.stop()


async def test_stop_without_start() -> None:
    await DataStore().stop()
