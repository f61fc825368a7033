"""Tests for the set-down-only rule."""
from __future__ import annotations

import pytest

from conftest import DANDENONG, FLINDERS_STREET, PAKENHAM, REGIONAL_LINE, SUBURBAN_LINE, TRARALGON
from timetable_mcp.domain.entities import Network
from timetable_mcp.domain.exceptions import LineNotFoundError
from timetable_mcp.domain.services import SET_DOWN_ONLY_EXCEPTIONS, is_set_down_only


def test_regional_up_at_suburban_stop_is_set_down_only(network: Network) -> None:
    assert is_set_down_only(network, DANDENONG, REGIONAL_LINE, "up")
    assert is_set_down_only(network, FLINDERS_STREET, REGIONAL_LINE, "up")


def test_exception_stop_is_never_set_down_only(network: Network) -> None:
    assert PAKENHAM in SET_DOWN_ONLY_EXCEPTIONS
    # Pakenham is shared with the suburban line, but passengers may still board
    assert is_set_down_only(network, PAKENHAM, REGIONAL_LINE, "up") is False


def test_regional_only_stop_is_not_set_down_only(network: Network) -> None:
    assert is_set_down_only(network, TRARALGON, REGIONAL_LINE, "up") is False


@pytest.mark.parametrize("direction", ["down", "down-direct", "echuca-down"])
def test_down_direction_is_not_set_down_only(network: Network, direction: str) -> None:
    assert is_set_down_only(network, DANDENONG, REGIONAL_LINE, direction) is False


def test_suburban_line_is_not_set_down_only(network: Network) -> None:
    assert is_set_down_only(network, DANDENONG, SUBURBAN_LINE, "up") is False


def test_unknown_line_raises(network: Network) -> None:
    with pytest.raises(LineNotFoundError):
        is_set_down_only(network, DANDENONG, 999, "up")
