"""Pytest configuration and fixtures."""

from __future__ import annotations

import os

from typing import TYPE_CHECKING

import pytest

from gridgroup.columns import ColDef
from gridgroup.config import GroupingSettings, clear_settings
from gridgroup.coordinator import GroupingCoordinator
from gridgroup.events import EventBus
from gridgroup.store import ColumnStore, RowStore
from tests.constants import REGION_ROWS


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Environment isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch) -> Generator[None, None, None]:
    """Strip GRIDGROUP_* variables and drop cached settings around each test."""
    for name in list(os.environ):
        if name.startswith("GRIDGROUP_"):
            monkeypatch.delenv(name, raising=False)
    clear_settings()
    yield
    clear_settings()


# =============================================================================
# Stores and coordinator
# =============================================================================


@pytest.fixture
def bus() -> EventBus:
    """A private event bus per test."""
    return EventBus()


@pytest.fixture
def rows() -> RowStore:
    """Row store loaded with the three region rows."""
    return RowStore.from_data(REGION_ROWS)


@pytest.fixture
def columns(bus: EventBus) -> ColumnStore:
    """Two unpinned columns."""
    return ColumnStore.from_column_defs([ColDef(field="region"), ColDef(field="v")], bus=bus)


@pytest.fixture
def coordinator(rows: RowStore, columns: ColumnStore, bus: EventBus) -> GroupingCoordinator:
    """Coordinator attached to the test bus with default settings, not yet grouping."""
    coord = GroupingCoordinator(rows, columns, bus, settings=GroupingSettings())
    coord.attach()
    return coord
