"""Tests for the grouping coordinator.

Host behavior is simulated by dispatching events on a private bus and,
where the host would, writing the row store directly (sort order, data
replacement after ``grid:before-source-set``).
"""

from __future__ import annotations

import pytest

from gridgroup.columns import ColDef
from gridgroup.config import GroupingSettings
from gridgroup.coordinator import GroupingCoordinator
from gridgroup.events import (
    AFTER_SORTING_APPLY,
    BEFORE_CELL_FOCUS,
    BEFORE_COLUMNS_SET,
    BEFORE_FILTER_TRIMMED,
    BEFORE_SOURCE_SET,
    COLUMNS_REFRESHED,
    GROUP_EXPAND_CLICK,
    ROW_ORDER_CHANGED,
)
from gridgroup.models import (
    ColumnsSetEvent,
    DataRow,
    DepthEvent,
    ExpandEvent,
    FilterEvent,
    FocusEvent,
    GroupHeader,
    GroupingOptions,
    ReorderEvent,
    SourceSetEvent,
    TrimmedEvent,
)
from gridgroup.store import ColumnStore, RowStore
from tests.constants import REGION_ROWS


def _group_by_region(coordinator: GroupingCoordinator, **options) -> None:
    coordinator.apply_grouping(GroupingOptions(key_fields=["region"], **options))


def _click(bus, virtual_index: int) -> None:
    bus.dispatch(GROUP_EXPAND_CLICK, ExpandEvent(virtual_index=virtual_index))


def _flagged(columns: ColumnStore) -> list[str | None]:
    return [c.field for c in columns.all_columns() if c.is_group_indicator]


# =============================================================================
# apply_grouping / clear_grouping
# =============================================================================


class TestApplyGrouping:
    """Applying and clearing grouping options."""

    def test_apply_groups_existing_source(self, coordinator, rows) -> None:
        """Existing rows are regrouped and fully visible."""
        _group_by_region(coordinator)
        assert [type(r) for r in rows.source] == [
            GroupHeader,
            DataRow,
            DataRow,
            GroupHeader,
            DataRow,
        ]
        assert rows.items == [0, 1, 2, 3, 4]
        assert rows.depth == 1
        assert rows.get_trimmed("grouping") == {}
        assert coordinator.enabled

    def test_apply_accepts_dict_aliases(self, coordinator, rows) -> None:
        """Host-style camelCase dicts are accepted."""
        coordinator.apply_grouping({"groupingKeyFields": ["region"], "prevExpanded": {"E": False}})
        assert rows.source[0].expanded is False
        assert rows.get_trimmed("grouping") == {1: True, 2: True}
        assert rows.items == [0, 3, 4]

    def test_default_expanded_option(self, coordinator, rows) -> None:
        """defaultExpanded=False starts every group collapsed."""
        _group_by_region(coordinator, default_expanded=False)
        assert rows.get_trimmed("grouping") == {1: True, 2: True, 4: True}
        assert rows.items == [0, 3]

    def test_default_expanded_from_settings(self, rows, columns, bus) -> None:
        """Without an explicit option the settings default applies."""
        coord = GroupingCoordinator(rows, columns, bus, settings=GroupingSettings(default_expanded=False))
        coord.attach()
        _group_by_region(coord)
        assert rows.items == [0, 3]

    def test_custom_namespace(self, rows, columns, bus) -> None:
        """The hidden-row map is written under the configured namespace."""
        coord = GroupingCoordinator(rows, columns, bus, settings=GroupingSettings(namespace="groups"))
        coord.attach()
        _group_by_region(coord, expanded_all=False)
        assert rows.get_trimmed("groups") == {1: True, 2: True, 4: True}
        assert "grouping" not in rows.trimmed

    def test_apply_without_data(self, columns, bus) -> None:
        """Grouping can be configured before any data arrives."""
        rows = RowStore()
        coord = GroupingCoordinator(rows, columns, bus, settings=GroupingSettings())
        _group_by_region(coord)
        assert rows.source == []
        assert coord.enabled
        assert _flagged(columns) == ["region"]

    def test_publishes_depth_then_trimmed(self, coordinator, bus) -> None:
        """Depth and hidden-row updates are published while the coordinator is paused."""
        received = []

        def on_grouping(data, event_type):
            received.append((event_type, data, coordinator.enabled))

        bus.register("grouping:*", on_grouping)
        _group_by_region(coordinator)
        assert received == [
            ("grouping:depth-changed", DepthEvent(depth=1), False),
            ("grouping:trimmed-updated", TrimmedEvent(namespace="grouping", trimmed={}), False),
        ]

    def test_clear_grouping(self, coordinator, rows, columns, bus) -> None:
        """Clearing removes headers, the grouping map and the indicator flag."""
        _group_by_region(coordinator)
        _click(bus, 0)
        coordinator.clear_grouping()
        assert all(isinstance(r, DataRow) for r in rows.source)
        assert [r["v"] for r in rows.source] == [1, 2, 3]
        assert rows.items == [0, 1, 2]
        assert "grouping" not in rows.trimmed
        assert rows.depth == 0
        assert _flagged(columns) == []
        assert not coordinator.enabled

    @pytest.mark.parametrize("options", [None, {}, {"groupingKeyFields": []}, GroupingOptions()])
    def test_empty_keys_clear_grouping(self, coordinator, rows, options) -> None:
        """Applying options without key fields turns grouping off."""
        _group_by_region(coordinator)
        coordinator.apply_grouping(options)
        assert len(rows.source) == 3
        assert not coordinator.has_keys

    def test_reapply_keeps_expansion(self, coordinator, rows, bus) -> None:
        """Re-applying the same keys keeps each group's state."""
        _group_by_region(coordinator)
        _click(bus, 0)
        _group_by_region(coordinator)
        assert rows.source[0].expanded is False
        assert rows.items == [0, 3, 4]

    def test_reapply_previous_expansion_overrides(self, coordinator, rows, bus) -> None:
        """Explicit prevExpanded wins over the captured state."""
        _group_by_region(coordinator)
        _click(bus, 0)
        _group_by_region(coordinator, previous_expansion={"E": True})
        assert rows.items == [0, 1, 2, 3, 4]


# =============================================================================
# Indicator column
# =============================================================================


class TestIndicatorColumn:
    """Exactly one column carries the grouping indicator."""

    def test_first_data_column_flagged(self, coordinator, columns) -> None:
        """Without pinned columns the first data column is flagged."""
        _group_by_region(coordinator)
        assert _flagged(columns) == ["region"]
        assert columns.revision("data") == 1

    def test_pinned_start_preferred(self, rows, bus) -> None:
        """The first non-empty area wins and stale flags are removed."""
        columns = ColumnStore.from_column_defs(
            [
                ColDef(field="id", pinned="left"),
                ColDef(field="region"),
                ColDef(field="v", pinned="right", group_indicator=True),
            ],
            bus=bus,
        )
        coord = GroupingCoordinator(rows, columns, bus, settings=GroupingSettings())
        _group_by_region(coord)
        assert _flagged(columns) == ["id"]
        assert columns.revision("pinned_start") == 1
        assert columns.revision("pinned_end") == 1
        assert columns.revision("data") == 0

    def test_indicator_areas_setting(self, rows, bus) -> None:
        """Only the configured areas are searched."""
        columns = ColumnStore.from_column_defs(
            [ColDef(field="id", pinned="left"), ColDef(field="region")], bus=bus
        )
        settings = GroupingSettings(indicator_areas=["data"])
        coord = GroupingCoordinator(rows, columns, bus, settings=settings)
        _group_by_region(coord)
        assert _flagged(columns) == ["region"]

    def test_refresh_event_dispatched(self, coordinator, bus) -> None:
        """Changed areas are announced on the bus."""
        refreshed = []

        def on_refresh(data):
            refreshed.append(data)

        bus.register(COLUMNS_REFRESHED, on_refresh)
        _group_by_region(coordinator)
        assert refreshed == [{"area": "data", "revision": 1}]

    def test_columns_set_event(self, coordinator, bus) -> None:
        """Incoming column definitions get exactly one flag."""
        _group_by_region(coordinator)
        event = ColumnsSetEvent(
            columns={
                "pinned_start": [],
                "data": [{"field": "a"}, {"field": "b", "groupIndicator": True}],
            }
        )
        bus.dispatch(BEFORE_COLUMNS_SET, event)
        assert event.columns["data"] == [{"field": "a", "groupIndicator": True}, {"field": "b"}]

    def test_columns_set_event_with_coldefs(self, coordinator, bus) -> None:
        """ColDef instances are flagged in place."""
        _group_by_region(coordinator)
        pinned = ColDef(field="id", pinned="left")
        plain = ColDef(field="x")
        event = ColumnsSetEvent(columns={"pinned_start": [pinned], "data": [plain]})
        bus.dispatch(BEFORE_COLUMNS_SET, event)
        assert event.columns["pinned_start"][0].is_group_indicator
        assert not event.columns["data"][0].is_group_indicator


# =============================================================================
# Expand / collapse clicks
# =============================================================================


class TestExpandClick:
    """grid:group-expand-click handling."""

    def test_collapse_then_expand(self, coordinator, rows, bus) -> None:
        """Clicking a header toggles it and updates the virtual order."""
        _group_by_region(coordinator)
        _click(bus, 0)
        assert rows.source[0].expanded is False
        assert rows.get_trimmed("grouping") == {1: True, 2: True}
        assert rows.items == [0, 3, 4]

        _click(bus, 0)
        assert rows.source[0].expanded is True
        assert rows.get_trimmed("grouping") == {}
        assert rows.items == [0, 1, 2, 3, 4]

    def test_click_on_data_row_ignored(self, coordinator, rows, bus) -> None:
        """Only header rows toggle."""
        _group_by_region(coordinator)
        _click(bus, 1)
        _click(bus, 99)
        assert rows.items == [0, 1, 2, 3, 4]
        assert rows.get_trimmed("grouping") == {}

    def test_collapse_clears_hidden_focus(self, coordinator, rows, bus) -> None:
        """Focus on a row that becomes hidden is cleared."""
        _group_by_region(coordinator)
        rows.focused = 1
        _click(bus, 0)
        assert rows.focused is None

    def test_collapse_keeps_visible_focus(self, coordinator, rows, bus) -> None:
        """Focus on a row that stays visible is kept."""
        _group_by_region(coordinator)
        rows.focused = 4
        _click(bus, 0)
        assert rows.focused == 4

    def test_other_namespaces_untouched(self, coordinator, rows, bus) -> None:
        """Rows hidden by another namespace stay hidden after expanding."""
        _group_by_region(coordinator)
        rows.add_trimmed({4: True}, "filter")
        assert rows.items == [0, 1, 2, 3]

        _click(bus, 0)
        assert rows.items == [0, 3]
        _click(bus, 0)
        assert rows.items == [0, 1, 2, 3]
        assert rows.get_trimmed("filter") == {4: True}

    def test_round_trip_restores_map(self, columns, bus) -> None:
        """Collapse then expand of an outer group keeps inner collapsed groups hidden."""
        rows = RowStore.from_data(
            [
                {"a": "x", "b": "p", "v": 0},
                {"a": "x", "b": "q", "v": 1},
            ]
        )
        coord = GroupingCoordinator(rows, columns, bus, settings=GroupingSettings())
        coord.attach()
        coord.apply_grouping(GroupingOptions(key_fields=["a", "b"], previous_expansion={"p": False}))
        # 0 x, 1 p (collapsed), 2 v=0, 3 q, 4 v=1
        before = rows.get_trimmed("grouping")
        assert before == {2: True}
        assert rows.items == [0, 1, 3, 4]

        _click(bus, 0)
        assert rows.items == [0]
        _click(bus, 0)
        assert rows.get_trimmed("grouping") == before
        assert rows.items == [0, 1, 3, 4]


# =============================================================================
# Sorting
# =============================================================================


class TestSorting:
    """grid:after-sorting-apply handling."""

    def test_regroup_after_sort_keeps_expansion(self, coordinator, rows, bus) -> None:
        """Groups are rebuilt in the new order and keep their state."""
        _group_by_region(coordinator)
        _click(bus, 0)

        # Host sorts by v descending
        rows.proxy_items = [4, 2, 1, 0, 3]
        bus.dispatch(AFTER_SORTING_APPLY, None)

        assert [
            r.group_value if isinstance(r, GroupHeader) else r["v"] for r in rows.source
        ] == ["W", 3, "E", 2, 1]
        assert rows.source[0].expanded is True
        assert rows.source[2].expanded is False
        assert rows.get_trimmed("grouping") == {3: True, 4: True}
        assert rows.items == [0, 1, 2]

    def test_sort_does_not_reapply_expanded_all(self, coordinator, rows, bus) -> None:
        """expandedAll only applies when grouping is applied."""
        _group_by_region(coordinator, expanded_all=False)
        _click(bus, 0)
        bus.dispatch(AFTER_SORTING_APPLY, None)
        assert rows.source[0].expanded is True
        assert rows.get_trimmed("grouping") == {4: True}

    def test_sort_ignored_without_grouping(self, coordinator, rows, bus) -> None:
        """Nothing happens when grouping is off."""
        bus.dispatch(AFTER_SORTING_APPLY, None)
        assert all(isinstance(r, DataRow) for r in rows.source)


# =============================================================================
# New data
# =============================================================================


class TestSourceSet:
    """grid:before-source-set handling."""

    def test_incoming_data_grouped(self, coordinator, rows, bus) -> None:
        """The event's source is replaced by the grouped sequence."""
        _group_by_region(coordinator, previous_expansion={"N": False})
        event = SourceSetEvent(source=[{"region": "N", "v": 5}, {"region": "N", "v": 6}])
        bus.dispatch(BEFORE_SOURCE_SET, event)

        assert isinstance(event.source[0], GroupHeader)
        assert event.source[0].group_value == "N"
        assert event.source[0].expanded is False

        # Host replaces its data with the event's source
        rows.set_data(event.source)
        assert rows.depth == 1
        assert rows.get_trimmed("grouping") == {1: True, 2: True}
        assert rows.items == [0]

    def test_incoming_headers_stripped(self, coordinator, bus) -> None:
        """Headers in incoming data are dropped before regrouping."""
        _group_by_region(coordinator)
        event = SourceSetEvent(
            source=[GroupHeader(group_value="stale"), DataRow(data={"region": "S"})]
        )
        bus.dispatch(BEFORE_SOURCE_SET, event)
        values = [r.group_value for r in event.source if isinstance(r, GroupHeader)]
        assert values == ["S"]

    def test_ignored_without_grouping(self, coordinator, bus) -> None:
        """Incoming data passes through untouched when grouping is off."""
        event = SourceSetEvent(source=[{"region": "N"}])
        bus.dispatch(BEFORE_SOURCE_SET, event)
        assert event.source == [{"region": "N"}]


# =============================================================================
# Filter, focus and reorder guards
# =============================================================================


class TestGuards:
    """Events the coordinator vetoes or adjusts."""

    def test_filter_skips_headers(self, coordinator, bus) -> None:
        """Headers are never filtered out."""
        _group_by_region(coordinator)
        event = FilterEvent(items_to_filter={0: True, 1: True, 3: False, 4: True})
        bus.dispatch(BEFORE_FILTER_TRIMMED, event)
        assert event.items_to_filter == {0: False, 1: True, 3: False, 4: True}

    def test_filter_uses_event_source(self, coordinator, bus) -> None:
        """An explicit source on the event takes precedence."""
        _group_by_region(coordinator)
        event = FilterEvent(
            items_to_filter={0: True, 1: True},
            source=[DataRow(data={}), GroupHeader(group_value="g")],
        )
        bus.dispatch(BEFORE_FILTER_TRIMMED, event)
        assert event.items_to_filter == {0: True, 1: False}

    def test_focus_on_header_prevented(self, coordinator, rows, bus) -> None:
        """Headers cannot be focused."""
        _group_by_region(coordinator)
        event = FocusEvent(record=rows.source[0])
        bus.dispatch(BEFORE_CELL_FOCUS, event)
        assert event.default_prevented

    @pytest.mark.parametrize(("row_index", "prevented"), [(0, True), (1, False), (99, False)])
    def test_focus_by_row_index(self, coordinator, bus, row_index, prevented) -> None:
        """A display position is resolved to its record."""
        _group_by_region(coordinator)
        event = FocusEvent(row_index=row_index)
        bus.dispatch(BEFORE_CELL_FOCUS, event)
        assert event.default_prevented is prevented

    @pytest.mark.parametrize(
        ("from_index", "to_index", "prevented"),
        [
            (2, 3, True),
            (1, 2, False),
            (4, 1, True),
            (4, 4, False),
            (0, 0, True),
        ],
    )
    def test_reorder_across_headers(
        self, coordinator, rows, bus, from_index, to_index, prevented
    ) -> None:
        """Moves whose span includes a header are rejected."""
        _group_by_region(coordinator)
        before = [r.model_dump() for r in rows.source]
        event = ReorderEvent(from_index=from_index, to_index=to_index)
        bus.dispatch(ROW_ORDER_CHANGED, event)
        assert event.default_prevented is prevented
        assert [r.model_dump() for r in rows.source] == before

    def test_guards_inactive_without_grouping(self, coordinator, bus) -> None:
        """With grouping off nothing is vetoed."""
        event = ReorderEvent(from_index=0, to_index=2)
        bus.dispatch(ROW_ORDER_CHANGED, event)
        assert not event.default_prevented


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    """enable/disable and attach/detach."""

    def test_disabled_ignores_events(self, coordinator, rows, bus) -> None:
        """A disabled coordinator leaves the store alone."""
        _group_by_region(coordinator)
        coordinator.disable()
        _click(bus, 0)
        assert rows.source[0].expanded is True
        assert rows.items == [0, 1, 2, 3, 4]

    def test_detach_removes_handlers(self, coordinator, rows, bus) -> None:
        """Detached coordinators receive no events."""
        _group_by_region(coordinator)
        coordinator.detach()
        assert not bus.has_handlers(GROUP_EXPAND_CLICK)
        _click(bus, 0)
        assert rows.source[0].expanded is True

    def test_attach_twice_registers_once(self, coordinator, rows, bus) -> None:
        """Attaching to the same bus again is a no-op."""
        coordinator.attach()
        _group_by_region(coordinator)
        _click(bus, 0)
        assert rows.source[0].expanded is False

    def test_default_rows_fixture(self, rows) -> None:
        """Sanity check on the shared sample rows."""
        assert [r.to_dict() for r in rows.source] == REGION_ROWS
