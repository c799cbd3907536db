"""Grouping coordinator: decides when to rebuild and when to patch.

Full rebuilds happen on new data, after sorting and when grouping keys are
(re)applied. Expand/collapse, focus, drag and filter events are handled
incrementally. The coordinator only writes the grouping namespace of the
row store's hidden-row map.

Usage:
    rows = RowStore.from_data(records)
    columns = ColumnStore.from_column_defs([ColDef(field="region"), ColDef(field="v")])
    coordinator = GroupingCoordinator(rows, columns, bus)
    coordinator.attach()
    coordinator.apply_grouping(GroupingOptions(key_fields=["region"]))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .builder import (
    BuildOptions,
    build,
    capture_expansion,
    key_fields_extractor,
    strip_groups,
)
from .config import COLUMN_AREAS, GroupingSettings, get_settings
from .events import (
    AFTER_SORTING_APPLY,
    BEFORE_CELL_FOCUS,
    BEFORE_COLUMNS_SET,
    BEFORE_FILTER_TRIMMED,
    BEFORE_SOURCE_SET,
    DEPTH_CHANGED,
    GROUP_EXPAND_CLICK,
    ROW_ORDER_CHANGED,
    TRIMMED_UPDATED,
    EventBus,
    HandlerFunc,
    get_bus,
)
from .expand import collapse, expand
from .log import debug, info
from .models import (
    ColumnsSetEvent,
    DepthEvent,
    ExpandEvent,
    FilterEvent,
    FocusEvent,
    GroupHeader,
    GroupingOptions,
    ReorderEvent,
    SourceSetEvent,
    TrimmedEvent,
    is_group,
)
from .store import normalize_rows


if TYPE_CHECKING:
    from .models import Record
    from .store import ColumnStore, RowStore


def _flag_column(col: Any, value: bool) -> None:
    if isinstance(col, dict):
        if value:
            col["groupIndicator"] = True
        else:
            col.pop("groupIndicator", None)
    else:
        col.group_indicator = True if value else None


def _is_flagged(col: Any) -> bool:
    if isinstance(col, dict):
        return bool(col.get("groupIndicator"))
    return bool(col.group_indicator)


class GroupingCoordinator:
    """Keeps a row store grouped according to the current grouping options.

    Event handlers do nothing while the coordinator is disabled or no
    grouping keys are configured. ``apply_grouping`` disables the
    coordinator while it reconfigures, so events raised in between are
    ignored rather than re-entering.
    """

    def __init__(
        self,
        rows: RowStore,
        columns: ColumnStore,
        bus: EventBus | None = None,
        settings: GroupingSettings | None = None,
    ) -> None:
        self.rows = rows
        self.columns = columns
        self.bus = bus if bus is not None else get_bus()
        self.settings = settings if settings is not None else get_settings().grouping
        self.options = GroupingOptions()
        self._enabled = False
        self._attached_to: EventBus | None = None
        self._subscriptions: list[tuple[str, HandlerFunc]] = [
            (BEFORE_SOURCE_SET, self.on_source_set),
            (BEFORE_COLUMNS_SET, self.on_columns_set),
            (BEFORE_FILTER_TRIMMED, self.on_before_filter),
            (AFTER_SORTING_APPLY, self.on_after_sort),
            (BEFORE_CELL_FOCUS, self.on_focus),
            (ROW_ORDER_CHANGED, self.on_reorder),
            (GROUP_EXPAND_CLICK, self.on_expand),
        ]

    # --- Lifecycle ---

    @property
    def namespace(self) -> str:
        return self.settings.namespace

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def has_keys(self) -> bool:
        return self.options.enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def attach(self, bus: EventBus | None = None) -> None:
        """Register the event handlers on ``bus`` (default: the coordinator's bus)."""
        target = bus if bus is not None else self.bus
        if self._attached_to is target:
            return
        self.detach()
        for event_type, handler in self._subscriptions:
            target.register(event_type, handler)
        self._attached_to = target

    def detach(self) -> None:
        """Remove the event handlers from the bus they were registered on."""
        if self._attached_to is None:
            return
        for event_type, handler in self._subscriptions:
            self._attached_to.unregister(event_type, handler)
        self._attached_to = None

    def _active(self, event_type: str) -> bool:
        if self._enabled and self.has_keys:
            return True
        debug(f"Grouping inactive, ignoring '{event_type}'")
        return False

    # --- Store helpers ---

    def _gather_source(self) -> tuple[list[Record], dict[Any, bool]]:
        """Non-group records in sort order, plus the expansion snapshot."""
        records = [self.rows.source[i] for i in self.rows.proxy_items]
        return strip_groups(records), capture_expansion(records)

    def _build_options(
        self, previous_expansion: dict[Any, bool], expanded_all: bool | None = None
    ) -> BuildOptions:
        default = self.options.default_expanded
        return BuildOptions(
            previous_expansion=previous_expansion,
            default_expanded=self.settings.default_expanded if default is None else default,
            expanded_all=expanded_all,
        )

    def _publish_trimmed(self, trimmed: dict[int, bool]) -> None:
        hidden = {i: True for i, flag in trimmed.items() if flag}
        self.rows.add_trimmed(hidden, self.namespace)
        self.bus.dispatch(
            TRIMMED_UPDATED,
            TrimmedEvent(namespace=self.namespace, trimmed=hidden),
        )

    def _publish_depth(self, depth: int) -> None:
        self.rows.depth = depth
        self.bus.dispatch(DEPTH_CHANGED, DepthEvent(depth=depth))

    def rebuild(
        self,
        previous_expansion: dict[Any, bool] | None = None,
        expanded_all: bool | None = None,
    ) -> None:
        """Regroup the current records in their current sort order.

        The expanded state of the existing headers is captured first and
        carried over by group value; ``previous_expansion`` overrides it.
        """
        if not self.has_keys:
            return
        records, memory = self._gather_source()
        memory.update(previous_expansion or {})
        result = build(
            records,
            key_fields_extractor(self.options.key_fields),
            self._build_options(memory, expanded_all),
        )
        # Old grouping indices are meaningless for the new sequence
        self.rows.clear_trimmed(self.namespace)
        self.rows.set_data(result.sequence)
        self._publish_depth(result.depth)
        self._publish_trimmed(result.trimmed)

    def _set_indicator_column(self) -> None:
        """Flag the first column of the first non-empty area, and only that one."""
        target = None
        for area in self.settings.indicator_areas:
            cols = self.columns.get_columns(area)
            if cols:
                target = cols[0]
                break

        for area in COLUMN_AREAS:
            changed = False
            for col in self.columns.get_columns(area):
                should_flag = col is target
                if _is_flagged(col) != should_flag:
                    _flag_column(col, should_flag)
                    changed = True
            if changed:
                self.columns.refresh(area)

    # --- Host API ---

    def apply_grouping(self, options: GroupingOptions | dict[str, Any] | None) -> None:
        """Apply grouping options; empty key fields turn grouping off."""
        self.disable()
        if not isinstance(options, GroupingOptions):
            options = GroupingOptions.model_validate(options or {})
        self.options = options

        if not options.enabled:
            self.clear_grouping()
            return

        info(f"Applying grouping by {options.key_fields}")
        if self.rows.source:
            self.rebuild(options.previous_expansion, options.expanded_all)
        self._set_indicator_column()
        self.enable()

    def clear_grouping(self) -> None:
        """Remove group headers, the grouping hidden-row map and the indicator flag."""
        self.disable()
        self.options = GroupingOptions()

        for area in COLUMN_AREAS:
            cols = [c for c in self.columns.get_columns(area) if _is_flagged(c)]
            for col in cols:
                _flag_column(col, False)
            if cols:
                self.columns.refresh(area)

        records, _ = self._gather_source()
        self.rows.clear_trimmed(self.namespace)
        self.rows.set_data(records)
        self._publish_depth(0)
        self.bus.dispatch(TRIMMED_UPDATED, TrimmedEvent(namespace=self.namespace, trimmed={}))
        info("Cleared grouping")

    # --- Event handlers ---

    def on_source_set(self, event: SourceSetEvent) -> None:
        """Group incoming data before it replaces the source."""
        if not self._active(BEFORE_SOURCE_SET) or not event.source:
            return
        records = strip_groups(normalize_rows(event.source))
        result = build(
            records,
            key_fields_extractor(self.options.key_fields),
            self._build_options(dict(self.options.previous_expansion), self.options.expanded_all),
        )
        event.source = result.sequence
        self._publish_depth(result.depth)
        self._publish_trimmed(result.trimmed)

    def on_columns_set(self, event: ColumnsSetEvent) -> None:
        """Flag exactly one of the incoming columns as the grouping indicator."""
        if not self._active(BEFORE_COLUMNS_SET):
            return
        target = None
        for area in self.settings.indicator_areas:
            cols = event.columns.get(area)
            if cols:
                target = cols[0]
                break
        for cols in event.columns.values():
            for col in cols:
                _flag_column(col, col is target)

    def on_after_sort(self, _event: Any = None) -> None:
        """Regroup after a sort, keeping each group's expanded state."""
        if not self._active(AFTER_SORTING_APPLY):
            return
        self.rebuild()

    def on_before_filter(self, event: FilterEvent) -> None:
        """Keep group headers out of the filter's hidden rows."""
        if not self._active(BEFORE_FILTER_TRIMMED):
            return
        source = event.source or self.rows.source
        for index, filtered in event.items_to_filter.items():
            if filtered and 0 <= index < len(source) and is_group(source[index]):
                event.items_to_filter[index] = False

    def on_focus(self, event: FocusEvent) -> None:
        """Group headers cannot take focus."""
        if not self._active(BEFORE_CELL_FOCUS):
            return
        record = event.record
        if record is None and event.row_index is not None:
            index = self.rows.get_physical(event.row_index)
            record = self.rows.source[index] if index is not None else None
        if is_group(record):
            event.prevent_default()

    def on_reorder(self, event: ReorderEvent) -> None:
        """Reject a row move whose span touches a group header."""
        if not self._active(ROW_ORDER_CHANGED):
            return
        start, end = sorted((event.from_index, event.to_index))
        for position in range(start, end + 1):
            index = self.rows.get_physical(position)
            if index is not None and is_group(self.rows.source[index]):
                debug(f"Rejecting row move {event.from_index} -> {event.to_index} across a group")
                event.prevent_default()
                return

    def on_expand(self, event: ExpandEvent) -> None:
        """Toggle the group header shown at ``event.virtual_index``."""
        if not self._active(GROUP_EXPAND_CLICK):
            return
        index = self.rows.get_physical(event.virtual_index)
        if index is None or not isinstance(self.rows.source[index], GroupHeader):
            debug(f"No group header at display position {event.virtual_index}")
            return

        header = self.rows.source[index]
        trimmed = self.rows.get_trimmed(self.namespace)
        if not header.expanded:
            expanded = expand(index, self.rows.source, self.rows.items)
            if expanded.items is not None:
                self.rows.set_items(expanded.items)
            trimmed.update(expanded.trimmed)
        else:
            collapsed = collapse(index, self.rows.source, self.rows.focused)
            if collapsed.clear_focus:
                self.rows.clear_focus()
            trimmed.update(collapsed.trimmed)
        self._publish_trimmed(trimmed)
