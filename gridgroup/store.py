"""In-memory row and column stores.

The grouping engine treats these as external collaborators: it reads and
writes them through the small surface below and never holds references to
their internals.

Row store layout:
- ``source``: records addressed by physical index
- ``proxy_items``: every physical index in the current sort order
- ``items``: the virtual (display) order, i.e. the visible rows
- ``trimmed``: hidden-row maps keyed by namespace ("grouping", "filter", ...)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .columns import ColDef, area_for, validate_area
from .config import COLUMN_AREAS
from .events import COLUMNS_REFRESHED
from .exceptions import DataFormatError, StoreError
from .log import debug
from .models import DataRow, GroupHeader


if TYPE_CHECKING:
    from collections.abc import Iterable

    from .events import EventBus
    from .models import Record


def _to_record(row: Any, position: int) -> Record:
    if isinstance(row, (DataRow, GroupHeader)):
        return row
    if isinstance(row, dict):
        return DataRow(data=row)
    raise DataFormatError(f"Row must be a mapping, got {type(row).__name__}", row=position)


def normalize_rows(data: Any) -> list[Record]:
    """Convert various data formats to a list of records.

    Handles:
    - pandas DataFrame (duck typing on ``to_dict`` and ``columns``)
    - list of dicts: [{'a': 1}, {'a': 2}]
    - dict of lists: {'a': [1, 2], 'b': [3, 4]}
    - single dict: {'a': 1, 'b': 2}

    Records that are already ``DataRow`` or ``GroupHeader`` pass through.
    """
    if data is None:
        return []

    if hasattr(data, "to_dict") and hasattr(data, "columns"):
        rows = data.to_dict(orient="records")
        debug(f"Converted frame with {len(rows)} rows to records")
        return [DataRow(data=row) for row in rows]

    if isinstance(data, dict):
        first_value = next(iter(data.values()), None)
        if isinstance(first_value, (list, tuple)):
            lengths = {len(v) for v in data.values()}
            if len(lengths) > 1:
                raise DataFormatError(
                    "Column-oriented data has columns of different lengths",
                    lengths=sorted(lengths),
                )
            columns = list(data.keys())
            return [
                DataRow(data={col: data[col][i] for col in columns})
                for i in range(len(first_value))
            ]
        return [DataRow(data=data)]

    return [_to_record(row, i) for i, row in enumerate(data)]


class RowStore:
    """Row store holding the source sequence, orderings and trimmed maps."""

    def __init__(self, source: Iterable[Record] | None = None) -> None:
        self.source: list[Record] = []
        self.proxy_items: list[int] = []
        self.items: list[int] = []
        self.trimmed: dict[str, dict[int, bool]] = {}
        self.focused: int | None = None
        self.depth: int = 0
        if source is not None:
            self.set_data(list(source))

    @classmethod
    def from_data(cls, data: Any) -> RowStore:
        """Build a store from any input accepted by ``normalize_rows``."""
        return cls(normalize_rows(data))

    def set_data(self, source: list[Record]) -> None:
        """Replace the source.

        The sort order becomes the physical order and the virtual order the
        physical order minus hidden rows. Trimmed namespaces are kept: each
        owner republishes its map for the new indices, usually right before
        the data lands (see ``grid:before-source-set``).
        """
        self.source = source
        self.proxy_items = list(range(len(source)))
        self.items = [i for i in self.proxy_items if not self.is_hidden(i)]
        self.focused = None

    def set_items(self, items: list[int]) -> None:
        self.items = list(items)

    def get_physical(self, virtual_index: int, strict: bool = False) -> int | None:
        """Resolve a display position to a physical index.

        Returns None for out-of-range positions unless ``strict`` is set,
        in which case ``StoreError`` is raised.
        """
        if 0 <= virtual_index < len(self.items):
            return self.items[virtual_index]
        if strict:
            raise StoreError(
                "Virtual index out of range",
                store="row",
                index=virtual_index,
                size=len(self.items),
            )
        return None

    def get_trimmed(self, namespace: str) -> dict[int, bool]:
        """Return a copy of one namespace of the hidden-row map."""
        return dict(self.trimmed.get(namespace, {}))

    def add_trimmed(self, trimmed: dict[int, bool], namespace: str) -> None:
        """Replace one namespace of the hidden-row map.

        Rows now hidden by any namespace are dropped from the virtual order.
        Rows that become visible are not re-inserted; whoever reveals them
        supplies their position through ``set_items``.
        """
        self.trimmed[namespace] = dict(trimmed)
        self.items = [i for i in self.items if not self.is_hidden(i)]

    def clear_trimmed(self, namespace: str) -> None:
        self.trimmed.pop(namespace, None)

    def is_hidden(self, physical_index: int) -> bool:
        """True if any namespace hides the row."""
        return any(ns.get(physical_index, False) for ns in self.trimmed.values())

    def visible_records(self) -> list[Record]:
        """Records in virtual order."""
        return [self.source[i] for i in self.items]

    def clear_focus(self) -> None:
        self.focused = None


class ColumnStore:
    """Column definitions split into pinned-start, data and pinned-end areas."""

    def __init__(self, bus: EventBus | None = None) -> None:
        self._columns: dict[str, list[ColDef]] = {area: [] for area in COLUMN_AREAS}
        self._revisions: dict[str, int] = dict.fromkeys(COLUMN_AREAS, 0)
        self._bus = bus

    @classmethod
    def from_column_defs(
        cls, column_defs: Iterable[ColDef | dict[str, Any]], bus: EventBus | None = None
    ) -> ColumnStore:
        """Build a store, placing each column in the area its ``pinned`` value selects."""
        store = cls(bus)
        for c in column_defs:
            col = c if isinstance(c, ColDef) else ColDef(**c)
            store._columns[area_for(col)].append(col)
        return store

    def _check_area(self, area: str) -> None:
        if not validate_area(area):
            raise StoreError("Unknown column area", store="column", area=area)

    def get_columns(self, area: str) -> list[ColDef]:
        """Return the live list of columns in ``area``."""
        self._check_area(area)
        return self._columns[area]

    def set_columns(self, area: str, columns: list[ColDef]) -> None:
        self._check_area(area)
        self._columns[area] = list(columns)

    def all_columns(self) -> list[ColDef]:
        return [col for area in COLUMN_AREAS for col in self._columns[area]]

    def refresh(self, area: str) -> None:
        """Notify listeners that columns in ``area`` changed."""
        self._check_area(area)
        self._revisions[area] += 1
        if self._bus is not None:
            self._bus.dispatch(COLUMNS_REFRESHED, {"area": area, "revision": self._revisions[area]})

    def revision(self, area: str) -> int:
        self._check_area(area)
        return self._revisions[area]
