"""Pydantic models for records, grouping options and grid events.

Records are a tagged variant: a ``DataRow`` wraps ordinary application
data, a ``GroupHeader`` is a synthetic row generated by the builder.
Engine code dispatches on the type, never on marker fields inside the data.
"""

from __future__ import annotations

import re

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Event types follow a namespace:event-name pattern (lowercase, digits, hyphens)
EVENT_NAMESPACE_PATTERN = re.compile(r"^[a-z][a-z0-9]*:[a-z][a-z0-9-]*(:[a-z0-9_-]+)?$")


def validate_event_type(event_type: str) -> bool:
    """Validate event type matches namespace:event-name pattern or is wildcard.

    Parameters
    ----------
    event_type : str
        The event type string to validate.

    Returns
    -------
    bool
        True if valid, False otherwise.
    """
    if event_type == "*":
        return True
    return bool(EVENT_NAMESPACE_PATTERN.match(event_type))


# --- Records ---


class DataRow(BaseModel):
    """An ordinary application record."""

    kind: Literal["data"] = "data"
    data: dict[str, Any] = Field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


class GroupHeader(BaseModel):
    """A synthetic group-header row.

    ``children`` holds the physical indices of the rows one level down
    (sub-headers and data rows), in sequence order. The full descendant
    set is the recursive flattening of ``children``.
    """

    kind: Literal["group"] = "group"
    group_value: Any = None
    depth: int = Field(default=0, ge=0)
    expanded: bool = True
    children: list[int] = Field(default_factory=list)
    # Key values from the top level down to this header
    path: tuple[Any, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase marker keys, as hosts expect for rendering."""
        return {
            "isGroup": True,
            "groupValue": self.group_value,
            "depth": self.depth,
            "expanded": self.expanded,
            "children": list(self.children),
        }


Record = DataRow | GroupHeader


def is_group(record: Any) -> bool:
    """Return True if ``record`` is a group header."""
    return isinstance(record, GroupHeader)


# --- Grouping options ---


class GroupingOptions(BaseModel):
    """Grouping configuration supplied by the host.

    An empty ``key_fields`` list means grouping is off.
    """

    model_config = ConfigDict(populate_by_name=True)

    key_fields: list[str] = Field(default_factory=list, alias="groupingKeyFields")
    # Last known expanded state per group value, used for headers created by a rebuild
    previous_expansion: dict[Any, bool] = Field(default_factory=dict, alias="prevExpanded")
    # Forces every new header open (True) or closed (False); None defers to the memory
    expanded_all: bool | None = Field(default=None, alias="expandedAll")
    # None defers to GroupingSettings.default_expanded
    default_expanded: bool | None = Field(default=None, alias="defaultExpanded")

    @field_validator("key_fields", mode="before")
    @classmethod
    def _normalize_key_fields(cls, v: Any) -> list[str]:
        """Accept a single field name, drop blanks, and reject duplicates."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        fields = [str(f).strip() for f in v if str(f).strip()]
        if len(set(fields)) != len(fields):
            raise ValueError(f"Duplicate grouping key fields: {fields}")
        return fields

    @property
    def enabled(self) -> bool:
        return bool(self.key_fields)


# --- Grid events ---


class GridEvent(BaseModel):
    """Base payload for host-dispatched events that can be cancelled."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    default_prevented: bool = False

    def prevent_default(self) -> None:
        """Reject the action the event announces."""
        self.default_prevented = True


class SourceSetEvent(GridEvent):
    """A new data source is about to replace the current one."""

    source: list[Any] = Field(default_factory=list)


class ColumnsSetEvent(GridEvent):
    """New column definitions, keyed by column area."""

    columns: dict[str, list[Any]] = Field(default_factory=dict)


class FilterEvent(GridEvent):
    """A filter pass is about to hide rows.

    ``items_to_filter`` maps physical index to "filtered out".
    """

    items_to_filter: dict[int, bool] = Field(default_factory=dict)
    source: list[Any] = Field(default_factory=list)


class FocusEvent(GridEvent):
    """A cell in ``record`` is about to receive focus."""

    record: Any = None
    row_index: int | None = None


class ReorderEvent(GridEvent):
    """A row drag from virtual position ``from_index`` to ``to_index``."""

    from_index: int
    to_index: int


class ExpandEvent(GridEvent):
    """The expand toggle of the row at ``virtual_index`` was clicked."""

    virtual_index: int


class TrimmedEvent(BaseModel):
    """Published after a hidden-row namespace changed."""

    namespace: str
    trimmed: dict[int, bool] = Field(default_factory=dict)


class DepthEvent(BaseModel):
    """Published after the grouping depth changed."""

    depth: int = Field(ge=0)
