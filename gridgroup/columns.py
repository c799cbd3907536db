"""Column definitions and column areas.

Columns mirror the usual data-grid column definition: Python snake_case
fields serialize to camelCase via aliases. The one field the grouping
engine cares about is ``group_indicator``, the flag marking the column
that renders group-header rows (expand icon and group value).

Usage:
    from gridgroup.columns import ColDef

    ColDef(field="region", header_name="Region", pinned="left")
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import COLUMN_AREAS


ColumnArea = Literal["pinned_start", "data", "pinned_end"]
PinnedPosition = Literal["left", "right"]


class GridModel(BaseModel):
    """Base model for grid objects with camelCase serialization."""

    model_config = ConfigDict(
        populate_by_name=True,  # Accept both snake_case and camelCase
        extra="allow",
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict with camelCase keys, excluding None values."""
        result: dict[str, Any] = {
            (field_info.alias if field_info.alias else field_name): getattr(self, field_name)
            for field_name, field_info in type(self).model_fields.items()
            if getattr(self, field_name) is not None
        }
        if self.__pydantic_extra__:
            result.update({k: v for k, v in self.__pydantic_extra__.items() if v is not None})
        return result


class ColDef(GridModel):
    """Column definition.

    Example:
        ColDef(field="name", header_name="Full Name", min_width=100)
        # Serializes to: {"field": "name", "headerName": "Full Name", "minWidth": 100}
    """

    # Identity
    field: str | None = None
    col_id: str | None = Field(default=None, alias="colId")
    header_name: str | None = Field(default=None, alias="headerName")

    # Display
    hide: bool | None = None
    pinned: PinnedPosition | None = None
    width: int | None = None
    min_width: int | None = Field(default=None, alias="minWidth")
    max_width: int | None = Field(default=None, alias="maxWidth")

    # Interaction
    sortable: bool | None = None
    filter: bool | str | None = None
    editable: bool | None = None

    # Grouping: set on exactly one column while grouping is active
    group_indicator: bool | None = Field(default=None, alias="groupIndicator")

    @field_validator("width", "min_width", "max_width", mode="after")
    @classmethod
    def validate_positive_width(cls, v: int | None) -> int | None:
        """Validate width values are positive if set."""
        if v is not None and v < 0:
            raise ValueError(f"Width must be non-negative, got {v}")
        return v

    @property
    def is_group_indicator(self) -> bool:
        return bool(self.group_indicator)


def area_for(col: ColDef) -> ColumnArea:
    """Return the column area a definition belongs to based on ``pinned``."""
    if col.pinned == "left":
        return "pinned_start"
    if col.pinned == "right":
        return "pinned_end"
    return "data"


def validate_area(area: str) -> bool:
    """Check that ``area`` is one of the known column areas."""
    return area in COLUMN_AREAS
