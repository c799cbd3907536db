"""Incremental expand/collapse of a single group header.

Both operations flip the header's ``expanded`` flag and return a patch for
the "grouping" hidden-row map; applying the patch (and any new virtual
order) is left to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field

from .builder import descendant_indices
from .log import debug
from .models import GroupHeader, Record


class CollapseResult(BaseModel):
    """Patch produced by ``collapse()``."""

    trimmed: dict[int, bool] = Field(default_factory=dict)
    # The focused row is now hidden and focus must be cleared
    clear_focus: bool = False


class ExpandResult(BaseModel):
    """Patch produced by ``expand()``."""

    trimmed: dict[int, bool] = Field(default_factory=dict)
    # Revealed rows that were missing from the virtual order
    inserted: list[int] = Field(default_factory=list)
    # New virtual order, or None when nothing had to be inserted
    items: list[int] | None = None


def _header_at(sequence: Sequence[Record], index: int) -> GroupHeader | None:
    if 0 <= index < len(sequence) and isinstance(sequence[index], GroupHeader):
        return sequence[index]  # type: ignore[return-value]
    debug(f"Ignoring expand/collapse on non-group row {index}")
    return None


def _revealed(sequence: Sequence[Record], index: int) -> list[int]:
    """Direct children, plus the rows under each child header that is expanded."""
    header = sequence[index]
    result: list[int] = []
    for child in header.children:  # type: ignore[union-attr]
        result.append(child)
        child_record = sequence[child]
        if isinstance(child_record, GroupHeader) and child_record.expanded:
            result.extend(_revealed(sequence, child))
    return result


def collapse(
    index: int, sequence: Sequence[Record], focused: int | None = None
) -> CollapseResult:
    """Collapse the header at physical ``index``.

    Every descendant is hidden regardless of its own expanded flag.

    Parameters
    ----------
    index : int
        Physical index of the header.
    sequence : Sequence[Record]
        The grouped source sequence.
    focused : int, optional
        Physical index of the focused row, if any.
    """
    header = _header_at(sequence, index)
    if header is None:
        return CollapseResult()

    header.expanded = False
    hidden = descendant_indices(sequence, index)
    return CollapseResult(
        trimmed=dict.fromkeys(hidden, True),
        clear_focus=focused is not None and focused in hidden,
    )


def expand(index: int, sequence: Sequence[Record], virtual_order: Sequence[int]) -> ExpandResult:
    """Expand the header at physical ``index``.

    The direct children become visible. Sub-headers keep their own state:
    rows under a collapsed sub-header stay hidden, rows under an expanded
    one are revealed with it. Revealed rows absent from ``virtual_order``
    are placed right after the header, in physical order.

    Parameters
    ----------
    index : int
        Physical index of the header.
    sequence : Sequence[Record]
        The grouped source sequence.
    virtual_order : Sequence[int]
        Current display order; not modified.
    """
    header = _header_at(sequence, index)
    if header is None:
        return ExpandResult()

    header.expanded = True
    revealed = _revealed(sequence, index)
    present = set(virtual_order)
    inserted = [i for i in revealed if i not in present]

    items = None
    if inserted and index in present:
        position = list(virtual_order).index(index) + 1
        items = [*virtual_order[:position], *inserted, *virtual_order[position:]]
    elif inserted:
        debug(f"Group header {index} is not displayed; revealed rows left out of the order")
        inserted = []

    return ExpandResult(trimmed=dict.fromkeys(revealed, False), inserted=inserted, items=items)
