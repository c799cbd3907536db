"""Grouping builder: flat records in, grouped sequence out.

``build()`` is pure. It scans the records once, keeping a stack with one
open group header per depth level, and inserts a header right before the
first record of each new group. Headers list their direct children by
physical index; collapsed headers hide their whole subtree.
"""

from __future__ import annotations

import math

from collections.abc import Callable, Iterable, Sequence
from typing import Any

from pydantic import BaseModel, Field

from .log import debug
from .models import DataRow, GroupHeader, Record


KeyExtractor = Callable[[DataRow], Sequence[Any] | None]


class BuildOptions(BaseModel):
    """Expansion hints for headers created by a build."""

    previous_expansion: dict[Any, bool] = Field(default_factory=dict)
    default_expanded: bool = True
    # Overrides both the memory and the default when set
    expanded_all: bool | None = None


class GroupingResult(BaseModel):
    """Output of ``build()``."""

    sequence: list[Record] = Field(default_factory=list)
    depth: int = 0
    trimmed: dict[int, bool] = Field(default_factory=dict)


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


# Every NaN group value maps to this one object in the expansion memory
_NAN_KEY = float("nan")


def same_group(a: Any, b: Any) -> bool:
    """Compare two group values; NaN matches NaN (missing values in frames)."""
    return bool(a == b) or (_is_nan(a) and _is_nan(b))


def memory_key(value: Any) -> Any:
    """Key used for a group value in the expansion memory.

    Unhashable values (lists, dicts) are keyed by their repr; all NaNs
    share one key.
    """
    if _is_nan(value):
        return _NAN_KEY
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


def key_fields_extractor(key_fields: Sequence[str]) -> KeyExtractor:
    """Build a key extractor reading ``key_fields`` from each row, in order.

    A row missing a field gets a path that stops at the last field it has.
    """
    fields = tuple(key_fields)

    def extract(row: DataRow) -> tuple[Any, ...]:
        path = []
        for field in fields:
            if field not in row.data:
                break
            path.append(row.data[field])
        return tuple(path)

    return extract


def strip_groups(records: Iterable[Record]) -> list[Record]:
    """Return ``records`` without group headers."""
    return [r for r in records if not isinstance(r, GroupHeader)]


def capture_expansion(records: Iterable[Record]) -> dict[Any, bool]:
    """Snapshot ``{group value: expanded}`` from the headers in ``records``.

    Memory is keyed by value only; when two headers share a value the
    later one wins.
    """
    return {
        memory_key(r.group_value): r.expanded for r in records if isinstance(r, GroupHeader)
    }


def descendant_indices(sequence: Sequence[Record], index: int) -> list[int]:
    """All physical indices beneath the header at ``index``, in sequence order."""
    header = sequence[index]
    if not isinstance(header, GroupHeader):
        return []
    result: list[int] = []
    for child in header.children:
        result.append(child)
        result.extend(descendant_indices(sequence, child))
    return result


def _initial_expanded(value: Any, options: BuildOptions, memory: dict[Any, bool]) -> bool:
    if options.expanded_all is not None:
        return options.expanded_all
    return memory.get(memory_key(value), options.default_expanded)


def build(
    records: Iterable[Record],
    key_extractor: KeyExtractor,
    options: BuildOptions | None = None,
) -> GroupingResult:
    """Group ``records`` into a sequence interleaved with group headers.

    Parameters
    ----------
    records : Iterable[Record]
        Flat records in display order. Group headers are skipped.
    key_extractor : KeyExtractor
        Returns the group path of a row, most significant level first.
        A shorter (or empty) path places the row at a shallower level.
    options : BuildOptions, optional
        Expansion hints for the created headers.

    Returns
    -------
    GroupingResult
        The grouped sequence, the deepest path length, and the rows hidden
        by collapsed headers.
    """
    opts = options or BuildOptions()
    memory = {memory_key(k): v for k, v in opts.previous_expansion.items()}
    sequence: list[Record] = []
    # Physical index of the open header at each depth
    stack: list[int] = []
    depth = 0

    for record in records:
        if isinstance(record, GroupHeader):
            continue
        path = tuple(key_extractor(record) or ())
        depth = max(depth, len(path))

        # Close levels whose value no longer matches
        common = 0
        while (
            common < len(stack)
            and common < len(path)
            and same_group(sequence[stack[common]].group_value, path[common])
        ):
            common += 1
        del stack[common:]

        for level in range(common, len(path)):
            header_index = len(sequence)
            if stack:
                sequence[stack[-1]].children.append(header_index)
            sequence.append(
                GroupHeader(
                    group_value=path[level],
                    depth=level,
                    expanded=_initial_expanded(path[level], opts, memory),
                    path=path[: level + 1],
                )
            )
            stack.append(header_index)

        if stack:
            sequence[stack[-1]].children.append(len(sequence))
        sequence.append(record)

    hidden: set[int] = set()
    for index, record in enumerate(sequence):
        if isinstance(record, GroupHeader) and not record.expanded:
            hidden.update(descendant_indices(sequence, index))

    headers = sum(1 for r in sequence if isinstance(r, GroupHeader))
    debug(
        f"Built grouping: {len(sequence) - headers} rows, {headers} groups, "
        f"depth {depth}, {len(hidden)} hidden"
    )
    return GroupingResult(
        sequence=sequence,
        depth=depth,
        trimmed={i: True for i in sorted(hidden)},
    )
