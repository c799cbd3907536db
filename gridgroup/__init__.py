"""gridgroup - hierarchical row grouping for tabular data.

Turns a flat record sequence into one interleaved with group-header rows,
tracks which rows collapsed groups hide, and keeps both up to date as the
host grid loads data, sorts, filters and toggles groups.
"""

from .builder import (
    BuildOptions,
    GroupingResult,
    build,
    capture_expansion,
    descendant_indices,
    key_fields_extractor,
    strip_groups,
)
from .columns import ColDef
from .config import (
    COLUMN_AREAS,
    GridGroupSettings,
    GroupingSettings,
    LogSettings,
    get_settings,
)
from .coordinator import GroupingCoordinator
from .events import EventBus, get_bus
from .exceptions import DataFormatError, GridGroupException, StoreError
from .expand import CollapseResult, ExpandResult, collapse, expand
from .models import (
    ColumnsSetEvent,
    DataRow,
    ExpandEvent,
    FilterEvent,
    FocusEvent,
    GroupHeader,
    GroupingOptions,
    Record,
    ReorderEvent,
    SourceSetEvent,
    is_group,
)
from .store import ColumnStore, RowStore, normalize_rows


__version__ = "0.1.0"

__all__ = [
    "COLUMN_AREAS",
    "BuildOptions",
    "ColDef",
    "CollapseResult",
    "ColumnStore",
    "ColumnsSetEvent",
    "DataFormatError",
    "DataRow",
    "EventBus",
    "ExpandEvent",
    "ExpandResult",
    "FilterEvent",
    "FocusEvent",
    "GridGroupException",
    "GridGroupSettings",
    "GroupHeader",
    "GroupingCoordinator",
    "GroupingOptions",
    "GroupingResult",
    "GroupingSettings",
    "LogSettings",
    "Record",
    "ReorderEvent",
    "RowStore",
    "SourceSetEvent",
    "StoreError",
    "__version__",
    "build",
    "capture_expansion",
    "collapse",
    "descendant_indices",
    "expand",
    "get_bus",
    "get_settings",
    "is_group",
    "key_fields_extractor",
    "normalize_rows",
    "strip_groups",
]
