"""gridgroup exception hierarchy.

The grouping engine itself degrades to "no change" rather than raising.
These exceptions cover misuse of the stores and invalid configuration.
"""

from __future__ import annotations

from typing import Any


class GridGroupException(Exception):
    """Base exception for all gridgroup errors."""

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize the exception.

        Parameters
        ----------
        message : str
            Human-readable error message.
        **context : Any
            Additional context (area, index, namespace, etc.).
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Format exception with context."""
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class StoreError(GridGroupException):
    """Row or column store was addressed with an invalid key.

    Raised for unknown column areas and out-of-range virtual indices
    when the caller asks for strict lookup.
    """

    def __init__(self, message: str, store: str | None = None, **context: Any) -> None:
        """Initialize store error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        store : str, optional
            Which store raised ("row" or "column").
        **context : Any
            Additional context.
        """
        super().__init__(message, store=store, **context)
        self.store = store


class DataFormatError(GridGroupException):
    """Input data could not be converted into records.

    Raised when rows are not mappings, or a column-oriented dict has
    columns of different lengths.
    """

    def __init__(self, message: str, row: int | None = None, **context: Any) -> None:
        super().__init__(message, row=row, **context)
        self.row = row
