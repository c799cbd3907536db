"""Tests for gridgroup.exceptions module.

These tests verify the exception hierarchy, message formatting,
context storage, and inheritance relationships.
"""

from __future__ import annotations

import pytest

from gridgroup.exceptions import DataFormatError, GridGroupException, StoreError


class TestGridGroupException:
    """Test base exception class behavior."""

    def test_message_only(self) -> None:
        """Exception with just a message stores it correctly."""
        exc = GridGroupException("Something went wrong")
        assert exc.message == "Something went wrong"
        assert not exc.context
        assert str(exc) == "Something went wrong"

    def test_with_context(self) -> None:
        """Context appears in the string representation."""
        exc = GridGroupException("Failed", area="data", index=3)
        assert exc.context == {"area": "data", "index": 3}
        assert str(exc) == "Failed (area='data', index=3)"

    def test_is_standard_exception(self) -> None:
        """Can be raised and caught as Exception."""
        with pytest.raises(Exception, match="boom"):
            raise GridGroupException("boom")


class TestStoreError:
    """Test StoreError."""

    def test_store_attribute(self) -> None:
        """The raising store is recorded in attribute and context."""
        exc = StoreError("Unknown column area", store="column", area="footer")
        assert exc.store == "column"
        assert exc.context == {"store": "column", "area": "footer"}
        assert isinstance(exc, GridGroupException)

    def test_caught_as_base(self) -> None:
        """Callers can catch the base class."""
        with pytest.raises(GridGroupException):
            raise StoreError("bad", store="row")


class TestDataFormatError:
    """Test DataFormatError."""

    def test_row_attribute(self) -> None:
        """The offending row index is kept."""
        exc = DataFormatError("Row must be a mapping", row=4)
        assert exc.row == 4
        assert "row=4" in str(exc)

    def test_without_row(self) -> None:
        """Row defaults to None."""
        exc = DataFormatError("Uneven columns", lengths=[1, 2])
        assert exc.row is None
        assert exc.context["lengths"] == [1, 2]
