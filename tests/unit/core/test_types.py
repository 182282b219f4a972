"""Unit tests for ledgerdb.core.types module."""

import pytest

from ledgerdb.core.types import Result


class TestResultConstruction:
    """Test Result construction via ok() and err()."""

    def test_ok(self) -> None:
        """Result.ok(value) creates a success result holding the value."""
        result: Result[int, str] = Result.ok(42)

        assert result.is_ok is True
        assert result.is_err is False
        assert result.value == 42

    def test_err(self) -> None:
        """Result.err(error) creates a failure result holding the error."""
        result: Result[int, str] = Result.err("rolled back")

        assert result.is_err is True
        assert result.error == "rolled back"

    def test_wrong_side_access_raises(self) -> None:
        """Accessing the missing side raises ValueError."""
        with pytest.raises(ValueError, match="Err result"):
            _ = Result.err("x").value
        with pytest.raises(ValueError, match="Ok result"):
            _ = Result.ok(1).error

    def test_ok_may_hold_none(self) -> None:
        """An Ok result may carry None as its value."""
        result: Result[None, str] = Result.ok(None)
        assert result.is_ok
        assert result.value is None

    def test_repr(self) -> None:
        assert repr(Result.ok(1)) == "Ok(1)"
        assert repr(Result.err("e")) == "Err('e')"


class TestResultUnwrap:
    """Test unwrap() and unwrap_or()."""

    def test_unwrap_ok(self) -> None:
        assert Result.ok(100).unwrap() == 100

    def test_unwrap_err_raises_with_error_text(self) -> None:
        with pytest.raises(ValueError, match="error message"):
            Result.err("error message").unwrap()

    def test_unwrap_or(self) -> None:
        assert Result.ok(1).unwrap_or(0) == 1
        assert Result.err("x").unwrap_or(0) == 0


class TestResultCombinators:
    """Test map, map_err and and_then."""

    def test_map_transforms_ok(self) -> None:
        assert Result.ok(2).map(lambda x: x * 3).value == 6

    def test_map_passes_err_through(self) -> None:
        result: Result[int, str] = Result.err("e")
        assert result.map(lambda x: x * 3).error == "e"

    def test_map_err(self) -> None:
        result: Result[int, str] = Result.err("e")
        assert result.map_err(str.upper).error == "E"
        assert Result.ok(1).map_err(str.upper).value == 1

    def test_and_then_chains(self) -> None:
        def half(x: int) -> Result[int, str]:
            if x % 2:
                return Result.err("odd")
            return Result.ok(x // 2)

        assert Result.ok(8).and_then(half).and_then(half).value == 2
        assert Result.ok(6).and_then(half).and_then(half).error == "odd"
        assert Result.err("first").and_then(half).error == "first"
