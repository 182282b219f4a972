"""Core types for ledgerdb - Result type and row/payload aliases.

This module provides:
- Result[T, E]: success-or-failure value returned by command dispatch
- Type aliases shared by commands, reducers and the dispatcher
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, cast

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Result(Generic[T, E]):
    """Either a committed value (Ok) or a failure (Err).

    Dispatch returns a Result instead of raising so that callers can tell a
    committed command from a rolled-back one.

    Usage:
        result = await es.run_command(conn, create_item, payload, actor_id)
        if result.is_ok:
            new_id = result.value.created_ids[0]
        else:
            log.warning("command.failed", reason=result.error.reason)
    """

    _value: T | None
    _error: E | None
    _is_ok: bool

    @classmethod
    def ok(cls, value: T) -> Result[T, E]:
        """Wrap a success value."""
        return cls(_value=value, _error=None, _is_ok=True)

    @classmethod
    def err(cls, error: E) -> Result[T, E]:
        """Wrap a failure value."""
        return cls(_value=None, _error=error, _is_ok=False)

    @property
    def is_ok(self) -> bool:
        return self._is_ok

    @property
    def is_err(self) -> bool:
        return not self._is_ok

    def __repr__(self) -> str:
        if self._is_ok:
            return f"Ok({self._value!r})"
        return f"Err({self._error!r})"

    @property
    def value(self) -> T:
        """Return the Ok value.

        Raises:
            ValueError: If this Result is Err.
        """
        if not self._is_ok:
            msg = "Cannot access value on Err result"
            raise ValueError(msg)
        return cast(T, self._value)

    @property
    def error(self) -> E:
        """Return the Err value.

        Raises:
            ValueError: If this Result is Ok.
        """
        if self._is_ok:
            msg = "Cannot access error on Ok result"
            raise ValueError(msg)
        return cast(E, self._error)

    def unwrap(self) -> T:
        """Return the Ok value or raise ValueError carrying the error text."""
        if self._is_ok:
            return cast(T, self._value)
        raise ValueError(str(self._error))

    def unwrap_or(self, default: T) -> T:
        if self._is_ok:
            return cast(T, self._value)
        return default

    def map(self, fn: Callable[[T], U]) -> Result[U, E]:
        """Apply fn to the Ok value; pass Err through unchanged."""
        if self._is_ok:
            return Result.ok(fn(cast(T, self._value)))
        return Result.err(cast(E, self._error))

    def map_err(self, fn: Callable[[E], F]) -> Result[T, F]:
        """Apply fn to the Err value; pass Ok through unchanged."""
        if self._is_ok:
            return Result.ok(cast(T, self._value))
        return Result.err(fn(cast(E, self._error)))

    def and_then(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain a Result-producing step onto an Ok value."""
        if self._is_ok:
            return fn(cast(T, self._value))
        return Result.err(cast(E, self._error))


Row = dict[str, Any]
"""A materialized table row: column name -> value, plus ``id``."""

RowPatch = Mapping[str, Any]
"""Partial row returned by an updater; ``None`` values leave columns unchanged."""

EventPayload = dict[str, Any]
"""JSON-serializable event data, with the caller-facing ``table`` key removed."""
