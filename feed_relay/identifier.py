"""Identifiers that may be numeric or opaque strings.

Sources address groups either by numeric id or by a domain string, and
post ids arrive as numbers. Comparison is total: mismatched or
non-numeric pairs yield Ordering.UNORDERED instead of raising. Identical
strings still compare equal with ==, but have no ordering.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

U64_MAX = 2**64 - 1


class Ordering(Enum):
    LESS = "less"
    EQUAL = "equal"
    GREATER = "greater"
    UNORDERED = "unordered"


def _parse_u64(text: str) -> int | None:
    if not (text.isascii() and text.isdigit()):
        return None
    value = int(text)
    return value if value <= U64_MAX else None


def _cmp(a: int, b: int) -> Ordering:
    if a < b:
        return Ordering.LESS
    if a > b:
        return Ordering.GREATER
    return Ordering.EQUAL


class Identifier:
    """A post or source id: either a u64 or a string."""

    __slots__ = ("_number", "_string")

    def __init__(self, number: int | None = None, string: str | None = None) -> None:
        if (number is None) == (string is None):
            raise ValueError("Identifier needs exactly one of number or string")
        if number is not None and not 0 <= number <= U64_MAX:
            raise ValueError(f"Identifier number out of range: {number}")
        self._number = number
        self._string = string

    @classmethod
    def number(cls, value: int) -> Identifier:
        return cls(number=value)

    @classmethod
    def string(cls, value: str) -> Identifier:
        return cls(string=value)

    @classmethod
    def parse(cls, value: Any) -> Identifier:
        """Build from a config or JSON value (int, str or Identifier)."""
        if isinstance(value, Identifier):
            return value
        if isinstance(value, bool):
            raise TypeError("Identifier cannot be a boolean")
        if isinstance(value, int):
            return cls.number(value)
        if isinstance(value, str):
            return cls.string(value)
        raise TypeError(f"Unsupported identifier type: {type(value).__name__}")

    @property
    def is_number(self) -> bool:
        return self._number is not None

    def coerce(self) -> int | None:
        """Return the numeric value, parsing strings when possible."""
        if self._number is not None:
            return self._number
        return _parse_u64(self._string)  # type: ignore[arg-type]

    def flatten(self) -> Identifier:
        """Numeric strings become numbers; everything else is unchanged."""
        value = self.coerce()
        if value is None or self.is_number:
            return self
        return Identifier.number(value)

    def compare(self, other: Identifier | int | str) -> Ordering:
        try:
            other = Identifier.parse(other)
        except (TypeError, ValueError):
            return Ordering.UNORDERED
        a, b = self.coerce(), other.coerce()
        if a is None or b is None:
            return Ordering.UNORDERED
        return _cmp(a, b)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (Identifier, int, str)) or isinstance(other, bool):
            return NotImplemented
        # Identical strings are equal even though they have no ordering.
        other_string = other._string if isinstance(other, Identifier) else other
        if self._string is not None and self._string == other_string:
            return True
        return self.compare(other) is Ordering.EQUAL

    def __hash__(self) -> int:
        value = self.coerce()
        return hash(value) if value is not None else hash(self._string)

    def __lt__(self, other: Identifier | int | str) -> bool:
        return self.compare(other) is Ordering.LESS

    def __le__(self, other: Identifier | int | str) -> bool:
        return self.compare(other) in (Ordering.LESS, Ordering.EQUAL)

    def __gt__(self, other: Identifier | int | str) -> bool:
        return self.compare(other) is Ordering.GREATER

    def __ge__(self, other: Identifier | int | str) -> bool:
        return self.compare(other) in (Ordering.GREATER, Ordering.EQUAL)

    def __str__(self) -> str:
        if self._number is not None:
            return str(self._number)
        return self._string  # type: ignore[return-value]

    def __repr__(self) -> str:
        if self._number is not None:
            return f"Identifier.number({self._number})"
        return f"Identifier.string({self._string!r})"
