"""Fixed-size byte containers used for hashes, seeds and headers."""

from __future__ import annotations

import secrets
from collections.abc import Iterable
from enum import Enum
from functools import total_ordering
from typing import ClassVar

from minerkit.common_data import from_big_endian, from_hex, to_big_endian, to_hex

__all__ = [
    "Align",
    "FixedHash",
    "H64",
    "H128",
    "H160",
    "H256",
    "H512",
    "hashes_to_string",
]

_ELLIPSIS = "\u2026"


class Align(Enum):
    """How bytes of a different length are placed into a fixed-size hash."""

    LEFT = "left"
    RIGHT = "right"
    FAIL_IF_DIFFERENT = "fail_if_different"


@total_ordering
class FixedHash:
    """Immutable fixed-size byte string; its integer value is read big-endian.

    Concrete sizes are the subclasses, which set ``SIZE``.
    """

    SIZE: ClassVar[int] = 0
    __slots__ = ("_data",)

    def __init__(
        self,
        data: bytes | bytearray | Iterable[int] = b"",
        align: Align = Align.FAIL_IF_DIFFERENT,
    ) -> None:
        size = type(self).SIZE
        if size <= 0:
            raise TypeError("FixedHash must be used through a sized subclass")
        raw = bytes(data)
        if len(raw) == size:
            self._data = raw
            return
        if align is Align.FAIL_IF_DIFFERENT:
            self._data = bytes(size)
        elif align is Align.RIGHT:
            self._data = raw[-size:].rjust(size, b"\x00")
        else:
            self._data = raw[:size].ljust(size, b"\x00")

    @classmethod
    def from_hex(cls, text: str) -> FixedHash:
        """Build from a hex string; a string of the wrong length gives an empty hash."""
        return cls(from_hex(text, strict=True), Align.FAIL_IF_DIFFERENT)

    @classmethod
    def from_int(cls, value: int) -> FixedHash:
        """Build from an unsigned integer; bits above the hash width are dropped."""
        return cls(to_big_endian(value, cls.SIZE))

    @classmethod
    def random(cls) -> FixedHash:
        """A hash filled with random bytes."""
        return cls(secrets.token_bytes(cls.SIZE))

    def resized(self, target: type[FixedHash], align: Align = Align.LEFT) -> FixedHash:
        """Copy into a hash of another size, cropping or zero-filling as needed."""
        placement = Align.RIGHT if align is Align.RIGHT else Align.LEFT
        if len(self._data) == target.SIZE:
            return target(self._data)
        return target(self._data, placement)

    def abridged(self) -> str:
        """The first four bytes in hex followed by an ellipsis."""
        return to_hex(self._data[:4]) + _ELLIPSIS

    def hex(self, prefix: bool = False) -> str:
        """The whole hash as lower-case hex."""
        return to_hex(self._data, 2, prefix)

    def incremented(self) -> FixedHash:
        """The big-endian successor of this hash, wrapping to zero."""
        return type(self).from_int((int(self) + 1) % (1 << (8 * self.SIZE)))

    def __int__(self) -> int:
        return from_big_endian(self._data)

    def __bytes__(self) -> bytes:
        return self._data

    def __bool__(self) -> bool:
        return any(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getitem__(self, index):
        return self._data[index]

    def __iter__(self):
        return iter(self._data)

    def _same_size(self, other: object) -> bool:
        return isinstance(other, FixedHash) and len(other) == len(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FixedHash):
            return NotImplemented
        return self._same_size(other) and self._data == other._data

    def __lt__(self, other: object) -> bool:
        if not self._same_size(other):
            return NotImplemented
        return self._data < other._data  # type: ignore[union-attr]

    def __hash__(self) -> int:
        return hash((self.SIZE, self._data))

    def _combine(self, other: object, op) -> FixedHash:
        if not self._same_size(other):
            return NotImplemented
        return type(self)(bytes(op(a, b) for a, b in zip(self._data, other._data)))  # type: ignore[union-attr]

    def __xor__(self, other: object) -> FixedHash:
        return self._combine(other, lambda a, b: a ^ b)

    def __or__(self, other: object) -> FixedHash:
        return self._combine(other, lambda a, b: a | b)

    def __and__(self, other: object) -> FixedHash:
        return self._combine(other, lambda a, b: a & b)

    def __invert__(self) -> FixedHash:
        return type(self)(bytes(~b & 0xFF for b in self._data))

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.hex(prefix=True)})"


class H64(FixedHash):
    """An 8-byte hash."""

    SIZE = 8
    __slots__ = ()


class H128(FixedHash):
    """A 16-byte hash."""

    SIZE = 16
    __slots__ = ()


class H160(FixedHash):
    """A 20-byte hash."""

    SIZE = 20
    __slots__ = ()


class H256(FixedHash):
    """A 32-byte hash."""

    SIZE = 32
    __slots__ = ()


class H512(FixedHash):
    """A 64-byte hash."""

    SIZE = 64
    __slots__ = ()


def hashes_to_string(hashes: Iterable[FixedHash]) -> str:
    """Abridged listing of several hashes in brackets."""
    return "[ " + "".join(f"{h.abridged()}, " for h in hashes) + "]"