"""Hex, big-endian, difficulty and size-formatting helpers."""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from decimal import Decimal

__all__ = [
    "BadHexCharacter",
    "from_hex_char",
    "from_hex",
    "to_hex",
    "int_to_hex",
    "to_compact_hex",
    "to_big_endian",
    "from_big_endian",
    "to_compact_big_endian",
    "bytes_required",
    "set_env",
    "get_target_from_diff",
    "get_hashes_to_target",
    "get_scaled_size",
    "get_formatted_hashes",
    "get_formatted_memory",
    "pad_left",
    "pad_right",
]

_TARGET_BASE = 0x00000000FFFF0000000000000000000000000000000000000000000000000000
_TARGET_MAX = (1 << 256) - 1
_HASHES_DIVIDEND = 0xFFFF000000000000000000000000000000000000000000000000000000000000

_HASH_SUFFIXES = ("h", "Kh", "Mh", "Gh")
_MEMORY_SUFFIXES = ("B", "KB", "MB", "GB")


class BadHexCharacter(ValueError):
    """Raised when a string holds a character that is not a hex digit."""

    def __init__(self, symbol: str | None = None) -> None:
        super().__init__("BadHexCharacter")
        self.symbol = symbol


def from_hex_char(char: str, strict: bool = False) -> int:
    """Value of one hex digit, or -1 (or an error if strict) for anything else."""
    if len(char) == 1:
        if "0" <= char <= "9":
            return ord(char) - ord("0")
        if "a" <= char <= "f":
            return ord(char) - ord("a") + 10
        if "A" <= char <= "F":
            return ord(char) - ord("A") + 10
    if strict:
        raise BadHexCharacter(char)
    return -1


def from_hex(text: str, strict: bool = False) -> bytes:
    """Decode a hex string (optionally 0x-prefixed) into bytes.

    On a bad character an empty result is returned, or BadHexCharacter is
    raised when ``strict`` is set.
    """
    start = 2 if text.startswith("0x") else 0
    digits = text[start:]
    out = bytearray()

    def fail() -> bytes:
        if strict:
            raise BadHexCharacter()
        return b""

    if len(text) % 2:
        high = from_hex_char(digits[0]) if digits else -1
        if high == -1:
            return fail()
        out.append(high)
        digits = digits[1:]

    for high_char, low_char in zip(digits[::2], digits[1::2]):
        high = from_hex_char(high_char)
        low = from_hex_char(low_char)
        if high == -1 or low == -1:
            return fail()
        out.append(high * 16 + low)
    return bytes(out)


def to_hex(data: Iterable[int], width: int = 2, prefix: bool = False) -> str:
    """Hex string of a byte sequence; the first byte is padded to ``width``."""
    parts = [
        format(byte & 0xFF, f"0{width if position == 0 else 2}x")
        for position, byte in enumerate(data)
    ]
    text = "".join(parts)
    return "0x" + text if prefix else text


def int_to_hex(value: int, width: int = 16, prefix: bool = False) -> str:
    """Zero-padded lower-case hex of an unsigned integer."""
    if value < 0:
        raise ValueError("value must not be negative")
    text = format(value, f"0{width}x")
    return "0x" + text if prefix else text


def to_compact_hex(value: int, prefix: bool = False) -> str:
    """Lower-case hex of an unsigned integer without padding."""
    if value < 0:
        raise ValueError("value must not be negative")
    text = format(value, "x")
    return "0x" + text if prefix else text


def to_big_endian(value: int, length: int) -> bytes:
    """Big-endian bytes of ``value`` in exactly ``length`` bytes; high bits are dropped."""
    if value < 0:
        raise ValueError("only unsigned values are supported")
    mask = (1 << (8 * length)) - 1
    return (value & mask).to_bytes(length, "big")


def from_big_endian(data: Iterable[int]) -> int:
    """Unsigned integer from big-endian bytes."""
    return int.from_bytes(bytes(data), "big")


def bytes_required(value: int) -> int:
    """Number of bytes needed to hold ``value``; zero for zero."""
    if value < 0:
        raise ValueError("only unsigned values are supported")
    return (value.bit_length() + 7) // 8


def to_compact_big_endian(value: int, minimum: int = 0) -> bytes:
    """Big-endian bytes just wide enough for ``value``, at least ``minimum`` long."""
    return to_big_endian(value, max(minimum, bytes_required(value)))


def set_env(name: str, value: str, override: bool = False) -> bool:
    """Set an environment variable, keeping an existing one unless ``override``."""
    if not override and name in os.environ:
        return True
    os.environ[name] = value
    return True


def _decimal_text(value: float) -> str:
    """Positional decimal text of a double at 17 significant digits."""
    return format(Decimal(format(value, ".17g")), "f")


def get_target_from_diff(diff: float, prefix: bool = True) -> str:
    """Boundary target, as 64 hex digits, for a share difficulty."""
    if diff == 0:
        product = _TARGET_MAX
    else:
        inverse = 1 / diff
        product = _TARGET_BASE * int(inverse)
        text = _decimal_text(inverse)
        integer_part, dot, fraction = text.partition(".")
        if dot:
            decimals = fraction.lstrip("0")
            multiplier = int(decimals) if decimals else 0
            divisor = 10 ** len(fraction)
            product += (_TARGET_BASE * multiplier) // divisor
    text = format(product, "064x")
    return "0x" + text if prefix else text


def _parse_big_integer(text: str) -> int:
    text = text.strip()
    if text[:2].lower() == "0x":
        return int(text[2:], 16)
    if len(text) > 1 and text.startswith("0"):
        return int(text[1:], 8)
    return int(text, 10)


def get_hashes_to_target(target: str) -> float:
    """Difficulty, expressed in hashes, of a target string."""
    divisor = _parse_big_integer(target)
    return float(_HASHES_DIVIDEND // divisor)


def get_scaled_size(
    value: float,
    divisor: float,
    precision: int,
    sizes: Sequence[str],
    suffix: bool = True,
) -> str:
    """Scale ``value`` down by ``divisor`` and label it with the matching unit."""
    if not sizes:
        raise ValueError("sizes must not be empty")
    scaled = value
    index = 0
    while scaled > divisor and index < len(sizes) - 1:
        scaled /= divisor
        index += 1
    text = f"{scaled:.{precision}f}"
    return f"{text} {sizes[index]}" if suffix else text


def get_formatted_hashes(hashrate: float, suffix: bool = True, precision: int = 2) -> str:
    """Hash rate with h/Kh/Mh/Gh units."""
    return get_scaled_size(hashrate, 1000.0, precision, _HASH_SUFFIXES, suffix)


def get_formatted_memory(memory: float, suffix: bool = True, precision: int = 2) -> str:
    """Memory size with B/KB/MB/GB units."""
    return get_scaled_size(memory, 1024.0, precision, _MEMORY_SUFFIXES, suffix)


def pad_left(value: str, length: int, fill_char: str) -> str:
    """Pad ``value`` on the left to ``length`` characters."""
    return value.rjust(length, fill_char)


def pad_right(value: str, length: int, fill_char: str) -> str:
    """Pad ``value`` on the right to ``length`` characters."""
    return value.ljust(length, fill_char)