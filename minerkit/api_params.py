"""Validation of JSON-RPC request members for the monitoring API."""

from __future__ import annotations

import hmac
import math
from enum import Enum
from typing import Any

__all__ = [
    "ValueKind",
    "RequestError",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "get_request_value",
    "parse_request_id",
    "check_write_access",
    "passwords_match",
]

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

_MAX_UINT = 2**32 - 1
_MAX_UINT64 = 2**64 - 1
_PASSWORD_LIMIT = 500


class ValueKind(Enum):
    """Expected JSON type of a request member."""

    BOOL = "bool"
    UINT = "uint"
    UINT64 = "uint64"
    OBJECT = "object"
    STRING = "string"


class RequestError(Exception):
    """A JSON-RPC error carrying its numeric code and message."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def to_json(self) -> dict[str, Any]:
        """The ``error`` member of a JSON-RPC response."""
        return {"code": self.code, "message": self.message}


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (list, dict)) and not value)


def _is_uint(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return 0 <= value <= _MAX_UINT
    if isinstance(value, float):
        return value.is_integer() and 0 <= value <= _MAX_UINT
    return False


def _as_uint64(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int) and 0 <= value <= _MAX_UINT64:
        return value
    if isinstance(value, float) and math.isfinite(value) and 0 <= value <= _MAX_UINT64:
        return int(value)
    raise ValueError("value is not convertible to an unsigned 64-bit integer")


def get_request_value(
    request: dict[str, Any],
    name: str,
    kind: ValueKind,
    optional: bool = False,
) -> Any:
    """Fetch and type-check member ``name`` of ``request``.

    Returns None for a missing optional member; raises RequestError otherwise.
    """
    if not isinstance(request, dict) or name not in request:
        if optional:
            return None
        raise RequestError(INVALID_PARAMS, f"Missing '{name}'")

    value = request[name]

    if kind is ValueKind.UINT64:
        if _is_empty(value):
            raise RequestError(INVALID_PARAMS, f"Empty '{name}'")
        try:
            return _as_uint64(value)
        except ValueError:
            raise RequestError(INVALID_PARAMS, f"Bad value in '{name}'") from None

    type_ok = {
        ValueKind.BOOL: isinstance(value, bool),
        ValueKind.UINT: _is_uint(value),
        ValueKind.OBJECT: isinstance(value, dict),
        ValueKind.STRING: isinstance(value, str),
    }[kind]
    if not type_ok:
        raise RequestError(INVALID_PARAMS, f"Invalid type of value '{name}'")
    if _is_empty(value):
        raise RequestError(INVALID_PARAMS, f"Empty '{name}'")
    if kind is ValueKind.UINT:
        return int(value)
    return value


def parse_request_id(request: dict[str, Any]) -> int | str:
    """The request id as an unsigned integer or a string."""
    if not isinstance(request, dict) or "id" not in request or _is_empty(request["id"]):
        raise RequestError(INVALID_REQUEST, "Invalid Request (missing or empty id)")
    value = request["id"]
    if _is_uint(value):
        return int(value)
    if isinstance(value, str):
        return value
    raise RequestError(INVALID_REQUEST, "Invalid Request (id has invalid type)")


def check_write_access(readonly: bool) -> None:
    """Raise when a method that changes state is called on a read-only API."""
    if readonly:
        raise RequestError(METHOD_NOT_FOUND, "Method not available")


def _padded(text: str) -> bytes:
    return text.encode("utf-8")[:_PASSWORD_LIMIT].ljust(_PASSWORD_LIMIT, b"\x00")


def passwords_match(supplied: str, expected: str) -> bool:
    """Compare the first 500 bytes of two passwords in constant time."""
    return hmac.compare_digest(_padded(supplied), _padded(expected))