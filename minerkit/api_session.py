"""JSON-RPC request handling for one monitoring API client."""

from __future__ import annotations

import json
from typing import Any, Protocol

from minerkit.api_params import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    RequestError,
    ValueKind,
    check_write_access,
    get_request_value,
    parse_request_id,
    passwords_match,
)
from minerkit.log import LOG_NEXT, Channel, log

__all__ = ["MinerBackend", "ApiSession"]

_UNPROCESSABLE = -422
_FORBIDDEN = -403
_UNAUTHORIZED = -401
_MAX_NONCE = 2**64 - 1
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class MinerBackend(Protocol):
    """What the API needs from the running miner and its pool manager."""

    def miner_stat1(self) -> Any:
        """Result of ``miner_getstat1``."""

    def miner_stat_detail(self) -> Any:
        """Result of ``miner_getstatdetail``."""

    def shuffle(self) -> None:
        """Give the nonce scrambler a new range."""

    def restart_async(self) -> None:
        """Restart mining without blocking the caller."""

    def reboot(self, args: list[str]) -> Any:
        """Reboot the miner; the returned value is the method result."""

    def get_connections_json(self) -> Any:
        """The configured pool connections."""

    def add_connection(self, uri: str) -> None:
        """Add a pool connection; raises on a bad URI."""

    def set_active_connection(self, target: int | str) -> None:
        """Switch to the connection at an index or with a URI; raises on failure."""

    def remove_connection(self, index: int) -> None:
        """Remove the connection at ``index``; raises on failure."""

    def get_nonce_scrambler_json(self) -> Any:
        """Result of ``miner_getscramblerinfo``."""

    def get_nonce_scrambler(self) -> int:
        """Current nonce scrambler."""

    def get_segment_width(self) -> int:
        """Current nonce segment width in bits."""

    def set_nonce_scrambler(self, nonce: int) -> None:
        """Set the nonce scrambler."""

    def set_nonce_segment_width(self, width: int) -> None:
        """Set the nonce segment width in bits."""

    def pause_miner(self, index: int, pause: bool) -> bool:
        """Pause or resume a miner; False when there is no miner at ``index``."""

    def set_verbosity(self, verbosity: int) -> None:
        """Set the log verbosity bits."""


def _parse_hex_nonce(text: str) -> int:
    """Parse the leading hex digits after a 0x prefix, as strtoul would."""
    digits = []
    for char in text[2:]:
        if char not in _HEX_DIGITS:
            break
        digits.append(char)
    value = int("".join(digits), 16) if digits else 0
    if value > _MAX_NONCE:
        raise RequestError(_UNPROCESSABLE, "Invalid nonce")
    return value


class ApiSession:
    """Authentication state and method dispatch for one API client."""

    def __init__(self, backend: MinerBackend, readonly: bool = False, password: str = "") -> None:
        self.backend = backend
        self.readonly = readonly
        self.password = password
        self.authenticated = not password

    def process_request(self, request: dict[str, Any]) -> dict[str, Any]:
        """Answer one decoded JSON-RPC request with a response object."""
        if not isinstance(request, dict):
            raise TypeError("request must be a JSON object")
        response: dict[str, Any] = {"jsonrpc": "2.0"}
        try:
            response["id"] = parse_request_id(request)
        except RequestError as err:
            response["id"] = None
            response["error"] = err.to_json()
            return response

        try:
            jsonrpc = get_request_value(request, "jsonrpc", ValueKind.STRING)
            if jsonrpc != "2.0":
                raise RequestError(INVALID_REQUEST, "Invalid Request")
            method = get_request_value(request, "method", ValueKind.STRING)
        except RequestError:
            response["error"] = {"code": INVALID_REQUEST, "message": "Invalid Request"}
            return response

        try:
            if not self.authenticated or method == "api_authorize":
                self._authorize(method, request)
            else:
                log(Channel.NOTE, f"API : Method {method} requested")
                response["result"] = self._dispatch(method, request)
        except RequestError as err:
            response["error"] = err.to_json()
        return response

    def handle_line(self, line: str) -> str | None:
        """Answer one line of input with a serialized response, or None for a blank line."""
        line = line.strip()
        if not line:
            return None
        try:
            request = json.loads(line)
        except ValueError as exc:
            what = str(exc).replace("\n", " ")
            log(Channel.WARN, f"API : Got invalid Json message {what}")
            response: dict[str, Any] = {
                "jsonrpc": "2.0",
                "id": None,
                "error": {"errorcode": "-32700", "message": "Json parse error : " + what},
            }
        else:
            try:
                response = self.process_request(request)
            except Exception as exc:  # noqa: BLE001 - any failure becomes a 500 reply
                response = {
                    "jsonrpc": "2.0",
                    "id": None,
                    "error": {"errorcode": "500", "message": str(exc)},
                }
        return json.dumps(response, sort_keys=True, separators=(",", ":")) + "\n"

    def _authorize(self, method: str, request: dict[str, Any]) -> None:
        if method != "api_authorize":
            raise RequestError(_FORBIDDEN, "Authorization needed")
        self.authenticated = False
        params = get_request_value(request, "params", ValueKind.OBJECT)
        supplied = get_request_value(params, "psw", ValueKind.STRING)
        if not passwords_match(supplied, self.password):
            log(Channel.WARN, "API : Invalid password provided.")
            raise RequestError(_UNAUTHORIZED, "Invalid password")
        self.authenticated = True

    def _params(self, request: dict[str, Any]) -> dict[str, Any]:
        return get_request_value(request, "params", ValueKind.OBJECT)

    def _dispatch(self, method: str, request: dict[str, Any]) -> Any:
        backend = self.backend
        if method == "miner_getstat1":
            return backend.miner_stat1()
        if method == "miner_getstatdetail":
            return backend.miner_stat_detail()
        if method == "miner_ping":
            return "pong"
        if method == "miner_getconnections":
            return backend.get_connections_json()
        if method == "miner_getscramblerinfo":
            return backend.get_nonce_scrambler_json()

        handlers = {
            "miner_shuffle": self._shuffle,
            "miner_restart": self._restart,
            "miner_reboot": self._reboot,
            "miner_addconnection": self._add_connection,
            "miner_setactiveconnection": self._set_active_connection,
            "miner_removeconnection": self._remove_connection,
            "miner_setscramblerinfo": self._set_scrambler_info,
            "miner_pausegpu": self._pause_gpu,
            "miner_setverbosity": self._set_verbosity,
        }
        handler = handlers.get(method)
        if handler is None:
            raise RequestError(METHOD_NOT_FOUND, "Method not found")
        check_write_access(self.readonly)
        return handler(request)

    def _shuffle(self, request: dict[str, Any]) -> bool:
        self.backend.shuffle()
        return True

    def _restart(self, request: dict[str, Any]) -> bool:
        self.backend.restart_async()
        return True

    def _reboot(self, request: dict[str, Any]) -> Any:
        return self.backend.reboot(["api_miner_reboot"])

    def _add_connection(self, request: dict[str, Any]) -> bool:
        params = self._params(request)
        uri = get_request_value(params, "uri", ValueKind.STRING)
        try:
            self.backend.add_connection(uri)
        except Exception:  # noqa: BLE001 - any failure means the URI was rejected
            raise RequestError(_UNPROCESSABLE, "Bad URI : " + uri) from None
        return True

    def _set_active_connection(self, request: dict[str, Any]) -> bool:
        params = self._params(request)
        try:
            if "index" in params:
                target: int | str = get_request_value(params, "index", ValueKind.UINT)
            else:
                target = get_request_value(params, "URI", ValueKind.STRING)
        except RequestError:
            raise RequestError(_UNPROCESSABLE, "Invalid index") from None
        try:
            self.backend.set_active_connection(target)
        except Exception as exc:  # noqa: BLE001
            raise RequestError(_UNPROCESSABLE, str(exc)) from None
        return True

    def _remove_connection(self, request: dict[str, Any]) -> bool:
        params = self._params(request)
        index = get_request_value(params, "index", ValueKind.UINT)
        try:
            self.backend.remove_connection(index)
        except Exception as exc:  # noqa: BLE001
            raise RequestError(_UNPROCESSABLE, str(exc)) from None
        return True

    def _set_scrambler_info(self, request: dict[str, Any]) -> bool:
        params = self._params(request)
        provided = False
        nonce = self.backend.get_nonce_scrambler()
        width = self.backend.get_segment_width()

        if "noncescrambler" in params:
            provided = True
            raw = params["noncescrambler"]
            text = raw if isinstance(raw, str) else ""
            if text[:2] == "0x":
                nonce = _parse_hex_nonce(text)
            else:
                nonce = get_request_value(params, "noncescrambler", ValueKind.UINT64)

        if "segmentwidth" in params:
            provided = True
            width = get_request_value(params, "segmentwidth", ValueKind.UINT)

        if not provided:
            raise RequestError(INVALID_PARAMS, "Missing parameters")

        if width < 10:
            width = 10
        if width > 50:
            width = 40
        self.backend.set_nonce_scrambler(nonce)
        self.backend.set_nonce_segment_width(width)
        return True

    def _pause_gpu(self, request: dict[str, Any]) -> bool:
        params = self._params(request)
        index = get_request_value(params, "index", ValueKind.UINT)
        pause = get_request_value(params, "pause", ValueKind.BOOL)
        if not self.backend.pause_miner(index, pause):
            raise RequestError(_UNPROCESSABLE, "Index out of bounds")
        return True

    def _set_verbosity(self, request: dict[str, Any]) -> bool:
        params = self._params(request)
        verbosity = get_request_value(params, "verbosity", ValueKind.UINT)
        if verbosity >= LOG_NEXT:
            raise RequestError(
                _UNPROCESSABLE, f"Verbosity out of bounds (0-{LOG_NEXT - 1})"
            )
        log(Channel.NOTE, f"Setting verbosity level to {verbosity}")
        self.backend.set_verbosity(verbosity)
        return True