"""TCP endpoint serving the monitoring API as JSON-RPC lines or a small HTTP page."""

from __future__ import annotations

import codecs
import ipaddress
import re
import socket
import threading
from collections.abc import Callable
from dataclasses import dataclass

from minerkit.api_session import ApiSession, MinerBackend
from minerkit.api_stats import render_stat_html
from minerkit.log import Channel, log

__all__ = [
    "SERVER_NAME",
    "match_http_request",
    "http_response",
    "ApiConnection",
    "ApiServer",
]

SERVER_NAME = "minerkit"

# Method in upper case, the path, and the HTTP version.
_HTTP_PATTERN = re.compile(r"^([A-Z]{1,6}) (/\S*) (HTTP/1\.[0-9])")
_SERVED_PATHS = frozenset({"/", "/getstat1"})
_ACCEPT_POLL_SECONDS = 0.2
_RECV_SIZE = 4096


def match_http_request(message: str) -> tuple[str, str, str] | None:
    """Method, path and version of an HTTP request line at the start of ``message``."""
    match = _HTTP_PATTERN.match(message)
    if match is None:
        return None
    method, path, version = match.groups()
    return method, path, version


def http_response(
    version: str,
    status: str,
    content_type: str,
    body: str,
    server_name: str = SERVER_NAME,
) -> str:
    """A complete HTTP response with the headers the API always sends."""
    length = len(body.encode("utf-8"))
    return (
        f"{version} {status}\r\n"
        f"Server: {server_name}\r\n"
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {length}\r\n\r\n"
        f"{body}\r\n"
    )


class ApiConnection:
    """Turns the bytes received from one client into the replies to send back.

    A message that starts with an HTTP request line is answered once and the
    connection is then marked for closing; anything else is read as
    newline-separated JSON-RPC requests.
    """

    def __init__(
        self,
        session: ApiSession,
        server_name: str,
        html_provider: Callable[[], str],
    ) -> None:
        self.session = session
        self.server_name = server_name
        self.html_provider = html_provider
        self.closing = False
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._message = ""

    def feed(self, data: bytes | bytearray | str) -> list[str]:
        """Take in received data and return the replies it completes."""
        if isinstance(data, (bytes, bytearray)):
            text = self._decoder.decode(bytes(data))
        else:
            text = data
        self._message += text

        if len(self._message) < 4:
            return []

        request = match_http_request(self._message)
        if request is not None:
            reply = self._http_reply(*request)
            self._message = ""
            self.closing = True
            return [reply]

        *lines, self._message = self._message.split("\n")
        replies = []
        for line in lines:
            reply = self.session.handle_line(line)
            if reply is not None:
                replies.append(reply)
        return replies

    def _http_reply(self, method: str, path: str, version: str) -> str:
        if method != "GET":
            return http_response(
                version,
                "405 Method not allowed",
                "text/plain",
                f"Method {method} not allowed",
                self.server_name,
            )
        if path not in _SERVED_PATHS:
            return http_response(
                version,
                "404 Not Found",
                "text/plain",
                f"The requested resource {path} not found on this server",
                self.server_name,
            )
        try:
            body = self.html_provider()
        except Exception as exc:  # noqa: BLE001 - any failure becomes a 500 reply
            return http_response(
                version,
                "500 Internal Server Error",
                "text/plain",
                f"Internal error : {exc}",
                self.server_name,
            )
        return http_response(
            version, "200 Ok Error", "text/html; charset=utf-8", body, self.server_name
        )


@dataclass
class _Client:
    sock: socket.socket
    thread: threading.Thread


class ApiServer:
    """Listens for API clients and serves each on its own thread.

    A negative port number means the same port in read-only mode; port zero
    leaves the server disabled.
    """

    server_name = SERVER_NAME

    def __init__(self, address: str, port: int, password: str, backend: MinerBackend) -> None:
        self.address = address
        self.readonly = port < 0
        self.port = -port if port < 0 else port
        self.password = password
        self.backend = backend
        self._running = threading.Event()
        self._listener: socket.socket | None = None
        self._accept_thread: threading.Thread | None = None
        self._clients: dict[int, _Client] = {}
        self._lock = threading.Lock()
        self._last_session_id = 0

    def start(self) -> None:
        """Bind and start accepting; a port already in use is logged, not raised."""
        if self.port == 0 or self.is_running():
            return
        ip = ipaddress.ip_address(self.address)
        family = socket.AF_INET6 if ip.version == 6 else socket.AF_INET
        listener = socket.socket(family, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((str(ip), self.port))
            listener.listen(64)
        except OSError:
            listener.close()
            log(Channel.WARN, f"Could not start API server on port: {self.port}")
            log(Channel.WARN, "Ensure port is not in use by another service")
            return

        listener.settimeout(_ACCEPT_POLL_SECONDS)
        self._listener = listener
        suffix = "." if not self.password else ". Authentication needed."
        log(Channel.NOTE, f"Api server listening on port {self.port}{suffix}")
        self._running.set()
        self._accept_thread = threading.Thread(
            target=self._accept_loop, name="api", daemon=True
        )
        self._accept_thread.start()

    def stop(self) -> None:
        """Stop accepting and drop every open session."""
        if not self.is_running():
            return
        self._running.clear()
        if self._accept_thread is not None:
            self._accept_thread.join()
            self._accept_thread = None
        if self._listener is not None:
            self._listener.close()
            self._listener = None

        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            try:
                client.sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        for client in clients:
            client.thread.join(timeout=2.0)

    def is_running(self) -> bool:
        """Whether the server is accepting connections."""
        return self._running.is_set()

    def _html(self) -> str:
        return render_stat_html(self.backend.miner_stat_detail())

    def _accept_loop(self) -> None:
        listener = self._listener
        while self._running.is_set() and listener is not None:
            try:
                sock, peer = listener.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            sock.settimeout(None)
            with self._lock:
                self._last_session_id += 1
                session_id = self._last_session_id
            session = ApiSession(self.backend, self.readonly, self.password)
            connection = ApiConnection(session, self.server_name, self._html)
            thread = threading.Thread(
                target=self._serve,
                args=(session_id, sock, connection),
                name=f"api-{session_id}",
                daemon=True,
            )
            with self._lock:
                self._clients[session_id] = _Client(sock, thread)
            log(Channel.NOTE, f"New API session from {peer[0]}:{peer[1]}")
            thread.start()

    def _serve(self, session_id: int, sock: socket.socket, connection: ApiConnection) -> None:
        try:
            while True:
                try:
                    data = sock.recv(_RECV_SIZE)
                except OSError:
                    break
                if not data:
                    break
                try:
                    for reply in connection.feed(data):
                        sock.sendall(reply.encode("utf-8"))
                except OSError:
                    break
                if connection.closing:
                    break
        finally:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()
            with self._lock:
                self._clients.pop(session_id, None)