from __future__ import annotations

import socket
import struct
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import pytest

from dctp import FileTransferClient
from dctp.codec import Request, Verb
from dctp.constants import (
    ALREADY_EXISTS,
    COMMAND_ENCODING,
    DELETE_SUCCESSFUL,
    FILE_NOT_FOUND,
    PORT_FORMAT,
    READY_TO_RECEIVE,
)
from dctp.errors import ProtocolError

IO_TIMEOUT = 5.0


def parse_request(raw: bytes) -> Request:
    """Split a verb line the way the server does: verb, then the rest as the file name."""
    parts = raw.decode(COMMAND_ENCODING).split(maxsplit=1)
    if not parts:
        raise ProtocolError("empty command line")

    try:
        verb = Verb(parts[0].upper())
    except ValueError:
        raise ProtocolError(f"unrecognized verb: {parts[0]!r}") from None

    argument = parts[1].strip() if len(parts) > 1 else None
    return Request(verb=verb, argument=argument or None)


def encode_port(port: int) -> bytes:
    if not 1 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return struct.pack(PORT_FORMAT, port)


def _read_line(conn: socket.socket) -> bytes:
    buf = bytearray()
    while not buf.endswith(b"\n"):
        part = conn.recv(1)
        if not part:
            break
        buf += part
    return bytes(buf)


def _read_to_eof(conn: socket.socket) -> bytes:
    buf = bytearray()
    while True:
        part = conn.recv(65536)
        if not part:
            return bytes(buf)
        buf += part


@dataclass
class FakeServer:
    """In-process server speaking the command/data channel protocol.

    Each accepted command connection is served on its own thread. Knobs let a
    test replace the announced port bytes or the status line to exercise the
    client's error paths.
    """

    files: Dict[str, bytes] = field(default_factory=dict)
    owned: Set[str] = field(default_factory=set)
    requests: List[Request] = field(default_factory=list)
    uploads: Dict[str, bytes] = field(default_factory=dict)
    after_refusal: Dict[str, bytes] = field(default_factory=dict)
    port_bytes: Optional[bytes] = None
    status_override: Optional[str] = None
    close_without_status: bool = False
    refuse_data_channel: bool = False

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(32)
        self._listener.settimeout(0.05)
        self._stopped = threading.Event()
        self.host, self.port = self._listener.getsockname()
        self._workers: List[threading.Thread] = []
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()

    def _accept_loop(self) -> None:
        while not self._stopped.is_set():
            try:
                conn, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            t = threading.Thread(target=self._serve, args=(conn,), daemon=True)
            self._workers.append(t)
            t.start()

    def _serve(self, command: socket.socket) -> None:
        command.settimeout(IO_TIMEOUT)
        with command:
            request = parse_request(_read_line(command))
            with self._lock:
                self.requests.append(request)

            if self.port_bytes is not None:
                command.sendall(self.port_bytes)
                return

            if self.refuse_data_channel:
                spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                spare.bind(("127.0.0.1", 0))
                dead_port = spare.getsockname()[1]
                spare.close()
                command.sendall(encode_port(dead_port))
                return

            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as data_listener:
                data_listener.bind(("127.0.0.1", 0))
                data_listener.listen(1)
                data_listener.settimeout(IO_TIMEOUT)
                command.sendall(encode_port(data_listener.getsockname()[1]))
                data, _ = data_listener.accept()

            data.settimeout(IO_TIMEOUT)
            with data:
                self._handle(request, data)

    def _send_line(self, data: socket.socket, text: str) -> None:
        data.sendall(text.encode("ascii") + b"\n")

    def _handle(self, request: Request, data: socket.socket) -> None:
        verb, name = request.verb, request.argument
        if verb is Verb.GET:
            if name not in self.files:
                self._send_line(data, FILE_NOT_FOUND)
            else:
                data.sendall(self.files[name])
        elif verb is Verb.DELETE:
            if name not in self.files:
                self._send_line(data, FILE_NOT_FOUND)
            else:
                del self.files[name]
                self._send_line(data, DELETE_SUCCESSFUL)
        elif verb in (Verb.LIST, Verb.LIST_OWNED):
            names = sorted(self.files) if verb is Verb.LIST else sorted(self.owned)
            for n in names:
                self._send_line(data, n)
        elif verb is Verb.HELP:
            for v in Verb:
                self._send_line(data, v.usage)
        elif verb in (Verb.CREATE, Verb.UPDATE):
            self._receive_upload(verb, name, data)

    def _receive_upload(self, verb: Verb, name: str, data: socket.socket) -> None:
        if self.close_without_status:
            return

        if self.status_override is not None:
            status = self.status_override
        elif verb is Verb.CREATE and name in self.files:
            status = ALREADY_EXISTS
        elif verb is Verb.UPDATE and name not in self.files:
            status = FILE_NOT_FOUND
        else:
            status = READY_TO_RECEIVE
        self._send_line(data, status)

        payload = _read_to_eof(data)
        with self._lock:
            if status == READY_TO_RECEIVE:
                self.files[name] = payload
                self.uploads[name] = payload
                if verb is Verb.CREATE:
                    self.owned.add(name)
            else:
                self.after_refusal[name] = payload

    def drain(self) -> None:
        """Wait until every accepted exchange has been fully handled."""
        for t in list(self._workers):
            t.join(timeout=IO_TIMEOUT)

    def close(self) -> None:
        self._stopped.set()
        self._thread.join(timeout=IO_TIMEOUT)
        self._listener.close()
        self.drain()


@pytest.fixture
def server():
    srv = FakeServer()
    yield srv
    srv.close()


@pytest.fixture
def client(server):
    return FileTransferClient(server.host, server.port, connect_timeout=IO_TIMEOUT)


@pytest.fixture
def free_port():
    spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    spare.bind(("127.0.0.1", 0))
    port = spare.getsockname()[1]
    spare.close()
    return port
