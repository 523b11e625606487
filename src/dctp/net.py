from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Iterator, Optional

from .constants import DATA_ENCODING, LINE_BUFFER_SIZE, MAX_PORT, MIN_PORT
from .errors import ChannelConnectionError, TransferError

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Endpoint:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class Channel:
    """One TCP connection of an exchange.

    A command channel is read with ``read_exact``; a data channel is read with
    ``readline``/``lines``. The two read paths buffer independently and must
    not be mixed on the same channel.
    """

    def __init__(self, sock: socket.socket, name: str = ""):
        self.sock = sock
        self.name = name
        self._reader = None
        self._closed = False

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        name: str = "",
    ) -> "Channel":
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as exc:
            raise ChannelConnectionError(host, port, exc) from exc
        # the timeout bounds connection establishment only
        sock.settimeout(None)
        log.debug("%s channel connected to %s:%d", name or "tcp", host, port)
        return cls(sock, name)

    @property
    def closed(self) -> bool:
        return self._closed

    def read_exact(self, size: int) -> bytes:
        """Read ``size`` bytes, or fewer if the peer closes first."""
        buf = bytearray()
        while len(buf) < size:
            try:
                part = self.sock.recv(size - len(buf))
            except OSError as exc:
                raise TransferError(f"{self.name or 'tcp'} channel read failed: {exc}") from exc
            if not part:
                break
            buf += part
        return bytes(buf)

    def readline(self) -> Optional[str]:
        """Return the next line with its terminator normalized to ``\\n``, or None at EOF."""
        if self._reader is None:
            self._reader = self.sock.makefile(
                "r",
                buffering=LINE_BUFFER_SIZE,
                encoding=DATA_ENCODING,
                newline=None,
            )
        try:
            line = self._reader.readline()
        except OSError as exc:
            raise TransferError(f"{self.name or 'tcp'} channel read failed: {exc}") from exc
        return line or None

    def lines(self) -> Iterator[str]:
        while True:
            line = self.readline()
            if line is None:
                return
            yield line

    def write(self, data: bytes) -> int:
        try:
            self.sock.sendall(data)
        except OSError as exc:
            raise TransferError(f"{self.name or 'tcp'} channel write failed: {exc}") from exc
        return len(data)

    def flush(self) -> None:
        # sendall leaves nothing buffered on our side
        pass

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self._reader is not None:
                self._reader.close()
        finally:
            self.sock.close()
        log.debug("%s channel closed", self.name or "tcp")

    def __enter__(self) -> "Channel":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_command_channel(endpoint: Endpoint, timeout: Optional[float] = None) -> Channel:
    return Channel.connect(endpoint.host, endpoint.port, timeout=timeout, name="command")


def open_data_channel(host: str, port: int, timeout: Optional[float] = None) -> Channel:
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValueError(f"data port out of range: {port}")
    return Channel.connect(host, port, timeout=timeout, name="data")
