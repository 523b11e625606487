from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Type, Union

from . import pump
from .codec import Request, Status, Verb, match_sentinel, strip_terminator
from .config import ClientConfig
from .constants import CHUNK_SIZE, DATA_ENCODING, DEFAULT_COMMAND_PORT, FILE_NOT_FOUND
from .errors import AlreadyExistsError, FileTransferError, NotFoundError, ProtocolError
from .exchange import Exchange
from .net import Endpoint

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class FileTransferClient:
    """Client for one server.

    The client holds no connection: every operation opens its own command
    and data channels and closes both before returning or raising, so one
    instance may be shared by threads running operations concurrently.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_COMMAND_PORT,
        *,
        chunk_size: int = CHUNK_SIZE,
        connect_timeout: Optional[float] = None,
    ):
        self.endpoint = Endpoint(host, port)
        self.chunk_size = chunk_size
        self.connect_timeout = connect_timeout

    @classmethod
    def from_config(cls, config: ClientConfig) -> "FileTransferClient":
        return cls(
            config.host,
            config.port,
            chunk_size=config.chunk_size,
            connect_timeout=config.connect_timeout,
        )

    def __repr__(self) -> str:
        return f"FileTransferClient({self.endpoint})"

    def _exchange(self, verb: Verb, argument: Optional[str] = None) -> Exchange:
        return Exchange(self.endpoint, Request(verb, argument), connect_timeout=self.connect_timeout)

    def fetch(self, file_name: str, save_path: PathLike) -> Path:
        """Download ``file_name`` into the directory ``save_path``.

        The payload is copied line by line: each received line is written
        back terminated by ``\\n``. Nothing is created locally when the
        server reports the file as missing.
        """
        with self._exchange(Verb.GET, file_name) as ex:
            first = ex.data.readline()
            if first is not None and match_sentinel(first, FILE_NOT_FOUND):
                log.info("%s: GET %s: %s", self.endpoint, file_name, FILE_NOT_FOUND)
                raise NotFoundError(file_name)

            target = Path(save_path) / file_name
            count = 0
            with open(target, "w", encoding=DATA_ENCODING, newline="\n") as out:
                line = first
                while line is not None:
                    out.write(strip_terminator(line) + "\n")
                    count += 1
                    line = ex.data.readline()

        log.info("%s: GET %s: %d lines written to %s", self.endpoint, file_name, count, target)
        return target

    def delete(self, file_name: str) -> None:
        """Delete ``file_name`` on the server.

        Only a missing file is reported; the server's delete failure sentinel
        is not distinguished from success.
        """
        with self._exchange(Verb.DELETE, file_name) as ex:
            response = ex.data.readline()
            if response is not None and match_sentinel(response, FILE_NOT_FOUND):
                log.info("%s: DELETE %s: %s", self.endpoint, file_name, FILE_NOT_FOUND)
                raise NotFoundError(file_name)

        log.info(
            "%s: DELETE %s: %s",
            self.endpoint,
            file_name,
            strip_terminator(response) if response is not None else "<no response>",
        )

    def list_all(self) -> List[str]:
        return self._read_names(Verb.LIST)

    def list_owned(self) -> List[str]:
        return self._read_names(Verb.LIST_OWNED)

    def help(self) -> List[str]:
        """Return the usage lines the server sends for ``HELP``."""
        return self._read_names(Verb.HELP)

    def _read_names(self, verb: Verb) -> List[str]:
        with self._exchange(verb) as ex:
            names = [name for name in (strip_terminator(line) for line in ex.data.lines()) if name]
        log.info("%s: %s: %d entries", self.endpoint, verb.value, len(names))
        return names

    def create(self, file_name: str, local_path: PathLike) -> pump.PumpMetrics:
        """Upload ``local_path`` as a new server file ``file_name``."""
        return self._upload(Verb.CREATE, file_name, local_path, Status.ALREADY_EXISTS, AlreadyExistsError)

    def update(self, file_name: str, local_path: PathLike) -> pump.PumpMetrics:
        """Replace the content of the existing server file ``file_name``."""
        return self._upload(Verb.UPDATE, file_name, local_path, Status.FILE_NOT_FOUND, NotFoundError)

    def _upload(
        self,
        verb: Verb,
        file_name: str,
        local_path: PathLike,
        refusal: Status,
        refusal_error: Type[FileTransferError],
    ) -> pump.PumpMetrics:
        # the server truncates or creates the file on the verb alone, so the
        # source must be open before anything is sent
        with open(local_path, "rb") as source, self._exchange(verb, file_name) as ex:
            line = ex.data.readline()
            status = Status.parse(line)
            if status is refusal:
                log.info("%s: %s %s: %s", self.endpoint, verb.value, file_name, refusal.value)
                raise refusal_error(file_name)
            if status is not Status.READY_TO_RECEIVE:
                log.warning("%s: %s %s: unexpected status %r", self.endpoint, verb.value, file_name, line)
                raise ProtocolError(f"unexpected status for {verb.value} {file_name}: {line!r}")

            metrics = pump.copy(source, ex.data, self.chunk_size)
            # closing the data channel marks the end of the upload
            ex.data.close()

        log.info(
            "%s: %s %s: %d bytes sent in %d chunks (%.2f Mbps)",
            self.endpoint,
            verb.value,
            file_name,
            metrics.bytes_copied,
            metrics.reads,
            metrics.throughput_mbps,
        )
        return metrics
