from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Optional

from .constants import (
    ALREADY_EXISTS,
    COMMAND_ENCODING,
    CREATE,
    DELETE,
    DELETE_FAILED,
    DELETE_SUCCESSFUL,
    FILE_NOT_FOUND,
    GET,
    HELP,
    LINE_TERMINATOR,
    LIST,
    LIST_OWNED,
    MIN_PORT,
    PORT_FIELD_LEN,
    PORT_FORMAT,
    READY_TO_RECEIVE,
    UPDATE,
)
from .errors import PortDecodeError


class Verb(str, enum.Enum):
    GET = GET
    DELETE = DELETE
    LIST = LIST
    LIST_OWNED = LIST_OWNED
    CREATE = CREATE
    UPDATE = UPDATE
    HELP = HELP

    @property
    def takes_argument(self) -> bool:
        return self in (Verb.GET, Verb.DELETE, Verb.CREATE, Verb.UPDATE)

    @property
    def usage(self) -> str:
        if self.takes_argument:
            return f"Usage: {self.value} <filename>"
        return f"Usage: {self.value}"


class Status(enum.Enum):
    """Sentinel line sent first on a status-bearing data channel.

    ``UNKNOWN`` stands for any line that is not one of the fixed sentinels;
    callers decide whether that is fatal.
    """

    FILE_NOT_FOUND = FILE_NOT_FOUND
    DELETE_SUCCESSFUL = DELETE_SUCCESSFUL
    DELETE_FAILED = DELETE_FAILED
    ALREADY_EXISTS = ALREADY_EXISTS
    READY_TO_RECEIVE = READY_TO_RECEIVE
    UNKNOWN = None

    @classmethod
    def parse(cls, line: Optional[str]) -> "Status":
        if line is None:
            return cls.UNKNOWN
        text = strip_terminator(line)
        for status in cls:
            if status.value is not None and match_sentinel(text, status.value):
                return status
        return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class Request:
    verb: Verb
    argument: Optional[str] = None

    def to_bytes(self) -> bytes:
        if self.verb.takes_argument and not self.argument:
            raise ValueError(f"{self.verb.value} needs a file name ({self.verb.usage})")
        if not self.verb.takes_argument and self.argument is not None:
            raise ValueError(f"{self.verb.value} takes no argument ({self.verb.usage})")
        if self.argument is not None and ("\n" in self.argument or "\r" in self.argument):
            raise ValueError("file name must not contain line terminators")

        line = self.verb.value if self.argument is None else f"{self.verb.value} {self.argument}"
        try:
            return line.encode(COMMAND_ENCODING) + LINE_TERMINATOR
        except UnicodeEncodeError:
            raise ValueError(f"file name must be ASCII: {self.argument!r}") from None


def encode_verb_line(verb: Verb, argument: Optional[str] = None) -> bytes:
    return Request(Verb(verb), argument).to_bytes()


def decode_port(raw: bytes) -> int:
    """Decode the 2-byte data channel port announced on the command channel.

    The field is big-endian on the wire; ``struct`` with the ``!`` prefix
    swaps on little-endian hosts so the value is the same on any host.
    """
    if len(raw) < PORT_FIELD_LEN:
        raise PortDecodeError(f"expected {PORT_FIELD_LEN} port bytes, got {len(raw)}")
    (port,) = struct.unpack(PORT_FORMAT, raw[:PORT_FIELD_LEN])
    if port < MIN_PORT:
        raise PortDecodeError(f"server announced invalid data port {port}")
    return port


def strip_terminator(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith(("\n", "\r")):
        return line[:-1]
    return line


def match_sentinel(line: str, expected: str) -> bool:
    return strip_terminator(line) == expected
