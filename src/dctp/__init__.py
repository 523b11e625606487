"""Dual-channel file transfer client (DCTP).

Every operation is one self-contained exchange with the server:
- a command channel carries the verb line and the announced data port
- a data channel carries the payload, a listing or a status sentinel
- both channels are closed before the operation returns or raises
"""

from .client import FileTransferClient
from .config import ClientConfig
from .errors import (
    AlreadyExistsError,
    ChannelConnectionError,
    FileTransferError,
    NotFoundError,
    PortDecodeError,
    ProtocolError,
    TransferError,
)
from .net import Endpoint

__all__ = [
    "AlreadyExistsError",
    "ChannelConnectionError",
    "ClientConfig",
    "Endpoint",
    "FileTransferClient",
    "FileTransferError",
    "NotFoundError",
    "PortDecodeError",
    "ProtocolError",
    "TransferError",
]
