from __future__ import annotations


class FileTransferError(Exception):
    """Base class for every error raised by a transfer operation."""


class ChannelConnectionError(FileTransferError, ConnectionError):
    """The command or data channel could not be established."""

    def __init__(self, host: str, port: int, reason: object = None):
        self.host = host
        self.port = port
        detail = f": {reason}" if reason is not None else ""
        super().__init__(f"could not connect to {host}:{port}{detail}")


class PortDecodeError(FileTransferError):
    pass


class NotFoundError(FileTransferError, FileNotFoundError):
    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(f"file {file_name!r} not found on server")


class AlreadyExistsError(FileTransferError, FileExistsError):
    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(f"file {file_name!r} already exists on server")


class ProtocolError(FileTransferError):
    """The server answered with something the protocol does not define."""


class TransferError(FileTransferError):
    """Stream I/O failed while copying a payload."""
