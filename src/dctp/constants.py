from __future__ import annotations

PORT_FORMAT = "!H"  # data channel port, network byte order
PORT_FIELD_LEN = 2
MIN_PORT = 1
MAX_PORT = 65535

GET = "GET"
DELETE = "DELETE"
LIST = "LIST"
LIST_OWNED = "LIST_OWNED"
CREATE = "CREATE"
UPDATE = "UPDATE"
HELP = "HELP"

FILE_NOT_FOUND = "File not found"
DELETE_SUCCESSFUL = "Deleted file successfully"
DELETE_FAILED = "Failed to delete file"
ALREADY_EXISTS = "File already exists"
READY_TO_RECEIVE = "File ready to receive"

LINE_TERMINATOR = b"\n"
COMMAND_ENCODING = "ascii"
DATA_ENCODING = "latin-1"  # every byte maps to one code point

CHUNK_SIZE = 8192
LINE_BUFFER_SIZE = 4096

DEFAULT_HOST = "127.0.0.1"
DEFAULT_COMMAND_PORT = 7878
