from __future__ import annotations

import contextlib
import enum
import logging
from typing import Optional

from .codec import Request, decode_port
from .constants import PORT_FIELD_LEN
from .net import Channel, Endpoint, open_command_channel, open_data_channel

log = logging.getLogger(__name__)


class ExchangeState(enum.Enum):
    IDLE = "idle"
    COMMAND_SENT = "command-sent"
    PORT_RECEIVED = "port-received"
    DATA_CHANNEL_OPEN = "data-channel-open"
    COMPLETE = "complete"
    FAILED = "failed"


class Exchange:
    """A single request: one command channel and the data channel it announces.

    Entering the exchange sends the verb line, reads the data port and opens
    the data channel. Leaving it closes the data channel, then the command
    channel, whatever the outcome.

        with Exchange(endpoint, Request(Verb.LIST)) as ex:
            names = list(ex.data.lines())
    """

    def __init__(self, endpoint: Endpoint, request: Request, connect_timeout: Optional[float] = None):
        self.endpoint = endpoint
        self.request = request
        self.connect_timeout = connect_timeout
        self.state = ExchangeState.IDLE
        self.data_port: Optional[int] = None
        self.command: Optional[Channel] = None
        self._data: Optional[Channel] = None
        self._stack = contextlib.ExitStack()

    @property
    def data(self) -> Channel:
        if self._data is None:
            raise RuntimeError(f"data channel not open (state={self.state.value})")
        return self._data

    def _advance(self, state: ExchangeState) -> None:
        log.debug("%s %s: %s -> %s", self.endpoint, self.request.verb.value, self.state.value, state.value)
        self.state = state

    def __enter__(self) -> "Exchange":
        if self.state is not ExchangeState.IDLE:
            raise RuntimeError("an exchange can only be run once")

        try:
            line = self.request.to_bytes()
            self.command = self._stack.enter_context(
                open_command_channel(self.endpoint, timeout=self.connect_timeout)
            )
            self.command.write(line)
            self._advance(ExchangeState.COMMAND_SENT)

            self.data_port = decode_port(self.command.read_exact(PORT_FIELD_LEN))
            self._advance(ExchangeState.PORT_RECEIVED)

            self._data = self._stack.enter_context(
                open_data_channel(self.endpoint.host, self.data_port, timeout=self.connect_timeout)
            )
            self._advance(ExchangeState.DATA_CHANNEL_OPEN)
        except BaseException:
            self._advance(ExchangeState.FAILED)
            self._stack.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self._stack.close()
        finally:
            self._advance(ExchangeState.COMPLETE if exc_type is None else ExchangeState.FAILED)
