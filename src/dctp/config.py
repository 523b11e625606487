"""Client configuration.

Defaults come from ``dctp.constants``; ``ClientConfig.from_env`` lets the
environment override them (``DCTP_HOST``, ``DCTP_PORT``, ``DCTP_CHUNK_SIZE``,
``DCTP_CONNECT_TIMEOUT``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .constants import CHUNK_SIZE, DEFAULT_COMMAND_PORT, DEFAULT_HOST
from .net import Endpoint

ENV_PREFIX = "DCTP_"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_COMMAND_PORT
    chunk_size: int = CHUNK_SIZE
    connect_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if not 1 <= self.port <= 65535:
            raise ValueError(f"command port out of range: {self.port}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk size must be positive, got {self.chunk_size}")
        if self.connect_timeout is not None and self.connect_timeout <= 0:
            raise ValueError(f"connect timeout must be positive, got {self.connect_timeout}")

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(self.host, self.port)

    def with_host(self, host: str) -> "ClientConfig":
        return replace(self, host=host)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        env = os.environ if environ is None else environ
        defaults = cls()

        timeout = env.get(ENV_PREFIX + "CONNECT_TIMEOUT")
        return cls(
            host=env.get(ENV_PREFIX + "HOST", defaults.host),
            port=int(env.get(ENV_PREFIX + "PORT", defaults.port)),
            chunk_size=int(env.get(ENV_PREFIX + "CHUNK_SIZE", defaults.chunk_size)),
            connect_timeout=float(timeout) if timeout else defaults.connect_timeout,
        )
