from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Protocol

from .constants import CHUNK_SIZE
from .errors import TransferError


class Sink(Protocol):
    def write(self, data: bytes) -> Optional[int]: ...

    def flush(self) -> None: ...


@dataclass(slots=True)
class PumpMetrics:
    reads: int = 0
    bytes_copied: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    @property
    def duration_s(self) -> float:
        if self.end_ts is None:
            return 0.0
        return max(0.0, self.end_ts - self.start_ts)

    @property
    def throughput_mbps(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return (self.bytes_copied * 8 / 1_000_000) / self.duration_s


def copy(source: BinaryIO, sink: Sink, chunk_size: int = CHUNK_SIZE) -> PumpMetrics:
    """Copy ``source`` into ``sink`` chunk by chunk until the source is exhausted.

    A read shorter than ``chunk_size`` ends the copy after its chunk is
    written. ``reads`` counts the reads that returned data.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk size must be positive, got {chunk_size}")

    metrics = PumpMetrics()
    while True:
        try:
            chunk = source.read(chunk_size)
        except OSError as exc:
            raise TransferError(f"read failed after {metrics.bytes_copied} bytes: {exc}") from exc
        if not chunk:
            break
        metrics.reads += 1

        try:
            written = sink.write(chunk)
        except OSError as exc:
            raise TransferError(f"write failed after {metrics.bytes_copied} bytes: {exc}") from exc
        if written is not None and written < len(chunk):
            raise TransferError(f"short write: {written} of {len(chunk)} bytes accepted")
        metrics.bytes_copied += len(chunk)

        if len(chunk) < chunk_size:
            break

    try:
        sink.flush()
    except OSError as exc:
        raise TransferError(f"flush failed: {exc}") from exc

    metrics.end_ts = time.monotonic()
    return metrics
