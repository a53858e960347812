# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Stream context for tracking one upstream stream through its lifecycle.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field


@dataclass
class StreamContext:
    """
    Bookkeeping for one upstream stream.

    Attributes:
        provider: Provider that produced the stream
        model: Model the request asked for
        request_id: Identifier for log correlation
        created_at: Timestamp when the stream was opened

    Runtime tracking attributes:
        chunk_count: Number of chunks forwarded
        bytes_forwarded: Total bytes forwarded
        last_chunk_at: Timestamp of the last chunk forwarded
        close_reason: complete, error or closed_early once closed
    """

    provider: str
    model: str
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time)

    chunk_count: int = field(default=0, repr=False)
    bytes_forwarded: int = field(default=0, repr=False)
    last_chunk_at: float | None = field(default=None, repr=False)
    close_reason: str | None = field(default=None, repr=False)

    @property
    def started(self) -> bool:
        """Whether any byte has been forwarded to the caller."""
        return self.chunk_count > 0

    def record_chunk(self, size: int) -> None:
        """Record one forwarded chunk."""
        self.last_chunk_at = time.time()
        self.chunk_count += 1
        self.bytes_forwarded += size

    def duration(self) -> float:
        """Seconds since the stream was opened."""
        return time.time() - self.created_at


__all__ = ["StreamContext"]
