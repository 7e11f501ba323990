"""Mirror stdio protocol traffic into the log."""

from __future__ import annotations

import logging
from typing import Any, BinaryIO

logger = logging.getLogger(__name__)


def _render(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class _Tracing:
    def __init__(self, stream: BinaryIO, direction: str):
        self._stream = stream
        self._direction = direction

    def _trace(self, data: bytes) -> None:
        if data:
            logger.debug("%s %s", self._direction, _render(data))

    def __getattr__(self, name: str) -> Any:
        return getattr(self._stream, name)


class TracingReader(_Tracing):
    def __init__(self, stream: BinaryIO):
        super().__init__(stream, "<--")

    def read(self, size: int = -1) -> bytes:
        data = self._stream.read(size)
        self._trace(data)
        return data

    def readline(self, size: int = -1) -> bytes:
        data = self._stream.readline(size)
        self._trace(data)
        return data


class TracingWriter(_Tracing):
    def __init__(self, stream: BinaryIO):
        super().__init__(stream, "-->")

    def write(self, data: bytes) -> int:
        self._trace(data)
        return self._stream.write(data)


def trace_stdio(stdin: BinaryIO, stdout: BinaryIO) -> tuple[BinaryIO, BinaryIO]:
    return TracingReader(stdin), TracingWriter(stdout)  # type: ignore[return-value]
