"""Single-flight guard for range formatting.

Range formatting mutates shared document-analysis state, so overlapping runs
are unsafe. Concurrent attempts are dropped, not queued: the loser answers
with an empty edit list and the editor is expected to retry.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator

from lspcore.schema import RangeFormattingParams, RowColRange

logger = logging.getLogger(__name__)


class SingleFlight:
    """Latch allowing at most one holder; never blocks."""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def attempt(self) -> Iterator[bool]:
        acquired = self._lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()


class RangeFormatter:
    """Routes `textDocument/rangeFormatting` through a single-flight latch."""

    def __init__(self, handler: Any):
        self._handler = handler
        self.latch = SingleFlight("rangeFormatting")

    def __call__(self, params: RangeFormattingParams) -> Any:
        with self.latch.attempt() as acquired:
            if not acquired:
                logger.debug(
                    "Range formatting already in progress, dropping request for %s",
                    params.text_document.uri,
                )
                return []
            return self._handler.range_formatting(
                params.text_document.uri,
                RowColRange.from_wire(params.range),
            )
