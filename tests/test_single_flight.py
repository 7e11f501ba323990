from __future__ import annotations

import threading

import pytest
from lsprotocol import types

from lspcore.dispatch import Dispatcher, Ok
from lspcore.feature import BaseFeatureHandler
from lspcore.router import Router
from lspcore.schema import RangeFormattingParams, RowColRange
from lspcore.single_flight import RangeFormatter, SingleFlight


def _params(uri: str = "file:///a.py") -> RangeFormattingParams:
    return RangeFormattingParams.model_validate(
        {
            "text_document": {"uri": uri},
            "range": {"start": {"line": 0, "character": 0}, "end": {"line": 2, "character": 4}},
        }
    )


class _BlockingFormatter(BaseFeatureHandler):
    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, RowColRange]] = []
        self.entered = threading.Event()
        self.release = threading.Event()

    def range_formatting(self, document_uri, range):
        self.calls.append((document_uri, range))
        self.entered.set()
        self.release.wait(5)
        return [{"range": range.to_wire(), "new_text": "formatted"}]


def test_single_flight_admits_one_holder() -> None:
    latch = SingleFlight("test")
    assert not latch.busy
    with latch.attempt() as first:
        assert first
        assert latch.busy
        with latch.attempt() as second:
            assert not second
        assert latch.busy
    assert not latch.busy


def test_single_flight_releases_on_error() -> None:
    latch = SingleFlight("test")
    with pytest.raises(RuntimeError):
        with latch.attempt():
            raise RuntimeError("formatting failed")
    assert not latch.busy


def test_range_formatter_translates_to_one_based_range() -> None:
    handler = _BlockingFormatter()
    handler.release.set()
    formatter = RangeFormatter(handler)
    edits = formatter(_params())
    assert handler.calls == [("file:///a.py", RowColRange(row=1, col=1, end_row=3, end_col=5))]
    assert edits[0]["new_text"] == "formatted"


def test_concurrent_range_formats_run_the_handler_once() -> None:
    contenders = 4
    handler = _BlockingFormatter()
    formatter = RangeFormatter(handler)
    barrier = threading.Barrier(contenders)
    finished = threading.Semaphore(0)
    results: list[object] = []
    lock = threading.Lock()

    def contend() -> None:
        barrier.wait(5)
        edits = formatter(_params())
        with lock:
            results.append(edits)
        finished.release()

    assert not formatter.latch.busy
    threads = [threading.Thread(target=contend) for _ in range(contenders)]
    for thread in threads:
        thread.start()
    for _ in range(contenders - 1):
        assert finished.acquire(timeout=5)
    assert handler.entered.wait(5)
    assert len(handler.calls) == 1
    assert results == [[]] * (contenders - 1)
    handler.release.set()
    for thread in threads:
        thread.join(5)
    assert len(results) == contenders
    assert len(handler.calls) == 1
    assert not formatter.latch.busy


def test_router_delivers_range_formatting_as_resolved_future() -> None:
    handler = _BlockingFormatter()
    handler.release.set()
    dispatcher = Dispatcher(max_workers=1)
    try:
        router = Router(handler, dispatcher)
        future = router.handle(
            types.TEXT_DOCUMENT_RANGE_FORMATTING,
            {
                "textDocument": {"uri": "file:///a.py"},
                "range": {"start": {"line": 1, "character": 0}, "end": {"line": 1, "character": 3}},
                "options": {"tabSize": 4, "insertSpaces": True},
            },
        )
        assert future.done()
        outcome = future.result()
        assert isinstance(outcome, Ok)
        assert outcome.value[0].new_text == "formatted"
        assert not router.adapter(types.TEXT_DOCUMENT_RANGE_FORMATTING).latch.busy
    finally:
        dispatcher.close(wait=True)


def test_busy_latch_answers_with_empty_edits() -> None:
    handler = _BlockingFormatter()
    dispatcher = Dispatcher(max_workers=1)
    try:
        router = Router(handler, dispatcher)
        latch = router.adapter(types.TEXT_DOCUMENT_RANGE_FORMATTING).latch
        with latch.attempt() as acquired:
            assert acquired
            outcome = router.handle(types.TEXT_DOCUMENT_RANGE_FORMATTING, {}).result()
        assert outcome == Ok([])
        assert handler.calls == []
    finally:
        dispatcher.close(wait=True)
