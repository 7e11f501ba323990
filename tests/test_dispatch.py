from __future__ import annotations

import logging
import re
import threading
import time

from lsprotocol.types import ErrorCodes

from lspcore.dispatch import (
    Call,
    CallKind,
    Dispatcher,
    DomainError,
    Fault,
    Ok,
    completed,
    instrumented,
)


def _call(method: str = "textDocument/hover") -> Call:
    return Call(method, CallKind.REQUEST, {})


def test_instrumented_wraps_plain_values_in_ok() -> None:
    outcome = instrumented("textDocument/hover")(lambda: 42)()
    assert outcome == Ok(42)


def test_instrumented_passes_domain_errors_through() -> None:
    error = DomainError("nope", data={"reason": "test"})
    assert instrumented("textDocument/hover")(lambda: error)() is error


def test_instrumented_turns_exceptions_into_faults(caplog) -> None:
    caplog.set_level(logging.ERROR, logger="lspcore.dispatch")

    def boom() -> None:
        raise ValueError("broken handler")

    outcome = instrumented("textDocument/hover")(boom)()
    assert isinstance(outcome, Fault)
    assert isinstance(outcome.error, ValueError)
    record = next(r for r in caplog.records if r.levelno == logging.ERROR)
    assert "textDocument/hover" in record.getMessage()
    assert record.exc_info is not None


def test_instrumented_logs_timing_and_summary(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="lspcore.dispatch")
    outcome = instrumented(
        "textDocument/completion",
        summarize=lambda items: f"total items: {len(items)}",
    )(lambda: ["a", "b"])()
    assert outcome == Ok(["a", "b"])
    messages = [record.getMessage() for record in caplog.records]
    assert any(re.fullmatch(r"textDocument/completion \d+ms - total items: 2", m) for m in messages)


def test_failing_summarizer_never_aborts_the_call(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="lspcore.dispatch")

    def summarize(value: object) -> str:
        raise RuntimeError("summary failed")

    outcome = instrumented("textDocument/completion", summarize=summarize)(lambda: None)()
    assert outcome == Ok(None)
    assert any("Failed to log call summary" in r.getMessage() for r in caplog.records)


def test_domain_error_factories_use_protocol_codes() -> None:
    assert DomainError.method_not_found("foo/bar").code == ErrorCodes.MethodNotFound.value
    refusal = DomainError.server_not_initialized("textDocument/hover")
    assert refusal.code == ErrorCodes.ServerNotInitialized.value
    assert "textDocument/hover" in refusal.message


def test_completed_future_is_already_resolved() -> None:
    future = completed(Ok("done"))
    assert future.done()
    assert future.result() == Ok("done")


def test_dispatcher_submit_runs_on_a_worker() -> None:
    dispatcher = Dispatcher(max_workers=2)
    try:
        future = dispatcher.submit(_call(), lambda: threading.current_thread().name)
        outcome = future.result(timeout=5)
        assert isinstance(outcome, Ok)
        assert outcome.value.startswith("lspcore-worker")
    finally:
        dispatcher.close(wait=True)


def test_dispatcher_detach_acknowledges_before_the_body_finishes() -> None:
    dispatcher = Dispatcher(max_workers=1)
    release = threading.Event()
    finished = threading.Event()

    def body() -> None:
        release.wait(5)
        finished.set()

    try:
        ack = dispatcher.detach(Call("workspace/executeCommand", CallKind.REQUEST), body)
        assert ack.done()
        assert ack.result() == Ok(None)
        assert not finished.is_set()
        release.set()
        assert finished.wait(5)
    finally:
        release.set()
        dispatcher.close(wait=True)


def test_dispatcher_run_and_completed_execute_inline() -> None:
    dispatcher = Dispatcher(max_workers=1)
    caller = threading.current_thread().name
    try:
        assert dispatcher.run(_call(), lambda: threading.current_thread().name) == Ok(caller)
        future = dispatcher.completed(_call(), lambda: "inline")
        assert future.done()
        assert future.result() == Ok("inline")
    finally:
        dispatcher.close()


def _logged_ms(caplog, method: str) -> list[int]:
    durations = []
    for record in caplog.records:
        match = re.fullmatch(rf"{re.escape(method)} (\d+)ms(?: - .*)?", record.getMessage())
        if match:
            durations.append(int(match.group(1)))
    return durations


def test_instrumented_counts_from_receipt_when_given(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="lspcore.dispatch")
    received = time.monotonic_ns() - 250_000_000
    instrumented("textDocument/hover", started_ns=received)(lambda: None)()
    assert _logged_ms(caplog, "textDocument/hover")[0] >= 250


def test_queued_call_logs_time_since_receipt(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="lspcore.dispatch")
    dispatcher = Dispatcher(max_workers=1)
    release = threading.Event()
    try:
        blocker = dispatcher.submit(_call("textDocument/references"), lambda: release.wait(5))
        queued = dispatcher.submit(_call("textDocument/hover"), lambda: "hover")
        time.sleep(0.2)
        release.set()
        assert blocker.result(timeout=5) == Ok(True)
        assert queued.result(timeout=5) == Ok("hover")
    finally:
        release.set()
        dispatcher.close(wait=True)
    assert _logged_ms(caplog, "textDocument/hover")[0] >= 150
