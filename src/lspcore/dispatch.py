"""Per-call dispatch wrapper.

Every inbound call is executed through `instrumented`, which times it, logs one
debug line per call and classifies the result into a tagged outcome:

* `Ok(value)`: the coerced result,
* `DomainError(...)`: a condition the handler wants the client to see,
* `Fault(error)`: anything else that went wrong; logged, answered with nothing.

The `Dispatcher` decides where the wrapped body runs (inline, on a worker, or
on a worker with an immediate acknowledgment).
"""

from __future__ import annotations

import enum
import functools
import logging
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, TypeAlias

from lsprotocol.types import ErrorCodes, LSPErrorCodes

logger = logging.getLogger(__name__)


class CallKind(enum.Enum):
    REQUEST = "request"
    NOTIFICATION = "notification"


@dataclass(frozen=True)
class Call:
    method: str
    kind: CallKind
    params: Any = None
    started_ns: int = field(default_factory=time.monotonic_ns)


@dataclass(frozen=True)
class Ok:
    value: Any = None


@dataclass(frozen=True)
class DomainError:
    """Error a feature handler returns to make it visible to the client."""

    message: str
    code: int = LSPErrorCodes.RequestFailed.value
    data: Any = None

    @classmethod
    def method_not_found(cls, method: str) -> DomainError:
        return cls(f"Unhandled method {method}", code=ErrorCodes.MethodNotFound.value)

    @classmethod
    def server_not_initialized(cls, method: str) -> DomainError:
        return cls(
            f"Server not initialized, refusing {method}",
            code=ErrorCodes.ServerNotInitialized.value,
        )


@dataclass(frozen=True)
class Fault:
    error: BaseException


Outcome: TypeAlias = Ok | DomainError | Fault
Summarizer: TypeAlias = Callable[[Any], str]


def _elapsed_ms(started_ns: int) -> int:
    return (time.monotonic_ns() - started_ns) // 1_000_000


def _log_call(method: str, started_ns: int, outcome: Outcome, summarize: Summarizer | None) -> None:
    try:
        duration = _elapsed_ms(started_ns)
        if summarize is not None and isinstance(outcome, Ok):
            logger.debug("%s %sms - %s", method, duration, summarize(outcome.value))
        else:
            logger.debug("%s %sms", method, duration)
    except Exception:
        logger.exception("Failed to log call summary for %s", method)


def instrumented(
    method: str,
    *,
    summarize: Summarizer | None = None,
    started_ns: int | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Outcome]]:
    """Wrap a call body with timing, logging and outcome classification.

    The body may return a plain value, an `Ok`, or a `DomainError`. Exceptions
    never escape the wrapper; they become a logged `Fault`. When `started_ns`
    is given the logged duration counts from then (the call's receipt) rather
    than from the moment the body starts.
    """

    def decorate(body: Callable[..., Any]) -> Callable[..., Outcome]:
        @functools.wraps(body)
        def wrapper(*args: Any, **kwargs: Any) -> Outcome:
            began_ns = started_ns if started_ns is not None else time.monotonic_ns()
            outcome: Outcome
            try:
                result = body(*args, **kwargs)
            except Exception as exc:
                logger.error("Error handling %s", method, exc_info=exc)
                outcome = Fault(exc)
            else:
                outcome = result if isinstance(result, (Ok, DomainError)) else Ok(result)
            _log_call(method, began_ns, outcome, summarize)
            return outcome

        return wrapper

    return decorate


def completed(outcome: Outcome) -> Future[Outcome]:
    future: Future[Outcome] = Future()
    future.set_result(outcome)
    return future


class Dispatcher:
    """Runs wrapped call bodies inline or on a worker pool."""

    def __init__(self, executor: Executor | None = None, *, max_workers: int | None = None):
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="lspcore-worker",
        )

    def run(
        self,
        call: Call,
        body: Callable[[], Any],
        *,
        summarize: Summarizer | None = None,
    ) -> Outcome:
        """Execute inline; the caller blocks until the body completes."""
        return instrumented(call.method, summarize=summarize, started_ns=call.started_ns)(body)()

    def completed(
        self,
        call: Call,
        body: Callable[[], Any],
        *,
        summarize: Summarizer | None = None,
    ) -> Future[Outcome]:
        """Execute inline and deliver the outcome as an already resolved future."""
        return completed(self.run(call, body, summarize=summarize))

    def submit(
        self,
        call: Call,
        body: Callable[[], Any],
        *,
        summarize: Summarizer | None = None,
    ) -> Future[Outcome]:
        """Execute on a worker; the future resolves to the outcome."""
        wrapped = instrumented(call.method, summarize=summarize, started_ns=call.started_ns)
        return self._executor.submit(wrapped(body))

    def detach(self, call: Call, body: Callable[[], Any], *, ack: Any = None) -> Future[Outcome]:
        """Execute on a worker and acknowledge immediately without waiting."""
        self._executor.submit(instrumented(call.method, started_ns=call.started_ns)(body))
        return completed(Ok(ack))

    def close(self, *, wait: bool = False) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait, cancel_futures=not wait)
