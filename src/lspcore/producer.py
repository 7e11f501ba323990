"""Server-to-client pushes.

Every payload goes through `to_wire` first; a payload that does not conform is
logged and the push is skipped. Optional pushes are gated on the capabilities
the client declared during initialize.
"""

from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import CancelledError, Future
from typing import Any, Iterable, Mapping, Protocol

from lsprotocol import types

from lspcore import coercion
from lspcore.coercion import Shape, to_json, to_wire
from lspcore.schema import RowColRange
from lspcore.state import ServerState

logger = logging.getLogger(__name__)


class Client(Protocol):
    """Outbound half of the connection."""

    def notify(self, method: str, params: Any = None) -> None: ...

    def request(self, method: str, params: Any = None) -> Future[Any]: ...


def _resolved(value: Any = None) -> Future[Any]:
    future: Future[Any] = Future()
    future.set_result(value)
    return future


class PendingRequests:
    """Client replies the server is waiting on, keyed by correlation token."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._pending: dict[int, Future[Any]] = {}
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def track(self, future: Future[Any]) -> int:
        with self._lock:
            token = next(self._tokens)
            if self._closed:
                future.cancel()
            else:
                self._pending[token] = future
        return token

    def discard(self, token: int) -> None:
        with self._lock:
            self._pending.pop(token, None)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            pending = list(self._pending.values())
            self._pending.clear()
        for future in pending:
            future.cancel()


class Producer:
    def __init__(
        self,
        client: Client | None,
        state: ServerState,
        *,
        progress_token: str = "lspcore",
        show_message_timeout: float | None = None,
    ):
        self.client = client
        self.state = state
        self.progress_token = progress_token
        self.show_message_timeout = show_message_timeout
        self.pending = PendingRequests()

    def _payload(self, method: str, value: Any, shape: Shape) -> Any:
        payload = to_wire(value, shape, method=method)
        if payload is None:
            logger.warning("Skipping %s: payload does not conform to %s", method, shape.name)
        elif self.client is None:
            logger.warning("Skipping %s: no client connected", method)
            return None
        return payload

    def _supports(self, method: str, *path: str) -> bool:
        if self.state.client_capabilities.supports(*path):
            return True
        logger.warning("Skipping %s: client did not declare %s", method, ".".join(path))
        return False

    def publish_diagnostics(
        self,
        uri: str,
        diagnostics: Iterable[Any],
        version: int | None = None,
    ) -> None:
        method = types.TEXT_DOCUMENT_PUBLISH_DIAGNOSTICS
        value: dict[str, Any] = {"uri": uri, "diagnostics": list(diagnostics)}
        if version is not None:
            value["version"] = version
        payload = self._payload(method, value, coercion.PUBLISH_DIAGNOSTICS_PARAMS)
        if payload is None:
            return
        logger.debug("Publishing %s diagnostics for %s", len(payload.diagnostics), uri)
        self.client.notify(method, payload)

    def refresh_code_lens(self) -> None:
        method = types.WORKSPACE_CODE_LENS_REFRESH
        if self.client is None or not self._supports(method, "workspace", "code_lens", "refresh_support"):
            return
        self.client.request(method, None)

    def publish_workspace_edit(self, edit: Any, label: str | None = None) -> Future[Any]:
        """Ask the client to apply `edit`; the future carries its reply."""
        method = types.WORKSPACE_APPLY_EDIT
        value: dict[str, Any] = {"edit": edit}
        if label is not None:
            value["label"] = label
        payload = self._payload(method, value, coercion.APPLY_WORKSPACE_EDIT_PARAMS)
        if payload is None:
            return _resolved(None)
        return self.client.request(method, payload)

    def show_document_request(
        self,
        uri: str,
        range: RowColRange | None = None,
        *,
        external: bool | None = None,
        take_focus: bool = True,
    ) -> Future[Any]:
        method = types.WINDOW_SHOW_DOCUMENT
        if self.client is None or not self._supports(method, "window", "show_document", "support"):
            return _resolved(None)
        selection = range if range is not None else RowColRange.full_file()
        value: dict[str, Any] = {
            "uri": uri,
            "take_focus": take_focus,
            "selection": selection.to_wire(),
        }
        if external is not None:
            value["external"] = external
        payload = self._payload(method, value, coercion.SHOW_DOCUMENT_PARAMS)
        if payload is None:
            return _resolved(None)
        return self.client.request(method, payload)

    def publish_progress(
        self,
        percentage: int,
        message: str | None = None,
        token: int | str | None = None,
        *,
        title: str | None = None,
    ) -> None:
        """Report work-done progress: 0 begins, 100 ends, anything else reports.

        A begin is titled by `title`, else by `message`, else by the token.
        """
        if percentage <= 0:
            if title is None:
                title, message = message, None
            value = {"kind": "begin", "title": title or self.progress_token, "percentage": 0}
            shape = coercion.PROGRESS_BEGIN
        elif percentage >= 100:
            value = {"kind": "end"}
            shape = coercion.PROGRESS_END
        else:
            value = {"kind": "report", "percentage": percentage}
            shape = coercion.PROGRESS_REPORT
        if message is not None:
            value["message"] = message
        payload = self._payload(types.PROGRESS, value, shape)
        if payload is None:
            return
        token = token if token is not None else self.progress_token
        self.client.notify(
            types.PROGRESS,
            types.ProgressParams(token=token, value=to_json(payload)),
        )

    def show_message_request(
        self,
        message: str,
        actions: Iterable[str],
        message_type: types.MessageType = types.MessageType.Info,
    ) -> str | None:
        """Ask the user to pick an action; blocks until the client replies.

        Returns the chosen action's title, or None when the user dismissed the
        prompt, the wait timed out or the connection closed.
        """
        method = types.WINDOW_SHOW_MESSAGE_REQUEST
        value = {
            "type": int(message_type),
            "message": message,
            "actions": [{"title": title} for title in actions],
        }
        payload = self._payload(method, value, coercion.SHOW_MESSAGE_REQUEST_PARAMS)
        if payload is None:
            return None
        future = self.client.request(method, payload)
        token = self.pending.track(future)
        try:
            reply = future.result(timeout=self.show_message_timeout)
        except CancelledError:
            logger.info("%s cancelled before the client replied", method)
            return None
        except TimeoutError:
            logger.warning("%s: no reply within %ss", method, self.show_message_timeout)
            return None
        finally:
            self.pending.discard(token)
        if reply is None:
            return None
        if isinstance(reply, Mapping):
            return reply.get("title")
        return getattr(reply, "title", None)

    def show_message(
        self,
        message: str,
        message_type: types.MessageType = types.MessageType.Info,
    ) -> None:
        method = types.WINDOW_SHOW_MESSAGE
        logger.info("%s: %s", method, message)
        payload = self._payload(
            method,
            {"type": int(message_type), "message": message},
            coercion.SHOW_MESSAGE_PARAMS,
        )
        if payload is None:
            return
        self.client.notify(method, payload)

    def register_capability(self, registrations: Iterable[Mapping[str, Any]]) -> None:
        method = types.CLIENT_REGISTER_CAPABILITY
        payload = self._payload(
            method,
            {"registrations": list(registrations)},
            coercion.REGISTRATION_PARAMS,
        )
        if payload is None:
            return
        self.client.request(method, payload)

    def unregister_capability(self, unregistrations: Iterable[Mapping[str, Any]]) -> None:
        method = types.CLIENT_UNREGISTER_CAPABILITY
        payload = self._payload(
            method,
            # Misspelled in the protocol itself.
            {"unregisterations": list(unregistrations)},
            coercion.UNREGISTRATION_PARAMS,
        )
        if payload is None:
            return
        self.client.request(method, payload)

    def close(self) -> None:
        self.pending.close()
