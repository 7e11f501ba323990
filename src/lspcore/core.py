"""Composition root: one entry point for every inbound call."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Callable

from lsprotocol import types

from lspcore.capabilities import server_capabilities
from lspcore.config import ServerConfig
from lspcore.dispatch import Call, CallKind, Dispatcher, DomainError, Outcome, completed
from lspcore.lifecycle import ConnectionState, Lifecycle, terminate_process
from lspcore.liveness import process_alive
from lspcore.producer import Client, Producer
from lspcore.router import Router
from lspcore.state import ServerState

logger = logging.getLogger(__name__)

_LIFECYCLE_METHODS = {
    types.INITIALIZE: (CallKind.REQUEST, "initialize"),
    types.INITIALIZED: (CallKind.NOTIFICATION, "initialized"),
    types.SHUTDOWN: (CallKind.REQUEST, "shutdown"),
    types.EXIT: (CallKind.NOTIFICATION, "exit"),
}


class ServerCore:
    """Wires state, dispatcher, router, producer and lifecycle together.

    `handle(method, params)` always answers with a future of the call's
    outcome. Lifecycle calls run inline; everything else goes through the
    router once the connection is initialized.
    """

    def __init__(
        self,
        handler: Any,
        client: Client | None = None,
        *,
        config: ServerConfig | None = None,
        state: ServerState | None = None,
        dispatcher: Dispatcher | None = None,
        capabilities: dict[str, Any] | None = None,
        terminate: Callable[[int], object] = terminate_process,
        is_alive: Callable[[int], bool] = process_alive,
    ):
        self.config = config or ServerConfig()
        self.state = state or ServerState()
        self.handler = handler
        bind = getattr(handler, "bind", None)
        if callable(bind):
            bind(self.state)
        self.dispatcher = dispatcher or Dispatcher(max_workers=self.config.max_workers)
        self.router = Router(handler, self.dispatcher)
        self.producer = Producer(
            client,
            self.state,
            progress_token=self.config.progress_token,
            show_message_timeout=self.config.show_message_timeout,
        )
        self.state.producer = self.producer
        if capabilities is None:
            capabilities = server_capabilities(self.config, self.router.methods)
        self.lifecycle = Lifecycle(
            handler,
            self.state,
            self.producer,
            self.dispatcher,
            self.config,
            capabilities=capabilities,
            terminate=terminate,
            is_alive=is_alive,
        )

    @property
    def connection(self) -> ConnectionState:
        return self.lifecycle.connection

    def connect(self, client: Client) -> None:
        self.producer.client = client

    def _refusal(self, method: str) -> DomainError | None:
        connection = self.lifecycle.connection
        if method == types.EXIT:
            return None
        if method == types.INITIALIZE:
            return None
        if connection is ConnectionState.INITIALIZED:
            return None
        if connection is ConnectionState.SHUTTING_DOWN:
            return DomainError(
                f"Server is shutting down, refusing {method}",
                code=types.ErrorCodes.InvalidRequest.value,
            )
        # never initialized, still initializing after a failure, or exited
        return DomainError.server_not_initialized(method)

    def handle(self, method: str, params: Any = None) -> Future[Outcome]:
        refusal = self._refusal(method)
        if refusal is not None:
            logger.debug("%s refused in state %s", method, self.lifecycle.connection.name.lower())
            return completed(refusal)
        lifecycle_call = _LIFECYCLE_METHODS.get(method)
        if lifecycle_call is None:
            return self.router.handle(method, params)
        kind, operation = lifecycle_call
        body = getattr(self.lifecycle, operation)
        return completed(self.dispatcher.run(Call(method, kind, params), lambda: body(params)))

    def close(self) -> None:
        """Release background work if the connection ended without exit."""
        if self.lifecycle.connection is not ConnectionState.EXITED:
            logger.info("Connection closed without exit")
            self.lifecycle.release()
