"""Connection lifecycle: initialize, initialized, shutdown, exit."""

from __future__ import annotations

import enum
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Any, Callable

from lsprotocol import types

from lspcore import coercion
from lspcore.coercion import to_domain, to_wire
from lspcore.config import ServerConfig, merge_payload
from lspcore.dispatch import Dispatcher, DomainError
from lspcore.invariants import never
from lspcore.liveness import LivenessProbe, process_alive
from lspcore.producer import Producer
from lspcore.schema import ClientCapabilities, InitializeParams
from lspcore.state import ServerState

logger = logging.getLogger(__name__)


class ConnectionState(enum.IntEnum):
    UNINITIALIZED = 0
    INITIALIZING = 1
    INITIALIZED = 2
    SHUTTING_DOWN = 3
    EXITED = 4


def terminate_process(code: int) -> None:
    sys.stdout.flush()
    sys.stderr.flush()
    os._exit(code)


class Lifecycle:
    """Owns the connection state; every transition only moves forward."""

    def __init__(
        self,
        handler: Any,
        state: ServerState,
        producer: Producer,
        dispatcher: Dispatcher,
        config: ServerConfig,
        *,
        capabilities: dict[str, Any] | None = None,
        terminate: Callable[[int], object] = terminate_process,
        is_alive: Callable[[int], bool] = process_alive,
    ):
        self.handler = handler
        self.state = state
        self.producer = producer
        self.dispatcher = dispatcher
        self.config = config
        self.capabilities = capabilities if capabilities is not None else {}
        self._terminate = terminate
        self._is_alive = is_alive
        self._lock = threading.Lock()
        self._connection = ConnectionState.UNINITIALIZED
        self.probe: LivenessProbe | None = None
        self.exit_code: int | None = None

    @property
    def connection(self) -> ConnectionState:
        return self._connection

    def _advance(self, target: ConnectionState) -> None:
        with self._lock:
            previous = self._connection
            if target <= previous:
                never("lifecycle may only move forward", current=previous.name, target=target.name)
            self._connection = target
        logger.info("Connection %s -> %s", previous.name.lower(), target.name.lower())

    def initialize(self, params: Any) -> Any:
        if self._connection is not ConnectionState.UNINITIALIZED:
            return DomainError(
                "initialize may only be sent once",
                code=types.ErrorCodes.InvalidRequest.value,
            )
        self._advance(ConnectionState.INITIALIZING)
        request = to_domain(params, InitializeParams)
        self.state.client_capabilities = to_domain(request.capabilities, ClientCapabilities)
        options = request.initialization_options
        self.state.client_settings = merge_payload(
            options if isinstance(options, dict) else {},
            dict(self.config.settings),
        )
        root_uri = request.root_uri
        if root_uri is None and request.root_path:
            root_uri = Path(request.root_path).resolve().as_uri()
        self.state.root_uri = root_uri
        try:
            result = self.handler.initialize(
                root_uri,
                self.state.client_capabilities,
                self.state.client_settings,
                request.work_done_token,
            )
        except Exception as exc:
            logger.exception("Feature handler failed to initialize")
            return DomainError(f"initialize failed: {exc}")
        if isinstance(result, DomainError):
            return result
        self.state.server_capabilities = dict(self.capabilities)
        capabilities = to_wire(
            self.state.server_capabilities,
            coercion.SERVER_CAPABILITIES,
            method=types.INITIALIZE,
        )
        self._advance(ConnectionState.INITIALIZED)
        if request.process_id is not None:
            self._start_probe(request.process_id)
        return types.InitializeResult(
            capabilities=capabilities,
            server_info=types.ServerInfo(name=self.config.name, version=self.config.version),
        )

    def _start_probe(self, pid: int) -> None:
        self.probe = LivenessProbe(
            pid,
            self.exit,
            interval=self.config.liveness_interval,
            is_alive=self._is_alive,
        )
        self.probe.start()

    def initialized(self, params: Any = None) -> None:
        method = types.WORKSPACE_DID_CHANGE_WATCHED_FILES
        self.producer.register_capability(
            [
                {
                    "id": f"{self.config.name}/{method.split('/')[-1]}",
                    "method": method,
                    "register_options": {
                        "watchers": [{"glob_pattern": self.config.watched_files_glob}],
                    },
                }
            ]
        )

    def shutdown(self, params: Any = None) -> None:
        self._advance(ConnectionState.SHUTTING_DOWN)
        self.state.reset_documents()
        return None

    def exit(self, params: Any = None) -> None:
        with self._lock:
            previous = self._connection
            if previous is ConnectionState.EXITED:
                return
            self._connection = ConnectionState.EXITED
        logger.info("Connection %s -> exited", previous.name.lower())
        self.exit_code = 0 if previous is ConnectionState.SHUTTING_DOWN else 1
        self.release()
        self._terminate(self.exit_code)

    def release(self) -> None:
        """Stop background work without terminating the process."""
        if self.probe is not None:
            self.probe.stop(timeout=self.config.liveness_interval)
        self.producer.close()
        self.dispatcher.close()
