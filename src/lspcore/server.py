from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future
from typing import Any, BinaryIO, Callable

from lsprotocol import types
from pygls.exceptions import JsonRpcException
from pygls.lsp.server import LanguageServer

from lspcore.coercion import SERVER_CAPABILITIES, to_wire
from lspcore.config import ServerConfig
from lspcore.core import ServerCore
from lspcore.dispatch import CallKind, DomainError, Ok, Outcome
from lspcore.feature import BaseFeatureHandler
from lspcore.router import Mode, Route

logger = logging.getLogger(__name__)

_OPTION_PROVIDERS = {
    types.TEXT_DOCUMENT_COMPLETION: "completion_provider",
    types.TEXT_DOCUMENT_SIGNATURE_HELP: "signature_help_provider",
    types.TEXT_DOCUMENT_RENAME: "rename_provider",
    types.TEXT_DOCUMENT_CODE_LENS: "code_lens_provider",
}

_SEMANTIC_TOKENS_METHODS = {
    types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL,
    types.TEXT_DOCUMENT_SEMANTIC_TOKENS_RANGE,
}

_LIFECYCLE_HOOKS = {
    types.INITIALIZE: CallKind.REQUEST,
    types.INITIALIZED: CallKind.NOTIFICATION,
    types.SHUTDOWN: CallKind.REQUEST,
    types.EXIT: CallKind.NOTIFICATION,
}


class PyglsClient:
    """`Client` over a pygls connection."""

    def __init__(self, ls: LanguageServer):
        self._ls = ls

    def notify(self, method: str, params: Any = None) -> None:
        self._ls.protocol.notify(method, params)

    def request(self, method: str, params: Any = None) -> Future[Any]:
        return self._ls.protocol.send_request(method, params)


def _answer(method: str, kind: CallKind, outcome: Outcome) -> Any:
    if isinstance(outcome, Ok):
        return outcome.value
    if isinstance(outcome, DomainError):
        if kind is CallKind.NOTIFICATION:
            logger.warning("%s: %s", method, outcome.message)
            return None
        raise JsonRpcException(code=outcome.code, message=outcome.message, data=outcome.data)
    return None


def _feature_callback(core: ServerCore, route: Route) -> Callable[..., Any]:
    method, kind = route.method, route.kind
    if route.mode is Mode.ASYNC:

        async def callback(ls: LanguageServer, params: Any) -> Any:
            outcome = await asyncio.wrap_future(core.handle(method, params))
            return _answer(method, kind, outcome)

    else:

        def callback(ls: LanguageServer, params: Any) -> Any:
            return _answer(method, kind, core.handle(method, params).result())

    callback.__name__ = route.operation
    return callback


def _lifecycle_hook(core: ServerCore, method: str) -> Callable[..., None]:
    # pygls answers initialize and shutdown itself once these return; raising
    # JsonRpcException here turns that answer into an error response.
    kind = _LIFECYCLE_HOOKS[method]

    def hook(ls: LanguageServer, params: Any = None) -> None:
        _answer(method, kind, core.handle(method, params).result())

    hook.__name__ = method.replace("/", "_")
    return hook


def _command_callback(core: ServerCore, command: str) -> Callable[..., Any]:
    def callback(ls: LanguageServer, *arguments: Any) -> Any:
        outcome = core.handle(
            types.WORKSPACE_EXECUTE_COMMAND,
            {"command": command, "arguments": list(arguments)},
        ).result()
        return _answer(types.WORKSPACE_EXECUTE_COMMAND, CallKind.REQUEST, outcome)

    callback.__name__ = command
    return callback


def feature_options(capabilities: types.ServerCapabilities, method: str) -> Any:
    if method in _SEMANTIC_TOKENS_METHODS:
        provider = capabilities.semantic_tokens_provider
        return getattr(provider, "legend", None)
    attribute = _OPTION_PROVIDERS.get(method)
    if attribute is None:
        return None
    options = getattr(capabilities, attribute, None)
    return None if isinstance(options, bool) else options


def build_server(core: ServerCore) -> LanguageServer:
    """Register every routed method of `core` on a new pygls server."""
    server = LanguageServer(
        core.config.name,
        core.config.version,
        text_document_sync_kind=types.TextDocumentSyncKind.Full,
        max_workers=core.config.max_workers or 2,
    )
    capabilities = to_wire(core.lifecycle.capabilities, SERVER_CAPABILITIES)
    for method in _LIFECYCLE_HOOKS:
        server.feature(method)(_lifecycle_hook(core, method))
    for method, route in core.router.routes.items():
        if method == types.WORKSPACE_EXECUTE_COMMAND:
            continue
        options = feature_options(capabilities, method)
        if method in _SEMANTIC_TOKENS_METHODS and options is None:
            logger.debug("No semantic token legend configured, not serving %s", method)
            continue
        callback = _feature_callback(core, route)
        if route.mode is Mode.IMMEDIATE:
            callback = server.thread()(callback)
        server.feature(method, options)(callback)
    for command in core.config.commands:
        server.command(command)(_command_callback(core, command))
    core.connect(PyglsClient(server))
    return server


def create_server(
    handler: Any = None,
    *,
    config: ServerConfig | None = None,
) -> tuple[LanguageServer, ServerCore]:
    core = ServerCore(handler if handler is not None else BaseFeatureHandler(), config=config)
    return build_server(core), core


def start(
    start_fn: Callable[[], None] | None = None,
    *,
    handler: Any = None,
    config: ServerConfig | None = None,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> None:
    """Serve over stdio until the client disconnects or sends exit."""
    server, core = create_server(handler, config=config)
    try:
        if start_fn is not None:
            start_fn()
        else:
            server.start_io(stdin, stdout)
    finally:
        core.close()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover
