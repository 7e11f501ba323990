from __future__ import annotations

import logging
import threading

import pytest
from lsprotocol import types
from lsprotocol.types import ErrorCodes

from lspcore.dispatch import CallKind, Dispatcher, DomainError, Fault, Ok
from lspcore.feature import BaseFeatureHandler
from lspcore.router import DOCUMENT_ROUTES, WORKSPACE_ROUTES, Mode, Router


class _Handler(BaseFeatureHandler):
    def __init__(self) -> None:
        super().__init__()
        self.commands: list[tuple[str, list]] = []
        self.command_started = threading.Event()
        self.release = threading.Event()
        self.completion_result: object = [{"label": "alpha"}, {"label": "beta"}]

    def completion(self, params):
        return self.completion_result

    def hover(self, params):
        if params.text_document.uri.endswith("denied.py"):
            return DomainError("hover denied", data={"uri": params.text_document.uri})
        if params.text_document.uri.endswith("broken.py"):
            raise KeyError("broken")
        return {"contents": {"kind": "markdown", "value": "**doc**"}}

    def execute_command(self, params):
        self.commands.append((params.command, params.arguments))
        self.command_started.set()
        self.release.wait(5)
        return {"ignored": True}


@pytest.fixture
def handler() -> _Handler:
    return _Handler()


@pytest.fixture
def router(handler: _Handler):
    dispatcher = Dispatcher(max_workers=2)
    yield Router(handler, dispatcher)
    handler.release.set()
    dispatcher.close(wait=True)


def _position(uri: str = "file:///a.py") -> dict:
    return {"textDocument": {"uri": uri}, "position": {"line": 0, "character": 0}}


def test_routing_tables_map_methods_to_modes() -> None:
    routes = {route.method: route for route in DOCUMENT_ROUTES + WORKSPACE_ROUTES}
    assert routes[types.TEXT_DOCUMENT_DID_OPEN].mode is Mode.SYNC
    assert routes[types.TEXT_DOCUMENT_DID_CHANGE].mode is Mode.SYNC
    assert routes[types.TEXT_DOCUMENT_DID_SAVE].mode is Mode.DETACHED
    assert routes[types.TEXT_DOCUMENT_DID_CLOSE].mode is Mode.DETACHED
    assert routes[types.TEXT_DOCUMENT_COMPLETION].mode is Mode.ASYNC
    assert routes[types.TEXT_DOCUMENT_COMPLETION].summarize is not None
    assert routes[types.TEXT_DOCUMENT_RANGE_FORMATTING].mode is Mode.IMMEDIATE
    assert routes[types.WORKSPACE_EXECUTE_COMMAND].mode is Mode.DETACHED
    assert routes[types.WORKSPACE_DID_CHANGE_WATCHED_FILES].mode is Mode.DETACHED
    assert routes[types.WORKSPACE_DID_CHANGE_CONFIGURATION].mode is Mode.SYNC
    assert routes[types.WORKSPACE_SYMBOL].mode is Mode.ASYNC
    assert routes[types.TEXT_DOCUMENT_DID_OPEN].kind is CallKind.NOTIFICATION
    assert routes[types.TEXT_DOCUMENT_HOVER].kind is CallKind.REQUEST
    for route in routes.values():
        assert callable(getattr(BaseFeatureHandler, route.operation))


def test_unknown_method_is_method_not_found(router: Router) -> None:
    outcome = router.handle("textDocument/teleport", {}).result()
    assert isinstance(outcome, DomainError)
    assert outcome.code == ErrorCodes.MethodNotFound.value


def test_completion_result_is_coerced(router: Router) -> None:
    outcome = router.handle(types.TEXT_DOCUMENT_COMPLETION, _position()).result(timeout=5)
    assert isinstance(outcome, Ok)
    assert [item.label for item in outcome.value] == ["alpha", "beta"]


def test_malformed_completion_becomes_empty_list(router: Router, handler: _Handler) -> None:
    handler.completion_result = [{"detail": "missing label"}]
    outcome = router.handle(types.TEXT_DOCUMENT_COMPLETION, _position()).result(timeout=5)
    assert outcome == Ok([])


def test_completion_call_is_summarized(router: Router, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="lspcore.dispatch")
    router.handle(types.TEXT_DOCUMENT_COMPLETION, _position()).result(timeout=5)
    assert any("total items: 2" in record.getMessage() for record in caplog.records)


def test_hover_outcomes(router: Router) -> None:
    ok = router.handle(types.TEXT_DOCUMENT_HOVER, _position()).result(timeout=5)
    assert isinstance(ok.value, types.Hover)
    denied = router.handle(types.TEXT_DOCUMENT_HOVER, _position("file:///denied.py")).result(timeout=5)
    assert denied == DomainError("hover denied", data={"uri": "file:///denied.py"})
    broken = router.handle(types.TEXT_DOCUMENT_HOVER, _position("file:///broken.py")).result(timeout=5)
    assert isinstance(broken, Fault)


def test_execute_command_is_acknowledged_immediately(router: Router, handler: _Handler) -> None:
    ack = router.handle(
        types.WORKSPACE_EXECUTE_COMMAND,
        {"command": "lspcore.rebuild", "arguments": [1, "two"]},
    )
    assert ack.done()
    assert ack.result() == Ok(None)
    assert handler.command_started.wait(5)
    assert handler.commands == [("lspcore.rebuild", [1, "two"])]
    handler.release.set()


def test_document_sync_routes_maintain_documents(router: Router, handler: _Handler) -> None:
    router.handle(
        types.TEXT_DOCUMENT_DID_OPEN,
        {"textDocument": {"uri": "file:///a.py", "languageId": "python", "version": 1, "text": "a"}},
    ).result()
    assert handler.state.documents["file:///a.py"].text == "a"
    router.handle(
        types.TEXT_DOCUMENT_DID_CHANGE,
        {"textDocument": {"uri": "file:///a.py", "version": 2}, "contentChanges": [{"text": "b"}]},
    ).result()
    document = handler.state.documents["file:///a.py"]
    assert (document.text, document.version) == ("b", 2)
    router.handle(types.TEXT_DOCUMENT_DID_CLOSE, {"textDocument": {"uri": "file:///a.py"}}).result()
    router.dispatcher.close(wait=True)
    assert "file:///a.py" not in handler.state.documents


def test_configuration_change_is_logged(router: Router, caplog) -> None:
    caplog.set_level(logging.WARNING, logger="lspcore.feature")
    outcome = router.handle(
        types.WORKSPACE_DID_CHANGE_CONFIGURATION,
        {"settings": {"lspcore": {"lint": True}}},
    ).result()
    assert outcome == Ok(None)
    assert any("Configuration changed" in record.getMessage() for record in caplog.records)
