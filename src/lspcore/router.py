"""Declarative routing tables.

Each `Route` names the protocol method, the feature-handler operation it maps
to, the domain shape of its parameters, the wire shape of its result and the
dispatch mode. The router only wires these together; it holds no business
logic.
"""

from __future__ import annotations

import enum
import logging
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from lsprotocol import types
from pydantic import BaseModel

from lspcore import coercion, schema
from lspcore.coercion import Shape, to_domain, to_wire
from lspcore.dispatch import Call, CallKind, Dispatcher, DomainError, Ok, Outcome, Summarizer, completed
from lspcore.single_flight import RangeFormatter

logger = logging.getLogger(__name__)


class Mode(enum.Enum):
    SYNC = "sync"
    ASYNC = "async"
    DETACHED = "detached"
    IMMEDIATE = "immediate"


Adapter = Callable[[Any], Callable[[Any], Any]]


@dataclass(frozen=True)
class Route:
    method: str
    operation: str
    params: type[BaseModel]
    result: Shape | None = None
    mode: Mode = Mode.ASYNC
    kind: CallKind = CallKind.REQUEST
    summarize: Summarizer | None = None
    adapter: Adapter | None = None


def summarize_completion(items: Any) -> str:
    return f"total items: {len(items)}"


def _notification(method: str, operation: str, params: type[BaseModel], mode: Mode) -> Route:
    return Route(method, operation, params, mode=mode, kind=CallKind.NOTIFICATION)


DOCUMENT_ROUTES: tuple[Route, ...] = (
    _notification(types.TEXT_DOCUMENT_DID_OPEN, "did_open", schema.TextDocumentParams, Mode.SYNC),
    _notification(
        types.TEXT_DOCUMENT_DID_CHANGE, "did_change", schema.DidChangeTextDocumentParams, Mode.SYNC
    ),
    _notification(
        types.TEXT_DOCUMENT_DID_SAVE, "did_save", schema.DidSaveTextDocumentParams, Mode.DETACHED
    ),
    _notification(types.TEXT_DOCUMENT_DID_CLOSE, "did_close", schema.TextDocumentParams, Mode.DETACHED),
    Route(
        types.TEXT_DOCUMENT_REFERENCES,
        "references",
        schema.ReferenceParams,
        coercion.LOCATIONS,
    ),
    Route(
        types.TEXT_DOCUMENT_COMPLETION,
        "completion",
        schema.CompletionParams,
        coercion.COMPLETION_ITEMS,
        summarize=summarize_completion,
    ),
    Route(
        types.COMPLETION_ITEM_RESOLVE,
        "completion_resolve_item",
        schema.ItemPayload,
        coercion.COMPLETION_ITEM,
    ),
    Route(
        types.TEXT_DOCUMENT_PREPARE_RENAME,
        "prepare_rename",
        schema.TextDocumentPositionParams,
        coercion.PREPARE_RENAME,
    ),
    Route(types.TEXT_DOCUMENT_RENAME, "rename", schema.RenameParams, coercion.WORKSPACE_EDIT),
    Route(types.TEXT_DOCUMENT_HOVER, "hover", schema.TextDocumentPositionParams, coercion.HOVER),
    Route(
        types.TEXT_DOCUMENT_SIGNATURE_HELP,
        "signature_help",
        schema.TextDocumentPositionParams,
        coercion.SIGNATURE_HELP,
    ),
    Route(types.TEXT_DOCUMENT_FORMATTING, "formatting", schema.FormattingParams, coercion.EDITS),
    Route(
        types.TEXT_DOCUMENT_RANGE_FORMATTING,
        "range_formatting",
        schema.RangeFormattingParams,
        coercion.EDITS,
        mode=Mode.IMMEDIATE,
        adapter=RangeFormatter,
    ),
    Route(
        types.TEXT_DOCUMENT_CODE_ACTION,
        "code_actions",
        schema.CodeActionParams,
        coercion.CODE_ACTIONS,
    ),
    Route(types.TEXT_DOCUMENT_CODE_LENS, "code_lens", schema.TextDocumentParams, coercion.CODE_LENSES),
    Route(types.CODE_LENS_RESOLVE, "code_lens_resolve", schema.ItemPayload, coercion.CODE_LENS),
    Route(
        types.TEXT_DOCUMENT_DEFINITION,
        "definition",
        schema.TextDocumentPositionParams,
        coercion.LOCATION,
    ),
    Route(
        types.TEXT_DOCUMENT_DECLARATION,
        "declaration",
        schema.TextDocumentPositionParams,
        coercion.LOCATION,
    ),
    Route(
        types.TEXT_DOCUMENT_IMPLEMENTATION,
        "implementation",
        schema.TextDocumentPositionParams,
        coercion.LOCATIONS,
    ),
    Route(
        types.TEXT_DOCUMENT_DOCUMENT_SYMBOL,
        "document_symbol",
        schema.TextDocumentParams,
        coercion.DOCUMENT_SYMBOLS,
    ),
    Route(
        types.TEXT_DOCUMENT_DOCUMENT_HIGHLIGHT,
        "document_highlight",
        schema.TextDocumentPositionParams,
        coercion.DOCUMENT_HIGHLIGHTS,
    ),
    Route(
        types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL,
        "semantic_tokens_full",
        schema.TextDocumentParams,
        coercion.SEMANTIC_TOKENS,
    ),
    Route(
        types.TEXT_DOCUMENT_SEMANTIC_TOKENS_RANGE,
        "semantic_tokens_range",
        schema.RangeParams,
        coercion.SEMANTIC_TOKENS,
    ),
    Route(
        types.TEXT_DOCUMENT_PREPARE_CALL_HIERARCHY,
        "prepare_call_hierarchy",
        schema.TextDocumentPositionParams,
        coercion.CALL_HIERARCHY_ITEMS,
    ),
    Route(
        types.CALL_HIERARCHY_INCOMING_CALLS,
        "call_hierarchy_incoming",
        schema.CallHierarchyItemParams,
        coercion.CALL_HIERARCHY_INCOMING_CALLS,
    ),
    Route(
        types.CALL_HIERARCHY_OUTGOING_CALLS,
        "call_hierarchy_outgoing",
        schema.CallHierarchyItemParams,
        coercion.CALL_HIERARCHY_OUTGOING_CALLS,
    ),
    Route(
        types.TEXT_DOCUMENT_LINKED_EDITING_RANGE,
        "linked_editing_ranges",
        schema.TextDocumentPositionParams,
        coercion.LINKED_EDITING_RANGES,
    ),
)

WORKSPACE_ROUTES: tuple[Route, ...] = (
    Route(
        types.WORKSPACE_EXECUTE_COMMAND,
        "execute_command",
        schema.ExecuteCommandParams,
        mode=Mode.DETACHED,
    ),
    _notification(
        types.WORKSPACE_DID_CHANGE_WATCHED_FILES,
        "did_change_watched_files",
        schema.DidChangeWatchedFilesParams,
        Mode.DETACHED,
    ),
    _notification(
        types.WORKSPACE_DID_CHANGE_CONFIGURATION,
        "did_change_configuration",
        schema.DidChangeConfigurationParams,
        Mode.SYNC,
    ),
    Route(
        types.WORKSPACE_SYMBOL,
        "workspace_symbols",
        schema.WorkspaceSymbolParams,
        coercion.WORKSPACE_SYMBOLS,
    ),
)


class Router:
    """Maps inbound methods onto feature-handler operations."""

    def __init__(
        self,
        handler: Any,
        dispatcher: Dispatcher,
        routes: tuple[Route, ...] = DOCUMENT_ROUTES + WORKSPACE_ROUTES,
    ):
        self.handler = handler
        self.dispatcher = dispatcher
        self.routes: Mapping[str, Route] = {route.method: route for route in routes}
        # Adapters are built once so their state (the formatting latch) is shared by every call.
        self._adapters = {
            route.method: route.adapter(handler)
            for route in routes
            if route.adapter is not None
        }

    @property
    def methods(self) -> frozenset[str]:
        return frozenset(self.routes)

    def adapter(self, method: str) -> Any:
        return self._adapters.get(method)

    def _operation(self, route: Route) -> Callable[[Any], Any]:
        adapted = self._adapters.get(route.method)
        if adapted is not None:
            return adapted
        return getattr(self.handler, route.operation)

    def _body(self, route: Route, params: Any) -> Callable[[], Any]:
        def body() -> Any:
            result = self._operation(route)(to_domain(params, route.params))
            if isinstance(result, DomainError):
                return result
            if isinstance(result, Ok):
                result = result.value
            if route.result is None:
                return None
            return to_wire(result, route.result, method=route.method)

        return body

    def handle(self, method: str, params: Any = None) -> Future[Outcome]:
        route = self.routes.get(method)
        if route is None:
            logger.debug("No route for %s", method)
            return completed(DomainError.method_not_found(method))
        call = Call(method, route.kind, params)
        body = self._body(route, params)
        if route.mode is Mode.SYNC:
            return completed(self.dispatcher.run(call, body, summarize=route.summarize))
        if route.mode is Mode.IMMEDIATE:
            return self.dispatcher.completed(call, body, summarize=route.summarize)
        if route.mode is Mode.DETACHED:
            return self.dispatcher.detach(call, body)
        return self.dispatcher.submit(call, body, summarize=route.summarize)
