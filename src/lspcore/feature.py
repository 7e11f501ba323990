"""Feature-handler contract.

The router calls exactly one operation per routing entry with the coerced
domain parameters. An operation returns a domain value, or a `DomainError` to
make a failure visible to the client. Operations may be called from any
worker thread.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from lspcore import schema
from lspcore.schema import ClientCapabilities, RowColRange
from lspcore.state import ServerState

logger = logging.getLogger(__name__)


class FeatureHandler(Protocol):
    def initialize(
        self,
        root_uri: str | None,
        client_capabilities: ClientCapabilities,
        client_settings: dict[str, Any],
        work_done_token: int | str | None,
    ) -> Any: ...

    def did_open(self, params: schema.TextDocumentParams) -> Any: ...
    def did_change(self, params: schema.DidChangeTextDocumentParams) -> Any: ...
    def did_save(self, params: schema.DidSaveTextDocumentParams) -> Any: ...
    def did_close(self, params: schema.TextDocumentParams) -> Any: ...
    def references(self, params: schema.ReferenceParams) -> Any: ...
    def completion(self, params: schema.CompletionParams) -> Any: ...
    def completion_resolve_item(self, params: schema.ItemPayload) -> Any: ...
    def prepare_rename(self, params: schema.TextDocumentPositionParams) -> Any: ...
    def rename(self, params: schema.RenameParams) -> Any: ...
    def hover(self, params: schema.TextDocumentPositionParams) -> Any: ...
    def signature_help(self, params: schema.TextDocumentPositionParams) -> Any: ...
    def formatting(self, params: schema.FormattingParams) -> Any: ...
    def range_formatting(self, document_uri: str, range: RowColRange) -> Any: ...
    def code_actions(self, params: schema.CodeActionParams) -> Any: ...
    def code_lens(self, params: schema.TextDocumentParams) -> Any: ...
    def code_lens_resolve(self, params: schema.ItemPayload) -> Any: ...
    def definition(self, params: schema.TextDocumentPositionParams) -> Any: ...
    def declaration(self, params: schema.TextDocumentPositionParams) -> Any: ...
    def implementation(self, params: schema.TextDocumentPositionParams) -> Any: ...
    def document_symbol(self, params: schema.TextDocumentParams) -> Any: ...
    def document_highlight(self, params: schema.TextDocumentPositionParams) -> Any: ...
    def semantic_tokens_full(self, params: schema.TextDocumentParams) -> Any: ...
    def semantic_tokens_range(self, params: schema.RangeParams) -> Any: ...
    def prepare_call_hierarchy(self, params: schema.TextDocumentPositionParams) -> Any: ...
    def call_hierarchy_incoming(self, params: schema.CallHierarchyItemParams) -> Any: ...
    def call_hierarchy_outgoing(self, params: schema.CallHierarchyItemParams) -> Any: ...
    def linked_editing_ranges(self, params: schema.TextDocumentPositionParams) -> Any: ...
    def execute_command(self, params: schema.ExecuteCommandParams) -> Any: ...
    def did_change_configuration(self, params: schema.DidChangeConfigurationParams) -> Any: ...
    def did_change_watched_files(self, params: schema.DidChangeWatchedFilesParams) -> Any: ...
    def workspace_symbols(self, params: schema.WorkspaceSymbolParams) -> Any: ...


class BaseFeatureHandler:
    """Neutral implementation of every `FeatureHandler` operation.

    Keeps the open documents in `ServerState.documents` (full text sync) and
    answers every request with an empty result. Subclasses override what they
    support.
    """

    def __init__(self, state: ServerState | None = None):
        self.state = state or ServerState()

    def bind(self, state: ServerState) -> None:
        self.state = state

    def initialize(self, root_uri, client_capabilities, client_settings, work_done_token):
        self.state.root_uri = root_uri

    def did_open(self, params: schema.TextDocumentParams) -> None:
        document = params.text_document
        self.state.documents[document.uri] = document

    def did_change(self, params: schema.DidChangeTextDocumentParams) -> None:
        uri = params.text_document.uri
        current = self.state.documents.get(uri)
        if current is None:
            return
        for change in params.content_changes:
            if "range" in change:
                logger.warning("Ignoring incremental change for %s", uri)
                continue
            current = current.model_copy(
                update={"text": change.get("text", ""), "version": params.text_document.version}
            )
        self.state.documents[uri] = current

    def did_save(self, params: schema.DidSaveTextDocumentParams) -> None:
        return None

    def did_close(self, params: schema.TextDocumentParams) -> None:
        self.state.documents.pop(params.text_document.uri, None)

    def references(self, params):
        return []

    def completion(self, params):
        return []

    def completion_resolve_item(self, params):
        return params

    def prepare_rename(self, params):
        return None

    def rename(self, params):
        return None

    def hover(self, params):
        return None

    def signature_help(self, params):
        return None

    def formatting(self, params):
        return []

    def range_formatting(self, document_uri, range):
        return []

    def code_actions(self, params):
        return []

    def code_lens(self, params):
        return []

    def code_lens_resolve(self, params):
        return params

    def definition(self, params):
        return None

    def declaration(self, params):
        return None

    def implementation(self, params):
        return []

    def document_symbol(self, params):
        return []

    def document_highlight(self, params):
        return []

    def semantic_tokens_full(self, params):
        return None

    def semantic_tokens_range(self, params):
        return None

    def prepare_call_hierarchy(self, params):
        return []

    def call_hierarchy_incoming(self, params):
        return []

    def call_hierarchy_outgoing(self, params):
        return []

    def linked_editing_ranges(self, params):
        return None

    def execute_command(self, params):
        return None

    def did_change_configuration(self, params: schema.DidChangeConfigurationParams) -> None:
        logger.warning("Configuration changed: %r", params.settings)

    def did_change_watched_files(self, params):
        return None

    def workspace_symbols(self, params):
        return []
